"""
auth — Microsoft sign-in and the server-side session.

Provides:
  • ``SessionPrincipal`` — the signed-in user with encrypted tokens
  • ``SessionManager`` — principal storage keyed by the session cookie's sid
  • /auth and /microsoft routes (code exchange, current user, logout, config)
"""
