"""
connectors — OAuth integration with the Microsoft identity platform.

Handles:
  • Authorization-code exchange (PKCE)
  • Refresh-token grant with a short-lived access-token cache
  • Fernet encryption of tokens at rest

Each provider is a subclass of BaseConnector.
"""
