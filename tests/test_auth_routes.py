"""
Tests for sign-in, session lookup, logout and the Graph token dependency,
driven through the HTTP surface.
"""

import httpx

from tests.conftest import TOKEN_PATH, sign_in


class TestSignIn:
    def test_code_exchange_opens_session(self, client, identity):
        resp = sign_in(client)
        body = resp.json()

        assert body["success"] is True
        assert body["user"]["name"] == "Ada Lovelace"
        assert body["user"]["email"] == "ada@example.com"
        assert body["expires_in"] == 3600
        assert "gateway_session" in resp.cookies

        grant = identity.grants[0]
        assert grant["grant_type"] == "authorization_code"
        assert grant["code"] == "auth-code"
        assert grant["code_verifier"] == "verifier"
        assert grant["client_secret"] == "client-secret"

    def test_raw_tokens_never_leave_the_server(self, client, identity):
        resp = sign_in(client)
        assert "access-1" not in resp.text
        assert "refresh-1" not in resp.text

    def test_rejected_code(self, client, upstream):
        upstream.add("POST", TOKEN_PATH, handler=lambda req: httpx.Response(
            400, json={"error": "invalid_grant", "error_description": "AADSTS54005: code already redeemed"}
        ))

        resp = client.post("/auth/token", json={"code": "used", "code_verifier": "v"})

        assert resp.status_code == 401
        body = resp.json()
        assert body["success"] is False
        assert body["reauth_required"] is True
        assert "AADSTS54005" in body["error"]

    def test_missing_verifier_is_rejected_before_upstream(self, client, upstream):
        resp = client.post("/auth/token", json={"code": "auth-code"})
        assert resp.status_code == 422
        assert resp.json()["error"] == "Invalid request"
        assert upstream.calls == []


class TestSession:
    def test_current_user(self, client, identity):
        sign_in(client)
        resp = client.get("/auth/user")
        assert resp.status_code == 200
        assert resp.json()["user"]["email"] == "ada@example.com"

    def test_anonymous_user_needs_reauth(self, client):
        resp = client.get("/auth/user")
        assert resp.status_code == 401
        assert resp.json() == {
            "success": False,
            "error": "User not authenticated",
            "reauth_required": True,
        }

    def test_logout_ends_session(self, client, identity):
        sign_in(client)
        assert client.post("/auth/logout").json()["success"] is True
        assert client.get("/auth/user").status_code == 401

    def test_logout_without_session(self, client):
        assert client.post("/auth/logout").status_code == 200

    def test_public_config(self, client):
        body = client.get("/microsoft/config").json()
        assert body["client_id"] == "client-id"
        assert body["authorize_url"] == "https://login.test/consumers/oauth2/v2.0/authorize"
        assert "client_secret" not in body


class TestGraphToken:
    def test_valid_token_used_without_refresh(self, client, identity, upstream):
        upstream.add("GET", "/me/mailFolders/inbox/messages", {"value": []})
        sign_in(client)

        resp = client.get("/emails/unreplied")

        assert resp.status_code == 200
        assert identity.refreshes() == 0
        assert upstream.calls[-1].headers["Authorization"] == "Bearer access-1"

    def test_expired_token_refreshed_once(self, client, identity, upstream):
        upstream.add("GET", "/me/mailFolders/inbox/messages", {"value": []})
        identity.expires_in = 0
        sign_in(client)

        first = client.get("/emails/unreplied")
        second = client.get("/emails/unreplied")

        assert first.status_code == second.status_code == 200
        assert identity.refreshes() == 1
        assert identity.grants[-1]["refresh_token"] == "refresh-1"
        assert upstream.calls[-1].headers["Authorization"] == "Bearer access-2"

    def test_failed_refresh_needs_reauth(self, client, identity, upstream):
        identity.expires_in = 0
        identity.refresh_status = 400
        sign_in(client)

        resp = client.get("/emails/unreplied")

        assert resp.status_code == 401
        assert resp.json()["reauth_required"] is True
        assert upstream.count("GET", "/me/mailFolders/inbox/messages") == 0

    def test_graph_routes_need_a_session(self, client, upstream):
        resp = client.get("/emails/unreplied")
        assert resp.status_code == 401
        assert upstream.calls == []
