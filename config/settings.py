"""
Application settings loaded from environment variables.
"""

from pydantic_settings import BaseSettings
from typing import List


class Settings(BaseSettings):
    # ── ClickUp ─────────────────────────────────────────────────────────
    clickup_api_token: str = ""                                # personal API token, sent as-is
    clickup_base_api: str = "https://api.clickup.com/api/v2"
    clickup_timezone: str = "UTC"                              # "today" for the due-date window

    # ── Microsoft identity platform ─────────────────────────────────────
    microsoft_client_id: str = ""
    microsoft_client_secret: str = ""
    microsoft_redirect_uri: str = "http://localhost:5500/exchange.html"
    microsoft_tenant: str = "consumers"
    microsoft_authority: str = "https://login.microsoftonline.com"
    microsoft_permissions: str = (
        "openid profile offline_access User.Read Mail.Read Files.Read Files.ReadWrite"
    )

    # ── Microsoft Graph ─────────────────────────────────────────────────
    microsoft_graph_api: str = "https://graph.microsoft.com/v1.0"
    microsoft_excel_sheet_path: str = ""    # e.g. /Documents/Tracker.xlsx
    microsoft_excel_sheet_name: str = "Sheet1"
    microsoft_excel_table_name: str = "Table1"

    # ── Security Secrets ──────────────────────────────────────────────────
    session_secret: str = "change-me-session-secret"   # signs the session cookie
    session_lifetime_seconds: int = 8 * 3600
    token_encryption_key: str = ""                      # Fernet key for encrypting OAuth tokens at rest

    # ── Token / discovery caches ────────────────────────────────────────
    token_refresh_margin_seconds: int = 300
    token_cache_min_ttl_seconds: int = 10
    file_location_ttl_seconds: int = 86400
    drive_search_max_depth: int = 10

    # ── Mail ────────────────────────────────────────────────────────────
    unreplied_max_results: int = 50
    sent_page_size: int = 200                  # $top per Sent page; every page is read

    # ── Server ───────────────────────────────────────────────────────────
    port: int = 8000
    host: str = "0.0.0.0"
    debug: bool = False
    cors_origins: List[str] = ["http://localhost:5500"]

    model_config = {
        "env_file": ".env",
        "case_sensitive": False,
    }

    @property
    def microsoft_token_url(self) -> str:
        return f"{self.microsoft_authority}/{self.microsoft_tenant}/oauth2/v2.0/token"

    @property
    def microsoft_authorize_url(self) -> str:
        return f"{self.microsoft_authority}/{self.microsoft_tenant}/oauth2/v2.0/authorize"

    @property
    def microsoft_scopes(self) -> List[str]:
        return self.microsoft_permissions.split()


config = Settings()
