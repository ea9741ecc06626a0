from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from google.auth.exceptions import GoogleAuthError
from google.oauth2 import service_account
from googleapiclient.discovery import build

from core.errors import ConfigurationError, SheetsAuthError

SHEETS_SCOPES = ("https://www.googleapis.com/auth/spreadsheets.readonly",)


class SheetsClientProvider:
    """Builds the authenticated Sheets API client once per process.

    The service-account blob is read from configuration. Outside production a
    missing blob falls back to a local key file; in production it is a
    :class:`ConfigurationError`.
    """

    def __init__(
        self,
        credentials_json: str | dict[str, Any] | None = None,
        credentials_path: str | None = "credentials.json",
        production: bool = False,
        scopes: tuple[str, ...] = SHEETS_SCOPES,
    ) -> None:
        self.credentials_json = credentials_json
        self.credentials_path = (credentials_path or "").strip()
        self.production = bool(production)
        self.scopes = tuple(scopes)
        self._client: Any = None

    @classmethod
    def from_config(cls, config: dict[str, Any], production: bool = False) -> "SheetsClientProvider":
        sheets_conf = config.get("sheets", {})
        return cls(
            credentials_json=sheets_conf.get("credentials_json"),
            credentials_path=sheets_conf.get("credentials_path"),
            production=production,
        )

    def get_client(self) -> Any:
        if self._client is not None:
            return self._client
        credentials = self._load_credentials()
        try:
            self._client = build("sheets", "v4", credentials=credentials, cache_discovery=False)
        except GoogleAuthError as exc:
            raise SheetsAuthError(f"failed to build sheets client: {exc}") from exc
        return self._client

    def _load_credentials(self) -> Any:
        info = self._credentials_info()
        if info is not None:
            try:
                return service_account.Credentials.from_service_account_info(info, scopes=list(self.scopes))
            except (ValueError, KeyError, GoogleAuthError) as exc:
                raise SheetsAuthError(f"invalid google service account credentials: {exc}") from exc

        if self.production:
            raise ConfigurationError("GOOGLE_CREDENTIALS_JSON is required in production")

        path = Path(self.credentials_path) if self.credentials_path else None
        if path is None or not path.exists():
            raise ConfigurationError(
                "google credentials are not configured: set GOOGLE_CREDENTIALS_JSON "
                f"or provide a key file at {self.credentials_path or '<unset>'}"
            )
        print(f"sheets-credentials-local-fallback path={path}")
        try:
            return service_account.Credentials.from_service_account_file(str(path), scopes=list(self.scopes))
        except (ValueError, KeyError, OSError, GoogleAuthError) as exc:
            raise SheetsAuthError(f"failed to load local credentials file {path}: {exc}") from exc

    def _credentials_info(self) -> dict[str, Any] | None:
        raw = self.credentials_json
        if raw in (None, ""):
            return None
        if isinstance(raw, dict):
            return raw
        try:
            parsed = json.loads(str(raw))
        except json.JSONDecodeError as exc:
            raise SheetsAuthError(f"GOOGLE_CREDENTIALS_JSON is not valid JSON: {exc}") from exc
        if not isinstance(parsed, dict):
            raise SheetsAuthError("GOOGLE_CREDENTIALS_JSON must be a JSON object")
        return parsed
