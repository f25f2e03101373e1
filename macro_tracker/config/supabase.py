# macro_tracker/config/supabase.py
"""
Supabase session manager with an explicit lifecycle.

The manager:
  - Is built from injected `Settings`; nothing connects at import time.
  - Is started and closed by the FastAPI lifespan (`start()` / `close()`).
  - Exposes `.client`, `.health_check()`, `.diagnostics()` and
    `.authenticate()` for resolving a bearer token to a user id.
  - Avoids logging secrets; diagnostics return structural info only.
"""
from __future__ import annotations

import logging
import re
from typing import Any, Dict, Optional
from urllib.parse import urlparse

from supabase import Client, create_client

from macro_tracker.config.settings import Settings

logger = logging.getLogger(__name__)

# Simple strict supabase domain check (https + project ref + .supabase.co)
_SUPABASE_URL_RE = re.compile(r"^https://[A-Za-z0-9\-]+\.supabase\.co/?$")


class SupabaseSessionManager:
    """
    Owns the supabase-py `Client` for the lifetime of the application.

    Use:
        manager = SupabaseSessionManager(settings)
        manager.start()
        client = manager.client  # None if not configured
        ...
        manager.close()
    """

    def __init__(self, settings: Settings, client: Optional[Client] = None) -> None:
        self._settings = settings
        self._client: Optional[Client] = client
        self._started: bool = client is not None

    def _validate_url(self, url: Optional[str]) -> bool:
        return bool(url and _SUPABASE_URL_RE.match(url))

    def start(self) -> None:
        if self._started:
            return

        supabase_url = (self._settings.supabase_url or "").strip()
        supabase_key = self._settings.supabase_service_role_key or ""
        self._started = True

        if not supabase_url or not supabase_key:
            logger.debug(
                "Supabase credentials not present at start: url=%r key_present=%s",
                supabase_url,
                bool(supabase_key),
            )
            return

        if not self._validate_url(supabase_url):
            logger.error(
                "Supabase URL format invalid: %r. Expected https://<project>.supabase.co",
                supabase_url,
            )
            return

        try:
            self._client = create_client(supabase_url, supabase_key)
            logger.info(
                "Initialized Supabase client for host=%s", urlparse(supabase_url).netloc
            )
        except Exception as exc:
            logger.exception("Failed to initialize Supabase client: %s", exc)
            self._client = None

    def close(self) -> None:
        """Drop the client and sign out any session it holds."""
        client = self._client
        self._client = None
        self._started = False
        if client is None:
            return
        try:
            auth = getattr(client, "auth", None)
            sign_out = getattr(auth, "sign_out", None)
            if callable(sign_out):
                sign_out()
            logger.info("Supabase session manager closed")
        except Exception:
            logger.exception("Error while closing supabase client")

    @property
    def client(self) -> Optional[Client]:
        """
        Return the underlying supabase client or None when not configured.

        Callers should not assume network connectivity; call `health_check()`
        to verify runtime connectivity.
        """
        return self._client

    def diagnostics(self) -> Dict[str, Any]:
        """
        Return non-sensitive diagnostics about the client configuration.
        Safe to include in logs or in API responses.
        """
        diag: Dict[str, Any] = {
            "configured": bool(
                self._settings.supabase_url and self._settings.supabase_service_role_key
            ),
            "started": self._started,
            "client_present": self._client is not None,
            "host": None,
        }
        if self._settings.supabase_url:
            diag["host"] = urlparse(self._settings.supabase_url).netloc
        return diag

    def health_check(self) -> bool:
        """
        Synchronous health check: a tiny query against `user_settings`.

        Synchronous so callers (startup, /health) can run it inside a
        threadpool executor with their own timeout.
        """
        client = self.client
        if client is None:
            logger.debug("Supabase health_check: no client configured")
            return False

        try:
            res = client.table("user_settings").select("id").limit(1).execute()
            if hasattr(res, "error") and res.error:
                logger.warning(
                    "Supabase health_check returned error object: %s",
                    getattr(res, "error"),
                )
                return False
            return True
        except Exception as exc:
            logger.exception("Exception during Supabase health_check: %s", exc)
            return False

    def authenticate(self, access_token: Optional[str]) -> Optional[str]:
        """
        Resolve a user access token to the user's id.

        Returns None for a missing, expired or otherwise rejected token.
        """
        client = self.client
        if client is None or not access_token:
            return None
        try:
            res = client.auth.get_user(access_token)
        except Exception as exc:
            logger.info("Supabase rejected access token: %s", exc)
            return None
        user = getattr(res, "user", None)
        user_id = getattr(user, "id", None)
        return str(user_id) if user_id else None
