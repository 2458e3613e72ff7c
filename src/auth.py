"""
Interactive sign-in for the form engineer when running locally.

MSAL public client with the authorization-code flow: the sign-in tool starts
a one-shot redirect listener on AUTH_REDIRECT_PORT and returns the Microsoft
login URL. When the browser comes back, the listener redeems the code and the
token cache is written to TOKEN_CACHE_PATH (mode 600). Later requests use
silent acquisition, which refreshes expired access tokens on its own.
"""

import asyncio
import logging
import os
import threading
from http.server import BaseHTTPRequestHandler, HTTPServer
from pathlib import Path
from typing import Optional
from urllib.parse import parse_qs, urlparse

import msal

from config import settings

logger = logging.getLogger(__name__)

REDIRECT_TIMEOUT_SECONDS = 300

_token_cache = msal.SerializableTokenCache()
_app: Optional[msal.PublicClientApplication] = None
_token_lock = asyncio.Lock()


class AuthenticationRequiredError(Exception):
    """No usable token is cached; the user has to sign in first."""


# ---------------------------------------------------------------------------
# Token cache persistence
# ---------------------------------------------------------------------------

def _cache_file() -> Path:
    return Path(settings.token_cache_path)


def _restore_cache() -> None:
    path = _cache_file()
    if not path.exists():
        logger.info("No token cache at %s; sign-in required", path)
        return
    try:
        _token_cache.deserialize(path.read_text(encoding="utf-8"))
        logger.info("Token cache restored from %s", path)
    except (OSError, ValueError) as e:
        logger.warning("Ignoring unreadable token cache %s: %s", path, e)


def _persist_cache() -> None:
    if not _token_cache.has_state_changed:
        return
    path = _cache_file()
    path.parent.mkdir(parents=True, exist_ok=True)
    staging = path.with_suffix(".tmp")
    try:
        staging.write_text(_token_cache.serialize(), encoding="utf-8")
        os.chmod(staging, 0o600)
        staging.replace(path)
        logger.info("Token cache written to %s", path)
    except OSError as e:
        logger.error("Could not write token cache %s: %s", path, e)
        staging.unlink(missing_ok=True)


def _client() -> msal.PublicClientApplication:
    global _app
    if _app is None:
        _restore_cache()
        _app = msal.PublicClientApplication(
            client_id=settings.client_id,
            authority=settings.authority,
            token_cache=_token_cache,
        )
    return _app


# ---------------------------------------------------------------------------
# Token acquisition
# ---------------------------------------------------------------------------

async def get_token() -> str:
    """
    Return a Dataverse access token from the cache, refreshing it if needed.

    Raises AuthenticationRequiredError when no account is signed in or the
    refresh token is no longer accepted.
    """
    async with _token_lock:
        app = _client()
        for account in app.get_accounts():
            result = app.acquire_token_silent(scopes=settings.scopes, account=account)
            if result and "access_token" in result:
                _persist_cache()
                return result["access_token"]

    raise AuthenticationRequiredError(
        "No valid token found. Call the `Sign_in_to_Dataverse` tool to sign in."
    )


def _make_redirect_handler(app: msal.PublicClientApplication, flow: dict):
    class RedirectHandler(BaseHTTPRequestHandler):
        def do_GET(self):
            query = parse_qs(urlparse(self.path).query)
            result = app.acquire_token_by_auth_code_flow(
                flow, {key: values[0] for key, values in query.items()}
            )
            if "access_token" in result:
                _persist_cache()
                logger.info("Interactive sign-in completed")
                self._reply("Signed in to Dataverse. You can close this tab.")
            else:
                reason = result.get("error_description") or result.get("error") or "unknown error"
                logger.error("Authorization code redemption failed: %s", reason)
                self._reply(f"Sign-in failed: {reason}")

        def _reply(self, text: str):
            self.send_response(200)
            self.send_header("Content-Type", "text/html; charset=utf-8")
            self.end_headers()
            self.wfile.write(f"<html><body><p>{text}</p></body></html>".encode("utf-8"))

        def log_message(self, format, *args):
            logger.debug("Redirect listener: %s", format % args)

    return RedirectHandler


def start_interactive_auth() -> str:
    """
    Start the redirect listener and return the sign-in URL for the user.

    The listener is already accepting connections when this returns, and it
    finishes the code exchange by itself.
    """
    app = _client()
    port = settings.auth_redirect_port
    flow = app.initiate_auth_code_flow(
        scopes=settings.scopes,
        redirect_uri=f"http://localhost:{port}",
    )

    server = HTTPServer(("0.0.0.0", port), _make_redirect_handler(app, flow))
    server.timeout = REDIRECT_TIMEOUT_SECONDS

    def serve_once():
        try:
            server.handle_request()
        finally:
            server.server_close()

    threading.Thread(target=serve_once, name="auth-redirect", daemon=True).start()
    logger.info("Waiting for sign-in redirect on port %d", port)
    return flow["auth_uri"]


def sign_out() -> None:
    """Forget every cached token, in memory and on disk."""
    global _app
    _token_cache.deserialize("{}")
    _token_cache.has_state_changed = False
    _app = None

    path = _cache_file()
    if path.exists():
        path.unlink()
        logger.info("Token cache %s removed", path)
