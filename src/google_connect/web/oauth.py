"""Google OAuth redirect endpoints.

Endpoints (relative to the router prefix, "/google/oauth" by default):
    GET  /authorize  -> back to return_url if the session token is fresh,
                        otherwise to Google's consent screen
    GET  /callback   -> exchange the code, store the token, back to return_url
    GET  /status     -> token status of the current session
    POST /revoke     -> revoke the session token at Google and forget it

Flow:
    1. A page links to /authorize?return_url=/reports
    2. The user is sent to Google and grants access
    3. Google redirects to /callback?code=...&state=...
    4. The token is stored in the user's session and the user lands on /reports

The session must be provided by Starlette's SessionMiddleware.
"""

import logging
from urllib.parse import urlsplit

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import PlainTextResponse, RedirectResponse

from google_connect.google import GoogleApi, GoogleOAuth, SessionTokenStore
from google_connect.google.token_store import is_valid_token

logger = logging.getLogger(__name__)

SESSION_RETURN_URL = "google_connect.return_url"
SESSION_CALLBACK_URL = "google_connect.callback_url"
SESSION_STATE = "google_connect.state"

CALLBACK_ROUTE = "google_oauth_callback"


def session_token_store(request: Request) -> SessionTokenStore:
    """Expose the user's session as a token store."""
    return SessionTokenStore(request.session)


def safe_return_url(url: str | None, request: Request) -> str:
    """Keep return URLs on this site; anything else goes to "/"."""
    if not url:
        return "/"
    parts = urlsplit(url)
    if not parts.scheme and not parts.netloc:
        # "//host" and "\\host" are taken as other hosts by browsers
        if url.startswith("/") and not url.startswith(("//", "/\\")):
            return url
        return "/"
    if parts.scheme in ("http", "https") and parts.netloc == request.url.netloc:
        return url
    logger.warning(f"Ignoring off-site return URL: {url}")
    return "/"


def _denied(reason: str | None) -> PlainTextResponse:
    logger.warning(f"Google authorization denied: {reason or 'unknown reason'}")
    return PlainTextResponse(f"Access denied: {reason or 'unknown reason'}", status_code=403)


def create_oauth_router(api: GoogleApi, prefix: str = "/google/oauth") -> APIRouter:
    """Create the redirect-flow router for a client factory.

    Args:
        api: Factory providing the client configuration.
        prefix: URL prefix of the endpoints.

    Returns:
        Router to include into a FastAPI application.
    """
    router = APIRouter(prefix=prefix, tags=["google-oauth"])

    @router.get("/authorize", name="google_oauth_authorize")
    def authorize(
        request: Request,
        return_url: str | None = Query(None, description="URL to return to after authorization"),
        callback_url: str | None = Query(None, description="URL handling the authorization code"),
        store: SessionTokenStore = Depends(session_token_store),
    ):
        """Authorize the user, reusing the session token when it is fresh."""
        return_url = safe_return_url(return_url or request.headers.get("referer"), request)
        callback_url = callback_url or str(request.url_for(CALLBACK_ROUTE))

        client = api.get_client(token_store=store, redirect_uri=callback_url)

        # Service accounts and fresh tokens need no consent
        if not isinstance(client, GoogleOAuth) or not client.is_access_token_expired():
            return RedirectResponse(return_url, status_code=303)

        authorization_url = client.get_authorization_url()

        request.session[SESSION_RETURN_URL] = return_url
        request.session[SESSION_CALLBACK_URL] = callback_url
        request.session[SESSION_STATE] = client.state

        logger.info(f"Redirecting to Google consent, returning to {return_url}")
        return RedirectResponse(authorization_url, status_code=303)

    @router.get("/callback", name=CALLBACK_ROUTE)
    def callback(
        request: Request,
        code: str | None = Query(None, description="Authorization code from Google"),
        state: str | None = Query(None, description="CSRF state token"),
        error: str | None = Query(None, description="Error from Google"),
        store: SessionTokenStore = Depends(session_token_store),
    ):
        """Exchange the authorization code and return to the saved URL."""
        expected_state = request.session.pop(SESSION_STATE, None)
        callback_url = request.session.pop(SESSION_CALLBACK_URL, None) or str(
            request.url_for(CALLBACK_ROUTE)
        )

        if not code:
            return _denied(error)

        if not expected_state or state != expected_state:
            return _denied("invalid state")

        client = api.get_client(token_store=store, redirect_uri=callback_url)
        if not isinstance(client, GoogleOAuth):
            return _denied("OAuth client is not configured")

        token = client.fetch_access_token_with_auth_code(code)
        if not is_valid_token(token):
            return _denied(token.get("error") if token else None)

        api.save_token(token, store)

        return_url = request.session.pop(SESSION_RETURN_URL, None) or "/"
        logger.info(f"Google authorization complete, returning to {return_url}")
        return RedirectResponse(return_url, status_code=303)

    @router.get("/status")
    def status(store: SessionTokenStore = Depends(session_token_store)):
        """Token status of the current session."""
        client = api.get_client(token_store=store)
        if not isinstance(client, GoogleOAuth):
            return {"status": "service_account", **client.get_info()}
        return client.get_token_info()

    @router.post("/revoke")
    def revoke(
        request: Request,
        return_url: str = Query("/", description="URL to return to afterwards"),
        store: SessionTokenStore = Depends(session_token_store),
    ):
        """Revoke the session token and forget it."""
        client = api.get_client(token_store=store)
        if isinstance(client, GoogleOAuth):
            client.revoke_token()
        api.save_token(None, store)
        return RedirectResponse(safe_return_url(return_url, request), status_code=303)

    return router
