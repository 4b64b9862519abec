"""FastAPI application hosting the Google OAuth redirect flow."""

import logging

from fastapi import FastAPI
from starlette.middleware.sessions import SessionMiddleware

from google_connect.config import get_secret_key
from google_connect.google import GoogleApi
from google_connect.google.exceptions import MissingConfigurationError
from google_connect.web.oauth import create_oauth_router

logger = logging.getLogger(__name__)


def create_app(
    api: GoogleApi | None = None,
    secret_key: str | None = None,
    prefix: str = "/google/oauth",
    https_only: bool = False,
) -> FastAPI:
    """Create an app with session support and the OAuth endpoints.

    Args:
        api: Client factory. Built from the environment when omitted.
        secret_key: Session cookie signing key. Defaults to
            GOOGLE_CONNECT_SECRET_KEY.
        prefix: URL prefix of the OAuth endpoints.
        https_only: Mark the session cookie Secure.

    Raises:
        MissingConfigurationError: If no secret key is available.
    """
    secret_key = secret_key or get_secret_key()
    if not secret_key:
        raise MissingConfigurationError(
            "secret_key", "Set GOOGLE_CONNECT_SECRET_KEY to sign session cookies"
        )

    api = api or GoogleApi()

    app = FastAPI(title="google-connect")
    app.add_middleware(SessionMiddleware, secret_key=secret_key, https_only=https_only)
    app.include_router(create_oauth_router(api, prefix=prefix))
    app.state.google_api = api

    logger.info(f"OAuth endpoints mounted at {prefix}")
    return app
