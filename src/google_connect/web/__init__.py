"""FastAPI integration: OAuth redirect endpoints and session token storage."""

from google_connect.web.app import create_app
from google_connect.web.oauth import create_oauth_router, session_token_store

__all__ = ["create_app", "create_oauth_router", "session_token_store"]
