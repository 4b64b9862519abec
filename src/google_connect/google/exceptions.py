"""Google authentication exceptions."""


class GoogleAuthError(Exception):
    """Base exception for Google authentication errors."""

    pass


class MissingConfigurationError(GoogleAuthError):
    """Raised when no credentials or client id/secret are configured."""

    def __init__(self, name: str, message: str | None = None):
        self.name = name
        super().__init__(message or f"Missing configuration: {name}")


class CredentialsNotFoundError(GoogleAuthError):
    """Raised when a credentials file is not found."""

    def __init__(self, path: str):
        self.path = path
        super().__init__(
            f"Credentials file not found at {path}. "
            "Please download credentials from Google Cloud Console."
        )


class TokenError(GoogleAuthError):
    """Raised when there's an issue with the OAuth token."""

    pass


class AuthorizationRequired(GoogleAuthError):
    """Raised when an API call needs the user to grant consent first."""

    def __init__(self, authorization_url: str, message: str | None = None):
        self.authorization_url = authorization_url
        super().__init__(message or f"Authorization required: {authorization_url}")
