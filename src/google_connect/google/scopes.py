"""Common Google OAuth scopes and name resolution."""

SCOPES = {
    "drive": "https://www.googleapis.com/auth/drive",
    "drive_readonly": "https://www.googleapis.com/auth/drive.readonly",
    "drive_file": "https://www.googleapis.com/auth/drive.file",
    "sheets": "https://www.googleapis.com/auth/spreadsheets",
    "sheets_readonly": "https://www.googleapis.com/auth/spreadsheets.readonly",
    "userinfo_email": "https://www.googleapis.com/auth/userinfo.email",
    "openid": "openid",
}


def resolve_scopes(scopes: list[str] | str | None) -> list[str]:
    """Resolve scope names to full URLs.

    Accepts a list or a space separated string; full URLs pass through.
    """
    if not scopes:
        return []
    if isinstance(scopes, str):
        scopes = scopes.split()

    resolved = []
    for scope in scopes:
        if scope.startswith("https://"):
            resolved.append(scope)
        elif scope in SCOPES:
            resolved.append(SCOPES[scope])
        else:
            raise ValueError(
                f"Unknown scope: {scope}. Use full URL or one of: {list(SCOPES.keys())}"
            )
    return resolved
