"""Google Sheets export exceptions."""


class SheetsExportError(Exception):
    """Base exception for spreadsheet export errors."""

    pass


class UnknownDataShapeError(SheetsExportError, TypeError):
    """Raised when input data or a row cannot be converted to cells."""

    def __init__(self, value: object, message: str | None = None):
        self.value_type = type(value).__name__
        super().__init__(message or f"Unsupported data shape: {self.value_type}")
