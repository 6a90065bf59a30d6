"""
FileKeep Server - Base Error

Base exception class for every error surfaced to the caller as an
{error, code} payload.
"""


class FileManagerError(Exception):
    """Base exception for file manager errors."""

    code = 500
    default_message = "Internal server error"

    def __init__(self, message: str = None, code: int = None):
        self.message = message or self.default_message
        if code is not None:
            self.code = code
        super().__init__(self.message)

    def ToPayload(self) -> dict:
        """Flat JSON error payload returned by the connector"""
        return {"error": self.message, "code": self.code}


class InternalServerError(FileManagerError):
    """Filesystem-level or unexpected failure."""
    code = 500
    default_message = "Internal server error"
