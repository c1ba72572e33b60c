from __future__ import annotations


class MetarDecodeError(ValueError):
    """Raised when a mandatory report group is present but cannot be decoded."""

    def __init__(self, message: str, *, token: str):
        super().__init__(message)
        self.token = token
