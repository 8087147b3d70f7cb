from typing import Optional


class StoreError(Exception):
    """Failure surfaced to the client as a `{success: false, ...}` envelope."""

    def __init__(self, status_code: int, message: str, error: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.message = message
        self.error = error


class ValidationFailure(StoreError):
    def __init__(self, message: str):
        super().__init__(400, message)


class NotFound(StoreError):
    def __init__(self, message: str):
        super().__init__(404, message)
