class TranskribusError(Exception):
    """Base exception for all Transkribus client errors."""


class TranskribusNetworkError(TranskribusError):
    """Raised when a call to Transkribus fails before a response arrives."""


class RemoteServiceError(TranskribusError):
    """Raised when Transkribus answers with a non-success status."""

    def __init__(self, message: str, status_code: int, body: str = "") -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class AuthenticationError(RemoteServiceError):
    """Raised when the token endpoint rejects a password or refresh grant."""


class ProcessExpiredError(TranskribusError):
    """Raised when a process is no longer known to Transkribus (HTTP 404)."""

    def __init__(self, process_id: int) -> None:
        super().__init__(f"Transkribus process {process_id} has expired")
        self.process_id = process_id
