"""
Exception classes for the application.

Every draft store failure is normalized into one of these before it
reaches a router, so the HTTP layer renders them without extra mapping.
"""

from fastapi import HTTPException, status


class NotFoundError(HTTPException):
    """Raised when a requested resource is not found."""

    def __init__(self, resource_type: str, resource_id):
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND, detail=f"{resource_type} not found"
        )
        self.resource_type = resource_type
        self.resource_id = resource_id


class StoreUnavailableError(HTTPException):
    """Raised when the remote drafts table has not been provisioned."""

    def __init__(self, table_name: str = "invoice_drafts"):
        super().__init__(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"Remote draft storage is unavailable: table '{table_name}' does not exist",
        )
        self.table_name = table_name


class RemoteFailureError(HTTPException):
    """Raised when a call to the relational backend fails."""

    def __init__(self, message: str = "Remote draft storage failed", status_code: int = status.HTTP_502_BAD_GATEWAY):
        super().__init__(status_code=status_code, detail=message)


class RemoteTimeoutError(RemoteFailureError):
    """Raised when the backend does not answer within the allotted time."""

    def __init__(self, timeout: float):
        super().__init__(
            message=f"Remote draft storage did not respond within {timeout:g}s",
            status_code=status.HTTP_504_GATEWAY_TIMEOUT,
        )
        self.timeout = timeout


class AuthRequiredError(HTTPException):
    """Raised when an operation needs a signed-in user and there is none."""

    def __init__(self, message: str = "Authentication required"):
        super().__init__(status_code=status.HTTP_401_UNAUTHORIZED, detail=message)


class LocalStorageError(HTTPException):
    """Raised when device-local draft storage could not persist a write."""

    def __init__(self, message: str = "Local draft storage is unavailable"):
        super().__init__(
            status_code=status.HTTP_507_INSUFFICIENT_STORAGE, detail=message
        )


class UnauthorizedError(HTTPException):
    """Raised when a token is present but invalid or expired."""

    def __init__(self, message: str):
        super().__init__(status_code=status.HTTP_401_UNAUTHORIZED, detail=message)


class ForbiddenError(HTTPException):
    """Raised when a user is not allowed to perform an action."""

    def __init__(self, message: str):
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=message)


class RequestSupersededError(HTTPException):
    """Raised to a caller whose request was replaced by a newer one for the same query."""

    def __init__(self, key):
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            detail="This request was replaced by a newer one; please retry",
        )
        self.key = key
