from fastapi import HTTPException, status


class ValidationError(HTTPException):
    def __init__(self, detail: str = "Validation failed"):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=detail,
        )


class UnauthenticatedError(HTTPException):
    def __init__(self, detail: str = "Unauthorized"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
        )


class InactiveAccountError(HTTPException):
    def __init__(self, detail: str = "Account is deactivated"):
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=detail,
        )


class UnauthorizedError(HTTPException):
    def __init__(self, detail: str = "Forbidden"):
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=detail,
        )


class NotFoundError(HTTPException):
    def __init__(self, detail: str = "Resource not found"):
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=detail,
        )


class ConflictError(HTTPException):
    def __init__(self, detail: str = "Conflict"):
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            detail=detail,
        )


class PosError(Exception):
    """Base class for collaborator and consistency failures."""


class UpstreamFailure(PosError):
    """A collaborator (storage or identity provider) was unavailable or errored."""

    def __init__(self, collaborator: str, operation: str, detail: str = ""):
        self.collaborator = collaborator
        self.operation = operation
        self.detail = detail
        super().__init__(f"{collaborator} failed during {operation}")


class InconsistentStateError(PosError):
    """An identity exists without a usable profile row (or the reverse)."""

    def __init__(self, identity_id: str, condition: str):
        self.identity_id = identity_id
        self.condition = condition
        super().__init__(f"{condition} for identity {identity_id}")


class IdentityProviderError(PosError):
    """The identity provider refused a request. `message` is safe to show."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)
