from fastapi import status
from fastapi.responses import JSONResponse

class ApplicationException(Exception):
    def __init__(self, message: str, status_code: int = status.HTTP_400_BAD_REQUEST):
        super().__init__(message)
        self.message = message
        self.status_code = status_code

    def to_response(self):
        return JSONResponse(
            status_code=self.status_code,
            content={"error": self.message}
        )


class ValidationError(ApplicationException):
    """Missing or malformed input. Raised before any store is touched."""
    def __init__(self, message: str):
        super().__init__(message, status.HTTP_400_BAD_REQUEST)


class AuthenticationError(ApplicationException):
    def __init__(self, message: str = "Invalid credentials"):
        super().__init__(message, status.HTTP_401_UNAUTHORIZED)


class ResolutionError(ApplicationException):
    """The caller's relational user id could not be determined."""
    def __init__(self, message: str = "Unable to resolve relational user id for the current user"):
        super().__init__(message, status.HTTP_401_UNAUTHORIZED)


class NotFoundError(ApplicationException):
    def __init__(self, message: str = "Resource not found"):
        super().__init__(message, status.HTTP_404_NOT_FOUND)


class ConflictError(ApplicationException):
    def __init__(self, message: str):
        super().__init__(message, status.HTTP_409_CONFLICT)


class StoreOperationError(ApplicationException):
    """No active store accepted the operation."""
    def __init__(self, message: str = "Database operation failed in every active store"):
        super().__init__(message, status.HTTP_500_INTERNAL_SERVER_ERROR)


class ExternalServiceError(ApplicationException):
    def __init__(self, message: str):
        super().__init__(message, status.HTTP_502_BAD_GATEWAY)
