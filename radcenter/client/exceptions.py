"""
Client-side exceptions.

View controllers catch ClientError at the action boundary and show the
message to the user; nothing is sent and no state changes when one is raised
before a write.
"""
from typing import Optional


class ClientError(Exception):
    """Base class for client exceptions."""
    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ApiError(ClientError):
    """Exception raised on transport failure or an error envelope from the backend."""
    def __init__(self, message: str = "Request failed", status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class PermissionDeniedError(ClientError):
    """Exception raised when the current role may not perform an action."""
    def __init__(self, message: str = "Access Denied"):
        super().__init__(message)


class ValidationFailedError(ClientError):
    """Exception raised when required input is missing or malformed."""
    def __init__(self, message: str = "Fill required fields"):
        super().__init__(message)


class AuthenticationError(ClientError):
    """Exception raised when a PIN, passcode or identity is rejected."""
    def __init__(self, message: str = "Invalid credentials"):
        super().__init__(message)
