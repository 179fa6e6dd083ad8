"""Custom exception classes for the application."""


class AppError(Exception):
    """Base application error class."""

    def __init__(self, message, status_code=400):
        """Initialize the error."""
        super().__init__(message)
        self.status_code = status_code
        self.message = message


class ValidationError(AppError):
    """Raised when user input fails validation."""

    def __init__(self, message="Validation failed."):
        """Initialize the error."""
        super().__init__(message, 400)


class AuthenticationError(AppError):
    """Raised when an operation needs a signed-in operator."""

    def __init__(self, message="Authentication required."):
        """Initialize the error."""
        super().__init__(message, 401)


class ForbiddenError(AppError):
    """Raised when the signed-in operator lacks the required role."""

    def __init__(self, message="You are not authorized to perform this action."):
        """Initialize the error."""
        super().__init__(message, 403)


class NotFoundError(AppError):
    """Raised when a resource is not found."""

    def __init__(self, message="Resource not found."):
        """Initialize the error."""
        super().__init__(message, 404)


class ConfigValidationError(AppError):
    """Raised when a stored ranking config cannot be decoded."""

    def __init__(self, message="Invalid ranking configuration."):
        """Initialize the error."""
        super().__init__(message, 400)


class MigrationError(AppError):
    """Raised when a migration run cannot start or continue at all."""

    def __init__(self, message="Migration failed."):
        """Initialize the error."""
        super().__init__(message, 503)
