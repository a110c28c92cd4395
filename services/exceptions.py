"""Error taxonomy shared by the booking services and the HTTP layer."""


class AppError(Exception):
    status_code = 400

    def __init__(self, message, status_code=None):
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(message)


class ValidationError(AppError):
    status_code = 400


class NotFoundError(AppError):
    status_code = 404


class ConflictError(AppError):
    # Every loser of a lock race gets the same status and message
    status_code = 400


class AuthenticationError(AppError):
    status_code = 401


class AuthorizationError(AppError):
    status_code = 403


class DependencyError(AppError):
    status_code = 500


class ConfigurationError(AppError):
    status_code = 500


class WebhookSignatureError(Exception):
    """Raised when a payment-processor event fails signature verification."""
