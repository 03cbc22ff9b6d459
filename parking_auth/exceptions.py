"""
Service Exceptions
Error taxonomy shared by the service layer and the HTTP exception handlers
"""


class AuthServiceError(Exception):
    """Base class for errors that map onto a client-facing status code"""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ConflictError(AuthServiceError):
    """Email already registered"""
    status_code = 400


class InvalidCodeError(AuthServiceError):
    """No unused, unexpired one-time code matches"""
    status_code = 400


class AuthError(AuthServiceError):
    """Bad credentials, unverified or unapproved account"""
    status_code = 401


class NotFoundError(AuthServiceError):
    """Account missing for an otherwise valid request"""
    status_code = 404


class EmailDeliveryError(Exception):
    """Outbound email could not be handed to the SMTP server"""
    pass
