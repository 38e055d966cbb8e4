"""
Exception types raised by the task store, lifecycle rules and AI helpers.
main.py maps each one to an HTTP status with a user-facing detail message.
"""


class UpnextError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class TaskValidationError(UpnextError):
    status_code = 422


class NotFoundError(UpnextError):
    status_code = 404


class InvalidTransitionError(UpnextError):
    status_code = 409


class AuthenticationError(UpnextError):
    status_code = 401


class AccountExistsError(UpnextError):
    status_code = 409


class StoreOperationError(UpnextError):
    status_code = 503


class AIServiceConfigurationError(UpnextError):
    status_code = 503


class AIServiceError(UpnextError):
    status_code = 502
