"""Exceptions raised by the account and commission services.

Blueprints translate these into the ``{"success": false, "error": ...}``
envelope; repair commands log them and move on to the next record.
"""


class ServiceError(Exception):
    status_code = 500

    def __init__(self, message, details=None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self):
        payload = {"success": False, "error": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


class ValidationError(ServiceError):
    status_code = 400


class NotFoundError(ServiceError):
    status_code = 404


class DuplicateError(ServiceError):
    status_code = 409


class InsufficientPinsError(ServiceError):
    status_code = 400
