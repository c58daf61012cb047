"""Error taxonomy raised by the services and rendered by the app.

Each error carries the HTTP status it maps to; handlers in ``main`` turn any
``StoreError`` into ``{"message": ...}`` with that status.
"""


class StoreError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(StoreError):
    status_code = 400


class ConflictError(StoreError):
    status_code = 400


class AuthError(StoreError):
    status_code = 401


class ForbiddenError(StoreError):
    status_code = 403


class NotFoundError(StoreError):
    status_code = 404


class InternalError(StoreError):
    status_code = 500
