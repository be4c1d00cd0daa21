class ServiceError(ValueError):
    """Base class for errors raised by services before any state is mutated"""
    status_code = 400


class ValidationError(ServiceError):
    status_code = 400


class AuthenticationError(ServiceError):
    status_code = 401


class PermissionDeniedError(ServiceError):
    status_code = 403


class NotFoundError(ServiceError):
    status_code = 404


class StateError(ServiceError):
    status_code = 409
