"""Service layer: credential, preferences and dashboard state orchestration."""


class ServiceError(Exception):
    """Base service exception."""


class ValidationError(ServiceError):
    """Rejected input: malformed token or unreadable settings (-> HTTP 422)."""


class NotFoundError(ServiceError):
    """Requested data is not loaded (-> HTTP 404)."""
