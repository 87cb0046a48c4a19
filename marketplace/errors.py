"""
Marketplace exceptions.

Services raise these; the handlers registered in ``main.create_app`` turn
them into ``{"error": message}`` JSON responses with the matching status.
"""


class MarketplaceError(Exception):
    """Base exception for marketplace operations."""

    status_code = 500

    def __init__(self, message: str, code: str = None):
        self.message = message
        self.code = code or self.__class__.__name__
        super().__init__(self.message)


class InvalidInput(MarketplaceError):
    """Malformed or missing fields, non-positive quantity."""

    status_code = 400

    def __init__(self, message: str, field: str = None):
        super().__init__(message=message, code="INVALID_INPUT")
        self.field = field


class Conflict(MarketplaceError):
    """Uniqueness violation, reported as a validation failure."""

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message=message, code="CONFLICT")


class Unauthorized(MarketplaceError):
    """Missing, invalid or expired credentials."""

    status_code = 401

    def __init__(self, message: str = "Authorization token invalid"):
        super().__init__(message=message, code="UNAUTHORIZED")


class Forbidden(MarketplaceError):
    """Valid credentials, but the caller may not do this."""

    status_code = 403

    def __init__(self, message: str = "Access denied"):
        super().__init__(message=message, code="FORBIDDEN")


class NotFound(MarketplaceError):
    """Raised when a user, product, cart or cart line does not exist."""

    status_code = 404

    def __init__(self, entity_name: str, entity_id=None):
        if entity_id is None:
            message = f"{entity_name} not found"
        else:
            message = f"{entity_name} with id '{entity_id}' not found"
        super().__init__(message=message, code="NOT_FOUND")
        self.entity_name = entity_name
        self.entity_id = entity_id


class Internal(MarketplaceError):
    """Storage or other unexpected failure."""

    status_code = 500

    def __init__(self, message: str = "Internal server error"):
        super().__init__(message=message, code="INTERNAL")
