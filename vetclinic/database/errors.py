"""
Domain error taxonomy shared by every repository.

All errors carry a message that the UI can surface directly (toast/dialog).
"""


class DomainError(Exception):
    """Domain-level error suitable for surfacing to the UI."""
    pass


class ValidationError(DomainError):
    """Missing required field or non-positive amount/quantity. Raised before any mutation."""
    pass


class NotFoundError(DomainError):
    pass


class ProductNotFound(NotFoundError):
    def __init__(self, product_id: str):
        super().__init__(f"Product {product_id} not found.")
        self.product_id = product_id


class ReferentialIntegrityError(DomainError):
    """Delete refused because other records still reference the target."""
    pass


class PartyInUse(ReferentialIntegrityError):
    pass


class DataCorruption(DomainError):
    """Imported or stored document is malformed; nothing was written."""
    pass
