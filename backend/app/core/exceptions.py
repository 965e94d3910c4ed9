"""Custom exception classes for the application."""


class CatalogException(Exception):
    """Base exception for all catalog errors."""

    code = "internal_error"

    def __init__(self, message: str = "An unexpected error occurred"):
        self.message = message
        super().__init__(self.message)


class NotFoundError(CatalogException):
    """Raised when a requested resource is not found."""

    code = "not_found"

    def __init__(self, resource: str, identifier: str):
        super().__init__(f"{resource} with identifier '{identifier}' not found")


class ConflictError(CatalogException):
    """Raised when a write would violate a uniqueness rule."""

    code = "conflict"

    def __init__(self, resource: str, field: str, value: str):
        self.field = field
        super().__init__(f"{resource} with {field} '{value}' already exists")


class InvalidOperationError(CatalogException):
    """Raised when a mutation would break the tree (cycle, orphaned products)."""

    code = "invalid_operation"


class StoreError(CatalogException):
    """Raised when the backing store fails (connectivity, timeout).

    ``message`` is safe to show to clients; the driver error text stays in
    ``detail`` for logs only.
    """

    code = "store_unavailable"

    def __init__(self, operation: str, detail: str):
        self.operation = operation
        self.detail = detail
        super().__init__(f"Category store unavailable during {operation}")
