"""Services module for business logic and data operations.

Service classes implement the category tree rules on top of the
repositories; the HTTP layer only translates requests and responses.
"""

from app.services.category_service import CategoryService
from app.services.category_tree import OrphanPolicy, build_forest, compute_path

__all__ = [
    "CategoryService",
    "OrphanPolicy",
    "build_forest",
    "compute_path",
]
