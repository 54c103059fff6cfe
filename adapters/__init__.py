"""
Adapters package - External service connections.
HTTP client for the external recipe catalog.
"""

from adapters.catalog_client import (
    CatalogClient,
    CallBudget,
    CatalogError,
    CatalogNotFoundError,
    CatalogUnavailableError,
    CatalogBudgetExhaustedError,
)

__all__ = [
    "CatalogClient",
    "CallBudget",
    "CatalogError",
    "CatalogNotFoundError",
    "CatalogUnavailableError",
    "CatalogBudgetExhaustedError",
]
