"""
Collection controllers for async MongoDB collections.

Wraps a collection with CRUD operations that optionally maintain
createdAt/updatedAt timestamps and soft delete documents.
"""

from collection_controller.crud import (
    Controller,
    ControllerConfig,
    create_controller,
    get_index_name,
)

__version__ = "1.0.0"

__all__ = [
    "Controller",
    "ControllerConfig",
    "create_controller",
    "get_index_name",
]
