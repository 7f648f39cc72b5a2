"""
CRUD Services - Generic operations for collection access.

Provides:
- Controller: CRUD operations with timestamps and soft delete
- create_controller / ControllerConfig: Controller factory
- soft_delete: Visibility filter and deletion marker fragments
- timestamps: Creation defaults and update touch
- index_name: Canonical index names
"""

from .controller import Controller
from .factory import ControllerConfig, create_controller, resolve_config
from .index_name import get_index_name, to_index_keys
from .soft_delete import (
    filter_deleted,
    is_deleted,
    mark_deleted,
    restore_fragment,
    visibility_filter,
)
from .timestamps import (
    defaults_for_create,
    defaults_for_create_many,
    touch_on_update,
    utcnow,
)

__all__ = [
    # Controller
    "Controller",
    # Factory
    "ControllerConfig",
    "create_controller",
    "resolve_config",
    # Index names
    "get_index_name",
    "to_index_keys",
    # Soft delete
    "visibility_filter",
    "mark_deleted",
    "restore_fragment",
    "is_deleted",
    "filter_deleted",
    # Timestamps
    "utcnow",
    "defaults_for_create",
    "defaults_for_create_many",
    "touch_on_update",
]
