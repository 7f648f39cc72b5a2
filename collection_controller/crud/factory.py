"""
Controller factory.

Binds a collection handle and the feature flags into an immutable
ControllerConfig and returns a Controller built on it.

Usage:
    from collection_controller import create_controller

    # Bare collection: no timestamps, no soft delete
    users = create_controller(db.users)

    # Options mapping
    posts = create_controller({
        "collection": db.posts,
        "use_timestamps": True,
        "use_soft_delete": True,
    })

    post = await posts.create_one({"title": "Hello"})
    await posts.delete_by_id(post["_id"])
    await posts.find_by_id(post["_id"])                        # None
    await posts.find_by_id(post["_id"], include_deleted=True)  # the post
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Any, Mapping

from collection_controller.config.logging import get_logger
from collection_controller.config.settings import check_field_names, get_settings
from collection_controller.crud.controller import Controller

if TYPE_CHECKING:
    from motor.motor_asyncio import AsyncIOMotorCollection

logger = get_logger(__name__)


@dataclass(frozen=True)
class ControllerConfig:
    """Configuration bound into a controller at construction time."""

    # Required
    collection: AsyncIOMotorCollection

    # Feature flags
    use_timestamps: bool = False
    use_soft_delete: bool = False

    # Log every store call at DEBUG level
    debug: bool = False

    # Stored field names
    id_field: str = field(default_factory=lambda: get_settings().id_field)
    created_at_field: str = field(default_factory=lambda: get_settings().created_at_field)
    updated_at_field: str = field(default_factory=lambda: get_settings().updated_at_field)
    deleted_at_field: str = field(default_factory=lambda: get_settings().deleted_at_field)

    def __post_init__(self) -> None:
        if self.collection is None:
            raise ValueError("ControllerConfig requires a collection")

        errors = check_field_names(
            {
                "id_field": self.id_field,
                "created_at_field": self.created_at_field,
                "updated_at_field": self.updated_at_field,
                "deleted_at_field": self.deleted_at_field,
            }
        )
        if errors:
            raise ValueError("Invalid controller field names: " + "; ".join(errors))


def resolve_config(collection_or_options: Any, **overrides: Any) -> ControllerConfig:
    """
    Normalize the accepted construction arguments into a ControllerConfig.

    Accepts a ControllerConfig, a mapping with a "collection" key, or a bare
    collection handle. Mappings are detected by type: attribute probing is
    not safe on Motor collections, where any attribute resolves to a
    sub-collection.
    """
    if isinstance(collection_or_options, ControllerConfig):
        return replace(collection_or_options, **overrides) if overrides else collection_or_options

    if isinstance(collection_or_options, Mapping):
        if "collection" not in collection_or_options:
            raise ValueError("Controller options must include 'collection'")
        return ControllerConfig(**{**collection_or_options, **overrides})

    return ControllerConfig(collection=collection_or_options, **overrides)


def create_controller(collection_or_options: Any, **overrides: Any) -> Controller:
    """
    Create a controller for a collection.

    Args:
        collection_or_options: Collection handle, options mapping or
            ControllerConfig.
        **overrides: ControllerConfig fields applied on top.

    Returns:
        Controller exposing the CRUD operations.

    Raises:
        ValueError: If no collection was given.
        TypeError: If the options contain unknown keys.
    """
    config = resolve_config(collection_or_options, **overrides)

    logger.debug(
        "Controller created",
        collection=getattr(config.collection, "name", None),
        use_timestamps=config.use_timestamps,
        use_soft_delete=config.use_soft_delete,
    )
    return Controller(config)
