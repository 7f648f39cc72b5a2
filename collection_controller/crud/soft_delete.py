"""
Soft delete policy.

Deletion state is the presence of the deletion timestamp field: a document
without it is live, a document with it is deleted. These helpers only build
filter and update fragments; the controller merges them at each call site.
"""

from datetime import datetime
from typing import Any, Mapping

from collection_controller.crud.timestamps import utcnow


def visibility_filter(
    use_soft_delete: bool,
    include_deleted: bool = False,
    field: str = "deletedAt",
) -> dict[str, Any]:
    """
    Filter fragment that hides soft-deleted documents.

    Empty when soft delete is disabled or the caller asked for deleted
    documents. Callers merge it first so their own query can override it.
    """
    if not use_soft_delete or include_deleted:
        return {}
    return {field: {"$exists": False}}


def mark_deleted(field: str = "deletedAt", now: datetime | None = None) -> dict[str, Any]:
    """Update payload that soft deletes the matched documents."""
    return {"$set": {field: now or utcnow()}}


def restore_fragment(field: str = "deletedAt") -> dict[str, Any]:
    """Update payload that brings soft-deleted documents back."""
    return {"$unset": {field: ""}}


def is_deleted(document: Mapping[str, Any], field: str = "deletedAt") -> bool:
    """Check if a fetched document carries the deletion marker."""
    return field in document


def filter_deleted(
    documents: list[dict[str, Any]],
    field: str = "deletedAt",
) -> list[dict[str, Any]]:
    """Drop soft-deleted documents from an already fetched result."""
    return [doc for doc in documents if not is_deleted(doc, field)]
