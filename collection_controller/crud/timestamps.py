"""
Timestamp policy.

Creation defaults fill createdAt/updatedAt without overwriting caller
values. Updates advance updatedAt through the update payload; the filter
that selects documents is never touched.
"""

from datetime import datetime, timezone
from typing import Any, Mapping, Sequence, Union

Update = Union[Mapping[str, Any], Sequence[Mapping[str, Any]]]


def utcnow() -> datetime:
    """Timezone-aware current time."""
    return datetime.now(timezone.utc)


def defaults_for_create(
    data: Mapping[str, Any],
    now: datetime,
    created_field: str = "createdAt",
    updated_field: str = "updatedAt",
) -> dict[str, Any]:
    """Return a copy of data with missing creation timestamps set to now."""
    return {created_field: now, updated_field: now, **data}


def defaults_for_create_many(
    items: Sequence[Mapping[str, Any]],
    now: datetime,
    created_field: str = "createdAt",
    updated_field: str = "updatedAt",
) -> list[dict[str, Any]]:
    """Apply creation defaults to a batch, sharing one now for every item."""
    return [
        defaults_for_create(item, now, created_field, updated_field)
        for item in items
    ]


def touch_on_update(
    update: Update,
    now: datetime,
    updated_field: str = "updatedAt",
) -> Union[dict[str, Any], list[Mapping[str, Any]]]:
    """
    Add the update timestamp to an update payload.

    Operator documents get the field added to $set. If the caller already
    targets the field or one of its sub-paths ($set, $currentDate,
    $unset, ...) the payload is returned as is, since the store rejects
    two updates on conflicting paths. Pipeline updates get a trailing $set
    stage.
    """
    if not isinstance(update, Mapping):
        return [*update, {"$set": {updated_field: now}}]

    if any(
        _targets(path, updated_field)
        for fields in update.values()
        if isinstance(fields, Mapping)
        for path in fields
    ):
        return dict(update)

    touched = dict(update)
    touched["$set"] = {**update.get("$set", {}), updated_field: now}
    return touched


def _targets(path: str, field: str) -> bool:
    """True if path is field itself or a dotted path below it."""
    return path == field or path.startswith(field + ".")
