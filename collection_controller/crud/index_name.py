"""
Index naming.

Index names are derived from the key specification, never stored on their
own, so create_index and drop_index address the same index for the same
specification regardless of key order.
"""

from collections.abc import Mapping, Sequence
from typing import Any, Union

IndexKeys = list[tuple[str, Any]]
FieldOrSpec = Union[str, Mapping[str, Any], Sequence[tuple[str, Any]]]


def _as_pairs(field_or_spec: FieldOrSpec) -> IndexKeys:
    if isinstance(field_or_spec, Mapping):
        pairs = list(field_or_spec.items())
    else:
        pairs = [(field, marker) for field, marker in field_or_spec]

    if not pairs:
        raise ValueError("Index specification must contain at least one field")
    return pairs


def get_index_name(field_or_spec: FieldOrSpec) -> str:
    """
    Build the canonical index name.

    A single field name is returned unchanged. A mapping of field to sort or
    kind marker (or a list of such pairs) is sorted by field name and joined
    as "field:marker" pairs separated by commas.

    Example:
        get_index_name({"b": 1, "a": -1})  # "a:-1,b:1"
    """
    if isinstance(field_or_spec, str):
        return field_or_spec

    pairs = sorted(_as_pairs(field_or_spec), key=lambda pair: pair[0])
    return ",".join(f"{field}:{marker}" for field, marker in pairs)


def to_index_keys(field_or_spec: FieldOrSpec) -> Union[str, IndexKeys]:
    """Convert a specification into the form the driver's create_index takes."""
    if isinstance(field_or_spec, str):
        return field_or_spec
    return _as_pairs(field_or_spec)
