"""Snapshot redaction.

Removes configured field names from a snapshot at every nesting depth,
inside nested mappings, lists, components and dynamic zone entries alike.
The omitted keys are dropped, not masked, so a redacted snapshot can be sent
back through the update path on restore.
"""

from collections.abc import Collection, Mapping
from typing import Any


def redact(value: Any, omit_names: Collection[str]) -> Any:
    """Return a copy of value with every key in omit_names removed.

    Primitives are returned unchanged. Lists and tuples are redacted element by
    element with order and container type preserved. Mappings keep every key
    not in omit_names, with its value redacted. None stays None and an empty
    mapping stays an empty mapping.

    Args:
        value: Any JSON-like value.
        omit_names: Field names to drop.

    Returns:
        The redacted value. The input is never mutated.
    """
    if isinstance(value, Mapping):
        return {key: redact(item, omit_names) for key, item in value.items() if key not in omit_names}
    if isinstance(value, list):
        return [redact(item, omit_names) for item in value]
    if isinstance(value, tuple):
        return tuple(redact(item, omit_names) for item in value)
    return value
