"""Key ordering for stored anime documents."""

from typing import Any


def value_length(value: Any) -> int:
    """
    Length of a value for ordering purposes.

    Strings count characters, lists count items, dicts count keys.
    Everything else (numbers, booleans, None) counts as 0.
    """
    if isinstance(value, str):
        return len(value)
    if isinstance(value, (list, tuple)):
        return len(value)
    if isinstance(value, dict):
        return len(value)
    return 0


def sort_keys_by_value_length(document: dict[str, Any]) -> dict[str, Any]:
    """
    Return a copy of `document` with keys ordered by value length.

    The sort is stable: keys whose values have equal length keep their
    original relative order.
    """
    return dict(sorted(document.items(), key=lambda item: value_length(item[1])))
