"""Validation helpers for service settings."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

from pydantic_settings import EnvSettingsSource

if TYPE_CHECKING:
    from pydantic.fields import FieldInfo

# Settings fields that accept either a JSON array or a comma-separated string.
STRING_LIST_FIELDS = frozenset({"cors_origins"})


def parse_string_list(value: str | list[str]) -> list[str]:
    """Parse a non-empty string list from a JSON array, a CSV string, or a list.

    Raises ValueError for empty input, malformed JSON, or non-string items.
    """
    if isinstance(value, list):
        items = value
    else:
        stripped = value.strip()
        if stripped.startswith("["):
            try:
                items = json.loads(stripped)
            except json.JSONDecodeError as e:
                raise ValueError(f"Invalid JSON array: {e}") from e
        else:
            items = [item.strip() for item in stripped.split(",") if item.strip()]

    if not isinstance(items, list) or not all(isinstance(item, str) for item in items):
        raise ValueError("Value must be an array of strings")
    if not items:
        raise ValueError("String list value must not be empty")
    return items


class StringListEnvSettingsSource(EnvSettingsSource):
    """Env source that hands string-list fields to validators undecoded.

    pydantic-settings would otherwise try to JSON-decode list fields itself and
    reject the CSV form before parse_string_list sees it.
    """

    def prepare_field_value(
        self,
        field_name: str,
        field: FieldInfo,
        value: Any,  # noqa: ANN401
        value_is_complex: bool,  # noqa: FBT001
    ) -> Any:  # noqa: ANN401
        if field_name in STRING_LIST_FIELDS and isinstance(value, str):
            return value
        return super().prepare_field_value(field_name, field, value, value_is_complex)
