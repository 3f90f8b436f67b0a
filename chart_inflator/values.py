"""Module for combining inline values with a chart values file."""

import logging
from typing import Any

import yaml

from .config import ValuesMerge
from .exceptions import ParseException
from .yaml_loader import safe_load

__all__ = [
    "merge_values",
    "parse_values",
]

_LOGGER = logging.getLogger(__name__)


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively apply inline values over the chart values.

    Nested mappings are merged key by key, any other inline value replaces
    the chart value. Null inline values leave the chart value in place.
    """
    result = base.copy()
    for key, override_value in override.items():
        if override_value is None:
            continue
        base_value = result.get(key)
        if (
            base_value is not None
            and isinstance(base_value, dict)
            and isinstance(override_value, dict)
        ):
            result[key] = _deep_merge(base_value, override_value)
        else:
            result[key] = override_value
    return result


def _fill_missing(base: dict[str, Any], extra: dict[str, Any]) -> dict[str, Any]:
    """Recursively add keys from `extra` that are absent or null in `base`."""
    result = base.copy()
    for key, extra_value in extra.items():
        base_value = result.get(key)
        if base_value is None:
            result[key] = extra_value
        elif isinstance(base_value, dict) and isinstance(extra_value, dict):
            result[key] = _fill_missing(base_value, extra_value)
    return result


def merge_values(
    base: dict[str, Any], inline: dict[str, Any], policy: ValuesMerge
) -> dict[str, Any]:
    """Combine the chart values with inline values using the merge policy."""
    _LOGGER.debug("Combining values with policy %s", policy.value)
    if policy == ValuesMerge.OVERRIDE:
        return _deep_merge(base, inline)
    if policy == ValuesMerge.MERGE:
        return _fill_missing(base, inline)
    return inline


def parse_values(content: bytes, source: str) -> dict[str, Any]:
    """Parse the contents of a values file as a mapping."""
    try:
        values = safe_load(content)
    except yaml.YAMLError as err:
        raise ParseException(f"Unable to parse values file '{source}': {err}") from err
    # Handle empty YAML file case
    if values is None:
        return {}
    if not isinstance(values, dict):
        raise ParseException(
            f"Expected values file '{source}' to be a mapping, found {type(values).__name__}"
        )
    return values
