"""Tests for combining chart values."""

from typing import Any

import pytest

from chart_inflator.config import ValuesMerge
from chart_inflator.exceptions import ParseException
from chart_inflator.values import merge_values, parse_values

BASE_VALUES = {
    "replicaCount": 1,
    "image": {
        "repository": "nginx",
        "tag": "stable",
    },
    "ports": [80],
}


@pytest.mark.parametrize(
    ("policy", "inline", "expected"),
    [
        (
            ValuesMerge.OVERRIDE,
            {"replicaCount": 3, "image": {"tag": "1.25"}, "ports": [8080]},
            {
                "replicaCount": 3,
                "image": {"repository": "nginx", "tag": "1.25"},
                "ports": [8080],
            },
        ),
        (
            ValuesMerge.MERGE,
            {"replicaCount": 3, "image": {"tag": "1.25", "pullPolicy": "Always"}},
            {
                "replicaCount": 1,
                "image": {"repository": "nginx", "tag": "stable", "pullPolicy": "Always"},
                "ports": [80],
            },
        ),
        (
            ValuesMerge.REPLACE,
            {"replicaCount": 3},
            {"replicaCount": 3},
        ),
        (
            ValuesMerge.OVERRIDE,
            {"service": {"type": "ClusterIP"}},
            {**BASE_VALUES, "service": {"type": "ClusterIP"}},
        ),
    ],
)
def test_merge_values(
    policy: ValuesMerge, inline: dict[str, Any], expected: dict[str, Any]
) -> None:
    """Test merging inline values using each policy."""
    assert merge_values(BASE_VALUES, inline, policy) == expected


def test_merge_does_not_modify_base() -> None:
    """Test the base values are left unchanged."""
    merge_values(BASE_VALUES, {"image": {"tag": "1.25"}}, ValuesMerge.OVERRIDE)
    assert BASE_VALUES["image"] == {"repository": "nginx", "tag": "stable"}


def test_override_ignores_null_values() -> None:
    """Test null inline values do not clear existing values."""
    assert merge_values(
        {"replicaCount": 1}, {"replicaCount": None}, ValuesMerge.OVERRIDE
    ) == {"replicaCount": 1}


def test_merge_fills_null_values() -> None:
    """Test null base values are treated as missing."""
    assert merge_values(
        {"replicaCount": None}, {"replicaCount": 2}, ValuesMerge.MERGE
    ) == {"replicaCount": 2}


def test_parse_values() -> None:
    """Test parsing a values file."""
    assert parse_values(b"replicaCount: 1\n", "values.yaml") == {"replicaCount": 1}
    assert parse_values(b"", "values.yaml") == {}


@pytest.mark.parametrize(
    ("content", "match"),
    [
        (b"- a\n- b\n", "to be a mapping"),
        (b"key: [value\n", "Unable to parse values file"),
    ],
)
def test_parse_values_invalid(content: bytes, match: str) -> None:
    """Test parsing an invalid values file."""
    with pytest.raises(ParseException, match=match):
        parse_values(content, "values.yaml")


def test_parse_values_equals_scalar() -> None:
    """Test a bare `=` in a values file is read as a string."""
    assert parse_values(b"operator: =\nvalues: [=, '!=']\n", "values.yaml") == {
        "operator": "=",
        "values": ["=", "!="],
    }
