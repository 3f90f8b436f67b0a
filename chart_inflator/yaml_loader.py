"""YAML loading shared by values files, config documents and helm output.

PyYAML resolves a bare `=` scalar to the `tag:yaml.org,2002:value` tag, which
the safe constructor can't build. See https://github.com/yaml/pyyaml/issues/89
"""

from collections.abc import Iterator
from typing import Any

import yaml

__all__ = [
    "SafeLoader",
    "safe_load",
    "safe_load_all",
]


class SafeLoader(yaml.SafeLoader):
    """A safe loader that reads a bare `=` as a plain string."""

    yaml_implicit_resolvers = {
        key: resolvers
        for key, resolvers in yaml.SafeLoader.yaml_implicit_resolvers.items()
        if key != "="
    }


def safe_load(content: str | bytes) -> Any:
    """Parse a single YAML document."""
    return yaml.load(content, Loader=SafeLoader)


def safe_load_all(content: str | bytes) -> Iterator[Any]:
    """Parse a stream of YAML documents."""
    return yaml.load_all(content, Loader=SafeLoader)
