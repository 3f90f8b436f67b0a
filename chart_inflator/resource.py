"""Representation of the resources produced by inflating a chart.

The `ResourceFactory` turns a YAML stream, such as the output of
`helm template`, into an ordered `ResourceList`:
```python
from chart_inflator.resource import ResourceFactory

resources = ResourceFactory().from_bytes(content)
for resource in resources:
    print(f"Found object {resource.api_version} {resource.kind}")
```
"""

from collections.abc import Iterator, Sequence
from dataclasses import dataclass
import logging
from typing import Any, overload

import yaml

from .exceptions import ParseException
from .yaml_loader import safe_load_all

__all__ = [
    "NamedResource",
    "Resource",
    "ResourceList",
    "ResourceFactory",
]

_LOGGER = logging.getLogger(__name__)

LIST_KIND = "List"


@dataclass(frozen=True, order=True)
class NamedResource:
    """Identifier for a kubernetes resource."""

    kind: str
    namespace: str | None
    name: str

    @property
    def namespaced_name(self) -> str:
        if self.namespace:
            return f"{self.namespace}/{self.name}"
        return self.name

    def __str__(self) -> str:
        """Return the kind and namespaced name concatenated as an id."""
        return f"{self.kind}/{self.namespaced_name}"


@dataclass
class Resource:
    """A single parsed kubernetes object."""

    doc: dict[str, Any]
    """The raw kubernetes object."""

    @classmethod
    def parse_doc(cls, doc: Any) -> "Resource":
        """Parse a Resource from a raw kubernetes object."""
        if not isinstance(doc, dict):
            raise ParseException(
                f"Invalid object expected a mapping, found {type(doc).__name__}: {doc!r}"
            )
        if not doc.get("apiVersion"):
            raise ParseException(f"Invalid object missing apiVersion: {doc}")
        if not doc.get("kind"):
            raise ParseException(f"Invalid object missing kind: {doc}")
        if not isinstance(metadata := doc.get("metadata"), dict):
            raise ParseException(f"Invalid object missing metadata: {doc}")
        if not metadata.get("name"):
            raise ParseException(f"Invalid object missing metadata.name: {doc}")
        return cls(doc=doc)

    @property
    def api_version(self) -> str:
        """The apiVersion of the object."""
        return str(self.doc["apiVersion"])

    @property
    def kind(self) -> str:
        """The kind of the object."""
        return str(self.doc["kind"])

    @property
    def name(self) -> str:
        """The name of the object."""
        return str(self.doc["metadata"]["name"])

    @property
    def namespace(self) -> str | None:
        """The namespace of the object, if any."""
        return self.doc["metadata"].get("namespace")

    @property
    def named_resource(self) -> NamedResource:
        return NamedResource(kind=self.kind, namespace=self.namespace, name=self.name)


class ResourceList(Sequence[Resource]):
    """An ordered collection of resources."""

    def __init__(self, resources: list[Resource] | None = None) -> None:
        """Initialize ResourceList."""
        self._resources = list(resources or [])

    @overload
    def __getitem__(self, index: int) -> Resource: ...

    @overload
    def __getitem__(self, index: slice) -> "ResourceList": ...

    def __getitem__(self, index: int | slice) -> "Resource | ResourceList":
        if isinstance(index, slice):
            return ResourceList(self._resources[index])
        return self._resources[index]

    def __len__(self) -> int:
        return len(self._resources)

    def __iter__(self) -> Iterator[Resource]:
        return iter(self._resources)

    def __repr__(self) -> str:
        ids = ", ".join(str(resource.named_resource) for resource in self)
        return f"ResourceList([{ids}])"

    def extend(self, other: "ResourceList") -> None:
        """Append the resources of another list."""
        self._resources.extend(other)

    def objects(self) -> list[dict[str, Any]]:
        """Return the raw kubernetes objects."""
        return [resource.doc for resource in self._resources]

    def yaml(self) -> str:
        """Render the resources as a multi-document YAML stream."""
        return yaml.dump_all(self.objects(), sort_keys=False, explicit_start=True)


class ResourceFactory:
    """Builds resource collections from serialized YAML."""

    def from_bytes(self, content: bytes) -> ResourceList:
        """Parse a YAML stream into a ResourceList.

        Empty documents are skipped and `List` objects are expanded into
        their items.
        """
        resources: list[Resource] = []
        try:
            for doc in safe_load_all(content):
                if doc is None:
                    continue
                if isinstance(doc, dict) and doc.get("kind") == LIST_KIND:
                    if not isinstance(items := doc.get("items") or [], list):
                        raise ParseException(
                            f"Invalid List items expected a list, found {type(items).__name__}"
                        )
                    resources.extend(Resource.parse_doc(item) for item in items)
                    continue
                resources.append(Resource.parse_doc(doc))
        except yaml.YAMLError as err:
            raise ParseException(f"Unable to parse resources: {err}") from err
        _LOGGER.debug("Parsed %d resources", len(resources))
        return ResourceList(resources)
