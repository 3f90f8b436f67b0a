"""Configuration objects for chart-inflator.

A `HelmChartArgs` is decoded from a configuration document such as:
```yaml
name: minecraft
repo: https://itzg.github.io/minecraft-server-charts
version: 3.1.3
releaseName: moria
valuesInline:
  minecraftServer:
    eula: true
```
"""

from dataclasses import dataclass, field
from enum import Enum
import logging
import os
from typing import Any

from mashumaro import DataClassDictMixin, field_options
from mashumaro.config import BaseConfig
from mashumaro.exceptions import (
    ExtraKeysError,
    InvalidFieldValue,
    MissingField,
)
import yaml

from .exceptions import ConfigException, ParseException
from .yaml_loader import safe_load

__all__ = [
    "HelmConfig",
    "HelmChartArgs",
    "ValuesMerge",
    "DEFAULT_CHART_HOME",
]

_LOGGER = logging.getLogger(__name__)

DEFAULT_CHART_HOME = "charts"


class ValuesMerge(str, Enum):
    """Policy for combining inline values with the chart values file."""

    MERGE = "merge"
    """Keep existing values, only add keys that are missing."""

    OVERRIDE = "override"
    """Inline values win on conflicting keys."""

    REPLACE = "replace"
    """Ignore the values file and use the inline values verbatim."""


LEGAL_MERGE_OPTIONS = [opt.value for opt in ValuesMerge]


@dataclass
class HelmConfig:
    """Host level helm settings, checked before any chart work begins."""

    enabled: bool = False
    """Helm chart inflation must be explicitly enabled."""

    command: str = "helm"
    """Path or name of the helm executable."""


@dataclass
class HelmChartArgs(DataClassDictMixin):
    """Arguments for inflating a single helm chart."""

    name: str = ""
    """The name of the chart."""

    repo: str = ""
    """Remote chart repository url, only needed when the chart is not local."""

    version: str = ""
    """Chart version constraint used when pulling."""

    chart_home: str = field(metadata=field_options(alias="chartHome"), default="")
    """Directory holding chart directories, relative to the loader root."""

    values_file: str = field(metadata=field_options(alias="valuesFile"), default="")
    """Path to the base values file."""

    values_inline: dict[str, Any] = field(
        metadata=field_options(alias="valuesInline"), default_factory=dict
    )
    """Values combined with the values file according to `values_merge`."""

    values_merge: str = field(metadata=field_options(alias="valuesMerge"), default="")
    """One of `merge`, `override` or `replace`."""

    config_home: str = field(metadata=field_options(alias="configHome"), default="")
    """Directory for helm config, cache and data; a temporary one if empty."""

    release_name: str = field(metadata=field_options(alias="releaseName"), default="")
    """Release name passed to helm template."""

    namespace: str = ""
    """Namespace passed to helm template."""

    include_crds: bool = field(
        metadata=field_options(alias="includeCRDs"), default=False
    )
    """Include CRDs in the templated output."""

    class Config(BaseConfig):
        serialize_by_alias = True
        forbid_extra_keys = True

    @classmethod
    def parse(cls, content: str | bytes | dict[str, Any]) -> "HelmChartArgs":
        """Decode arguments from a configuration document.

        The document may be a mapping or serialized YAML/JSON.
        """
        if isinstance(content, (str, bytes)):
            try:
                doc = safe_load(content)
            except yaml.YAMLError as err:
                raise ParseException(f"Unable to parse helm chart config: {err}") from err
        else:
            doc = content
        if doc is None:
            doc = {}
        if not isinstance(doc, dict):
            raise ConfigException(
                f"Expected helm chart config to be a mapping, found {type(doc).__name__}"
            )
        # Keys left empty in YAML, such as `valuesInline:`, take their defaults
        doc = {key: value for key, value in doc.items() if value is not None}
        try:
            return cls.from_dict(doc)
        except (ExtraKeysError, InvalidFieldValue, MissingField) as err:
            raise ConfigException(f"Invalid helm chart config: {err}") from err

    @property
    def merge_policy(self) -> ValuesMerge:
        """The values merge policy, only valid after `validate`."""
        return ValuesMerge(self.values_merge)

    def validate(self) -> None:
        """Populate defaults and check the arguments are consistent."""
        if not self.name:
            raise ConfigException("chart name cannot be empty")

        # The chart home and values file may be read by the loader so they
        # must live under the loader root unless root restrictions are off.
        if not self.chart_home:
            self.chart_home = DEFAULT_CHART_HOME
        if not self.values_file:
            self.values_file = os.path.join(self.chart_home, self.name, "values.yaml")

        if not self.values_merge:
            self.values_merge = ValuesMerge.OVERRIDE.value
        elif self.values_merge not in LEGAL_MERGE_OPTIONS:
            raise ConfigException(
                f"valuesMerge must be one of {LEGAL_MERGE_OPTIONS}"
            )
        _LOGGER.debug(
            "Validated chart %s (chartHome=%s, valuesFile=%s, valuesMerge=%s)",
            self.name,
            self.chart_home,
            self.values_file,
            self.values_merge,
        )
