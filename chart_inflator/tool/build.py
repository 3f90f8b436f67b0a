"""chart-inflator build action."""

from argparse import (
    ArgumentParser,
    _SubParsersAction as SubParsersAction,
    BooleanOptionalAction,
)
import logging
import pathlib
from typing import Any, cast

import aiofiles
import yaml

from chart_inflator.config import HelmConfig
from chart_inflator.exceptions import ConfigException, FileException, ParseException
from chart_inflator.generator import new_generator
from chart_inflator.loader import FileLoader, LoadRestrictions
from chart_inflator.resource import ResourceFactory, ResourceList
from chart_inflator.yaml_loader import safe_load_all

_LOGGER = logging.getLogger(__name__)

HELM_CHARTS = "helmCharts"
HELM_GLOBALS = "helmGlobals"
GLOBAL_FIELDS = ("chartHome", "configHome")


def chart_configs(content: str) -> list[dict[str, Any]]:
    """Return the chart documents in a config file.

    A document is either a single chart or a `helmCharts` list whose entries
    inherit `chartHome` and `configHome` from `helmGlobals`.
    """
    try:
        docs = [doc for doc in safe_load_all(content) if doc is not None]
    except yaml.YAMLError as err:
        raise ParseException(f"Unable to parse config file: {err}") from err
    charts: list[dict[str, Any]] = []
    for doc in docs:
        if not isinstance(doc, dict):
            raise ConfigException(
                f"Expected config document to be a mapping, found {type(doc).__name__}"
            )
        if HELM_CHARTS not in doc:
            charts.append(doc)
            continue
        helm_globals = doc.get(HELM_GLOBALS) or {}
        defaults = {key: helm_globals[key] for key in GLOBAL_FIELDS if key in helm_globals}
        for chart in doc[HELM_CHARTS] or []:
            if not isinstance(chart, dict):
                raise ConfigException(
                    f"Expected {HELM_CHARTS} entries to be a mapping, found {type(chart).__name__}"
                )
            charts.append({**defaults, **chart})
    return charts


class BuildAction:
    """chart-inflator build action."""

    @classmethod
    def register(
        cls, subparsers: SubParsersAction  # type: ignore[type-arg]
    ) -> ArgumentParser:
        """Register the subparser commands."""
        args = cast(
            ArgumentParser,
            subparsers.add_parser(
                "build",
                help="Inflate the helm charts in a config file",
                description="""Inflates each helm chart described in the config
                    file using `helm template` and prints the resulting objects
                    as a single YAML stream.""",
            ),
        )
        args.add_argument(
            "config_file",
            type=pathlib.Path,
            help="Path to a config file with one or more helm charts",
        )
        args.add_argument(
            "--enable-helm",
            default=False,
            action=BooleanOptionalAction,
            help="Enable use of the helm chart inflation generator",
        )
        args.add_argument(
            "--helm-command",
            type=str,
            default="helm",
            help="Helm command (path to executable)",
        )
        args.add_argument(
            "--load-restrictor",
            type=LoadRestrictions,
            choices=list(LoadRestrictions),
            default=LoadRestrictions.ROOT_ONLY,
            help="Whether files may be loaded from outside the config file directory",
        )
        args.add_argument(
            "--output-file",
            type=str,
            default="/dev/stdout",
            help="Output file for the results of the command",
        )
        args.set_defaults(cls=cls)
        return args

    async def run(  # type: ignore[no-untyped-def]
        self,
        config_file: pathlib.Path,
        enable_helm: bool,
        helm_command: str,
        load_restrictor: LoadRestrictions,
        output_file: str,
        **kwargs,  # pylint: disable=unused-argument
    ) -> None:
        """Async Action implementation."""
        try:
            async with aiofiles.open(config_file, mode="r") as file:
                content = await file.read()
        except OSError as err:
            raise FileException(f"Unable to read config file '{config_file}': {err}") from err

        helm_config = HelmConfig(enabled=enable_helm, command=helm_command)
        loader = FileLoader(config_file.parent, load_restrictor)
        factory = ResourceFactory()
        resources = ResourceList()
        for chart in chart_configs(content):
            generator = new_generator(
                chart, loader, factory=factory, helm_config=helm_config
            )
            resources.extend(await generator.generate())
        _LOGGER.debug("Inflated %d resources", len(resources))

        with open(output_file, "w") as file:
            if resources:
                print(resources.yaml(), end="", file=file)
