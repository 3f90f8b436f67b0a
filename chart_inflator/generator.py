"""Library for inflating a helm chart into kubernetes resources with `helm template`.

A generator is created from the chart arguments and its collaborators, then
produces the resources of the chart:
```python
from pathlib import Path

from chart_inflator.config import HelmConfig
from chart_inflator.generator import new_generator
from chart_inflator.loader import FileLoader

generator = new_generator(
    {"name": "minecraft", "repo": "https://itzg.github.io/minecraft-server-charts"},
    FileLoader(Path("/path/to/kustomization")),
    helm_config=HelmConfig(enabled=True, command="helm"),
)
resources = await generator.generate()
for resource in resources:
    print(f"Found object {resource.api_version} {resource.kind}")
```

Each call to `generate` runs in its own temporary workspace that holds the
helm config home (unless one is configured) and the values file handed to
helm. The workspace is removed when the call finishes, whether or not it
succeeded.
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
import dataclasses
from dataclasses import dataclass
import logging
from pathlib import Path
import re
import shutil
import tempfile
from typing import Any

import aiofiles
from aiofiles.ospath import isdir
import yaml

from . import command
from .command import Command, ProcessRunner, SubprocessRunner
from .config import HelmChartArgs, HelmConfig, ValuesMerge
from .context import trace_context
from .exceptions import (
    ConfigException,
    FileException,
    HelmException,
    ParseException,
    ValidationException,
)
from .loader import FileLoader
from .resource import ResourceFactory, ResourceList
from .values import merge_values, parse_values

__all__ = [
    "HelmChartInflationGenerator",
    "Workspace",
    "new_generator",
    "workspace",
]

_LOGGER = logging.getLogger(__name__)

WORKSPACE_PREFIX = "chart-inflator-helm-"
VALUES_FILE_SUFFIX = "-kustomize-values.yaml"
REQUIRED_MAJOR_VERSION = "3"
DOCUMENT_SEPARATOR = b"---"

_VERSION_RE = re.compile(r"v?\d+(\.\d+)+")


@dataclass(frozen=True)
class Workspace:
    """A temporary directory owned by a single chart inflation."""

    path: Path

    def config_home(self, args: HelmChartArgs) -> str:
        """Return the helm config home, defaulting to a directory in the workspace."""
        if args.config_home:
            return args.config_home
        return str(self.path / "helm")

    def values_path(self, name: str) -> Path:
        """Return the path of the values file handed to helm."""
        return self.path / f"{name}{VALUES_FILE_SUFFIX}"


@asynccontextmanager
async def workspace() -> AsyncIterator[Workspace]:
    """Create a temporary workspace that is removed on exit."""
    try:
        path = Path(tempfile.mkdtemp(prefix=WORKSPACE_PREFIX))
    except OSError as err:
        raise FileException(
            f"unable to create tmp dir for HELM_CONFIG_HOME: {err}"
        ) from err
    _LOGGER.debug("Created workspace %s", path)
    try:
        yield Workspace(path)
    finally:
        _LOGGER.debug("Removing workspace %s", path)
        shutil.rmtree(path, ignore_errors=True)


class HelmChartInflationGenerator:
    """Generates kubernetes resources from a local or remote helm chart."""

    def __init__(
        self,
        args: HelmChartArgs,
        loader: FileLoader,
        factory: ResourceFactory,
        helm_config: HelmConfig,
        runner: ProcessRunner,
    ) -> None:
        """Initialize HelmChartInflationGenerator with validated arguments."""
        self._args = args
        self._loader = loader
        self._factory = factory
        self._helm_command = helm_config.command
        self._runner = runner

    @property
    def args(self) -> HelmChartArgs:
        """The validated chart arguments."""
        return self._args

    def abs_chart_home(self) -> Path:
        """Return the chart home, relative paths are under the loader root."""
        chart_home = Path(self._args.chart_home)
        if chart_home.is_absolute():
            return chart_home
        return self._loader.root / chart_home

    def chart_path(self) -> Path:
        """Return the local directory of the chart."""
        return self.abs_chart_home() / self._args.name

    def pull_args(self) -> list[str]:
        """Helm CLI arguments to download and unpack the chart."""
        args = [
            "pull",
            "--untar",
            "--untardir",
            str(self.abs_chart_home()),
            "--repo",
            self._args.repo,
            self._args.name,
        ]
        if self._args.version:
            args.extend(["--version", self._args.version])
        return args

    def template_args(self, values_file: Path | None) -> list[str]:
        """Helm CLI arguments to template the chart."""
        args = ["template"]
        if self._args.release_name:
            args.append(self._args.release_name)
        if self._args.namespace:
            args.extend(["--namespace", self._args.namespace])
        args.append(str(self.chart_path()))
        if values_file:
            args.extend(["--values", str(values_file)])
        if not self._args.release_name:
            # Some helm versions ignore this flag, see helm/helm#6019
            args.append("--generate-name")
        if self._args.include_crds:
            args.append("--include-crds")
        return args

    def _helm_env(self, ws: Workspace) -> dict[str, str]:
        config_home = ws.config_home(self._args)
        return {
            "HELM_CONFIG_HOME": config_home,
            "HELM_CACHE_HOME": f"{config_home}/.cache",
            "HELM_DATA_HOME": f"{config_home}/.data",
        }

    async def _run_helm(self, ws: Workspace, args: list[str]) -> bytes:
        """Run helm with the specified arguments and return stdout."""
        env = self._helm_env(ws)
        cmd = Command([self._helm_command, *args], env=env, exc=HelmException)
        try:
            return await command.run(cmd, self._runner)
        except HelmException as err:
            env_list = [f"{key}={value}" for key, value in env.items()]
            raise HelmException(
                f"unable to run: '{self._helm_command} {' '.join(args)}' with "
                f"env={env_list} (is '{self._helm_command}' installed?): {err}"
            ) from err

    async def check_helm_version(self, ws: Workspace) -> None:
        """Raise an error if the helm binary is not helm v3."""
        stdout = await self._run_helm(ws, ["version", "-c", "--short"])
        output = stdout.decode("utf-8", errors="replace")
        if not (match := _VERSION_RE.search(output)):
            raise ValidationException(f"cannot find version string in {output}")
        version = match.group(0).removeprefix("v")
        _LOGGER.debug("Found helm version %s", version)
        if version.split(".")[0] != REQUIRED_MAJOR_VERSION:
            raise ValidationException(
                f"this plugin requires helm V3 but got v{version}"
            )

    async def chart_exists_locally(self) -> bool:
        """Return true if the chart directory exists in the chart home."""
        return bool(await isdir(self.chart_path()))

    async def ensure_chart(self, ws: Workspace) -> None:
        """Pull the chart from its repository when it is not available locally."""
        if await self.chart_exists_locally():
            _LOGGER.debug("Using local chart %s", self.chart_path())
            return
        if not self._args.repo:
            raise ConfigException(
                f"no repo specified for pull, no chart found at '{self.chart_path()}'"
            )
        _LOGGER.debug("Pulling chart %s from %s", self._args.name, self._args.repo)
        await self._run_helm(ws, self.pull_args())

    async def merged_values(self) -> dict[str, Any]:
        """Return the inline values combined with the values file."""
        policy = self._args.merge_policy
        if policy == ValuesMerge.REPLACE:
            return self._args.values_inline
        content = await self._loader.load(self._args.values_file)
        base = parse_values(content, self._args.values_file)
        return merge_values(base, self._args.values_inline, policy)

    async def write_values_file(self, ws: Workspace) -> Path:
        """Write the values for helm into the workspace and return its path.

        Without inline values, the values file is copied unchanged so that
        helm always reads values from the workspace.
        """
        if self._args.values_inline:
            content = yaml.dump(await self.merged_values(), sort_keys=False).encode(
                "utf-8"
            )
        else:
            content = await self._loader.load(self._args.values_file)
        path = ws.values_path(self._args.name)
        try:
            async with aiofiles.open(path, mode="wb") as values_file:
                await values_file.write(content)
        except OSError as err:
            raise FileException(f"Unable to write helm values: {err}") from err
        return path

    def parse_output(self, stdout: bytes) -> ResourceList:
        """Parse the output of helm template into resources.

        Helm may write messages to stdout before the YAML stream begins, so
        when parsing fails the output is parsed again from the first document
        separator.
        """
        try:
            return self._factory.from_bytes(stdout)
        except ParseException as err:
            if (idx := stdout.find(DOCUMENT_SEPARATOR)) == -1:
                raise
            _LOGGER.debug(
                "Retrying parse of helm output after %d leading bytes: %s", idx, err
            )
            try:
                return self._factory.from_bytes(stdout[idx:])
            except ParseException:
                raise err

    async def generate(self) -> ResourceList:
        """Inflate the chart and return the resulting resources."""
        with trace_context(f"Chart '{self._args.name}'"):
            async with workspace() as ws:
                with trace_context("Check helm version"):
                    await self.check_helm_version(ws)
                with trace_context("Ensure chart"):
                    await self.ensure_chart(ws)
                with trace_context("Write values"):
                    values_file = await self.write_values_file(ws)
                with trace_context("Template"):
                    stdout = await self._run_helm(
                        ws, self.template_args(values_file)
                    )
                return self.parse_output(stdout)


def new_generator(
    args: HelmChartArgs | str | bytes | dict[str, Any],
    loader: FileLoader,
    factory: ResourceFactory | None = None,
    helm_config: HelmConfig | None = None,
    runner: ProcessRunner | None = None,
) -> HelmChartInflationGenerator:
    """Create a generator for a chart after checking its configuration."""
    if helm_config is None:
        helm_config = HelmConfig()
    if not helm_config.enabled:
        raise ConfigException("must specify --enable-helm")
    if not helm_config.command:
        raise ConfigException("must specify --helm-command")
    if isinstance(args, HelmChartArgs):
        chart_args = dataclasses.replace(
            args, values_inline=dict(args.values_inline)
        )
    else:
        chart_args = HelmChartArgs.parse(args)
    chart_args.validate()
    return HelmChartInflationGenerator(
        chart_args,
        loader,
        factory or ResourceFactory(),
        helm_config,
        runner or SubprocessRunner(),
    )
