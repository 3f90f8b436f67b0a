"""Fixtures for chart-inflator tests."""

from collections.abc import Callable
from pathlib import Path
import stat

import pytest

from chart_inflator.command import Command, ProcessResult, ProcessRunner

HELM_VERSION = b"v3.14.2+gc309b6f\n"

CONFIG_MAP = b"""\
---
# Source: example/templates/configmap.yaml
apiVersion: v1
kind: ConfigMap
metadata:
  name: example-config
data:
  key: value
"""

FAKE_HELM_SCRIPT = """\
#!/bin/sh
case "$1" in
  version)
    echo "v3.14.2+gc309b6f"
    ;;
  template)
    echo "WARNING: Kubernetes configuration file is group-readable. This is insecure."
    echo "---"
    echo "apiVersion: v1"
    echo "kind: ConfigMap"
    echo "metadata:"
    echo "  name: $2-config"
    echo "  namespace: $4"
    ;;
  *)
    echo "unknown command $1" >&2
    exit 1
    ;;
esac
"""


class FakeHelmRunner(ProcessRunner):
    """A ProcessRunner that returns canned results keyed by helm subcommand."""

    def __init__(self) -> None:
        """Initialize FakeHelmRunner."""
        self.commands: list[Command] = []
        self.results: dict[str, ProcessResult] = {
            "version": ProcessResult(stdout=HELM_VERSION, stderr=b"", returncode=0),
            "template": ProcessResult(stdout=CONFIG_MAP, stderr=b"", returncode=0),
            "pull": ProcessResult(stdout=b"", stderr=b"", returncode=0),
        }
        self.side_effects: dict[str, Callable[[Command], None]] = {}
        self.workspaces: list[Path] = []

    def set_result(
        self, subcommand: str, stdout: bytes = b"", stderr: bytes = b"", returncode: int = 0
    ) -> None:
        """Set the result returned for a subcommand."""
        self.results[subcommand] = ProcessResult(
            stdout=stdout, stderr=stderr, returncode=returncode
        )

    @property
    def subcommands(self) -> list[str]:
        """The helm subcommands run so far."""
        return [cmd.cmd[1] for cmd in self.commands]

    def args(self, subcommand: str) -> list[str]:
        """Return the arguments of the last run of a subcommand."""
        for cmd in reversed(self.commands):
            if cmd.cmd[1] == subcommand:
                return cmd.cmd[1:]
        raise AssertionError(f"helm {subcommand} was not run")

    async def run(self, cmd: Command, stdin: bytes | None = None) -> ProcessResult:
        """Record the command and return the canned result."""
        self.commands.append(cmd)
        assert cmd.env
        # The config home defaults to a directory in the workspace
        workspace = Path(cmd.env["HELM_CONFIG_HOME"]).parent
        if workspace not in self.workspaces:
            self.workspaces.append(workspace)
        subcommand = cmd.cmd[1]
        if side_effect := self.side_effects.get(subcommand):
            side_effect(cmd)
        return self.results[subcommand]


@pytest.fixture(name="runner")
def runner_fixture() -> FakeHelmRunner:
    """Fixture for a fake helm runner."""
    return FakeHelmRunner()


@pytest.fixture(name="chart_dir")
def chart_dir_fixture(tmp_path: Path) -> Path:
    """Fixture that creates a local chart named `example` under `charts`."""
    chart = tmp_path / "charts" / "example"
    chart.mkdir(parents=True)
    (chart / "Chart.yaml").write_text("apiVersion: v2\nname: example\nversion: 0.1.0\n")
    (chart / "values.yaml").write_text(
        "replicaCount: 1\nimage:\n  repository: nginx\n  tag: stable\n"
    )
    return chart


@pytest.fixture(name="fake_helm")
def fake_helm_fixture(tmp_path: Path) -> Path:
    """Fixture for an executable that behaves like a small subset of helm."""
    script = tmp_path / "bin" / "helm"
    script.parent.mkdir()
    script.write_text(FAKE_HELM_SCRIPT)
    script.chmod(script.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return script
