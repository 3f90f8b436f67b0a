"""Tests for step tracing."""

from pathlib import Path

from chart_inflator.config import HelmConfig
from chart_inflator.context import get_trace_collector, trace_context
from chart_inflator.generator import new_generator
from chart_inflator.loader import FileLoader

from .conftest import FakeHelmRunner


def test_trace_collector() -> None:
    """Test timings are collected for nested steps."""
    with get_trace_collector() as collector:
        with trace_context("outer"):
            with trace_context("inner"):
                pass
        with trace_context("inner"):
            pass
    assert set(collector.timings) == {"outer", "inner"}
    assert collector.counts == {"outer": 1, "inner": 2}

    with trace_context("untracked"):
        pass
    assert "untracked" not in collector.timings


async def test_generate_steps(
    chart_dir: Path, runner: FakeHelmRunner, tmp_path: Path
) -> None:
    """Test each generation step is traced."""
    generator = new_generator(
        {"name": "example"},
        FileLoader(tmp_path),
        helm_config=HelmConfig(enabled=True),
        runner=runner,
    )
    with get_trace_collector() as collector:
        await generator.generate()
    assert list(collector.counts) == [
        "Check helm version",
        "Ensure chart",
        "Write values",
        "Template",
        "Chart 'example'",
    ]
