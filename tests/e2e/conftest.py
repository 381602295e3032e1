"""
E2E test fixtures for phylointersect CLI testing.

Provides a CLI invocation helper that runs 'classify run' on files
prepared by the shared fixtures.
"""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from typing import TYPE_CHECKING

import pytest
from typer.testing import CliRunner

from phylointersect.cli.main import app

if TYPE_CHECKING:
    from click.testing import Result


@pytest.fixture
def e2e_runner() -> CliRunner:
    """Provide a CLI runner for E2E tests."""
    return CliRunner()


@pytest.fixture
def run_classify(e2e_runner: CliRunner, taxonomy_index: Path) -> Callable[..., Result]:
    """Invoke 'phylointersect classify run' with the test taxonomy."""

    def _run(manifest: Path, hits: Path, *extra: str) -> Result:
        return e2e_runner.invoke(
            app,
            [
                "classify",
                "run",
                "--manifest",
                str(manifest),
                "--hits",
                str(hits),
                "--taxonomy",
                str(taxonomy_index),
                *extra,
            ],
        )

    return _run
