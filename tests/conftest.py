"""Shared fixtures for modelgen tests.

Generation tests write into a per-test tmp_path project root and never
spawn real pipeline steps: a recording runner stands in for subprocesses.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path

import pytest

from modelgen.codegen import TemplateRenderer
from modelgen.pipeline import PipelineEnvironment, PipelineStepResult, StepSpec


FIXED_TS = datetime(2024, 3, 1, 12, 30, 45, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# Logging: configure_logging() (CLI tests) turns off propagation, which
# would hide records from caplog in later tests.
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def reset_modelgen_logger():
    logger = logging.getLogger("modelgen")
    handlers = list(logger.handlers)
    propagate, level = logger.propagate, logger.level
    yield
    logger.handlers[:] = handlers
    logger.propagate = propagate
    logger.setLevel(level)


# ---------------------------------------------------------------------------
# Project root + renderer
# ---------------------------------------------------------------------------

@pytest.fixture
def ts() -> datetime:
    return FIXED_TS


@pytest.fixture
def project(tmp_path) -> Path:
    """An empty project directory."""
    root = tmp_path / "saas"
    root.mkdir()
    return root


@pytest.fixture
def renderer(project) -> TemplateRenderer:
    return TemplateRenderer(project)


@pytest.fixture
def environment(project) -> PipelineEnvironment:
    return PipelineEnvironment(cwd=project, env={"MODELGEN_TEST": "1"})


# ---------------------------------------------------------------------------
# Fake step runner
# ---------------------------------------------------------------------------

class RecordingRunner:
    """Step runner that records calls and fails the steps named in `fail`."""

    def __init__(self, fail: set[str] | None = None) -> None:
        self.fail = fail or set()
        self.calls: list[tuple[StepSpec, PipelineEnvironment]] = []

    @property
    def step_names(self) -> list[str]:
        return [step.name for step, _ in self.calls]

    def __call__(self, step: StepSpec, environment: PipelineEnvironment) -> PipelineStepResult:
        self.calls.append((step, environment))
        if step.name in self.fail:
            return PipelineStepResult(step.name, False, f"{step.name} exploded")
        return PipelineStepResult(step.name, True, f"{step.name} ok")


@pytest.fixture
def runner() -> RecordingRunner:
    return RecordingRunner()


@pytest.fixture
def steps() -> list[StepSpec]:
    return [
        StepSpec("db migrate", ("saas", "db", "migrate")),
        StepSpec("db entities", ("saas", "db", "entities")),
    ]


@pytest.fixture
def make_runner():
    """Factory for runners that fail specific steps."""
    return RecordingRunner
