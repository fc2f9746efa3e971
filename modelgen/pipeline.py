"""Run the downstream build steps after artifacts are generated.

Steps run one at a time, blocking, in declared order:

  db migrate   -> apply the new schema change
  db entities  -> regenerate data-access bindings

The first failing step stops the pipeline. Steps that already ran are not
undone: the host tooling's own behaviour on a partial run is what you get.
Re-running the pipeline is the recovery path.
"""

from __future__ import annotations

import enum
import os
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Iterable, Sequence

from .errors import PipelineError
from .gen_logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class StepSpec:
    name: str
    command: tuple[str, ...]


@dataclass(frozen=True)
class PipelineEnvironment:
    """Working directory and environment variables the steps inherit."""

    cwd: Path
    env: dict[str, str] = field(default_factory=dict)

    @classmethod
    def capture(cls) -> "PipelineEnvironment":
        """Snapshot the current process's working directory and environment."""
        return cls(cwd=Path(os.getcwd()), env=dict(os.environ))


@dataclass(frozen=True)
class PipelineStepResult:
    step_name: str
    succeeded: bool
    combined_output: str


StepRunner = Callable[[StepSpec, PipelineEnvironment], PipelineStepResult]


def run_step(step: StepSpec, environment: PipelineEnvironment) -> PipelineStepResult:
    """Run one step as a subprocess, stderr folded into stdout."""
    try:
        p = subprocess.run(
            list(step.command),
            cwd=str(environment.cwd),
            env=environment.env,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
            encoding="utf-8",
            errors="replace",
        )
    except OSError as e:
        return PipelineStepResult(step.name, False, str(e))

    output = (p.stdout or "").strip()
    if p.returncode != 0:
        details = f"exit status {p.returncode}"
        if output:
            details += f": {output}"
        return PipelineStepResult(step.name, False, details)
    return PipelineStepResult(step.name, True, output)


class PipelineState(enum.Enum):
    NOT_STARTED = "not_started"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class Pipeline:
    """Sequential, fail-fast step runner with an observable state.

    `step_index` is the step currently running, or the one that failed.
    """

    def __init__(
        self,
        steps: Iterable[StepSpec],
        environment: PipelineEnvironment,
        runner: StepRunner = run_step,
    ) -> None:
        self.steps: tuple[StepSpec, ...] = tuple(steps)
        self.environment = environment
        self.runner = runner
        self.state = PipelineState.NOT_STARTED
        self.step_index: int | None = None
        self.details: str | None = None

    def run(self) -> None:
        """Run every step in order; raise PipelineError on the first failure."""
        if self.state is not PipelineState.NOT_STARTED:
            raise RuntimeError(f"pipeline already {self.state.value}")

        for index, step in enumerate(self.steps):
            self.state = PipelineState.RUNNING
            self.step_index = index
            logger.info("running %s: %s", step.name, " ".join(step.command))

            result = self.runner(step, self.environment)
            if result.combined_output:
                logger.debug("%s output:\n%s", step.name, result.combined_output)

            if not result.succeeded:
                self.state = PipelineState.FAILED
                self.details = result.combined_output
                logger.error("%s failed", step.name)
                raise PipelineError(step.name, result.combined_output)

        self.state = PipelineState.SUCCEEDED
        self.step_index = None


def run_pipeline(
    steps: Sequence[StepSpec],
    environment: PipelineEnvironment,
    runner: StepRunner = run_step,
) -> None:
    """Run steps to completion or raise PipelineError."""
    Pipeline(steps, environment, runner).run()


def default_steps(migrate_command: Sequence[str], entities_command: Sequence[str]) -> list[StepSpec]:
    """The post-generation steps: apply migrations, then regenerate entities."""
    return [
        StepSpec("db migrate", tuple(migrate_command)),
        StepSpec("db entities", tuple(entities_command)),
    ]
