"""Generate a model: schema migration, test scaffold, then the build pipeline.

Side effects happen in this order and stop at the first error:

  1. resolve fields      (TypeNotFound, nothing written)
  2. render templates    (RenderError, pipeline never runs)
  3. run pipeline steps  (PipelineError, rendered files stay on disk)
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Sequence

from .codegen import ArtifactOutcome, TemplateRenderer, collect_messages
from .context_builder import build_context
from .gen_logging import get_logger
from .loader import TypeMappings
from .pipeline import (
    PipelineEnvironment,
    StepRunner,
    StepSpec,
    default_steps,
    run_pipeline,
    run_step,
)
from .schema_parser import FieldToken, resolve_fields

logger = get_logger(__name__)

MODEL_T = "model.py.j2"
MODEL_TEST_T = "model_test.py.j2"


@dataclass(frozen=True)
class AppInfo:
    app_name: str


def generate(
    renderer: TemplateRenderer,
    name: str,
    is_link: bool,
    migration_only: bool,
    fields: Iterable[FieldToken],
    app_info: AppInfo,
    *,
    mappings: TypeMappings | None = None,
    steps: Sequence[StepSpec] | None = None,
    environment: PipelineEnvironment | None = None,
    runner: StepRunner = run_step,
    ts: datetime | None = None,
) -> str:
    """Generate the model artifacts and return the aggregated report.

    Without explicit `steps` the pipeline runs `<app_name> db migrate` then
    `<app_name> db entities`.
    """
    if steps is None:
        steps = default_steps(
            [app_info.app_name, "db", "migrate"],
            [app_info.app_name, "db", "entities"],
        )
    columns, references = resolve_fields(fields, mappings)
    context = build_context(
        name,
        columns,
        references,
        pkg_name=app_info.app_name,
        is_link=is_link,
        ts=ts,
    )

    outcomes: list[ArtifactOutcome] = [
        renderer.render(MODEL_T, context),
        renderer.render(MODEL_TEST_T, context),
    ]

    if not migration_only:
        run_pipeline(steps, environment or PipelineEnvironment.capture(), runner)
    else:
        logger.debug("migration only, skipping %d pipeline steps", len(steps))

    return collect_messages(outcomes)
