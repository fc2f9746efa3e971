"""Error taxonomy for model generation.

Every failure surfaces to the caller as a single ModelgenError subclass.
Nothing here is retried; the caller re-runs the whole generation.
"""

from __future__ import annotations


class ModelgenError(Exception):
    """Base exception for model generation errors."""


class ConfigError(ModelgenError):
    """Configuration or mapping file could not be loaded."""


class FieldSyntaxError(ModelgenError):
    """A command-line field argument is not of the form name:type."""


class ReservedFieldName(ModelgenError):
    """A field name clashes with a member the migration template always emits."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(
            f"field name '{name}' is reserved: every model already has an id"
            " primary key and a Table identifier"
        )


class TypeNotFound(ModelgenError):
    """A field type token has no entry in the type mapping table."""

    def __init__(self, token: str, valid_tokens: list[str]) -> None:
        self.token = token
        self.valid_tokens = list(valid_tokens)
        super().__init__(f"type: {token} not found. try any of: {self.valid_tokens!r}")


class RenderError(ModelgenError):
    """A template could not be rendered or its artifact could not be written."""


class PipelineError(ModelgenError):
    """A downstream build step failed. Artifacts already written stay on disk."""

    def __init__(self, step_name: str, details: str) -> None:
        self.step_name = step_name
        self.details = details
        super().__init__(f"failed to run {step_name}. error details: `{details}`")
