"""Build the Jinja2 template context for one model generation.

Assembles resolved columns and references plus entity metadata into an
immutable GenerationContext. Templates receive `as_vars()`.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Iterable

from .schema_parser import ResolvedColumn, ResolvedReference


@dataclass(frozen=True)
class GenerationContext:
    name: str
    ts: datetime
    pkg_name: str
    is_link: bool
    columns: tuple[ResolvedColumn, ...]
    references: tuple[ResolvedReference, ...]

    def as_vars(self) -> dict[str, Any]:
        """Return the template variable bag.

        Columns and references are passed as [name, type] / [target, fkey]
        pairs, the shape the templates iterate over.
        """
        return {
            "name": self.name,
            "ts": self.ts,
            "pkg_name": self.pkg_name,
            "is_link": self.is_link,
            "columns": [[c.name, c.schema_type] for c in self.columns],
            "references": [[r.target_entity, r.foreign_key_column] for r in self.references],
        }


def build_context(
    name: str,
    columns: Iterable[ResolvedColumn],
    references: Iterable[ResolvedReference],
    *,
    pkg_name: str,
    is_link: bool = False,
    ts: datetime | None = None,
) -> GenerationContext:
    """Build the context; `ts` defaults to the current UTC time."""
    return GenerationContext(
        name=name,
        ts=ts if ts is not None else datetime.now(timezone.utc),
        pkg_name=pkg_name,
        is_link=is_link,
        columns=tuple(columns),
        references=tuple(references),
    )
