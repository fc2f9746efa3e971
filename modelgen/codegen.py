"""Render templates and write generated artifacts.

Each template opens with header comments, one per line. `to` names the
output path and is required:

    {# to: migrations/m{{ ts.strftime("%Y%m%d_%H%M%S") }}_{{ name|snake|plural }}.py #}
    {# inject_into: migrations/__init__.py #}
    {# inject_line: from . import m{{ ts.strftime("%Y%m%d_%H%M%S") }}_{{ name|snake|plural }} #}

Header values are rendered with the same variables as the body, and paths
are relative to the project root. Before writing, the renderer compares
against what is on disk:

  - no file                         -> write, CREATED
  - same bytes                      -> no write, UNCHANGED
  - content we generated last time  -> write, OVERWRITTEN
  - anything else (hand edits)      -> no write, SKIPPED

"What we generated last time" is a sha256 per path kept in
.modelgen/manifest.json under the root. Artifacts are written to a temp file
and swapped into place only after the manifest has been saved.

`inject_into` / `inject_line` add one line to another file (created if
missing) unless that line is already there. `inject_after` is a regex; the
line goes after the first line it matches instead of at the end. Nothing is
injected for a SKIPPED artifact.
"""

from __future__ import annotations

import enum
import hashlib
import json
import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable

import jinja2

from .context_builder import GenerationContext
from .errors import RenderError
from .gen_logging import get_logger
from .naming import pluralize, singularize, to_pascal, to_snake

logger = get_logger(__name__)

TEMPLATE_DIR = Path(__file__).parent / "templates"
MANIFEST_PATH = Path(".modelgen") / "manifest.json"

# Settings-level variables; the generation context overrides any clash
DEFAULT_VARIABLES: dict[str, Any] = {
    "migrations_dir": "migrations",
    "tests_dir": "tests/models",
}

HEADER_KEYS = ("to", "inject_into", "inject_line", "inject_after")

_HEADER_RE = re.compile(r"\{#\s*(?P<key>\w+):\s*(?P<value>.+?)\s*#\}[ \t]*(?:\n|\Z)")


class ArtifactAction(enum.Enum):
    CREATED = "created"
    OVERWRITTEN = "overwritten"
    SKIPPED = "skipped"
    UNCHANGED = "unchanged"


@dataclass(frozen=True)
class ArtifactOutcome:
    path: Path
    action: ArtifactAction
    message: str
    injected: Path | None = None


@dataclass(frozen=True)
class Injection:
    """A line to add to an existing file."""

    into: str
    line: str
    after: str | None = None


def _digest(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def create_environment(template_dir: Path | None = None) -> jinja2.Environment:
    """Create the Jinja2 environment with naming filters registered."""
    env = jinja2.Environment(
        loader=jinja2.FileSystemLoader(str(template_dir or TEMPLATE_DIR)),
        keep_trailing_newline=True,
        trim_blocks=True,
        lstrip_blocks=True,
        undefined=jinja2.StrictUndefined,
    )
    env.filters["snake"] = to_snake
    env.filters["pascal"] = to_pascal
    env.filters["plural"] = pluralize
    env.filters["singular"] = singularize
    return env


def insert_line(text: str, line: str, after: str | None = None) -> str | None:
    """Return `text` with `line` added, or None when it is already present."""
    lines = text.splitlines(keepends=True)
    if any(existing.strip() == line.strip() for existing in lines):
        return None
    if after is None:
        index = len(lines)
    else:
        pattern = re.compile(after)
        index = next((i + 1 for i, existing in enumerate(lines) if pattern.search(existing)), None)
        if index is None:
            raise ValueError(f"anchor {after!r} not found")
    if index and not lines[index - 1].endswith("\n"):
        lines[index - 1] += "\n"
    lines.insert(index, line + "\n")
    return "".join(lines)


class TemplateRenderer:
    """Render named templates into files under a project root."""

    def __init__(
        self,
        root: Path,
        template_dir: Path | None = None,
        *,
        force: bool = False,
        variables: dict[str, Any] | None = None,
    ) -> None:
        self.root = Path(root)
        self.force = force
        self.variables = {**DEFAULT_VARIABLES, **(variables or {})}
        self._env = create_environment(template_dir)

    @property
    def manifest_path(self) -> Path:
        return self.root / MANIFEST_PATH

    def _load_manifest(self) -> dict[str, str]:
        if not self.manifest_path.exists():
            return {}
        try:
            data = json.loads(self.manifest_path.read_text(encoding="utf-8"))
        except ValueError:
            logger.warning("ignoring corrupt manifest %s", self.manifest_path)
            return {}
        return data if isinstance(data, dict) else {}

    def _save_manifest(self, manifest: dict[str, str]) -> None:
        self.manifest_path.parent.mkdir(parents=True, exist_ok=True)
        self.manifest_path.write_text(
            json.dumps(manifest, indent=2, sort_keys=True) + "\n", encoding="utf-8"
        )

    def _split_header(self, template_id: str) -> tuple[dict[str, str], str]:
        """Return (header expressions by key, body source) for a template."""
        source, _, _ = self._env.loader.get_source(self._env, template_id)
        header: dict[str, str] = {}
        pos = 0
        while True:
            match = _HEADER_RE.match(source, pos)
            if not match:
                break
            key = match.group("key")
            if key not in HEADER_KEYS:
                raise RenderError(
                    f"template {template_id} has unknown header '{key}', expected one of {HEADER_KEYS}"
                )
            if key in header:
                raise RenderError(f"template {template_id} repeats header '{key}'")
            header[key] = match.group("value")
            pos = match.end()

        if "to" not in header:
            raise RenderError(
                f"template {template_id} is missing its '{{# to: <path> #}}' header"
            )
        if ("inject_into" in header) != ("inject_line" in header):
            raise RenderError(
                f"template {template_id} needs both 'inject_into' and 'inject_line' headers"
            )
        if "inject_after" in header and "inject_into" not in header:
            raise RenderError(f"template {template_id} has 'inject_after' without 'inject_into'")
        return header, source[pos:]

    def _resolve_target(self, rel_path: str, template_id: str) -> Path:
        target = (self.root / rel_path.strip()).resolve()
        root = self.root.resolve()
        if target != root and root not in target.parents:
            raise RenderError(f"template {template_id} targets a path outside {root}: {rel_path}")
        return target

    def _key(self, target: Path) -> str:
        return target.relative_to(self.root.resolve()).as_posix()

    def _render_template(
        self, template_id: str, context: GenerationContext
    ) -> tuple[str, str, Injection | None]:
        variables = {**self.variables, **context.as_vars()}
        try:
            header, body = self._split_header(template_id)
            values = {
                key: self._env.from_string(expr).render(**variables).strip()
                for key, expr in header.items()
            }
            content = self._env.from_string(body).render(**variables)
        except jinja2.TemplateError as e:
            raise RenderError(f"Failed to render template {template_id}: {e}")

        injection = None
        if "inject_into" in values:
            injection = Injection(
                values["inject_into"], values["inject_line"], values.get("inject_after")
            )
        return values["to"], content, injection

    def render_content(self, template_id: str, context: GenerationContext) -> tuple[str, str]:
        """Render (relative path, file content) without touching the disk."""
        rel_path, content, _ = self._render_template(template_id, context)
        return rel_path, content

    def _write_artifact(self, target: Path, data: bytes, key: str, manifest: dict[str, str]) -> None:
        tmp = target.with_name(f".{target.name}.modelgen-tmp")
        previous = manifest.get(key)
        saved = False
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            tmp.write_bytes(data)
            manifest[key] = _digest(data)
            self._save_manifest(manifest)
            saved = True
            os.replace(tmp, target)
        except OSError:
            tmp.unlink(missing_ok=True)
            if saved:
                if previous is None:
                    manifest.pop(key, None)
                else:
                    manifest[key] = previous
                try:
                    self._save_manifest(manifest)
                except OSError as e:
                    logger.warning("could not restore manifest entry for %s: %s", key, e)
            raise

    def _inject(self, injection: Injection, template_id: str) -> Path | None:
        target = self._resolve_target(injection.into, template_id)
        key = self._key(target)
        try:
            text = target.read_text(encoding="utf-8") if target.exists() else ""
            updated = insert_line(text, injection.line, injection.after)
            if updated is None:
                logger.debug("%s already contains %r", key, injection.line)
                return None
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(updated, encoding="utf-8")
        except (OSError, ValueError, re.error) as e:
            raise RenderError(f"Failed to inject into {key}: {e}")
        logger.debug("injected into %s", key)
        return target

    def render(self, template_id: str, context: GenerationContext) -> ArtifactOutcome:
        """Render one template and decide whether to write its artifact."""
        rel_path, content, injection = self._render_template(template_id, context)
        target = self._resolve_target(rel_path, template_id)
        key = self._key(target)
        data = content.encode("utf-8")

        try:
            manifest = self._load_manifest()
            if target.exists():
                existing = target.read_bytes()
                if existing == data:
                    action = ArtifactAction.UNCHANGED
                elif not self.force and manifest.get(key) != _digest(existing):
                    logger.warning("not overwriting modified file %s", key)
                    return ArtifactOutcome(
                        target,
                        ArtifactAction.SKIPPED,
                        f"skipped: {key} (file was changed since it was generated,"
                        " use --force to overwrite)",
                    )
                else:
                    action = ArtifactAction.OVERWRITTEN
            else:
                action = ArtifactAction.CREATED

            if action is not ArtifactAction.UNCHANGED:
                self._write_artifact(target, data, key, manifest)
        except OSError as e:
            raise RenderError(f"Failed to write {key}: {e}")

        logger.debug("%s %s", action.value, key)
        verb = "added" if action is ArtifactAction.CREATED else action.value
        messages = [f"{verb}: {key}"]
        injected = self._inject(injection, template_id) if injection else None
        if injected is not None:
            messages.append(f"injected: {self._key(injected)}")
        return ArtifactOutcome(target, action, "\n".join(messages), injected)


def collect_messages(outcomes: Iterable[ArtifactOutcome]) -> str:
    """Join outcome messages, in invocation order, into one report."""
    return "\n".join(o.message for o in outcomes if o.message)
