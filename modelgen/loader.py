"""Load the field type mapping table.

Reads mappings.json (token -> schema type) and exposes read-only lookups.
"""

from __future__ import annotations

import json
from functools import lru_cache
from pathlib import Path

from .errors import ConfigError

MAPPINGS_PATH = Path(__file__).parent / "mappings.json"


class TypeMappings:
    """Read-only registry from field type token to schema type."""

    def __init__(self, mappings: dict[str, str]) -> None:
        self._mappings = dict(mappings)

    def schema_field(self, token: str) -> str | None:
        """Return the schema type for a token, or None if unknown."""
        return self._mappings.get(token)

    def schema_fields(self) -> list[str]:
        """Return every valid token, in table order."""
        return list(self._mappings)

    def __contains__(self, token: object) -> bool:
        return token in self._mappings

    def __len__(self) -> int:
        return len(self._mappings)


def load_mappings(path: Path | None = None) -> TypeMappings:
    """Load a mapping table from disk."""
    mappings_file = Path(path) if path else MAPPINGS_PATH
    try:
        with open(mappings_file, encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError:
        raise ConfigError(f"Type mapping file not found: {mappings_file}")
    except json.JSONDecodeError as e:
        raise ConfigError(f"Invalid JSON in type mapping file {mappings_file}: {e}")

    if not isinstance(data, dict) or not all(
        isinstance(k, str) and isinstance(v, str) for k, v in data.items()
    ):
        raise ConfigError(
            f"Type mapping file must contain a JSON object of strings: {mappings_file}"
        )
    return TypeMappings(data)


@lru_cache(maxsize=None)
def get_mappings() -> TypeMappings:
    """Return the bundled mapping table, loaded once per process."""
    return load_mappings()
