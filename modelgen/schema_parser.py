"""Resolve user-declared fields into schema columns and references.

Handles:
- Reserved timestamp fields (skipped with a warning)
- `references` / `references:<Target>` foreign keys
- Scalar type tokens via the type mapping table
- `id` / `table` scalar fields, which clash with generated identifiers
- `name:type` command-line field arguments

Resolution is all-or-nothing: an unknown type token aborts the whole call.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Union

from .errors import FieldSyntaxError, ReservedFieldName, TypeNotFound
from .gen_logging import get_logger
from .loader import TypeMappings, get_mappings
from .naming import to_pascal

logger = get_logger(__name__)

# Timestamp columns the host framework always adds, under both spellings
IGNORE_FIELDS: tuple[str, ...] = ("created_at", "updated_at", "create_at", "update_at")

REFERENCES = "references"
_REFERENCES_PREFIX = "references:"

# Schema type of every synthesized foreign key column
FOREIGN_KEY_TYPE = "integer"

# Identifier enum members the migration template always emits
_RESERVED_MEMBERS = ("Id", "Table")


@dataclass(frozen=True)
class FieldToken:
    name: str
    raw_type: str


@dataclass(frozen=True)
class ResolvedColumn:
    name: str
    schema_type: str


@dataclass(frozen=True)
class ResolvedReference:
    target_entity: str
    foreign_key_column: str


@dataclass(frozen=True)
class ScalarType:
    """A type token to be looked up in the mapping table."""

    token: str


@dataclass(frozen=True)
class ReferenceType:
    """A foreign key; target is None when the field name names the entity."""

    target: str | None = None


TypeSpec = Union[ScalarType, ReferenceType]


def parse_type_token(raw_type: str) -> TypeSpec:
    """Classify a raw type token as a reference or a scalar."""
    if raw_type == REFERENCES:
        return ReferenceType()
    if raw_type.startswith(_REFERENCES_PREFIX):
        return ReferenceType(target=raw_type[len(_REFERENCES_PREFIX):])
    return ScalarType(raw_type)


def parse_field_tokens(args: Iterable[str]) -> list[FieldToken]:
    """Parse `name:type` arguments, splitting on the first colon only."""
    fields = []
    for arg in args:
        name, sep, raw_type = arg.partition(":")
        if not sep or not name or not raw_type:
            raise FieldSyntaxError(
                f"invalid field '{arg}': expected name:type, e.g. title:string"
            )
        fields.append(FieldToken(name, raw_type))
    return fields


def resolve_fields(
    fields: Iterable[FieldToken],
    mappings: TypeMappings | None = None,
) -> tuple[list[ResolvedColumn], list[ResolvedReference]]:
    """Resolve fields into columns and references, in declaration order."""
    table = mappings if mappings is not None else get_mappings()
    columns: list[ResolvedColumn] = []
    references: list[ResolvedReference] = []

    for field in fields:
        if field.name in IGNORE_FIELDS:
            logger.warning(
                "note that a redundant field was specified, it is already "
                "generated automatically: %s",
                field.name,
            )
            continue

        spec = parse_type_token(field.raw_type)
        if isinstance(spec, ReferenceType):
            fkey = f"{field.name}_id"
            columns.append(ResolvedColumn(fkey, FOREIGN_KEY_TYPE))
            # user, user_id
            target = field.name if spec.target is None else spec.target
            references.append(ResolvedReference(target, fkey))
        else:
            if to_pascal(field.name) in _RESERVED_MEMBERS:
                raise ReservedFieldName(field.name)
            schema_type = table.schema_field(spec.token)
            if schema_type is None:
                raise TypeNotFound(spec.token, table.schema_fields())
            columns.append(ResolvedColumn(field.name, schema_type))

    return columns, references
