"""Resolve an API token to the slice of the dataset it may see."""
from dataclasses import dataclass, field
from enum import Enum

from sqlalchemy import literal_column
from sqlalchemy.sql.elements import ColumnElement

from gateway.models.dataset import OpenTicket, Machine


class ScopeKind(str, Enum):
    UNRESTRICTED = "unrestricted"  # super token
    COLUMN_EQUALS = "column_equals"  # vendor token
    NO_RESTRICTION = "no_restriction"  # neither super nor a complete filter pair


# Logical filter names an administrator may put on a token
SCOPE_COLUMNS: dict[str, ColumnElement] = {
    "flm_name": Machine.__table__.c.flm_name,
    "flm": Machine.__table__.c.flm,
    "slm": Machine.__table__.c.slm,
    "net": Machine.__table__.c.net,
    "terminal_id": OpenTicket.__table__.c.terminal_id,
    "status": OpenTicket.__table__.c.status,
    "priority": OpenTicket.__table__.c.priority,
}


@dataclass(frozen=True)
class Scope:
    """Data-visibility restriction derived from a token."""

    kind: ScopeKind
    column_name: str | None = None
    value: str | None = None
    column: ColumnElement | None = field(default=None, compare=False, repr=False)

    @property
    def is_restricted(self) -> bool:
        return self.kind is ScopeKind.COLUMN_EQUALS

    def predicate(self) -> ColumnElement | None:
        """Equality condition for restricted scopes, None otherwise."""
        if not self.is_restricted:
            return None
        return self.column == self.value


UNRESTRICTED = Scope(ScopeKind.UNRESTRICTED)
NO_RESTRICTION = Scope(ScopeKind.NO_RESTRICTION)


def is_known_scope_column(name: str) -> bool:
    return name.strip().lower() in SCOPE_COLUMNS


def resolve_scope_column(name: str) -> ColumnElement:
    """Map a logical filter name to a queryable column.

    Names outside SCOPE_COLUMNS are used verbatim as a column reference.
    Only administrators can set a token's filter column, so this lets an
    operator scope on a column added to the dataset without a code change.
    The value is still bound as a parameter.
    """
    column = SCOPE_COLUMNS.get(name.strip().lower())
    if column is not None:
        return column
    return literal_column(name.strip())


def resolve_scope(token) -> Scope:
    """Convert a validated token into its Scope.

    ``is_super`` wins over any filter pair. A token with neither flag nor a
    complete pair gets NO_RESTRICTION, which reads like UNRESTRICTED but is
    reported separately in usage logs.
    """
    if token.is_super:
        return UNRESTRICTED

    column_name = (token.filter_column or "").strip()
    value = token.filter_value or ""
    if column_name and value.strip():
        return Scope(
            kind=ScopeKind.COLUMN_EQUALS,
            column_name=column_name,
            value=value,
            column=resolve_scope_column(column_name),
        )

    return NO_RESTRICTION
