"""Build scoped, parameterized statements over the ticket dataset.

Every caller supplied value ends up as a bound parameter. Identifiers
(sort keys, filter names, projected columns) only ever come from the
allowlists below; unknown sort keys fall back to the default ordering
instead of erroring.
"""
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy import Select, Update, func, literal_column, or_, select, update
from sqlalchemy.sql.elements import ColumnElement

from gateway.domain.scope import Scope, ScopeKind
from gateway.models.dataset import OpenTicket, Machine


tickets = OpenTicket.__table__
machines = Machine.__table__

# Tickets LEFT JOIN their terminal dimension row
JOINED = tickets.outerjoin(machines, tickets.c.terminal_id == machines.c.terminal_id)

# Row contract: every projection emits exactly these labels in this order
ROW_COLUMNS: dict[str, ColumnElement] = {
    "terminal_id": tickets.c.terminal_id,
    "terminal_name": tickets.c.terminal_name,
    "priority": tickets.c.priority,
    "mode": tickets.c.mode,
    "initial_problem": tickets.c.initial_problem,
    "current_problem": tickets.c.current_problem,
    "incident_start_datetime": tickets.c.incident_start_datetime,
    "count": tickets.c.count,
    "status": tickets.c.status,
    "remarks": tickets.c.remarks,
    "balance": tickets.c.balance,
    "condition": tickets.c.condition,
    "tickets_no": tickets.c.tickets_no,
    "tickets_duration": tickets.c.tickets_duration,
    "open_time": tickets.c.open_time,
    "close_time": tickets.c.close_time,
    "problem_history": tickets.c.problem_history,
    "mode_history": tickets.c.mode_history,
    "flm_name": machines.c.flm_name,
    "flm": machines.c.flm,
    "slm": machines.c.slm,
    "net": machines.c.net,
}

SORT_COLUMNS: dict[str, ColumnElement] = {
    name: ROW_COLUMNS[name]
    for name in (
        "terminal_id", "terminal_name", "priority", "mode", "status",
        "incident_start_datetime", "count", "balance", "tickets_duration",
        "open_time", "close_time", "flm_name", "flm", "slm", "net",
    )
}
DEFAULT_SORT = "incident_start_datetime"
DEFAULT_DIRECTION = "desc"

FILTER_COLUMNS: dict[str, ColumnElement] = {
    "status": tickets.c.status,
    "mode": tickets.c.mode,
    "priority": tickets.c.priority,
}

SEARCH_COLUMNS = (tickets.c.terminal_id, tickets.c.terminal_name)

UPDATABLE_FIELDS = (
    "priority", "mode", "current_problem", "status", "remarks",
    "condition", "close_time", "problem_history", "mode_history",
)


class ProjectionConfigError(ValueError):
    """Raised at startup when the admin column overrides break the row contract."""


class NoUpdatableFieldsError(ValueError):
    """Raised when an update carries none of UPDATABLE_FIELDS."""


class ScopeFieldChangeError(ValueError):
    """Raised when an update would move a row out of the caller's scope."""


@dataclass
class ListParams:
    """Caller supplied list options, already parsed from the query string."""

    page: int | None = None
    page_size: int | None = None
    sort_by: str | None = None
    sort_dir: str | None = None
    search: str | None = None
    filters: dict[str, str | None] = field(default_factory=dict)


@dataclass
class ListQuery:
    count_stmt: Select
    data_stmt: Select
    page: int | None  # None when every row was requested
    limit: int


def build_projection(overrides: dict[str, str] | None = None) -> list[ColumnElement]:
    """Build a labelled projection honoring the row contract.

    Args:
        overrides: Map of contract label to SQL expression, replacing the
            default column for that label

    Returns:
        One labelled column per contract label, in contract order

    Raises:
        ProjectionConfigError: If a label is not in the contract or an
            expression is empty or holds a statement separator
    """
    overrides = overrides or {}
    unknown = sorted(set(overrides) - set(ROW_COLUMNS))
    if unknown:
        raise ProjectionConfigError(f"Unknown admin projection columns: {', '.join(unknown)}")

    projection = []
    for label, column in ROW_COLUMNS.items():
        expression = overrides.get(label)
        if expression is None:
            projection.append(column.label(label))
            continue
        expression = expression.strip()
        if not expression or ";" in expression:
            raise ProjectionConfigError(f"Invalid admin projection expression for '{label}'")
        projection.append(literal_column(expression).label(label))
    return projection


def normalize_sort(sort_by: str | None, sort_dir: str | None) -> tuple[str, str]:
    """Validate sort key and direction, falling back to the defaults."""
    key = (sort_by or "").strip().lower()
    if key not in SORT_COLUMNS:
        key = DEFAULT_SORT
    direction = (sort_dir or "").strip().lower()
    if direction not in ("asc", "desc"):
        direction = DEFAULT_DIRECTION
    return key, direction


class QueryBuilder:
    """Statement factory configured with page limits and the admin projection."""

    def __init__(
        self,
        admin_projection: list[ColumnElement] | None = None,
        default_page_size: int = 100,
        max_page_size: int = 500,
        max_unpaged_rows: int = 500,
    ):
        self.default_projection = build_projection()
        self.admin_projection = admin_projection or self.default_projection
        self.default_page_size = default_page_size
        self.max_page_size = max_page_size
        self.max_unpaged_rows = max_unpaged_rows

    @classmethod
    def from_settings(cls, settings) -> "QueryBuilder":
        return cls(
            admin_projection=build_projection(settings.admin_column_overrides),
            default_page_size=settings.default_page_size,
            max_page_size=settings.max_page_size,
            max_unpaged_rows=settings.max_unpaged_rows,
        )

    def projection_for(self, scope: Scope) -> list[ColumnElement]:
        if scope.kind is ScopeKind.UNRESTRICTED:
            return self.admin_projection
        return self.default_projection

    def _conditions(self, scope: Scope, params: ListParams) -> list[ColumnElement]:
        conditions = []
        predicate = scope.predicate()
        if predicate is not None:
            conditions.append(predicate)

        for name, value in params.filters.items():
            column = FILTER_COLUMNS.get(name)
            if column is not None and value:
                conditions.append(column == value)

        search = (params.search or "").strip()
        if search:
            conditions.append(or_(*(
                column.icontains(search, autoescape=True) for column in SEARCH_COLUMNS
            )))
        return conditions

    def build_list_query(self, scope: Scope, params: ListParams) -> ListQuery:
        """Build the count and page statements for a list request.

        ``page >= 1`` pages with ``page_size`` clamped to
        ``[1, max_page_size]``. Without a page every matching row is
        returned, up to ``max_unpaged_rows``.
        """
        conditions = self._conditions(scope, params)

        sort_key, direction = normalize_sort(params.sort_by, params.sort_dir)
        sort_column = SORT_COLUMNS[sort_key]
        order_by = [sort_column.asc() if direction == "asc" else sort_column.desc()]
        if sort_key != "terminal_id":
            order_by.append(tickets.c.terminal_id.asc())

        count_stmt = select(func.count()).select_from(JOINED).where(*conditions)
        data_stmt = (
            select(*self.projection_for(scope))
            .select_from(JOINED)
            .where(*conditions)
            .order_by(*order_by)
        )

        if params.page is not None and params.page >= 1:
            limit = params.page_size or self.default_page_size
            limit = max(1, min(limit, self.max_page_size))
            data_stmt = data_stmt.limit(limit).offset((params.page - 1) * limit)
            return ListQuery(count_stmt=count_stmt, data_stmt=data_stmt, page=params.page, limit=limit)

        data_stmt = data_stmt.limit(self.max_unpaged_rows)
        return ListQuery(count_stmt=count_stmt, data_stmt=data_stmt, page=None, limit=self.max_unpaged_rows)

    def build_get_query(self, scope: Scope, terminal_id: str) -> Select:
        """Select one row, restricted to the scope."""
        stmt = (
            select(*self.projection_for(scope))
            .select_from(JOINED)
            .where(tickets.c.terminal_id == terminal_id)
        )
        predicate = scope.predicate()
        if predicate is not None:
            stmt = stmt.where(predicate)
        return stmt

    def build_update_query(self, scope: Scope, terminal_id: str, fields: dict[str, Any]) -> Update:
        """Build an UPDATE carrying the scope predicate in the same statement.

        A row outside the scope is simply not matched, so the caller sees
        zero affected rows instead of a separate pre-check racing the write.

        Raises:
            NoUpdatableFieldsError: If fields has no updatable column
            ScopeFieldChangeError: If the scope column is set to another value
        """
        values = {name: fields[name] for name in UPDATABLE_FIELDS if name in fields}
        if not values:
            raise NoUpdatableFieldsError("no fields to update")

        if scope.is_restricted:
            scoped_field = scope.column_name.strip().lower()
            if scoped_field in values and values[scoped_field] != scope.value:
                raise ScopeFieldChangeError(f"{scoped_field} is fixed to the token scope")

        stmt = update(tickets).where(tickets.c.terminal_id == terminal_id).values(**values)
        predicate = scope.predicate()
        if predicate is not None:
            in_scope = (
                select(tickets.c.terminal_id)
                .select_from(JOINED)
                .where(predicate)
                .correlate(None)
            )
            stmt = stmt.where(tickets.c.terminal_id.in_(in_scope))
        return stmt

    def build_metadata_queries(self) -> dict[str, Select]:
        """Distinct non-empty values for each filterable column."""
        return {
            name: select(column).where(column.is_not(None)).distinct().order_by(column)
            for name, column in FILTER_COLUMNS.items()
        }
