"""Test scope resolution.

Test cases:
- Super tokens are unrestricted even with a filter pair
- Allowlisted filter names map to dataset columns, case-insensitively
- Unknown filter names pass through as raw column references
- Incomplete pairs resolve to NO_RESTRICTION
"""
from types import SimpleNamespace

import pytest
from sqlalchemy.dialects import sqlite
from sqlalchemy.sql.elements import ColumnClause

from gateway.domain.scope import ScopeKind, resolve_scope
from gateway.models.dataset import Machine, OpenTicket


def make_token(is_super=False, filter_column=None, filter_value=None):
    return SimpleNamespace(is_super=is_super, filter_column=filter_column, filter_value=filter_value)


@pytest.mark.unit
class TestResolveScope:
    """Test token to scope resolution."""

    def test_super_token_is_unrestricted(self):
        scope = resolve_scope(make_token(is_super=True))
        assert scope.kind is ScopeKind.UNRESTRICTED
        assert scope.predicate() is None

    def test_super_dominates_filter_pair(self):
        scope = resolve_scope(make_token(is_super=True, filter_column="flm_name", filter_value="AVT"))
        assert scope.kind is ScopeKind.UNRESTRICTED
        assert not scope.is_restricted

    def test_vendor_token_resolves_through_allowlist(self):
        scope = resolve_scope(make_token(filter_column="flm_name", filter_value="AVT"))
        assert scope.kind is ScopeKind.COLUMN_EQUALS
        assert scope.column is Machine.__table__.c.flm_name
        assert scope.value == "AVT"

    def test_allowlist_is_case_insensitive(self):
        scope = resolve_scope(make_token(filter_column=" Status ", filter_value="open"))
        assert scope.column is OpenTicket.__table__.c.status

    def test_unknown_column_passes_through_raw(self):
        scope = resolve_scope(make_token(filter_column="machines.region", filter_value="north"))
        assert scope.kind is ScopeKind.COLUMN_EQUALS
        assert isinstance(scope.column, ColumnClause)

        compiled = scope.predicate().compile(dialect=sqlite.dialect())
        assert "machines.region" in str(compiled)
        # the value is still a bound parameter
        assert "north" not in str(compiled)
        assert "north" in compiled.params.values()

    @pytest.mark.parametrize(
        "filter_column,filter_value",
        [(None, None), ("flm_name", None), (None, "AVT"), ("flm_name", "  "), ("", "AVT")],
    )
    def test_incomplete_pair_is_no_restriction(self, filter_column, filter_value):
        scope = resolve_scope(make_token(filter_column=filter_column, filter_value=filter_value))
        assert scope.kind is ScopeKind.NO_RESTRICTION
        assert scope.predicate() is None

    def test_no_restriction_is_distinct_from_unrestricted(self):
        assert resolve_scope(make_token()) != resolve_scope(make_token(is_super=True))
