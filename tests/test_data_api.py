"""Test data-plane endpoints.

Test cases:
- Vendor tokens only see rows inside their scope
- Super tokens see everything
- Scoped updates outside the scope are 403 and leave the row unchanged
- A scoped token can not change its own scope column to another value
- Page numbers beyond the supported range are rejected with 422
- Unscoped updates of missing rows are 404
- Hostile sort keys fall back to the default ordering
- Unpaged reads are capped
- Metadata lists distinct filter values
"""
from datetime import datetime, timedelta, timezone

import pytest
from httpx import AsyncClient
from sqlalchemy import insert, select

from gateway.models.dataset import OpenTicket, Machine


def auth(full_token: str) -> dict[str, str]:
    return {"X-API-Token": full_token}


async def ticket_status(test_db, terminal_id: str) -> str:
    async with test_db() as session:
        result = await session.execute(
            select(OpenTicket.status).where(OpenTicket.terminal_id == terminal_id)
        )
        return result.scalar_one()


@pytest.mark.integration
class TestListData:
    """Test GET /api/v1/data."""

    async def test_vendor_token_sees_only_its_rows(self, client: AsyncClient, avt_token, seed_tickets):
        full_token, _ = avt_token

        response = await client.get("/api/v1/data", headers=auth(full_token))

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["total"] == 1
        assert [row["terminal_id"] for row in data["items"]] == ["T-AVT"]
        assert data["items"][0]["flm_name"] == "AVT"

    async def test_super_token_sees_every_row(self, client: AsyncClient, super_token, seed_tickets):
        full_token, _ = super_token

        response = await client.get("/api/v1/data", headers=auth(full_token))

        data = response.json()["data"]
        assert data["total"] == 2
        # default ordering is newest incident first
        assert [row["terminal_id"] for row in data["items"]] == ["T-OTHER", "T-AVT"]

    async def test_row_shape(self, client: AsyncClient, super_token, seed_tickets):
        full_token, _ = super_token

        response = await client.get("/api/v1/data", headers=auth(full_token), params={"page": 1})

        row = response.json()["data"]["items"][0]
        assert list(row) == [
            "terminal_id", "terminal_name", "priority", "mode", "initial_problem",
            "current_problem", "incident_start_datetime", "count", "status", "remarks",
            "balance", "condition", "tickets_no", "tickets_duration", "open_time",
            "close_time", "problem_history", "mode_history", "flm_name", "flm", "slm", "net",
        ]

    async def test_search_is_case_insensitive(self, client: AsyncClient, super_token, seed_tickets):
        full_token, _ = super_token

        response = await client.get("/api/v1/data", headers=auth(full_token), params={"search": "harbor"})

        items = response.json()["data"]["items"]
        assert [row["terminal_id"] for row in items] == ["T-OTHER"]

    async def test_search_does_not_escape_scope(self, client: AsyncClient, avt_token, seed_tickets):
        full_token, _ = avt_token

        response = await client.get("/api/v1/data", headers=auth(full_token), params={"search": "T-OTHER"})

        assert response.json()["data"]["total"] == 0

    async def test_filters(self, client: AsyncClient, super_token, seed_tickets):
        full_token, _ = super_token

        response = await client.get(
            "/api/v1/data", headers=auth(full_token), params={"status": "open", "priority": "high"}
        )

        items = response.json()["data"]["items"]
        assert [row["terminal_id"] for row in items] == ["T-AVT"]

    async def test_hostile_sort_key_uses_default_order(self, client: AsyncClient, super_token, seed_tickets):
        full_token, _ = super_token

        response = await client.get(
            "/api/v1/data",
            headers=auth(full_token),
            params={"sort_by": ";drop table x;", "sort_order": "sideways"},
        )

        assert response.status_code == 200
        items = response.json()["data"]["items"]
        assert [row["terminal_id"] for row in items] == ["T-OTHER", "T-AVT"]

    async def test_sort_ascending(self, client: AsyncClient, super_token, seed_tickets):
        full_token, _ = super_token

        response = await client.get(
            "/api/v1/data", headers=auth(full_token), params={"sort_by": "terminal_name", "sort_order": "asc"}
        )

        items = response.json()["data"]["items"]
        assert [row["terminal_name"] for row in items] == ["Avenue Branch", "Harbor Kiosk"]

    async def test_paging(self, client: AsyncClient, super_token, seed_tickets):
        full_token, _ = super_token

        response = await client.get(
            "/api/v1/data",
            headers=auth(full_token),
            params={"page": 2, "page_size": 1, "sort_by": "terminal_id", "sort_order": "asc"},
        )

        data = response.json()["data"]
        assert data["page"] == 2
        assert data["page_size"] == 1
        assert data["total"] == 2
        assert data["total_pages"] == 2
        assert [row["terminal_id"] for row in data["items"]] == ["T-OTHER"]

    async def test_unpaged_read_is_capped(self, client: AsyncClient, test_db, super_token):
        full_token, _ = super_token
        start = datetime(2024, 1, 1, tzinfo=timezone.utc)
        async with test_db() as session:
            await session.execute(insert(OpenTicket), [
                {
                    "terminal_id": f"T-{i:04d}",
                    "terminal_name": f"Terminal {i}",
                    "status": "open",
                    "incident_start_datetime": start + timedelta(minutes=i),
                }
                for i in range(600)
            ])
            await session.commit()

        response = await client.get("/api/v1/data", headers=auth(full_token))

        data = response.json()["data"]
        assert data["total"] == 600
        assert len(data["items"]) == 500
        assert data["page"] is None
        assert data["total_pages"] is None

    async def test_out_of_range_page_is_rejected(self, client: AsyncClient, super_token, seed_tickets):
        full_token, _ = super_token

        response = await client.get(
            "/api/v1/data", headers=auth(full_token), params={"page": 10**19, "page_size": 10}
        )

        assert response.status_code == 422

    async def test_last_allowed_page_is_empty(self, client: AsyncClient, super_token, seed_tickets):
        full_token, _ = super_token

        response = await client.get(
            "/api/v1/data", headers=auth(full_token), params={"page": 1_000_000, "page_size": 500}
        )

        assert response.status_code == 200
        assert response.json()["data"]["items"] == []

    async def test_rows_without_machine_are_listed(self, client: AsyncClient, test_db, super_token):
        full_token, _ = super_token
        async with test_db() as session:
            await session.execute(insert(OpenTicket), [{"terminal_id": "T-LONE", "status": "open"}])
            await session.commit()

        response = await client.get("/api/v1/data", headers=auth(full_token))

        items = response.json()["data"]["items"]
        assert items[0]["terminal_id"] == "T-LONE"
        assert items[0]["flm_name"] is None


@pytest.mark.integration
class TestGetData:
    """Test GET /api/v1/data/{terminal_id}."""

    async def test_get_row_in_scope(self, client: AsyncClient, avt_token, seed_tickets):
        full_token, _ = avt_token

        response = await client.get("/api/v1/data/T-AVT", headers=auth(full_token))

        assert response.status_code == 200
        assert response.json()["data"]["terminal_name"] == "Avenue Branch"

    async def test_row_outside_scope_is_not_found(self, client: AsyncClient, avt_token, seed_tickets):
        full_token, _ = avt_token

        response = await client.get("/api/v1/data/T-OTHER", headers=auth(full_token))

        assert response.status_code == 404
        assert response.json()["error"] == "NotFound"

    async def test_missing_row(self, client: AsyncClient, super_token, seed_tickets):
        full_token, _ = super_token

        response = await client.get("/api/v1/data/T-NOPE", headers=auth(full_token))

        assert response.status_code == 404


@pytest.mark.integration
class TestUpdateData:
    """Test PUT /api/v1/data/{terminal_id}."""

    async def test_update_in_scope(self, client: AsyncClient, test_db, avt_token, seed_tickets):
        full_token, _ = avt_token

        response = await client.put(
            "/api/v1/data/T-AVT", headers=auth(full_token), json={"status": "closed", "remarks": "fixed"}
        )

        assert response.status_code == 200
        row = response.json()["data"]
        assert row["status"] == "closed"
        assert row["remarks"] == "fixed"
        assert await ticket_status(test_db, "T-AVT") == "closed"

    async def test_update_outside_scope_is_forbidden(self, client: AsyncClient, test_db, avt_token, seed_tickets):
        full_token, _ = avt_token

        response = await client.put("/api/v1/data/T-OTHER", headers=auth(full_token), json={"status": "closed"})

        assert response.status_code == 403
        assert response.json()["error"] == "ScopeViolation"
        assert await ticket_status(test_db, "T-OTHER") == "pending"

    async def test_scoped_field_cannot_leave_scope(self, client: AsyncClient, test_db, create_api_token, seed_tickets):
        full_token, _ = await create_api_token(name="Open only", filter_column="status", filter_value="open")

        response = await client.put("/api/v1/data/T-AVT", headers=auth(full_token), json={"status": "closed"})

        assert response.status_code == 403
        assert response.json()["error"] == "ScopeViolation"
        assert await ticket_status(test_db, "T-AVT") == "open"

    async def test_scoped_field_may_keep_its_value(self, client: AsyncClient, test_db, create_api_token, seed_tickets):
        full_token, _ = await create_api_token(name="Open only", filter_column="status", filter_value="open")

        response = await client.put(
            "/api/v1/data/T-AVT", headers=auth(full_token), json={"status": "open", "remarks": "checked"}
        )

        assert response.status_code == 200
        assert response.json()["data"]["remarks"] == "checked"
        assert await ticket_status(test_db, "T-AVT") == "open"

    async def test_super_update_of_missing_row_is_not_found(self, client: AsyncClient, super_token, seed_tickets):
        full_token, _ = super_token

        response = await client.put("/api/v1/data/T-NOPE", headers=auth(full_token), json={"status": "closed"})

        assert response.status_code == 404
        assert response.json()["error"] == "NotFound"

    async def test_empty_update_is_bad_request(self, client: AsyncClient, super_token, seed_tickets):
        full_token, _ = super_token

        response = await client.put("/api/v1/data/T-AVT", headers=auth(full_token), json={})

        assert response.status_code == 400
        assert response.json()["error"] == "NoFieldsProvided"

    async def test_non_updatable_field_is_rejected(self, client: AsyncClient, test_db, super_token, seed_tickets):
        full_token, _ = super_token

        response = await client.put("/api/v1/data/T-AVT", headers=auth(full_token), json={"terminal_id": "T-NEW"})

        assert response.status_code == 422
        async with test_db() as session:
            result = await session.execute(select(OpenTicket.terminal_id).order_by(OpenTicket.terminal_id))
            assert list(result.scalars()) == ["T-AVT", "T-OTHER"]


@pytest.mark.integration
class TestMetadata:
    """Test GET /api/v1/data/metadata."""

    async def test_distinct_values(self, client: AsyncClient, super_token, seed_tickets):
        full_token, _ = super_token

        response = await client.get("/api/v1/data/metadata", headers=auth(full_token))

        assert response.status_code == 200
        data = response.json()["data"]
        assert data == {
            "status": ["open", "pending"],
            "mode": ["offline", "online"],
            "priority": ["high", "low"],
        }

    async def test_update_refreshes_metadata(self, client: AsyncClient, super_token, seed_tickets):
        full_token, _ = super_token
        await client.get("/api/v1/data/metadata", headers=auth(full_token))

        await client.put("/api/v1/data/T-AVT", headers=auth(full_token), json={"status": "closed"})
        response = await client.get("/api/v1/data/metadata", headers=auth(full_token))

        assert response.json()["data"]["status"] == ["closed", "pending"]

    async def test_metadata_requires_token(self, client: AsyncClient, seed_tickets):
        response = await client.get("/api/v1/data/metadata")
        assert response.status_code == 401
