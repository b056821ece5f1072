"""API tests over the ASGI app with the test database session."""

from datetime import date, timedelta
from decimal import Decimal

import pytest

from tests.conftest import at, headers

PERIOD_START = date(2026, 1, 5)
PERIOD_END = date(2026, 1, 11)
PERIOD = {"pay_period_start": PERIOD_START.isoformat(), "pay_period_end": PERIOD_END.isoformat()}


@pytest.fixture
async def worked_week(seed):
    alice = await seed.staff("Alice", employee_number="E001")
    await seed.rate(alice, "12.00", date(2025, 6, 1))
    for offset in range(4):
        await seed.timesheet(alice, PERIOD_START + timedelta(days=offset), "7.5")
    return alice


async def _create_run(client, admin) -> dict:
    response = await client.post("/api/v1/pay-runs", json=PERIOD, headers=headers(admin))
    assert response.status_code == 201, response.text
    return response.json()


class TestHealth:
    async def test_health(self, client):
        response = await client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["database"] == "healthy"

    async def test_probes(self, client):
        assert (await client.get("/ready")).json() == {"status": "ready"}
        assert (await client.get("/live")).json() == {"status": "alive"}


class TestIdentityHeaders:
    async def test_tenant_header_required(self, client):
        response = await client.get("/api/v1/pay-runs", headers={"X-User-Role": "admin"})

        assert response.status_code == 400
        assert "X-Tenant-ID" in response.json()["detail"]

    async def test_invalid_tenant_header(self, client):
        response = await client.get(
            "/api/v1/pay-runs", headers={"X-Tenant-ID": "not-a-uuid", "X-User-Role": "admin"}
        )

        assert response.status_code == 400

    async def test_staff_role_is_forbidden(self, client, staff_member):
        response = await client.get("/api/v1/pay-runs", headers=headers(staff_member))

        assert response.status_code == 403
        assert response.json()["code"] == "forbidden"

    async def test_role_header_is_case_insensitive(self, client, admin):
        response = await client.get(
            "/api/v1/pay-runs", headers={**headers(admin), "X-User-Role": "ADMIN"}
        )

        assert response.status_code == 200


class TestPayRunEndpoints:
    async def test_preview(self, client, admin, worked_week):
        response = await client.post("/api/v1/pay-runs/preview", json=PERIOD, headers=headers(admin))

        assert response.status_code == 200
        data = response.json()
        assert data["staff_count"] == 1
        assert Decimal(data["estimated_gross"]) == Decimal("360.00")

    async def test_preview_requires_period(self, client, admin):
        response = await client.post(
            "/api/v1/pay-runs/preview",
            json={"pay_period_start": "2026-01-05"},
            headers=headers(admin),
        )

        assert response.status_code == 400
        assert response.json()["code"] == "validation_error"

    async def test_create_and_get(self, client, admin, worked_week):
        created = await _create_run(client, admin)

        assert created["status"] == "draft"
        assert Decimal(created["total_gross_pay"]) == Decimal("360.00")
        assert len(created["lines"]) == 1

        response = await client.get(f"/api/v1/pay-runs/{created['id']}", headers=headers(admin))
        assert response.status_code == 200
        assert response.json()["lines"][0]["staff_name"] == "Alice Smith"

    async def test_duplicate_period_conflict(self, client, admin, worked_week):
        created = await _create_run(client, admin)

        response = await client.post("/api/v1/pay-runs", json=PERIOD, headers=headers(admin))

        assert response.status_code == 409
        body = response.json()
        assert body["code"] == "duplicate_pay_run"
        assert body["context"]["existing_pay_run_id"] == created["id"]

    async def test_list(self, client, admin, worked_week):
        await _create_run(client, admin)

        response = await client.get("/api/v1/pay-runs?status=draft", headers=headers(admin))

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 1
        assert data["page"] == 1

    async def test_unknown_run(self, client, admin):
        response = await client.get(
            "/api/v1/pay-runs/00000000-0000-0000-0000-000000000000", headers=headers(admin)
        )

        assert response.status_code == 404
        assert response.json()["code"] == "not_found"

    async def test_status_flow_with_notes(self, client, admin, worked_week):
        created = await _create_run(client, admin)
        url = f"/api/v1/pay-runs/{created['id']}"

        for target in ("reviewing", "approved"):
            response = await client.patch(url, json={"status": target}, headers=headers(admin))
            assert response.status_code == 200, response.text

        response = await client.patch(
            url, json={"status": "finalised", "notes": "Paid on Friday"}, headers=headers(admin)
        )
        assert response.status_code == 200
        assert response.json()["status"] == "finalised"
        assert response.json()["notes"] == "Paid on Friday"

        changes = await client.get(f"{url}/changes", headers=headers(admin))
        fields = sorted(c["field_changed"] for c in changes.json()["items"])
        assert fields == ["notes", "status", "status", "status", "status"]

    async def test_skipping_review_is_conflict(self, client, admin, worked_week):
        created = await _create_run(client, admin)

        response = await client.patch(
            f"/api/v1/pay-runs/{created['id']}", json={"status": "approved"}, headers=headers(admin)
        )

        assert response.status_code == 409
        body = response.json()
        assert body["code"] == "invalid_transition"
        assert body["context"]["current_status"] == "draft"
        assert body["context"]["required_status"] == "reviewing"

    async def test_edit_line(self, client, admin, worked_week):
        created = await _create_run(client, admin)
        line_id = created["lines"][0]["id"]

        response = await client.patch(
            f"/api/v1/pay-runs/{created['id']}/lines/{line_id}",
            json={"adjustments": "-10.50", "adjustment_reason": "Advance"},
            headers=headers(admin),
        )

        assert response.status_code == 200
        assert Decimal(response.json()["gross_pay"]) == Decimal("349.50")

    async def test_edit_line_after_approval_is_conflict(self, client, admin, worked_week):
        created = await _create_run(client, admin)
        url = f"/api/v1/pay-runs/{created['id']}"
        for target in ("reviewing", "approved"):
            await client.patch(url, json={"status": target}, headers=headers(admin))

        response = await client.patch(
            f"{url}/lines/{created['lines'][0]['id']}",
            json={"adjustments": "5"},
            headers=headers(admin),
        )

        assert response.status_code == 409
        assert response.json()["context"]["required_status"] == ["draft", "reviewing"]

    async def test_export(self, client, admin, worked_week):
        created = await _create_run(client, admin)

        response = await client.post(
            f"/api/v1/pay-runs/{created['id']}/export", headers=headers(admin)
        )

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        assert (
            response.headers["content-disposition"]
            == 'attachment; filename="pay-run-2026-01-05-to-2026-01-11.csv"'
        )
        lines = response.text.strip().split("\n")
        assert len(lines) == 2
        assert lines[1].startswith('"E001","Alice Smith"')

    async def test_delete_draft(self, client, admin, worked_week):
        created = await _create_run(client, admin)
        url = f"/api/v1/pay-runs/{created['id']}"

        response = await client.delete(url, headers=headers(admin))

        assert response.status_code == 204
        assert (await client.get(url, headers=headers(admin))).status_code == 404

    async def test_suggested_period(self, client, admin):
        response = await client.get(
            "/api/v1/pay-runs/suggested-period?date=2026-01-08", headers=headers(admin)
        )

        assert response.status_code == 200
        assert response.json() == {"period_start": "2026-01-05", "period_end": "2026-01-11"}


class TestScheduleEndpoints:
    async def test_week_start_required(self, client, manager):
        response = await client.get("/api/v1/schedule/conflicts", headers=headers(manager))

        assert response.status_code == 400
        assert "weekStart parameter is required" in response.json()["detail"]

    @pytest.mark.parametrize("value", ["2026-01-05T00:00:00", "05/01/2026", "2026-1-5"])
    async def test_week_start_format(self, client, manager, value):
        response = await client.get(
            "/api/v1/schedule/conflicts", params={"weekStart": value}, headers=headers(manager)
        )

        assert response.status_code == 400
        assert "YYYY-MM-DD" in response.json()["detail"]

    async def test_conflicts(self, client, manager, seed):
        alice = await seed.staff("Alice")
        first = await seed.shift(alice, at(PERIOD_START, 9), at(PERIOD_START, 17))
        await seed.shift(alice, at(PERIOD_START, 16), at(PERIOD_START, 20))

        response = await client.get(
            "/api/v1/schedule/conflicts",
            params={"weekStart": PERIOD_START.isoformat()},
            headers=headers(manager),
        )

        assert response.status_code == 200
        conflicts = response.json()["conflicts"]
        assert len(conflicts) == 1
        assert conflicts[0]["shift_id"] == str(first.id)
        assert conflicts[0]["type"] == "overlap"

    async def test_drop_check_and_reassign(self, client, manager, seed):
        chef = await seed.role("Chef")
        alice = await seed.staff("Alice")
        bob = await seed.staff("Bob")
        carol = await seed.staff("Carol")
        await seed.assign_role(bob, chef)
        shift = await seed.shift(alice, at(PERIOD_START, 9), at(PERIOD_START, 17), role=chef)

        check = await client.post(
            "/api/v1/schedule/drop-check",
            json={"shift_id": str(shift.id), "target_staff_id": str(carol.id)},
            headers=headers(manager),
        )
        assert check.json() == {"allowed": False, "reason": "NO_ROLES"}

        refused = await client.post(
            f"/api/v1/schedule/shifts/{shift.id}/reassign",
            json={"target_staff_id": str(carol.id)},
            headers=headers(manager),
        )
        assert refused.status_code == 400
        assert refused.json()["context"]["reason"] == "NO_ROLES"

        moved = await client.post(
            f"/api/v1/schedule/shifts/{shift.id}/reassign",
            json={"target_staff_id": str(bob.id)},
            headers=headers(manager),
        )
        assert moved.status_code == 200
        assert moved.json()["staff_id"] == str(bob.id)

    async def test_week_costs(self, client, manager, seed):
        alice = await seed.staff("Alice")
        bob = await seed.staff("Bob")
        await seed.rate(alice, "12.00", date(2025, 6, 1))
        priced = await seed.shift(
            alice, at(PERIOD_START, 9), at(PERIOD_START, 17), break_minutes=30
        )
        unpriced = await seed.shift(bob, at(PERIOD_START, 10), at(PERIOD_START, 14))

        response = await client.get(
            "/api/v1/schedule/costs",
            params={"weekStart": PERIOD_START.isoformat()},
            headers=headers(manager),
        )

        assert response.status_code == 200
        body = response.json()
        costs = {row["shift_id"]: row["cost"] for row in body["shifts"]}
        assert Decimal(costs[str(priced.id)]) == Decimal("90.00")
        assert costs[str(unpriced.id)] is None
        assert Decimal(body["total_cost"]) == Decimal("90.00")
        assert body["unpriced_count"] == 1

    async def test_week_costs_forbidden_for_staff(self, client, staff_member):
        response = await client.get(
            "/api/v1/schedule/costs",
            params={"weekStart": PERIOD_START.isoformat()},
            headers=headers(staff_member),
        )

        assert response.status_code == 403


class TestRateEndpoints:
    async def test_rate_history_flow(self, client, admin, seed):
        alice = await seed.staff("Alice")
        url = f"/api/v1/staff/{alice.id}/rate-history"
        future = (date.today() + timedelta(days=30)).isoformat()

        created = await client.post(
            url, json={"hourly_rate": "13.50", "effective_date": future}, headers=headers(admin)
        )
        assert created.status_code == 201

        duplicate = await client.post(
            url, json={"hourly_rate": "14.00", "effective_date": future}, headers=headers(admin)
        )
        assert duplicate.status_code == 409
        assert duplicate.json()["code"] == "duplicate_rate"

        history = await client.get(url, headers=headers(admin))
        assert len(history.json()["history"]) == 1

        deleted = await client.delete(f"{url}/{created.json()['id']}", headers=headers(admin))
        assert deleted.status_code == 204

    async def test_historical_rate_cannot_be_deleted(self, client, admin, seed):
        alice = await seed.staff("Alice")
        past = await seed.rate(alice, "10.00", date(2024, 1, 1))

        response = await client.delete(
            f"/api/v1/staff/{alice.id}/rate-history/{past.id}", headers=headers(admin)
        )

        assert response.status_code == 400
        assert response.json()["detail"] == "Cannot delete historical rates"

    async def test_manager_forbidden(self, client, manager, seed):
        alice = await seed.staff("Alice")

        response = await client.get(
            f"/api/v1/staff/{alice.id}/rate-history", headers=headers(manager)
        )

        assert response.status_code == 403
