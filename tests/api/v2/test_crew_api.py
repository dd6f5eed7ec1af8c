"""
Tests for the crew directory API and per-member availability.
"""

import pytest
import pytest_asyncio
from httpx import AsyncClient

from factories import CrewMemberFactory, InactiveCrewMemberFactory


@pytest_asyncio.fixture
async def member(client: AsyncClient):
    data = CrewMemberFactory(
        id="tech-a",
        name="Avery",
        time_off=[{"start_date": "2026-03-05", "type": "vacation"}],
    )
    response = await client.post("/api/v2/crew", json=data)
    assert response.status_code == 201
    return response.json()


class TestCrewAPI:
    """Tests for crew directory endpoints."""

    @pytest.mark.asyncio
    async def test_create_member(self, member):
        assert member["id"] == "tech-a"
        assert member["working_hours"]["monday"] == {"enabled": True, "start": "08:00", "end": "17:00"}
        assert member["max_jobs_per_day"] == 4

    @pytest.mark.asyncio
    async def test_partial_profile_fills_days_off(self, client: AsyncClient):
        data = CrewMemberFactory(
            id="tech-p", working_hours={"Monday": {"enabled": True, "start": "7:00", "end": "15:00"}}
        )

        response = await client.post("/api/v2/crew", json=data)

        hours = response.json()["working_hours"]
        assert response.status_code == 201
        assert hours["monday"] == {"enabled": True, "start": "07:00", "end": "15:00"}
        assert hours["tuesday"]["enabled"] is False
        assert hours["sunday"]["enabled"] is False

    @pytest.mark.asyncio
    async def test_empty_profile_gets_standard_hours(self, client: AsyncClient):
        response = await client.post("/api/v2/crew", json=CrewMemberFactory(id="tech-e", working_hours={}))

        hours = response.json()["working_hours"]
        assert hours["friday"] == {"enabled": True, "start": "08:00", "end": "17:00"}
        assert hours["saturday"]["enabled"] is False

    @pytest.mark.asyncio
    async def test_working_hours_past_midnight_rejected(self, client: AsyncClient):
        late = CrewMemberFactory(id="tech-l", working_hours={"monday": {"start": "16:00", "end": "24:30"}})
        midnight = CrewMemberFactory(id="tech-m", working_hours={"monday": {"start": "16:00", "end": "24:00"}})

        rejected = await client.post("/api/v2/crew", json=late)
        accepted = await client.post("/api/v2/crew", json=midnight)

        assert rejected.status_code == 422
        assert rejected.json()["code"] == "VAL_001"
        assert accepted.status_code == 201
        assert accepted.json()["working_hours"]["monday"]["end"] == "24:00"

    @pytest.mark.asyncio
    async def test_list_members(self, client: AsyncClient, member):
        await client.post("/api/v2/crew", json=InactiveCrewMemberFactory(id="tech-z"))

        everyone = await client.get("/api/v2/crew", params={"contractor_id": "contractor-1"})
        active = await client.get("/api/v2/crew", params={"contractor_id": "contractor-1", "active_only": True})

        assert everyone.json()["total"] == 2
        assert [m["id"] for m in active.json()["items"]] == ["tech-a"]

    @pytest.mark.asyncio
    async def test_list_requires_contractor(self, client: AsyncClient):
        response = await client.get("/api/v2/crew")

        assert response.status_code == 422
        assert response.json()["code"] == "VAL_001"

    @pytest.mark.asyncio
    async def test_get_missing_member(self, client: AsyncClient):
        response = await client.get("/api/v2/crew/nobody")

        assert response.status_code == 404
        assert response.json()["code"] == "RES_001"


class TestMemberAvailabilityAPI:
    """Tests for availability verdicts and the range report."""

    @pytest.mark.asyncio
    async def test_available_weekday(self, client: AsyncClient, member):
        response = await client.get("/api/v2/crew/tech-a/availability", params={"date": "2026-03-04"})

        assert response.status_code == 200
        assert response.json()["available"] is True

    @pytest.mark.asyncio
    async def test_weekend_is_day_off(self, client: AsyncClient, member):
        response = await client.get("/api/v2/crew/tech-a/availability", params={"date": "2026-03-07"})

        data = response.json()
        assert data["available"] is False
        assert data["blocking_kind"] == "day_off"

    @pytest.mark.asyncio
    async def test_time_off(self, client: AsyncClient, member):
        response = await client.get("/api/v2/crew/tech-a/availability", params={"date": "2026-03-05"})

        assert response.json()["blocking_kind"] == "time_off"

    @pytest.mark.asyncio
    async def test_partial_block_overlapping_window(self, client: AsyncClient, member):
        await client.post(
            "/api/v2/availability-blocks/partial-day",
            json={
                "contractor_id": "contractor-1",
                "tech_id": "tech-a",
                "day": "2026-03-04",
                "start_time": "09:00",
                "end_time": "11:00",
                "reason": "Dentist",
            },
        )

        overlapping = await client.get(
            "/api/v2/crew/tech-a/availability",
            params={"date": "2026-03-04", "start_time": "10:00", "end_time": "12:00"},
        )
        clear = await client.get(
            "/api/v2/crew/tech-a/availability",
            params={"date": "2026-03-04", "start_time": "13:00", "end_time": "15:00"},
        )

        assert overlapping.json()["available"] is False
        assert overlapping.json()["blocking_kind"] == "time_window"
        assert overlapping.json()["blocking_reason"] == "Dentist"
        assert clear.json()["available"] is True

    @pytest.mark.asyncio
    async def test_availability_range(self, client: AsyncClient, member):
        response = await client.get(
            "/api/v2/crew/tech-a/availability/range",
            params={"start_date": "2026-03-04", "end_date": "2026-03-07"},
        )

        assert response.status_code == 200
        rows = response.json()
        assert [r["available"] for r in rows] == [True, False, True, False]
        assert rows[0]["working_hours"] == {"start": "08:00", "end": "17:00"}
        assert rows[1]["reasons"] == ["Time off: vacation"]
        assert rows[3]["day_name"] == "saturday"

    @pytest.mark.asyncio
    async def test_availability_range_reversed(self, client: AsyncClient, member):
        response = await client.get(
            "/api/v2/crew/tech-a/availability/range",
            params={"start_date": "2026-03-07", "end_date": "2026-03-04"},
        )

        assert response.status_code == 422
