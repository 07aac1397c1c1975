"""POS API client tests against an httpx mock transport."""

from __future__ import annotations

import json
from datetime import datetime, timezone

import httpx
import pytest

from posgoals.goals.errors import NetworkError, ServerError
from posgoals.pos.client import PosApiClient
from posgoals.pos.models import Track


def make_client(handler) -> PosApiClient:
    return PosApiClient("http://pos.test/api", "secret", transport=httpx.MockTransport(handler))


GOAL_JSON = {
    "_id": "65f0c1",
    "goal_type": "monthly",
    "target_amount": 100000,
    "period_start": "2024-06-01T00:00:00Z",
    "period_end": "2024-06-30T23:59:59.999Z",
    "store_id": "S1",
    "is_active": True,
    "goal_name": "June",
}


def local(dt: datetime) -> datetime:
    return dt.astimezone().replace(tzinfo=None)


class TestListGoals:
    async def test_parses_enveloped_goals(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"success": True, "data": [GOAL_JSON]})

        client = make_client(handler)
        try:
            goals = await client.list_goals("S1")
        finally:
            await client.aclose()

        [goal] = goals
        assert goal.id == "65f0c1"
        assert goal.goal_type == Track.monthly
        assert goal.goal_name == "June"
        assert goal.period_start == local(datetime(2024, 6, 1, tzinfo=timezone.utc))
        assert goal.period_start.tzinfo is None

        request = seen[0]
        assert request.url.path == "/api/goals"
        assert request.url.params["store_id"] == "S1"
        assert request.url.params["is_active"] == "true"
        assert request.headers["Authorization"] == "Bearer secret"

    async def test_accepts_bare_list(self):
        client = make_client(lambda request: httpx.Response(200, json=[GOAL_JSON]))
        try:
            goals = await client.list_goals("S1", active_only=False)
        finally:
            await client.aclose()
        assert len(goals) == 1

    async def test_server_error(self):
        client = make_client(lambda request: httpx.Response(503, text="maintenance"))
        try:
            with pytest.raises(ServerError) as exc:
                await client.list_goals("S1")
        finally:
            await client.aclose()
        assert exc.value.status_code == 503

    async def test_unsuccessful_envelope(self):
        body = {"success": False, "data": None, "error": {"message": "denied", "code": "E1"}}
        client = make_client(lambda request: httpx.Response(200, json=body))
        try:
            with pytest.raises(ServerError):
                await client.list_goals("S1")
        finally:
            await client.aclose()

    async def test_network_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        client = make_client(handler)
        try:
            with pytest.raises(NetworkError):
                await client.list_goals("S1")
        finally:
            await client.aclose()


class TestCreateGoal:
    async def test_posts_goal(self):
        sent = []

        def handler(request: httpx.Request) -> httpx.Response:
            sent.append(json.loads(request.content))
            body = dict(sent[-1], _id="new1")
            return httpx.Response(201, json={"success": True, "data": body})

        client = make_client(handler)
        start = datetime(2024, 6, 1)
        end = datetime(2024, 6, 30, 23, 59, 59, 999000)
        try:
            goal = await client.create_goal(Track.monthly, 100000, start, end, "S1")
        finally:
            await client.aclose()

        payload = sent[0]
        assert payload["goal_type"] == "monthly"
        assert payload["target_amount"] == 100000
        assert payload["store_id"] == "S1"
        assert payload["is_active"] is True
        assert datetime.fromisoformat(payload["period_start"]).tzinfo is not None

        assert goal.id == "new1"
        assert goal.period_start == start
        assert goal.period_end == end


class TestGetTotals:
    async def test_today_totals(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"success": True, "data": {"totalSales": 1234.5, "totalProducts": 9}})

        client = make_client(handler)
        try:
            totals = await client.get_totals("S1", "today")
        finally:
            await client.aclose()

        assert totals.total_sales == 1234.5
        params = seen[0].url.params
        assert seen[0].url.path == "/api/analytics/dashboard"
        assert params["dateRange"] == "today"
        assert params["status"] == "all"

    async def test_missing_total_defaults_to_zero(self):
        client = make_client(lambda request: httpx.Response(200, json={"success": True, "data": {"totalSales": None}}))
        try:
            totals = await client.get_totals("S1", "this_month")
        finally:
            await client.aclose()
        assert totals.total_sales == 0

    async def test_unknown_window_rejected(self):
        client = make_client(lambda request: httpx.Response(200, json={}))
        try:
            with pytest.raises(ValueError):
                await client.get_totals("S1", "last_week")
        finally:
            await client.aclose()


class TestMalformedPayloads:
    async def test_invalid_goal_is_server_error(self):
        bad = dict(GOAL_JSON, goal_type="weekly")
        client = make_client(lambda request: httpx.Response(200, json={"success": True, "data": [bad]}))
        try:
            with pytest.raises(ServerError):
                await client.list_goals("S1")
        finally:
            await client.aclose()

    async def test_unexpected_goal_list_is_server_error(self):
        client = make_client(lambda request: httpx.Response(200, json={"success": True, "data": "nope"}))
        try:
            with pytest.raises(ServerError):
                await client.list_goals("S1")
        finally:
            await client.aclose()

    async def test_invalid_totals_is_server_error(self):
        body = {"success": True, "data": {"totalSales": "lots"}}
        client = make_client(lambda request: httpx.Response(200, json=body))
        try:
            with pytest.raises(ServerError):
                await client.get_totals("S1", "today")
        finally:
            await client.aclose()
