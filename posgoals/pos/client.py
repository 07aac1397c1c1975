"""POS REST API client."""

import asyncio
import logging
from datetime import datetime
from typing import Any, Optional, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from posgoals.goals.errors import NetworkError, ServerError
from .models import GoalCreate, SalesGoal, SalesTotals, Track

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


class PosApiClient:
    """Async HTTP client for the POS API goal and analytics endpoints."""

    def __init__(
        self,
        base_url: str,
        token: str,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize POS API client.

        Args:
            base_url: API root (e.g., http://localhost:5000/api)
            token: Bearer access token
            timeout: Per-request timeout in seconds
            transport: Optional httpx transport (used by tests)
        """
        self.base_url = base_url.rstrip("/")
        headers = {"Content-Type": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    async def aclose(self):
        """Close the underlying HTTP connection pool."""
        await self._client.aclose()
        logger.info("Closed POS API client")

    async def _request(self, method: str, path: str, **kwargs) -> Any:
        """
        Send a request and unwrap the API response envelope.

        Args:
            method: HTTP method
            path: Path relative to the API root
            **kwargs: Passed through to httpx

        Returns:
            The envelope's ``data`` field, or the whole body if not enveloped
        """
        logger.debug(f"{method} {path} {kwargs.get('params') or ''}")

        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.TransportError as e:
            raise NetworkError(f"{method} {path} failed: {e}") from e

        if response.status_code >= 400:
            logger.error(f"{method} {path} returned {response.status_code}: {response.text[:200]}")
            raise ServerError(
                f"{method} {path} returned {response.status_code}",
                status_code=response.status_code,
            )

        try:
            body = response.json()
        except ValueError as e:
            raise ServerError(f"{method} {path} returned invalid JSON") from e

        if isinstance(body, dict) and "data" in body:
            if body.get("success") is False:
                message = (body.get("error") or {}).get("message", "Unknown error")
                raise ServerError(f"{method} {path} failed: {message}", response.status_code)
            return body["data"]
        return body

    def _parse(self, model: type[ModelT], data: Any, endpoint: str) -> ModelT:
        """Validate a response payload, reporting bad payloads as server errors."""
        try:
            return model.model_validate(data)
        except ValidationError as e:
            logger.error(f"{endpoint} returned an invalid {model.__name__}: {e.error_count()} errors")
            raise ServerError(f"{endpoint} returned an invalid {model.__name__}") from e

    async def list_goals(self, store_scope: str, active_only: bool = True) -> list[SalesGoal]:
        """
        List goals for a store.

        Args:
            store_scope: Store identifier
            active_only: Only return active goals

        Returns:
            List of SalesGoal objects
        """
        params = {"store_id": store_scope}
        if active_only:
            params["is_active"] = "true"
        data = await self._request("GET", "/goals", params=params)
        if isinstance(data, dict):
            data = data.get("goals", [])
        if data is not None and not isinstance(data, list):
            raise ServerError("GET /goals returned an unexpected payload")
        return [self._parse(SalesGoal, item, "GET /goals") for item in data or []]

    async def create_goal(
        self,
        track: Track,
        target_amount: float,
        period_start: datetime,
        period_end: datetime,
        store_scope: str,
    ) -> SalesGoal:
        """
        Create a goal.

        Args:
            track: daily or monthly
            target_amount: Sales target for the period
            period_start: Inclusive period start (local time)
            period_end: Inclusive period end (local time)
            store_scope: Owning store identifier

        Returns:
            The stored SalesGoal with its assigned id
        """
        payload = GoalCreate(
            goal_type=track,
            target_amount=target_amount,
            period_start=period_start,
            period_end=period_end,
            store_id=store_scope,
        ).to_payload()
        data = await self._request("POST", "/goals", json=payload)
        goal = self._parse(SalesGoal, data, "POST /goals")
        logger.info(f"Created {track.value} goal {goal.id} ({target_amount:,.2f})")
        return goal

    async def get_totals(self, store_scope: str, window: str) -> SalesTotals:
        """
        Get aggregate sales totals for a date window.

        Args:
            store_scope: Store identifier
            window: "today" or "this_month"

        Returns:
            SalesTotals for the window
        """
        if window not in ("today", "this_month"):
            raise ValueError(f"Unsupported window: {window}")
        data = await self._request(
            "GET",
            "/analytics/dashboard",
            params={"store_id": store_scope, "status": "all", "dateRange": window},
        )
        return self._parse(SalesTotals, data or {}, "GET /analytics/dashboard")


async def test_connection():
    """Test POS API connection."""
    import os
    from dotenv import load_dotenv

    load_dotenv()

    api_url = os.getenv("POS_API_URL")
    token = os.getenv("POS_API_TOKEN", "")
    store_id = os.getenv("STORE_ID")

    if not api_url or not store_id:
        print("Error: POS_API_URL and STORE_ID must be set in .env file")
        return

    client = PosApiClient(api_url, token)

    try:
        goals = await client.list_goals(store_id)
        print(f"\nFound {len(goals)} active goals")
        for goal in goals:
            print(f"  - {goal.goal_type.value}: {goal.target_amount:,.2f} "
                  f"({goal.period_start} -> {goal.period_end})")

        today = await client.get_totals(store_id, "today")
        print(f"\nToday's sales: {today.total_sales:,.2f}")

    finally:
        await client.aclose()


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    asyncio.run(test_connection())
