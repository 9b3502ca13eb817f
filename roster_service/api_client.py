from __future__ import annotations

import logging
from dataclasses import dataclass
from time import sleep
from typing import Any

import httpx

from roster_core.io.schemas import to_group
from roster_core.models import Doctor, Station
from roster_core.time_utils import parse_iso_date

from .config import ApiConfig

logger = logging.getLogger(__name__)

INSERT_CHUNK_SIZE = 500


@dataclass(frozen=True)
class Operation:
    method: str
    path: str


OPERATIONS: dict[str, Operation] = {
    "doctors": Operation("GET", "/rest/v1/doctors"),
    "stations": Operation("GET", "/rest/v1/stations"),
    "insert_schedule": Operation("POST", "/rest/v1/schedules"),
    "insert_shifts": Operation("POST", "/rest/v1/shifts"),
}


class RosterApiClient:
    """Client for the hospital backend's REST tables.

    Only the operation names listed in OPERATIONS are executable: doctors and
    stations are read, schedules and shifts are inserted. Any unknown operation is rejected
    before any network request is sent.
    """

    def __init__(
        self,
        cfg: ApiConfig,
        *,
        timeout_s: float = 30.0,
        retries: int = 3,
        transport: httpx.BaseTransport | None = None,
    ):
        self.cfg = cfg
        self.retries = max(1, retries)
        self._http = httpx.Client(
            base_url=cfg.base_url,
            headers=self._headers(),
            timeout=timeout_s,
            transport=transport,
        )

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> RosterApiClient:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def _headers(self) -> dict[str, str]:
        return {
            "apikey": self.cfg.api_key,
            "Authorization": f"Bearer {self.cfg.api_key}",
            "Accept": "application/json",
        }

    def _request(
        self,
        *,
        operation: str,
        params: dict[str, Any] | None = None,
        json_body: Any = None,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        op = OPERATIONS.get(operation)
        if op is None:
            raise ValueError(f"Operation '{operation}' is not allowed")

        last_exc: Exception | None = None
        for attempt in range(self.retries):
            try:
                resp = self._http.request(
                    op.method,
                    op.path,
                    params=params,
                    json=json_body,
                    headers=headers,
                )
                if resp.status_code >= 500 and attempt < self.retries - 1:
                    logger.warning("%s returned %s, retrying in %ds", operation, resp.status_code, 2**attempt)
                    sleep(2**attempt)
                    continue
                resp.raise_for_status()
                return resp
            except (httpx.TimeoutException, httpx.ConnectError) as exc:
                last_exc = exc
                if attempt < self.retries - 1:
                    logger.warning("%s failed (%s), retrying in %ds", operation, exc, 2**attempt)
                    sleep(2**attempt)
                    continue
                raise
        if last_exc:
            raise last_exc
        raise RuntimeError("request failed without an explicit exception")

    def fetch_doctors(self) -> list[Doctor]:
        params = {"select": "id,name,group_id,email,specialty", "order": "name.asc"}
        rows = self._request(operation="doctors", params=params).json() or []
        doctors = []
        for row in rows:
            doctors.append(
                Doctor(
                    id=str(row["id"]),
                    name=str(row.get("name") or ""),
                    group=to_group(row.get("group_id")),
                    email=str(row.get("email") or ""),
                    specialty=str(row.get("specialty") or ""),
                )
            )
        return doctors

    def fetch_stations(self) -> list[Station]:
        params = {"select": "id,name,allowed_groups", "order": "created_at.asc"}
        rows = self._request(operation="stations", params=params).json() or []
        return [
            Station(
                id=str(row["id"]),
                name=str(row.get("name") or ""),
                allowed_groups=frozenset(to_group(g) for g in (row.get("allowed_groups") or [])),
            )
            for row in rows
        ]

    def insert_schedule(self, plan: dict[str, Any]) -> str:
        """Create the schedules row for the month the plan starts in and return its id."""
        start = parse_iso_date(plan["range"]["from"])
        resp = self._request(
            operation="insert_schedule",
            json_body={"month": start.month, "year": start.year},
            headers={"Prefer": "return=representation"},
        )
        rows = resp.json() or []
        if not rows:
            raise RuntimeError("backend returned no schedule row")
        return str(rows[0]["id"])

    def insert_shifts(self, plan: dict[str, Any]) -> int:
        """Insert the plan's shifts as rows of the shifts table. Returns the row count."""
        rows = [
            {
                "station_id": s["station_id"],
                "doctor_id": s["doctor_id"],
                "date": s["date"],
                "start_time": s["start"],
                "end_time": s["end"],
                "type": s["kind"],
            }
            for s in plan.get("shifts", [])
        ]
        for offset in range(0, len(rows), INSERT_CHUNK_SIZE):
            chunk = rows[offset : offset + INSERT_CHUNK_SIZE]
            self._request(
                operation="insert_shifts",
                json_body=chunk,
                headers={"Prefer": "return=minimal"},
            )
        logger.info("Inserted %d shift rows for plan %s", len(rows), plan.get("plan_id"))
        return len(rows)

