"""station-roster MCP server.

Exposes tools for backend data sync, artifact persistence, schedule
generation (via roster_core), plan evaluation and export.
"""
from __future__ import annotations

import argparse
import os
from typing import Any

from mcp.server.fastmcp import FastMCP

from roster_core import generate_plan, month_bounds
from roster_core.io import persist_to_db, render_xlsx, write_output
from roster_core.time_utils import parse_iso_date

from .api_client import RosterApiClient
from .config import api_config, load_env, runtime_config
from .snapshot import build_snapshot, snapshot_inputs
from .storage import (
    export_root,
    list_plans as _list_plans,
    list_snapshots as _list_snapshots,
    load_plan as _load_plan,
    load_snapshot as _load_snapshot,
    save_plan as _save_plan,
    save_snapshot as _save_snapshot,
)

mcp = FastMCP(
    "station-roster",
    host=os.getenv("HOST", "127.0.0.1"),
    port=int(os.getenv("PORT", "8000")),
    instructions=(
        "Night and weekend shift roster for hospital stations. "
        "Syncs doctors and stations from the hospital backend, generates "
        "deterministic load-balanced schedules, evaluates coverage and "
        "fairness, and exports or pushes plans."
    ),
)

MAX_LISTED = 10_000

_ENV_FILE: str | None = None
_CLIENT: RosterApiClient | None = None


def _load_env() -> None:
    load_env(_ENV_FILE or os.getenv("ROSTER_ENV_FILE"))


def _client() -> RosterApiClient:
    global _CLIENT
    if _CLIENT is None:
        _load_env()
        _CLIENT = RosterApiClient(api_config())
    return _CLIENT


def _artifact_root():
    _load_env()
    return runtime_config().artifact_root


def _resolve_range(range_from: str | None, range_to: str | None, month: str | None):
    if month:
        if range_from or range_to:
            raise ValueError("Pass either month or range_from/range_to, not both")
        year, _, mon = month.partition("-")
        return month_bounds(int(year), int(mon))
    if not range_from or not range_to:
        raise ValueError("range_from and range_to are required when month is omitted")
    return parse_iso_date(range_from), parse_iso_date(range_to)


# -- Data sync --

@mcp.tool()
def sync_snapshot() -> dict[str, Any]:
    """Fetch doctors and stations from the hospital backend and store them as a local snapshot.

    Returns snapshot manifest with snapshot_id, counts, and file path.
    """
    client = _client()
    snapshot = build_snapshot(
        client.fetch_doctors(),
        client.fetch_stations(),
        source=client.cfg.base_url,
    )
    target = _save_snapshot(_artifact_root(), snapshot)
    return {
        "snapshot_id": snapshot["snapshot_id"],
        "counts": snapshot["metadata"]["counts"],
        "unstaffable_stations": snapshot["metadata"]["unstaffable_stations"],
        "path": str(target),
    }


@mcp.tool()
def list_snapshots(limit: int = 20) -> list[dict[str, Any]]:
    """List local snapshot manifests, newest first."""
    return _list_snapshots(_artifact_root(), limit=limit)


# -- Schedule generation --

@mcp.tool()
def generate_schedule(
    range_from: str | None = None,
    range_to: str | None = None,
    month: str | None = None,
    excluded_doctor_ids: list[str] | None = None,
    snapshot_id: str | None = None,
    name: str = "",
) -> dict[str, Any]:
    """Generate a schedule from a snapshot (latest if omitted) and persist it as a plan.

    Give either month as YYYY-MM or both range_from and range_to as YYYY-MM-DD.
    Returns the plan without its per-shift rows; use load_plan() for the full plan.
    """
    start, end = _resolve_range(range_from, range_to, month)
    snapshot = _load_snapshot(_artifact_root(), snapshot_id=snapshot_id)
    doctors, stations = snapshot_inputs(snapshot)

    plan = generate_plan(
        range_from=start,
        range_to=end,
        doctors=doctors,
        stations=stations,
        excluded_ids=excluded_doctor_ids or (),
        name=name,
    )
    plan["snapshot_id"] = snapshot["snapshot_id"]
    target = _save_plan(_artifact_root(), plan)

    summary = {k: v for k, v in plan.items() if k != "shifts"}
    summary["path"] = str(target)
    return summary


# -- Plan CRUD --

@mcp.tool()
def list_plans(limit: int = 20) -> list[dict[str, Any]]:
    """List local plan manifests, newest first."""
    return _list_plans(_artifact_root(), limit=limit)


@mcp.tool()
def load_plan(plan_id: str | None = None) -> dict[str, Any]:
    """Load a full plan JSON by ID (or latest if omitted)."""
    return _load_plan(_artifact_root(), plan_id=plan_id)


@mcp.tool()
def evaluate_plan(plan_id: str | None = None) -> dict[str, Any]:
    """Compute quality metrics for a plan: fill rate, open slots, coverage grid, fairness.

    Uses the latest plan if plan_id is omitted.
    """
    from .evaluate import evaluate_plan_lite

    plan = _load_plan(_artifact_root(), plan_id=plan_id)
    return evaluate_plan_lite(plan)


# -- Outputs --

@mcp.tool()
def export_plan(plan_id: str | None = None, xlsx: bool = True) -> dict[str, Any]:
    """Write CSV files, metrics.json and optionally plan.xlsx for a plan."""
    plan = _load_plan(_artifact_root(), plan_id=plan_id)
    target = export_root(_artifact_root(), plan["plan_id"])
    paths = {name: str(p) for name, p in write_output(plan, target).items()}
    if xlsx:
        paths["plan.xlsx"] = str(render_xlsx(plan, target / "plan.xlsx"))
    return {"plan_id": plan["plan_id"], "files": paths}


@mcp.tool()
def persist_plan(plan_id: str | None = None, db_path: str | None = None) -> dict[str, Any]:
    """Insert a plan into the local SQLite schedules/shifts tables.

    Falls back to ROSTER_DB_PATH when db_path is omitted.
    """
    _load_env()
    path = db_path or runtime_config().db_path
    if not path:
        raise ValueError("No database path given and ROSTER_DB_PATH is not set")
    plan = _load_plan(_artifact_root(), plan_id=plan_id)
    schedule_id = persist_to_db(plan, path)
    return {"plan_id": plan["plan_id"], "schedule_id": schedule_id, "db_path": str(path)}


@mcp.tool()
def push_plan(plan_id: str | None = None) -> dict[str, Any]:
    """Write a plan's shifts to the hospital backend (schedules and shifts tables)."""
    plan = _load_plan(_artifact_root(), plan_id=plan_id)
    client = _client()
    schedule_id = client.insert_schedule(plan)
    inserted = client.insert_shifts(plan)
    return {"plan_id": plan["plan_id"], "schedule_id": schedule_id, "inserted_shifts": inserted}


# -- Server entrypoints --

def build_http_app():
    """Streamable-HTTP app with an artifact-aware /health route.

    When MCP_API_KEY is set every route except /health needs that bearer key.
    """
    from starlette.middleware.base import BaseHTTPMiddleware
    from starlette.responses import JSONResponse
    from starlette.routing import Route

    api_key = os.getenv("MCP_API_KEY")

    class BearerAuth(BaseHTTPMiddleware):
        async def dispatch(self, request, call_next):
            if request.url.path == "/health":
                return await call_next(request)
            auth = request.headers.get("authorization", "")
            if not auth.startswith("Bearer ") or auth[7:] != api_key:
                return JSONResponse({"error": "unauthorized"}, status_code=401)
            return await call_next(request)

    def health(request):
        root = _artifact_root()
        snapshots = _list_snapshots(root, limit=MAX_LISTED)
        return JSONResponse({
            "status": "ok",
            "snapshots": len(snapshots),
            "latest_snapshot": snapshots[0]["snapshot_id"] if snapshots else None,
            "plans": len(_list_plans(root, limit=MAX_LISTED)),
        })

    app = mcp.streamable_http_app()
    if api_key:
        app.add_middleware(BearerAuth)
    app.routes.append(Route("/health", health))
    return app


async def _run_http() -> None:
    import uvicorn

    config = uvicorn.Config(
        build_http_app(),
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8080")),
        log_level="info",
    )
    await uvicorn.Server(config).serve()


def main() -> None:
    global _ENV_FILE

    parser = argparse.ArgumentParser(description="Run the station-roster MCP server")
    parser.add_argument("--env-file", default=None, help="Path to .env file")
    parser.add_argument(
        "--transport",
        default=None,
        choices=["stdio", "sse", "streamable-http"],
        help="MCP transport (default: streamable-http when PORT is set, else stdio)",
    )
    args = parser.parse_args()
    _ENV_FILE = args.env_file

    transport = args.transport or ("streamable-http" if os.getenv("PORT") else "stdio")
    try:
        if transport == "streamable-http":
            import anyio
            anyio.run(_run_http)
        else:
            mcp.run(transport=transport)
    finally:
        if _CLIENT is not None:
            _CLIENT.close()


if __name__ == "__main__":
    main()
