from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


def _json_dump(path: Path, payload: Any) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as fh:
        json.dump(payload, fh, indent=2, ensure_ascii=False)


def _json_load(path: Path) -> Any:
    with path.open("r", encoding="utf-8") as fh:
        return json.load(fh)


def snapshot_root(artifact_root: Path) -> Path:
    path = artifact_root / "snapshots"
    path.mkdir(parents=True, exist_ok=True)
    return path


def plan_root(artifact_root: Path) -> Path:
    path = artifact_root / "plans"
    path.mkdir(parents=True, exist_ok=True)
    return path


def export_root(artifact_root: Path, plan_id: str) -> Path:
    path = artifact_root / "exports" / plan_id
    path.mkdir(parents=True, exist_ok=True)
    return path


def _list_manifests(root: Path, limit: int) -> list[dict[str, Any]]:
    manifests: list[dict[str, Any]] = []
    for child in root.iterdir():
        if not child.is_dir():
            continue
        manifest_file = child / "manifest.json"
        if not manifest_file.exists():
            continue
        try:
            manifests.append(_json_load(manifest_file))
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning("Skipping unreadable manifest %s: %s", manifest_file, exc)
    manifests.sort(key=lambda row: row.get("generated_at", ""), reverse=True)
    return manifests[:limit]


def _manifest_path(root: Path, artifact_id: str | None) -> Path:
    return root / artifact_id / "manifest.json" if artifact_id else root / "latest.json"


def save_snapshot(artifact_root: Path, snapshot: dict[str, Any]) -> Path:
    root = snapshot_root(artifact_root)
    sid = snapshot["snapshot_id"]
    target = root / sid
    _json_dump(target / "snapshot.json", snapshot)

    manifest = {
        "snapshot_id": sid,
        "source": snapshot.get("source"),
        "generated_at": snapshot.get("generated_at"),
        "counts": snapshot.get("metadata", {}).get("counts", {}),
        "path": str(target.resolve()),
    }
    _json_dump(target / "manifest.json", manifest)
    _json_dump(root / "latest.json", manifest)
    return target


def list_snapshots(artifact_root: Path, limit: int = 20) -> list[dict[str, Any]]:
    return _list_manifests(snapshot_root(artifact_root), limit)


def load_snapshot(artifact_root: Path, snapshot_id: str | None = None) -> dict[str, Any]:
    root = snapshot_root(artifact_root)
    manifest_path = _manifest_path(root, snapshot_id)
    if not manifest_path.exists():
        raise FileNotFoundError("snapshot manifest not found")
    sid = _json_load(manifest_path)["snapshot_id"]
    path = root / sid / "snapshot.json"
    if not path.exists():
        raise FileNotFoundError(f"snapshot payload not found: {sid}")
    return _json_load(path)


def save_plan(artifact_root: Path, plan: dict[str, Any]) -> Path:
    root = plan_root(artifact_root)
    pid = plan["plan_id"]
    target = root / pid
    _json_dump(target / "plan.json", plan)

    manifest = {
        "plan_id": pid,
        "name": plan.get("name"),
        "snapshot_id": plan.get("snapshot_id"),
        "generated_at": plan.get("generated_at"),
        "range": plan.get("range"),
        "counts": plan.get("metrics", {}),
        "path": str(target.resolve()),
    }
    _json_dump(target / "manifest.json", manifest)
    _json_dump(root / "latest.json", manifest)
    return target


def list_plans(artifact_root: Path, limit: int = 20) -> list[dict[str, Any]]:
    return _list_manifests(plan_root(artifact_root), limit)


def load_plan(artifact_root: Path, plan_id: str | None = None) -> dict[str, Any]:
    root = plan_root(artifact_root)
    manifest_path = _manifest_path(root, plan_id)
    if not manifest_path.exists():
        raise FileNotFoundError("plan manifest not found")
    pid = _json_load(manifest_path)["plan_id"]
    path = root / pid / "plan.json"
    if not path.exists():
        raise FileNotFoundError(f"plan payload not found: {pid}")
    return _json_load(path)
