"""
Golden-set snapshots for derived output.

A snapshot stores {id, specs, tags, scores} per record of one category.
Fresh output is diffed against it; drift is reported, never written back
unless the caller explicitly regenerates the snapshot.
"""

import hashlib
import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Tuple

from ..errors import SnapshotError
from ..models import Severity, Violation, ViolationKind

SNAPSHOT_VERSION = 1
SCORE_DECIMALS = 2


@dataclass(frozen=True)
class Drift:
    product_id: str
    field: str
    expected: str
    actual: str

    def to_violation(self) -> Violation:
        return Violation(
            field=f"{self.product_id}:{self.field}",
            kind=ViolationKind.DRIFT,
            severity=Severity.ERROR,
            detail=f"expected {self.expected}, got {self.actual}",
        )


def compute_content_hash(content: bytes) -> str:
    """
    Compute SHA256 hash of content bytes.

    Returns:
        String in format "sha256:<hex_digest>"
    """
    return f"sha256:{hashlib.sha256(content).hexdigest()}"


def snapshot_item(record: Mapping[str, Any]) -> Dict[str, Any]:
    return {
        "id": str(record.get("id", "")),
        "specs": dict(record.get("specs") or {}),
        "tags": dict(sorted((record.get("tags") or {}).items())),
        "scores": {k: round(float(v), SCORE_DECIMALS) for k, v in (record.get("scores") or {}).items()},
    }


def build_snapshot(category_id: str, records: Iterable[Mapping[str, Any]]) -> Dict[str, Any]:
    """
    Build a snapshot from WRITE records (or legacy fallback records).

    Args:
        category_id: Category the records belong to
        records: Records carrying id, specs, tags and scores

    Returns:
        Snapshot dict with items sorted by id
    """
    items = sorted((snapshot_item(r) for r in records), key=lambda item: item["id"])
    return {
        "version": SNAPSHOT_VERSION,
        "category": category_id,
        "productCount": len(items),
        "items": items,
    }


def write_snapshot(snapshot: Mapping[str, Any], path: Path) -> Tuple[str, str]:
    """
    Write a snapshot atomically.

    Returns:
        Tuple of (path, "sha256:<hash>")

    Raises:
        SnapshotError: If the file cannot be written
    """
    content = json.dumps(snapshot, indent=2, sort_keys=True, ensure_ascii=False) + "\n"
    content_bytes = content.encode("utf-8")
    content_hash = compute_content_hash(content_bytes)

    temp_path = path.with_suffix(".tmp")
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(temp_path, "wb") as f:
            f.write(content_bytes)
        temp_path.replace(path)
    except OSError as e:
        if temp_path.exists():
            temp_path.unlink()
        raise SnapshotError(f"Failed to write snapshot {path}: {e}")

    return str(path), content_hash


def load_snapshot(path: Path) -> Dict[str, Any]:
    """
    Raises:
        SnapshotError: If the snapshot is missing or not valid JSON
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            snapshot = json.load(f)
    except FileNotFoundError:
        raise SnapshotError(f"Snapshot not found: {path}")
    except (OSError, json.JSONDecodeError) as e:
        raise SnapshotError(f"Snapshot unreadable: {path} ({e})")
    if not isinstance(snapshot.get("items"), list):
        raise SnapshotError(f"Snapshot {path} has no items list")
    return snapshot


def _compare(product_id: str, prefix: str, expected: Mapping[str, Any], actual: Mapping[str, Any]) -> List[Drift]:
    drifts = []
    for key in sorted(set(expected) | set(actual)):
        exp = json.dumps(expected.get(key), sort_keys=True)
        act = json.dumps(actual.get(key), sort_keys=True)
        if exp != act:
            drifts.append(Drift(product_id, f"{prefix}.{key}", exp, act))
    return drifts


def diff_snapshot(expected: Mapping[str, Any], actual: Mapping[str, Any]) -> List[Drift]:
    """
    Diff two snapshots item by item.

    Missing and unexpected products are reported as drift on field ``item``.
    """
    expected_items = {item["id"]: item for item in expected.get("items", [])}
    actual_items = {item["id"]: item for item in actual.get("items", [])}
    drifts: List[Drift] = []

    for product_id in sorted(set(expected_items) | set(actual_items)):
        exp = expected_items.get(product_id)
        act = actual_items.get(product_id)
        if exp is None:
            drifts.append(Drift(product_id, "item", "absent", "present"))
            continue
        if act is None:
            drifts.append(Drift(product_id, "item", "present", "absent"))
            continue
        for section in ("specs", "tags", "scores"):
            drifts.extend(_compare(product_id, section, exp.get(section) or {}, act.get(section) or {}))

    return drifts
