"""
Batch quality-gate sweep.

Records are independent, so each one is evaluated on a worker thread; the
only shared state is the SweepReport, whose writes go through a lock.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence

from ..errors import ConfigError
from ..models import EXIT_CODES, EXIT_CONFIG_ERROR, Decision, Verdict, ViolationKind
from ..pipeline.runner import evaluate_record
from ..registry import CategoryRegistry

logger = logging.getLogger(__name__)

CONFIG_ERROR_STATUS = ViolationKind.CONFIG_ERROR.value


@dataclass
class SweepEntry:
    index: int
    source: str
    status: str
    decision: Optional[Decision] = None
    error: str = ""

    def to_dict(self) -> Dict[str, Any]:
        entry = {"index": self.index, "source": self.source, "status": self.status}
        if self.decision is not None:
            entry["recordId"] = self.decision.record_id
            entry["categoryId"] = self.decision.category_id
            entry["violations"] = [v.to_dict() for v in self.decision.violations]
        if self.error:
            entry["error"] = self.error
        return entry


@dataclass
class SweepReport:
    entries: List[SweepEntry] = field(default_factory=list)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def add(self, entry: SweepEntry) -> None:
        with self._lock:
            self.entries.append(entry)

    def sorted_entries(self) -> List[SweepEntry]:
        with self._lock:
            return sorted(self.entries, key=lambda e: e.index)

    def counts(self) -> Dict[str, int]:
        counts = {v.value: 0 for v in Verdict}
        counts[CONFIG_ERROR_STATUS] = 0
        for entry in self.sorted_entries():
            counts[entry.status] += 1
        return counts

    @property
    def exit_code(self) -> int:
        entries = self.sorted_entries()
        if any(e.status == CONFIG_ERROR_STATUS for e in entries):
            return EXIT_CONFIG_ERROR
        return max((EXIT_CODES[Verdict(e.status)] for e in entries), default=0)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "counts": self.counts(),
            "exitCode": self.exit_code,
            "entries": [e.to_dict() for e in self.sorted_entries()],
        }


def _evaluate_one(
    index: int,
    source: str,
    data: Any,
    registry: CategoryRegistry,
    envelope_schema: Optional[Mapping[str, Any]],
    report: SweepReport,
) -> None:
    try:
        decision = evaluate_record(data, registry=registry, envelope_schema=envelope_schema)
    except ConfigError as e:
        logger.error("%s: %s", source, e)
        report.add(SweepEntry(index=index, source=source, status=CONFIG_ERROR_STATUS, error=str(e)))
        return
    report.add(SweepEntry(index=index, source=source, status=decision.verdict.value, decision=decision))


def run_sweep(
    inputs: Sequence[Any],
    registry: CategoryRegistry,
    max_workers: int = 4,
    sources: Optional[Sequence[str]] = None,
    envelope_schema: Optional[Mapping[str, Any]] = None,
) -> SweepReport:
    """
    Evaluate many records concurrently.

    Args:
        inputs: Raw records
        registry: Category registry shared read-only by all workers
        max_workers: Thread pool size
        sources: Optional label per input (e.g. file name)
        envelope_schema: Record envelope schema (default: from config dir)

    Returns:
        SweepReport (entries ordered by input index)
    """
    labels = list(sources) if sources is not None else [f"#{i}" for i in range(len(inputs))]
    report = SweepReport()

    with ThreadPoolExecutor(max_workers=max_workers) as pool:
        futures = [
            pool.submit(_evaluate_one, i, labels[i], data, registry, envelope_schema, report)
            for i, data in enumerate(inputs)
        ]
        for future in futures:
            future.result()

    counts = report.counts()
    logger.info("Sweep complete: %s", ", ".join(f"{k}={v}" for k, v in counts.items()))
    return report
