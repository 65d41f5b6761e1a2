"""
Data models for the record → verdict pipeline.

Plain dataclasses and str-valued enums so every result serializes to JSON
with ``to_dict()`` and compares by value in tests.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Tuple


CRITERIA: Tuple[str, ...] = tuple(f"c{i}" for i in range(1, 11))
SCORE_MIN = 0.0
SCORE_MAX = 10.0

PLACEHOLDER_TOKEN = "__PLACEHOLDER__"


class Verdict(str, Enum):
    WRITE = "WRITE"
    REPAIR = "REPAIR"
    REJECT = "REJECT"


EXIT_CODES = {
    Verdict.WRITE: 0,
    Verdict.REPAIR: 1,
    Verdict.REJECT: 2,
}
EXIT_CONFIG_ERROR = 3


class Tier(str, Enum):
    PRODUCTION = "production"
    STUB = "stub"


class Severity(str, Enum):
    ERROR = "ERROR"
    WARNING = "WARNING"


class ViolationKind(str, Enum):
    CONFIG_ERROR = "CONFIG_ERROR"
    STRUCTURAL_ERROR = "STRUCTURAL_ERROR"
    INVALID_VALUE = "INVALID_VALUE"
    MISSING_REQUIRED_FIELD = "MISSING_REQUIRED_FIELD"
    MISSING_RECOMMENDED_FIELD = "MISSING_RECOMMENDED_FIELD"
    MISSING_EVIDENCE = "MISSING_EVIDENCE"
    DRIFT = "DRIFT"


@dataclass(frozen=True)
class Violation:
    field: str
    kind: ViolationKind
    severity: Severity = Severity.ERROR
    detail: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "field": self.field,
            "kind": self.kind.value,
            "severity": self.severity.value,
            "detail": self.detail,
        }


@dataclass(frozen=True)
class EvidenceEntry:
    source_ref: str
    quote: str
    confidence: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "EvidenceEntry":
        return cls(
            source_ref=str(data.get("sourceRef") or "").strip(),
            quote=str(data.get("quote") or "").strip(),
            confidence=data.get("confidence"),
        )


@dataclass(frozen=True)
class RawInput:
    """One authored product record. Never mutated after construction."""

    category_id: str
    product: Mapping[str, Any]
    price: Mapping[str, Any]
    sources: Tuple[Mapping[str, Any], ...]
    specs: Mapping[str, Any]
    evidence: Mapping[str, EvidenceEntry]
    energy: Optional[Mapping[str, Any]] = None
    meta: Mapping[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], category_id: Optional[str] = None) -> "RawInput":
        product = dict(data.get("product") or {})
        evidence = {
            name: EvidenceEntry.from_dict(entry if isinstance(entry, Mapping) else {})
            for name, entry in (data.get("evidence") or {}).items()
        }
        energy = data.get("energy")
        return cls(
            category_id=category_id or product.get("categoryId", ""),
            product=MappingProxyType(product),
            price=MappingProxyType(dict(data.get("price") or {})),
            sources=tuple(MappingProxyType(dict(s)) for s in data.get("sources") or []),
            specs=MappingProxyType(dict(data.get("specs") or {})),
            evidence=MappingProxyType(evidence),
            energy=MappingProxyType(dict(energy)) if energy else None,
            meta=MappingProxyType(dict(data.get("meta") or {})),
        )

    @property
    def record_id(self) -> str:
        return str(self.product.get("id") or self.product.get("model") or "")

    def cited_sources(self) -> List[str]:
        cited = [str(s.get("url")) for s in self.sources if s.get("url")]
        price_source = self.price.get("sourceUrl")
        if price_source:
            cited.append(str(price_source))
        return cited


@dataclass(frozen=True)
class NormalizationChange:
    field: str
    before: Any
    after: Any
    reason: str

    def to_dict(self) -> Dict[str, Any]:
        return {"field": self.field, "before": self.before, "after": self.after, "reason": self.reason}


@dataclass(frozen=True)
class CompletenessContract:
    category_id: str
    tier: Tier
    required_fields_product: Tuple[str, ...]
    required_fields_mock: Tuple[str, ...]
    evidence_required_fields: Tuple[str, ...]
    evidence_advisory_fields: Tuple[str, ...] = ()
    autofill: bool = False

    @property
    def required_fields(self) -> Tuple[str, ...]:
        seen = dict.fromkeys(self.required_fields_product + self.required_fields_mock)
        return tuple(seen)


@dataclass
class CompletenessResult:
    category_id: str
    tier: Tier
    errors: List[Violation] = field(default_factory=list)
    warnings: List[Violation] = field(default_factory=list)
    autofilled: List[str] = field(default_factory=list)
    filled_fields: Dict[str, Any] = field(default_factory=dict)
    fields_checked: int = 0
    fields_present: int = 0

    @property
    def completeness_percent(self) -> int:
        if self.fields_checked == 0:
            return 100
        return round(100 * self.fields_present / self.fields_checked)


@dataclass(frozen=True)
class MissingEvidence:
    field: str
    critical: bool
    reason: str


@dataclass
class EvidenceResult:
    ok: bool
    missing: List[MissingEvidence] = field(default_factory=list)
    repair_prompt: Optional[str] = None

    @property
    def missing_fields(self) -> List[str]:
        return [m.field for m in self.missing]

    @property
    def blocking_fields(self) -> List[str]:
        return [m.field for m in self.missing if m.critical]


@dataclass
class ScoreVector:
    scores: Dict[str, float]
    weights: Dict[str, float]
    tags: Dict[str, bool] = field(default_factory=dict)

    @property
    def overall(self) -> float:
        return round(sum(self.scores[c] * self.weights.get(c, 0.0) for c in CRITERIA), 2)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "scores": {c: self.scores[c] for c in CRITERIA},
            "overall": self.overall,
            "tags": dict(sorted(self.tags.items())),
        }


@dataclass
class ScoringResult:
    specs: Dict[str, Any]
    vector: ScoreVector
    fired_rules: List[str] = field(default_factory=list)


@dataclass
class Decision:
    verdict: Verdict
    category_id: str
    record_id: str = ""
    violations: List[Violation] = field(default_factory=list)
    repair_prompt: Optional[str] = None
    record: Optional[Dict[str, Any]] = None
    changes: List[NormalizationChange] = field(default_factory=list)
    autofilled: List[str] = field(default_factory=list)
    fired_rules: List[str] = field(default_factory=list)
    tier: str = ""
    filled_specs: Optional[Dict[str, Any]] = None

    @property
    def exit_code(self) -> int:
        return EXIT_CODES[self.verdict]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "verdict": self.verdict.value,
            "exitCode": self.exit_code,
            "categoryId": self.category_id,
            "recordId": self.record_id,
            "tier": self.tier,
            "violations": [v.to_dict() for v in self.violations],
            "repairPrompt": self.repair_prompt,
            "record": self.record,
            "changes": [c.to_dict() for c in self.changes],
            "autofilled": list(self.autofilled),
            "firedRules": list(self.fired_rules),
            "filledSpecs": self.filled_specs,
        }
