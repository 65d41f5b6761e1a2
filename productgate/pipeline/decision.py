"""
Decision engine: three-way verdict from the stage results.

    REJECT  any ERROR-level completeness violation, or missing evidence on an
            evidence-critical field
    REPAIR  otherwise, if warnings, placeholders or advisory evidence gaps remain
    WRITE   otherwise; the normalized and scored record is produced

The transition reads only its arguments, so identical inputs always give
the identical Decision.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence

from ..models import (
    CompletenessResult,
    Decision,
    EvidenceResult,
    NormalizationChange,
    ScoringResult,
    Severity,
    Verdict,
    Violation,
    ViolationKind,
)
from .evidence import build_evidence_repair_prompt

logger = logging.getLogger(__name__)


def _evidence_violations(evidence: EvidenceResult) -> List[Violation]:
    return [
        Violation(
            field=m.field,
            kind=ViolationKind.MISSING_EVIDENCE,
            severity=Severity.ERROR if m.critical else Severity.WARNING,
            detail=m.reason,
        )
        for m in evidence.missing
    ]


def build_repair_prompt(
    category_id: str,
    record_id: str,
    verdict: Verdict,
    value_fixes: Sequence[Violation],
    placeholders: Sequence[str],
    evidence: EvidenceResult,
) -> str:
    """Field-addressed prose separating value fixes from evidence fixes."""
    label = f"'{record_id}' " if record_id else ""
    lines = [f"Record {label}in category '{category_id}' cannot be written yet (verdict {verdict.value})."]

    if value_fixes or placeholders:
        lines.append("")
        lines.append("Value fixes:")
        for v in value_fixes:
            if v.kind == ViolationKind.MISSING_REQUIRED_FIELD:
                lines.append(f"- {v.field}: required value {v.detail}; supply a sourced value.")
            elif v.kind == ViolationKind.INVALID_VALUE:
                lines.append(f"- {v.field}: invalid value {v.detail}")
            else:
                lines.append(f"- {v.field}: recommended value missing; supply a sourced value.")
        for name in placeholders:
            lines.append(f"- {name}: holds a placeholder, not a fact; replace it with a verified value.")

    if evidence.missing:
        lines.append("")
        lines.append("Evidence fixes:")
        lines.append(evidence.repair_prompt or build_evidence_repair_prompt(category_id, evidence.missing))

    return "\n".join(lines)


def build_record(
    identity: Mapping[str, Any],
    scoring: ScoringResult,
    changes: Sequence[NormalizationChange],
    tier: str,
) -> Dict[str, Any]:
    vector = scoring.vector.to_dict()
    return {
        **identity,
        "specs": dict(scoring.specs),
        "tags": vector["tags"],
        "scores": vector["scores"],
        "overallScore": vector["overall"],
        "isFallback": False,
        "provenance": {
            "tier": tier,
            "normalization": [c.to_dict() for c in changes],
            "firedRules": list(scoring.fired_rules),
        },
    }


def decide(
    completeness: CompletenessResult,
    evidence: EvidenceResult,
    scoring: ScoringResult,
    changes: Sequence[NormalizationChange] = (),
    identity: Optional[Mapping[str, Any]] = None,
) -> Decision:
    """
    Combine stage results into a Decision.

    Args:
        completeness: Completeness result (ERROR list includes invalid values)
        evidence: Evidence gate result
        scoring: Rule engine output with tags
        changes: Normalization audit trail (carried into provenance)
        identity: Envelope fields copied into a WRITE record (id, product, ...)

    Returns:
        Decision with verdict, violations, repair prompt and, on WRITE, record.
        A REPAIR with autofilled fields also carries ``filled_specs``: the
        normalized specs with placeholder tokens inserted.
    """
    identity = dict(identity or {})
    category_id = completeness.category_id
    record_id = str(identity.get("id") or "")
    evidence_violations = _evidence_violations(evidence)
    blocking_evidence = [v for v in evidence_violations if v.severity == Severity.ERROR]
    advisory_evidence = [v for v in evidence_violations if v.severity == Severity.WARNING]

    if completeness.errors or blocking_evidence:
        verdict = Verdict.REJECT
    elif completeness.warnings or completeness.autofilled or advisory_evidence:
        verdict = Verdict.REPAIR
    else:
        verdict = Verdict.WRITE

    violations = list(completeness.errors) + blocking_evidence + list(completeness.warnings) + advisory_evidence

    decision = Decision(
        verdict=verdict,
        category_id=category_id,
        record_id=record_id,
        violations=violations,
        changes=list(changes),
        autofilled=list(completeness.autofilled),
        fired_rules=list(scoring.fired_rules),
        tier=completeness.tier.value,
    )

    if verdict == Verdict.WRITE:
        decision.record = build_record(identity, scoring, changes, completeness.tier.value)
    else:
        decision.repair_prompt = build_repair_prompt(
            category_id,
            record_id,
            verdict,
            list(completeness.errors) + list(completeness.warnings),
            completeness.autofilled,
            evidence,
        )
        if verdict == Verdict.REPAIR and completeness.autofilled:
            decision.filled_specs = dict(completeness.filled_fields)

    logger.info("%s %s: %s (%d violation(s))", category_id, record_id or "-", verdict.value, len(violations))
    return decision
