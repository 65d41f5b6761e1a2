"""
Evidence gate.

A present value in an evidence field must be backed by an evidence entry
under the exact field name with a source reference and quoted text. An
absent field triggers nothing; presence is the completeness checker's job.
"""

from __future__ import annotations

import json
from typing import Any, Dict, List, Mapping, Optional, Sequence

from ..models import EvidenceResult, MissingEvidence, RawInput
from .completeness import get_field_value, is_present
from .structure import is_placeholder

EXPECTED_SHAPE = {
    "sourceRef": "<URL listed in sources[] or price.sourceUrl>",
    "quote": "<verbatim text from the source stating the value>",
    "confidence": "high | medium | low",
}


def _missing_reason(field: str, raw: RawInput, cited: Sequence[str]) -> Optional[str]:
    entry = raw.evidence.get(field)
    if entry is None:
        return "no evidence entry"
    if not entry.source_ref:
        return "empty source reference"
    if not entry.quote:
        return "empty quoted text"
    if cited and entry.source_ref not in cited:
        return f"source not cited: {entry.source_ref}"
    return None


def check_evidence(
    specs: Mapping[str, Any],
    raw: RawInput,
    critical_fields: Sequence[str],
    advisory_fields: Sequence[str] = (),
) -> EvidenceResult:
    """
    Check citations for evidence fields that carry a value.

    Args:
        specs: Normalized specs
        raw: Raw record (evidence map, sources, envelope)
        critical_fields: Fields whose missing evidence blocks persistence
        advisory_fields: Fields whose missing evidence only warns

    Returns:
        EvidenceResult; ``ok`` is False when any checked field lacks evidence
    """
    cited = raw.cited_sources()
    missing: List[MissingEvidence] = []

    for fields, critical in ((critical_fields, True), (advisory_fields, False)):
        for name in fields:
            value = get_field_value(name, specs, raw)
            if not is_present(value) or is_placeholder(value):
                continue
            reason = _missing_reason(name, raw, cited)
            if reason is not None:
                missing.append(MissingEvidence(field=name, critical=critical, reason=reason))

    result = EvidenceResult(ok=not missing, missing=missing)
    if missing:
        result.repair_prompt = build_evidence_repair_prompt(raw.category_id, missing)
    return result


def build_evidence_repair_prompt(category_id: str, missing: Sequence[MissingEvidence]) -> str:
    """
    Instruction block listing exactly the fields that need a citation and the
    evidence shape expected for each.
    """
    lines = [
        f"Evidence required for category '{category_id}'.",
        "Add an entry under \"evidence\" for each field below, keyed by the exact field name:",
    ]
    for m in missing:
        level = "blocking" if m.critical else "advisory"
        lines.append(f"- {m.field} ({level}): {m.reason}")

    example: Dict[str, Any] = {"evidence": {m.field: EXPECTED_SHAPE for m in missing}}
    lines.append("Expected shape:")
    lines.append(json.dumps(example, indent=2, ensure_ascii=False))
    return "\n".join(lines)
