"""
One-record pipeline:

    lookup -> envelope check -> normalize -> spec check -> completeness
           -> evidence -> rules -> decision

Pure with respect to its inputs plus the read-only registry and schema.
Persisting a WRITE record or exiting with a status code is the caller's job.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Mapping, Optional

from ..config.settings import get_config_dir
from ..errors import StructuralError
from ..models import (
    Decision,
    RawInput,
    ScoreVector,
    ScoringResult,
    Severity,
    Verdict,
    Violation,
    ViolationKind,
)
from ..registry import CategoryBundle, CategoryRegistry, get_registry
from .completeness import check_completeness
from .decision import decide
from .evidence import check_evidence
from .normalizer import normalize_specs
from .rule_engine import apply_rules
from .structure import check_envelope, check_spec_values, load_envelope_schema

logger = logging.getLogger(__name__)


def score_specs(specs: Mapping[str, Any], bundle: CategoryBundle) -> ScoringResult:
    """Baseline + rules + tags for normalized specs."""
    scores, fired = apply_rules(specs, bundle.baseline, bundle.rules)
    vector = ScoreVector(scores=scores, weights=dict(bundle.weights), tags=bundle.derive_tags(specs))
    return ScoringResult(specs=dict(specs), vector=vector, fired_rules=fired)


def structural_rejection(category_id: str, error: StructuralError) -> Decision:
    violations = []
    for message in error.errors or [str(error)]:
        path, _, detail = message.partition(": ")
        violations.append(Violation(path, ViolationKind.STRUCTURAL_ERROR, Severity.ERROR, detail or message))
    prompt = "\n".join(
        [f"Record in category '{category_id or '?'}' does not match the record structure:"]
        + [f"- {m}" for m in error.errors or [str(error)]]
    )
    return Decision(verdict=Verdict.REJECT, category_id=category_id, violations=violations, repair_prompt=prompt)


def _identity(raw: RawInput) -> Dict[str, Any]:
    return {
        "id": raw.record_id,
        "categoryId": raw.category_id,
        "product": dict(raw.product),
        "price": dict(raw.price),
        "sources": [dict(s) for s in raw.sources],
        "energy": dict(raw.energy) if raw.energy else None,
    }


def evaluate_record(
    data: Any,
    registry: Optional[CategoryRegistry] = None,
    category_id: Optional[str] = None,
    envelope_schema: Optional[Mapping[str, Any]] = None,
) -> Decision:
    """
    Validate, normalize and score one authored record.

    Args:
        data: Raw record (parsed JSON)
        registry: Category registry (default: loaded from config dir)
        category_id: Overrides ``product.categoryId``
        envelope_schema: Record envelope JSON Schema (default: from the
            registry's config dir, else the configured one)

    Returns:
        Decision (structural failures come back as REJECT decisions)

    Raises:
        ConfigError: Unknown category or unreadable configuration
    """
    if registry is None:
        registry = get_registry()
    if not category_id and isinstance(data, Mapping):
        product = data.get("product")
        if isinstance(product, Mapping):
            category_id = product.get("categoryId")
    if not category_id:
        return structural_rejection("", StructuralError(
            "Record has no category", ["product.categoryId: category id is required"]
        ))
    if not isinstance(category_id, str):
        return structural_rejection("", StructuralError(
            "Record category is not a string",
            [f"product.categoryId: expected a string, got {type(category_id).__name__}"],
        ))

    bundle = registry.lookup(category_id)
    schema = envelope_schema or load_envelope_schema(str(registry.config_dir or get_config_dir()))

    try:
        check_envelope(data, schema)
    except StructuralError as e:
        logger.info("%s: structural rejection (%d error(s))", category_id, len(e.errors))
        return structural_rejection(category_id, e)

    raw = RawInput.from_dict(data, category_id)
    specs, changes = normalize_specs(raw.specs, bundle.normalization)

    completeness = check_completeness(category_id, bundle.tier, specs, bundle.contract, raw)
    completeness.errors.extend(check_spec_values(specs, bundle.spec_schema))

    evidence = check_evidence(
        specs, raw, bundle.contract.evidence_required_fields, bundle.contract.evidence_advisory_fields
    )
    scoring = score_specs(specs, bundle)

    return decide(completeness, evidence, scoring, changes=changes, identity=_identity(raw))
