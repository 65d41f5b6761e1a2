"""
Tests for the decision engine's three-way transition.
"""

from productgate.models import (
    CRITERIA,
    CompletenessResult,
    EvidenceResult,
    MissingEvidence,
    NormalizationChange,
    ScoreVector,
    ScoringResult,
    Severity,
    Tier,
    Verdict,
    Violation,
    ViolationKind,
)
from productgate.pipeline.decision import decide


def completeness(errors=(), warnings=(), autofilled=()):
    return CompletenessResult(
        category_id="widget",
        tier=Tier.PRODUCTION,
        errors=list(errors),
        warnings=list(warnings),
        autofilled=list(autofilled),
    )


def evidence(*missing):
    return EvidenceResult(ok=not missing, missing=list(missing))


def scoring():
    vector = ScoreVector(
        scores={c: 5.0 for c in CRITERIA},
        weights={c: 0.1 for c in CRITERIA},
        tags={"isSlim": True},
    )
    return ScoringResult(specs={"widthCm": 3}, vector=vector, fired_rules=["slim"])


MISSING_COLOR = Violation("color", ViolationKind.MISSING_REQUIRED_FIELD, Severity.ERROR, "missing")
MISSING_WEIGHT = Violation("weightKg", ViolationKind.MISSING_RECOMMENDED_FIELD, Severity.WARNING, "missing")


class TestVerdicts:
    """Tests for verdict selection."""

    def test_clean_inputs_write(self):
        decision = decide(completeness(), evidence(), scoring(), identity={"id": "w-1"})

        assert decision.verdict == Verdict.WRITE
        assert decision.exit_code == 0
        assert decision.violations == []
        assert decision.repair_prompt is None
        assert decision.record["id"] == "w-1"
        assert decision.record["isFallback"] is False
        assert decision.record["overallScore"] == 5.0

    def test_error_rejects(self):
        decision = decide(completeness(errors=[MISSING_COLOR]), evidence(), scoring())

        assert decision.verdict == Verdict.REJECT
        assert decision.exit_code == 2
        assert decision.record is None
        assert [(v.field, v.kind) for v in decision.violations] == [
            ("color", ViolationKind.MISSING_REQUIRED_FIELD)
        ]

    def test_critical_evidence_rejects(self):
        decision = decide(completeness(), evidence(MissingEvidence("widthCm", True, "no evidence entry")), scoring())
        assert decision.verdict == Verdict.REJECT
        assert decision.violations[0].kind == ViolationKind.MISSING_EVIDENCE
        assert decision.violations[0].severity == Severity.ERROR

    def test_warning_repairs(self):
        decision = decide(completeness(warnings=[MISSING_WEIGHT]), evidence(), scoring())
        assert decision.verdict == Verdict.REPAIR
        assert decision.exit_code == 1
        assert decision.record is None

    def test_placeholder_repairs(self):
        decision = decide(completeness(autofilled=["weightKg"]), evidence(), scoring())
        assert decision.verdict == Verdict.REPAIR
        assert decision.autofilled == ["weightKg"]
        assert "weightKg: holds a placeholder" in decision.repair_prompt

    def test_advisory_evidence_repairs(self):
        decision = decide(completeness(), evidence(MissingEvidence("noiseDb", False, "no evidence entry")), scoring())
        assert decision.verdict == Verdict.REPAIR
        assert decision.violations[0].severity == Severity.WARNING

    def test_error_wins_over_warning(self):
        decision = decide(completeness(errors=[MISSING_COLOR], warnings=[MISSING_WEIGHT]), evidence(), scoring())
        assert decision.verdict == Verdict.REJECT
        assert [v.field for v in decision.violations] == ["color", "weightKg"]


class TestRepairPrompt:
    """Tests for the field-addressed repair prompt."""

    def test_separates_value_and_evidence_fixes(self):
        decision = decide(
            completeness(warnings=[MISSING_WEIGHT]),
            evidence(MissingEvidence("noiseDb", False, "empty quoted text")),
            scoring(),
            identity={"id": "w-1"},
        )
        prompt = decision.repair_prompt

        assert "Record 'w-1' in category 'widget'" in prompt
        value_part, evidence_part = prompt.split("Evidence fixes:")
        assert "Value fixes:" in value_part
        assert "weightKg" in value_part
        assert "noiseDb" in evidence_part
        assert "noiseDb" not in value_part


class TestDeterminism:
    """Identical inputs give identical decisions."""

    def test_same_inputs_same_decision(self):
        changes = [NormalizationChange("widthCm", "30 mm", 3, "unit mm -> cm")]
        first = decide(completeness(warnings=[MISSING_WEIGHT]), evidence(), scoring(), changes)
        second = decide(completeness(warnings=[MISSING_WEIGHT]), evidence(), scoring(), changes)
        assert first.to_dict() == second.to_dict()

    def test_write_record_carries_provenance(self):
        changes = [NormalizationChange("widthCm", "30 mm", 3, "unit mm -> cm")]
        decision = decide(completeness(), evidence(), scoring(), changes)

        provenance = decision.record["provenance"]
        assert provenance["tier"] == "production"
        assert provenance["normalization"][0]["before"] == "30 mm"
        assert provenance["firedRules"] == ["slim"]
        assert decision.record["tags"] == {"isSlim": True}
