"""
End-to-end tests for evaluate_record.

Covers the four reference scenarios for robot-vacuum, determinism,
monotonic rejection, structural rejection, invalid values, and the
placeholder policy for autofill categories.
"""

import copy
import json

import pytest

from productgate.errors import ConfigError
from productgate.models import PLACEHOLDER_TOKEN, Severity, Verdict, ViolationKind
from productgate.pipeline.runner import evaluate_record
from productgate.registry import CategoryRegistry


@pytest.fixture
def evaluate(registry, envelope_schema):
    def run(record, **kwargs):
        return evaluate_record(record, registry=registry, envelope_schema=envelope_schema, **kwargs)
    return run


class TestReferenceScenarios:
    """The four robot-vacuum reference scenarios."""

    def test_scenario_a_missing_height_rejects(self, evaluate, vacuum_record):
        record = vacuum_record()
        del record["specs"]["heightCm"]

        decision = evaluate(record)

        assert decision.verdict == Verdict.REJECT
        assert decision.exit_code == 2
        assert [(v.field, v.kind.value) for v in decision.violations] == [
            ("heightCm", "MISSING_REQUIRED_FIELD")
        ]
        assert decision.record is None

    def test_scenario_b_missing_noise_repairs(self, evaluate, vacuum_record):
        record = vacuum_record()
        del record["specs"]["noiseDb"]

        decision = evaluate(record)

        assert decision.verdict == Verdict.REPAIR
        assert decision.exit_code == 1
        assert decision.autofilled == []
        assert [(v.field, v.kind) for v in decision.violations] == [
            ("noiseDb", ViolationKind.MISSING_RECOMMENDED_FIELD)
        ]
        assert "noiseDb" in decision.repair_prompt

    def test_scenario_c_uncited_navigation_rejects(self, evaluate, vacuum_record):
        record = vacuum_record()
        del record["evidence"]["navigationType"]

        decision = evaluate(record)

        assert decision.verdict == Verdict.REJECT
        assert decision.exit_code == 2
        assert [(v.field, v.kind, v.severity) for v in decision.violations] == [
            ("navigationType", ViolationKind.MISSING_EVIDENCE, Severity.ERROR)
        ]
        assert "navigationType" in decision.repair_prompt

    def test_scenario_d_compliant_writes(self, evaluate, vacuum_record):
        decision = evaluate(vacuum_record())

        assert decision.verdict == Verdict.WRITE
        assert decision.exit_code == 0
        assert decision.violations == []

        record = decision.record
        assert record["isFallback"] is False
        assert all(0.0 <= v <= 10.0 for v in record["scores"].values())
        assert record["specs"]["navigationType"] == "lidar"
        assert record["specs"]["heightCm"] == 9.2
        assert record["specs"]["dockType"] == "all-in-one"
        assert record["scores"]["c1"] == 8.8
        assert record["scores"]["c5"] == 7.4
        assert record["tags"]["hasLidar"] is True
        assert record["tags"]["fitsUnderFurniture"] is False
        assert "nav_lidar" in record["provenance"]["firedRules"]


class TestPipelineProperties:
    """Determinism and monotonicity over whole records."""

    def test_deterministic(self, evaluate, vacuum_record):
        record = vacuum_record()
        del record["specs"]["noiseDb"]
        assert evaluate(record).to_dict() == evaluate(copy.deepcopy(record)).to_dict()

    def test_input_not_mutated(self, evaluate, vacuum_record):
        record = vacuum_record()
        before = copy.deepcopy(record)
        evaluate(record)
        assert record == before

    def test_adding_missing_field_never_worsens(self, evaluate, vacuum_record):
        record = vacuum_record()
        del record["specs"]["heightCm"]
        assert evaluate(record).verdict == Verdict.REJECT

        record["specs"]["heightCm"] = "92 mm"
        assert evaluate(record).verdict in (Verdict.REPAIR, Verdict.WRITE)

    def test_field_level_problems_accumulate(self, evaluate, vacuum_record):
        record = vacuum_record()
        del record["specs"]["heightCm"]
        del record["specs"]["noiseDb"]
        del record["evidence"]["suctionPa"]

        decision = evaluate(record)

        assert decision.verdict == Verdict.REJECT
        assert [v.field for v in decision.violations] == ["heightCm", "suctionPa", "noiseDb"]


class TestStructuralAndConfig:
    """Envelope failures reject; unknown categories raise."""

    def test_missing_sources_rejected_structurally(self, evaluate, vacuum_record):
        record = vacuum_record()
        del record["sources"]

        decision = evaluate(record)

        assert decision.verdict == Verdict.REJECT
        assert all(v.kind == ViolationKind.STRUCTURAL_ERROR for v in decision.violations)
        assert any("sources" in v.detail for v in decision.violations)

    def test_non_positive_price_rejected_structurally(self, evaluate, vacuum_record):
        decision = evaluate(vacuum_record(price={"valueBRL": 0}))
        assert decision.verdict == Verdict.REJECT
        assert decision.violations[0].field == "price.valueBRL"

    def test_missing_category_rejected(self, evaluate, vacuum_record):
        record = vacuum_record()
        del record["product"]["categoryId"]
        decision = evaluate(record)
        assert decision.verdict == Verdict.REJECT
        assert decision.violations[0].field == "product.categoryId"

    @pytest.mark.parametrize("category", [["robot-vacuum"], {"id": "robot-vacuum"}, 42])
    def test_non_string_category_rejected(self, evaluate, vacuum_record, category):
        decision = evaluate(vacuum_record(product={"categoryId": category}))

        assert decision.verdict == Verdict.REJECT
        assert [(v.field, v.kind) for v in decision.violations] == [
            ("product.categoryId", ViolationKind.STRUCTURAL_ERROR)
        ]
        assert "expected a string" in decision.repair_prompt

    def test_envelope_schema_follows_registry_config_dir(self, registry, vacuum_record, tmp_path):
        schemas = tmp_path / "schemas"
        schemas.mkdir()
        (schemas / "raw_input.schema.json").write_text(
            json.dumps({"type": "object", "required": ["reviewedBy"]}), encoding="utf-8"
        )
        local = CategoryRegistry([registry.lookup("robot-vacuum")], config_dir=tmp_path)

        decision = evaluate_record(vacuum_record(), registry=local)

        assert decision.verdict == Verdict.REJECT
        assert "reviewedBy" in decision.violations[0].detail

    def test_unknown_category_raises(self, evaluate, vacuum_record):
        with pytest.raises(ConfigError, match="Unknown category"):
            evaluate(vacuum_record(), category_id="hoverboard")

    def test_unconvertible_value_flagged_downstream(self, evaluate, vacuum_record):
        record = vacuum_record()
        record["specs"]["heightCm"] = "tall"

        decision = evaluate(record)

        assert decision.verdict == Verdict.REJECT
        assert [(v.field, v.kind) for v in decision.violations] == [
            ("heightCm", ViolationKind.INVALID_VALUE)
        ]


class TestAutofillCategories:
    """Placeholder policy on categories that allow autofill."""

    def test_air_conditioner_autofills_noise(self, evaluate, ac_record):
        decision = evaluate(ac_record())

        assert decision.verdict == Verdict.REPAIR
        assert decision.autofilled == ["noiseDb"]
        assert decision.violations == []
        assert "noiseDb: holds a placeholder" in decision.repair_prompt

    def test_repair_carries_placeholder_filled_specs(self, evaluate, ac_record):
        decision = evaluate(ac_record())

        assert decision.filled_specs["noiseDb"] == f"{PLACEHOLDER_TOKEN}: provide noiseDb"
        assert decision.filled_specs["btus"] == 12000
        serialized = json.dumps(decision.to_dict())
        assert f"{PLACEHOLDER_TOKEN}: provide noiseDb" in serialized

    def test_write_has_no_filled_specs(self, evaluate, ac_record):
        decision = evaluate(ac_record(specs={"noiseDb": 22}))
        assert decision.verdict == Verdict.WRITE
        assert decision.filled_specs is None

    def test_air_conditioner_normalized(self, evaluate, ac_record):
        record = ac_record(specs={"noiseDb": "22 dB"})
        decision = evaluate(record)

        assert decision.verdict == Verdict.WRITE
        specs = decision.record["specs"]
        assert specs["btus"] == 12000
        assert specs["voltage"] == "220V"
        assert specs["inverterType"] == "dual-inverter"
        assert specs["energyClass"] == "A"
        assert decision.record["tags"]["isQuiet"] is True

    def test_placeholder_never_reaches_write(self, evaluate, ac_record):
        record = ac_record(specs={"noiseDb": f"{PLACEHOLDER_TOKEN}: provide noiseDb"})
        decision = evaluate(record)
        assert decision.verdict == Verdict.REPAIR
        assert decision.autofilled == ["noiseDb"]

    def test_placeholder_in_required_field_rejects(self, evaluate, ac_record):
        record = ac_record(specs={"btus": PLACEHOLDER_TOKEN, "noiseDb": 22})
        decision = evaluate(record)
        assert decision.verdict == Verdict.REJECT
        assert [v.field for v in decision.violations] == ["btus"]

    def test_evidence_critical_field_never_autofilled(self, evaluate, ac_record):
        record = ac_record(specs={"noiseDb": 22})
        del record["specs"]["btus"]
        decision = evaluate(record)
        assert decision.verdict == Verdict.REJECT
        assert "btus" not in decision.autofilled

    def test_missing_energy_label_rejects(self, evaluate, ac_record):
        record = ac_record(specs={"noiseDb": 22})
        del record["energy"]
        decision = evaluate(record)
        assert decision.verdict == Verdict.REJECT
        assert [v.field for v in decision.violations] == ["energy.labelKwhMonth"]
