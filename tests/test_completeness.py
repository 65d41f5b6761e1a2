"""
Tests for the completeness contract checker.
"""

import pytest

from productgate.errors import ConfigError
from productgate.models import (
    PLACEHOLDER_TOKEN,
    CompletenessContract,
    RawInput,
    Severity,
    Tier,
    ViolationKind,
)
from productgate.pipeline.completeness import check_completeness, get_field_value, is_present


def make_contract(autofill=False, tier=Tier.PRODUCTION):
    return CompletenessContract(
        category_id="widget",
        tier=tier,
        required_fields_product=("product.brand", "widthCm", "color"),
        required_fields_mock=("weightKg", "material", "price.sourceUrl"),
        evidence_required_fields=("widthCm", "material"),
        autofill=autofill,
    )


def make_raw(**product):
    return RawInput.from_dict({
        "product": {"name": "W", "brand": "Acme", "model": "W1", **product},
        "price": {"valueBRL": 10.0, "sourceUrl": "https://shop.example/w1"},
        "sources": [{"url": "https://acme.example"}],
    }, "widget")


class TestFieldAddressing:
    """Tests for bare vs dotted field names."""

    def test_bare_name_reads_specs(self):
        assert get_field_value("widthCm", {"widthCm": 3}) == 3

    def test_dotted_name_reads_envelope(self):
        raw = make_raw()
        assert get_field_value("product.brand", {}, raw) == "Acme"
        assert get_field_value("price.sourceUrl", {}, raw) == "https://shop.example/w1"
        assert get_field_value("energy.labelKwhMonth", {}, raw) is None

    def test_dotted_name_without_raw(self):
        assert get_field_value("product.brand", {}) is None

    @pytest.mark.parametrize("value,expected", [
        (None, False), ("", False), ("   ", False), ([], False), ({}, False),
        (0, True), (False, True), ("x", True),
    ])
    def test_is_present(self, value, expected):
        assert is_present(value) is expected


class TestCheckCompleteness:
    """Tests for contract set differences."""

    def test_complete_record(self):
        specs = {"widthCm": 3, "color": "red", "weightKg": 1.2, "material": "steel"}
        result = check_completeness("widget", Tier.PRODUCTION, specs, make_contract(), make_raw())

        assert result.errors == []
        assert result.warnings == []
        assert result.autofilled == []
        assert result.completeness_percent == 100

    def test_missing_product_field_is_error(self):
        specs = {"widthCm": 3, "weightKg": 1.2, "material": "steel"}
        result = check_completeness("widget", Tier.PRODUCTION, specs, make_contract(), make_raw())

        assert [(v.field, v.kind, v.severity) for v in result.errors] == [
            ("color", ViolationKind.MISSING_REQUIRED_FIELD, Severity.ERROR)
        ]

    def test_missing_mock_field_is_warning(self):
        specs = {"widthCm": 3, "color": "red", "material": "steel"}
        result = check_completeness("widget", Tier.PRODUCTION, specs, make_contract(), make_raw())

        assert result.errors == []
        assert [(v.field, v.kind, v.severity) for v in result.warnings] == [
            ("weightKg", ViolationKind.MISSING_RECOMMENDED_FIELD, Severity.WARNING)
        ]

    def test_errors_accumulate(self):
        result = check_completeness("widget", Tier.PRODUCTION, {}, make_contract(), make_raw(brand=""))
        assert [v.field for v in result.errors] == ["product.brand", "widthCm", "color"]
        assert [v.field for v in result.warnings] == ["weightKg", "material"]
        assert result.completeness_percent == 17

    def test_specs_not_modified(self):
        specs = {"widthCm": 3, "color": "red"}
        check_completeness("widget", Tier.PRODUCTION, specs, make_contract(autofill=True), make_raw())
        assert specs == {"widthCm": 3, "color": "red"}

    def test_contract_mismatch_is_config_error(self):
        with pytest.raises(ConfigError):
            check_completeness("other", Tier.PRODUCTION, {}, make_contract(), make_raw())
        with pytest.raises(ConfigError):
            check_completeness("widget", Tier.STUB, {}, make_contract(), make_raw())


class TestAutofill:
    """Tests for the placeholder policy."""

    def test_autofill_fills_non_critical_mock_field(self):
        specs = {"widthCm": 3, "color": "red"}
        result = check_completeness("widget", Tier.PRODUCTION, specs, make_contract(autofill=True), make_raw())

        assert result.autofilled == ["weightKg"]
        assert result.filled_fields["weightKg"].startswith(PLACEHOLDER_TOKEN)

    def test_autofill_never_touches_evidence_fields(self):
        specs = {"widthCm": 3, "color": "red"}
        result = check_completeness("widget", Tier.PRODUCTION, specs, make_contract(autofill=True), make_raw())

        assert "material" not in result.autofilled
        assert "material" not in result.filled_fields
        assert [v.field for v in result.warnings] == ["material"]

    def test_autofill_never_touches_envelope_fields(self):
        raw = RawInput.from_dict({
            "product": {"name": "W", "brand": "Acme", "model": "W1"},
            "price": {"valueBRL": 10.0},
            "sources": [{"url": "https://acme.example"}],
        }, "widget")
        specs = {"widthCm": 3, "color": "red", "weightKg": 1, "material": "steel"}
        result = check_completeness("widget", Tier.PRODUCTION, specs, make_contract(autofill=True), raw)

        assert result.autofilled == []
        assert [v.field for v in result.warnings] == ["price.sourceUrl"]

    def test_existing_placeholder_reported(self):
        specs = {"widthCm": 3, "color": "red", "weightKg": f"{PLACEHOLDER_TOKEN}: provide weightKg",
                 "material": "steel"}
        result = check_completeness("widget", Tier.PRODUCTION, specs, make_contract(), make_raw())
        assert result.autofilled == ["weightKg"]

    def test_placeholder_cannot_satisfy_required_field(self):
        specs = {"widthCm": 3, "color": PLACEHOLDER_TOKEN, "weightKg": 1, "material": "steel"}
        result = check_completeness("widget", Tier.PRODUCTION, specs, make_contract(), make_raw())
        assert [v.field for v in result.errors] == ["color"]
