"""
Category table loading and validation.

Loads ``config/categories/*.yaml`` (one production category per file) and
``config/categories/_stubs.yaml`` (stub-tier templates), validates each
document against its JSON Schema, then runs the consistency checks a schema
cannot express. Any failure is a ConfigError naming the offending file.
"""

from __future__ import annotations

import importlib
import json
import logging
import math
from pathlib import Path
from typing import Any, Dict, List, Mapping

import jsonschema
import yaml

from ..errors import ConfigError
from ..models import CRITERIA, SCORE_MAX, SCORE_MIN, CompletenessContract, Tier
from ..pipeline.normalizer import NormalizationTables
from ..pipeline.rule_engine import compile_rules
from ..registry import CategoryBundle, CategoryRegistry

logger = logging.getLogger(__name__)

WEIGHT_TOLERANCE = 0.01
STUBS_FILE = "_stubs.yaml"
CATEGORY_MODULE_PACKAGE = "productgate.categories"


def load_yaml(path: Path) -> Dict[str, Any]:
    """
    Load one YAML document.

    Raises:
        ConfigError: If the file is missing, unparseable or not a mapping
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise ConfigError(f"{path}: cannot read ({e})")
    except yaml.YAMLError as e:
        raise ConfigError(f"{path}: invalid YAML ({e})")
    if not isinstance(data, dict):
        raise ConfigError(f"{path}: expected a mapping at top level")
    return data


def load_schema(config_dir: Path, name: str) -> Dict[str, Any]:
    path = config_dir / "schemas" / name
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigError(f"{path}: cannot load schema ({e})")


def validate_against_schema(document: Mapping[str, Any], schema: Mapping[str, Any], source: str) -> None:
    try:
        jsonschema.validate(document, schema)
    except jsonschema.ValidationError as e:
        path = ".".join(str(p) for p in e.absolute_path)
        where = f" at {path}" if path else ""
        raise ConfigError(f"{source}: schema validation failed{where}: {e.message}")


def check_weights(weights: Mapping[str, float], source: str) -> None:
    """
    Declared criterion weights must cover c1..c10 and sum to 1.0 (±1%).

    Raises:
        ConfigError: If the invariant does not hold
    """
    missing = [c for c in CRITERIA if c not in weights]
    if missing:
        raise ConfigError(f"{source}: missing criteria {missing}")
    total = math.fsum(weights[c] for c in CRITERIA)
    if abs(total - 1.0) > WEIGHT_TOLERANCE:
        raise ConfigError(f"{source}: criterion weights sum to {total:.4f}, expected 1.0 ±{WEIGHT_TOLERANCE}")


def check_baseline(baseline: Mapping[str, float], source: str) -> None:
    for c in CRITERIA:
        value = baseline.get(c)
        if value is None or not (SCORE_MIN <= value <= SCORE_MAX):
            raise ConfigError(f"{source}: baseline {c}={value} outside [{SCORE_MIN}, {SCORE_MAX}]")


def build_contract(category_id: str, raw: Mapping[str, Any], source: str) -> CompletenessContract:
    """
    Build a contract and enforce evidence ⊆ required.

    Raises:
        ConfigError: If an evidence field is not a required field
    """
    contract = CompletenessContract(
        category_id=category_id,
        tier=Tier(raw["tier"]),
        required_fields_product=tuple(raw.get("required_fields_product") or ()),
        required_fields_mock=tuple(raw.get("required_fields_mock") or ()),
        evidence_required_fields=tuple(raw.get("evidence_required_fields") or ()),
        evidence_advisory_fields=tuple(raw.get("evidence_advisory_fields") or ()),
        autofill=bool(raw.get("autofill", False)),
    )
    required = set(contract.required_fields)
    for name in contract.evidence_required_fields + contract.evidence_advisory_fields:
        if name not in required:
            raise ConfigError(f"{source}: evidence field '{name}' is not a required field")
    overlap = set(contract.evidence_required_fields) & set(contract.evidence_advisory_fields)
    if overlap:
        raise ConfigError(f"{source}: fields both critical and advisory: {sorted(overlap)}")
    return contract


def _import_category_module(name: str, source: str):
    try:
        return importlib.import_module(f"{CATEGORY_MODULE_PACKAGE}.{name}")
    except ImportError as e:
        raise ConfigError(f"{source}: category module '{name}' not importable ({e})")


def build_bundle(document: Mapping[str, Any], source: str) -> CategoryBundle:
    """Turn a validated category document into a registry bundle."""
    category_id = document["category_id"]
    criteria = document["criteria"]
    weights = {c: float(spec["weight"]) for c, spec in criteria.items()}
    baseline = {c: float(spec["baseline"]) for c, spec in criteria.items()}
    check_weights(weights, source)
    check_baseline(baseline, source)

    try:
        jsonschema.Draft7Validator.check_schema(document["spec_schema"])
    except jsonschema.SchemaError as e:
        raise ConfigError(f"{source}: invalid spec_schema ({e.message})")

    try:
        rules = compile_rules(document.get("rules") or [])
    except ConfigError as e:
        raise ConfigError(f"{source}: {e}")

    module = _import_category_module(document["module"], source)
    derive_tags = getattr(module, "derive_tags", None)
    if not callable(derive_tags):
        raise ConfigError(f"{source}: module '{document['module']}' has no derive_tags()")

    return CategoryBundle(
        category_id=category_id,
        label=document.get("label", category_id),
        contract=build_contract(category_id, document["contract"], source),
        normalization=NormalizationTables.from_config(document.get("normalization") or {}),
        spec_schema=document["spec_schema"],
        weights=weights,
        baseline=baseline,
        rules=rules,
        derive_tags=derive_tags,
        criteria_labels={c: spec.get("label", c) for c, spec in criteria.items()},
        legacy_mapper=getattr(module, "infer_specs", None),
        fallback_specs=dict(getattr(module, "FALLBACK_SPECS", {})),
    )


def build_stub_bundles(document: Mapping[str, Any], source: str) -> List[CategoryBundle]:
    """
    Expand stub templates into bundles.

    Stub contract: shared base fields plus every spec field required;
    the group's recommended fields are warnings; the first N spec fields
    are evidence-critical. Equal weights, flat baseline, no rules.
    """
    defaults = document["defaults"]
    groups = document["groups"]
    evidence_count = defaults["evidence_fields_per_category"]
    weights = {c: 1.0 / len(CRITERIA) for c in CRITERIA}
    baseline = {c: float(defaults["baseline"]) for c in CRITERIA}
    check_baseline(baseline, source)
    generic = _import_category_module("generic", source)

    bundles = []
    for entry in document["categories"]:
        category_id = entry["category_id"]
        group = groups.get(entry["group"])
        if group is None:
            raise ConfigError(f"{source}: {category_id} references unknown group '{entry['group']}'")
        spec_fields = list(entry["spec_fields"])
        contract = build_contract(category_id, {
            "tier": Tier.STUB.value,
            "required_fields_product": list(defaults["required_fields_product"]) + spec_fields,
            "required_fields_mock": list(defaults["required_fields_mock"]) + list(group["recommended"]),
            "evidence_required_fields": spec_fields[:evidence_count],
        }, f"{source}:{category_id}")

        bundles.append(CategoryBundle(
            category_id=category_id,
            label=entry.get("label", category_id),
            contract=contract,
            normalization=NormalizationTables.from_config({"booleans": entry.get("booleans") or []}),
            spec_schema={"type": "object"},
            weights=weights,
            baseline=baseline,
            rules=(),
            derive_tags=generic.derive_tags,
        ))
    return bundles


def load_registry(config_dir: Path) -> CategoryRegistry:
    """
    Load every category under ``config_dir/categories``.

    Raises:
        ConfigError: On any malformed file, duplicate id or broken invariant
    """
    categories_dir = config_dir / "categories"
    if not categories_dir.is_dir():
        raise ConfigError(f"Category directory not found: {categories_dir}")

    category_schema = load_schema(config_dir, "category.schema.json")
    registry = CategoryRegistry(config_dir=config_dir)

    for path in sorted(categories_dir.glob("*.yaml")):
        if path.name == STUBS_FILE:
            continue
        document = load_yaml(path)
        validate_against_schema(document, category_schema, str(path))
        registry.register(build_bundle(document, str(path)))

    stubs_path = categories_dir / STUBS_FILE
    if stubs_path.exists():
        document = load_yaml(stubs_path)
        validate_against_schema(document, load_schema(config_dir, "stubs.schema.json"), str(stubs_path))
        for bundle in build_stub_bundles(document, str(stubs_path)):
            registry.register(bundle)

    logger.info("Loaded %d categories from %s", len(registry), categories_dir)
    return registry
