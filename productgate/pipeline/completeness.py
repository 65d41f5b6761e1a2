"""
Completeness contract checker.

Set differences between a (category, tier) contract and the fields a record
actually carries:
- required_fields_product missing -> ERROR (blocks persistence)
- required_fields_mock missing    -> WARNING, or a placeholder when the
                                     contract allows autofill and the field
                                     is not evidence-critical
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

from ..errors import ConfigError
from ..models import (
    PLACEHOLDER_TOKEN,
    CompletenessContract,
    CompletenessResult,
    RawInput,
    Severity,
    Tier,
    Violation,
    ViolationKind,
)
from .structure import is_placeholder

logger = logging.getLogger(__name__)


def get_field_value(name: str, specs: Mapping[str, Any], raw: Optional[RawInput] = None) -> Any:
    """
    Resolve a contract field name.

    Bare names address the normalized specs; dotted names address the record
    envelope (``product.brand``, ``price.valueBRL``, ``energy.labelKwhMonth``).
    """
    if "." not in name:
        return specs.get(name)
    if raw is None:
        return None
    head, _, rest = name.partition(".")
    current: Any = {
        "product": raw.product,
        "price": raw.price,
        "energy": raw.energy,
        "meta": raw.meta,
        "specs": specs,
    }.get(head)
    for part in rest.split("."):
        if not isinstance(current, Mapping):
            return None
        current = current.get(part)
    return current


def is_present(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, str) and not value.strip():
        return False
    if isinstance(value, (list, tuple, dict)) and len(value) == 0:
        return False
    return True


def placeholder_for(field: str) -> str:
    return f"{PLACEHOLDER_TOKEN}: provide {field}"


def check_completeness(
    category_id: str,
    tier: Tier,
    specs: Mapping[str, Any],
    contract: CompletenessContract,
    raw: Optional[RawInput] = None,
) -> CompletenessResult:
    """
    Compare normalized fields against the contract.

    Args:
        category_id: Category being validated
        tier: Tier the caller validates against
        specs: Normalized specs (not modified)
        contract: Contract for (category_id, tier)
        raw: Raw record, for dotted envelope fields

    Returns:
        CompletenessResult with errors, warnings, autofilled field names and
        a ``filled_fields`` copy of specs including any placeholders

    Raises:
        ConfigError: If the contract does not belong to (category_id, tier)
    """
    if contract.category_id != category_id or contract.tier != Tier(tier):
        raise ConfigError(
            f"Contract {contract.category_id}/{contract.tier.value} "
            f"does not match {category_id}/{Tier(tier).value}"
        )

    result = CompletenessResult(category_id=category_id, tier=contract.tier, filled_fields=dict(specs))
    critical = set(contract.evidence_required_fields)

    for name in contract.required_fields_product:
        result.fields_checked += 1
        value = get_field_value(name, specs, raw)
        if is_present(value) and not is_placeholder(value):
            result.fields_present += 1
            continue
        detail = "placeholder cannot satisfy a required field" if is_placeholder(value) else "missing"
        result.errors.append(Violation(name, ViolationKind.MISSING_REQUIRED_FIELD, Severity.ERROR, detail))

    blocking = set(contract.required_fields_product)
    for name in contract.required_fields_mock:
        if name in blocking:
            continue
        result.fields_checked += 1
        value = get_field_value(name, specs, raw)
        if is_placeholder(value):
            result.fields_present += 1
            result.autofilled.append(name)
        elif is_present(value):
            result.fields_present += 1
        elif contract.autofill and name not in critical and "." not in name:
            result.filled_fields[name] = placeholder_for(name)
            result.fields_present += 1
            result.autofilled.append(name)
        else:
            result.warnings.append(
                Violation(name, ViolationKind.MISSING_RECOMMENDED_FIELD, Severity.WARNING, "missing")
            )

    if result.autofilled:
        logger.debug("%s: placeholders in %s", category_id, ", ".join(result.autofilled))
    return result
