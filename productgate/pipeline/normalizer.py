"""
Per-category field coercion: aliases, units and loose booleans.

``normalize_specs`` is a pure function of (specs, tables). It never mutates
its input and never drops a value it cannot convert: such values pass
through unchanged and the category spec schema flags them later. Every
canonical output maps to itself, so a second pass records no changes.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple

from ..models import NormalizationChange

logger = logging.getLogger(__name__)

TRUTHY = {"true", "yes", "y", "1", "on", "sim", "s", "x"}
FALSY = {"false", "no", "n", "0", "off", "não", "nao"}

_QUANTITY_RE = re.compile(r"([-+]?\d[\d.,]*)([kK]\b)?\s*([A-Za-z]+|\"|'')?")
_US_THOUSANDS_RE = re.compile(r"\d{1,3}(,\d{3})+")
_BR_THOUSANDS_RE = re.compile(r"\d{1,3}(\.\d{3})+")


@dataclass(frozen=True)
class UnitTable:
    canonical: str
    factors: Mapping[str, float]


@dataclass(frozen=True)
class NormalizationTables:
    """Alias, unit and boolean tables for one category."""

    aliases: Mapping[str, Mapping[str, str]] = field(default_factory=dict)
    units: Mapping[str, UnitTable] = field(default_factory=dict)
    booleans: Tuple[str, ...] = ()

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> "NormalizationTables":
        """
        Build lookup tables from the ``normalization`` block of a category.

        Alias lists are inverted into ``field -> {alias_key: canonical}``;
        each canonical token is also registered as an alias of itself.
        """
        aliases: Dict[str, Dict[str, str]] = {}
        for field_name, groups in (config.get("aliases") or {}).items():
            index: Dict[str, str] = {}
            for canonical, variants in groups.items():
                canonical = str(canonical)
                for variant in [canonical] + list(variants or []):
                    index[_alias_key(variant)] = canonical
            aliases[field_name] = index

        units = {
            field_name: UnitTable(
                canonical=str(table["canonical"]).lower(),
                factors={str(k).lower(): float(v) for k, v in table["factors"].items()},
            )
            for field_name, table in (config.get("units") or {}).items()
        }
        return cls(aliases=aliases, units=units, booleans=tuple(config.get("booleans") or ()))


def _alias_key(value: Any) -> str:
    return " ".join(str(value).casefold().split())


def parse_number_loose(text: str) -> Optional[float]:
    """
    Parse a number tolerant of thousands/decimal separators.

    "12.000" and "12,000" -> 12000; "12,5" and "12.5" -> 12.5;
    "1.234,56" -> 1234.56; "1,234.56" -> 1234.56.
    """
    s = text.strip().replace(" ", "")
    if not s:
        return None
    if "," in s and "." in s:
        if s.rfind(",") > s.rfind("."):
            s = s.replace(".", "").replace(",", ".")
        else:
            s = s.replace(",", "")
    elif "," in s:
        s = s.replace(",", "") if _US_THOUSANDS_RE.fullmatch(s.lstrip("+-")) else s.replace(",", ".")
    elif _BR_THOUSANDS_RE.fullmatch(s.lstrip("+-")):
        s = s.replace(".", "")
    try:
        return float(s)
    except ValueError:
        return None


def _tidy_number(value: float) -> Any:
    value = round(value, 4)
    return int(value) if value.is_integer() else value


def coerce_quantity(value: Any, table: UnitTable) -> Tuple[Any, Optional[str]]:
    """
    Convert "<number><unit>" to the canonical unit.

    A ``k`` directly after the number multiplies by 1000 ("12k BTU").
    The unit may also be an inch mark (``"`` or ``''``).

    Returns:
        (new_value, reason) or (value, None) when untouched/unconvertible
    """
    if isinstance(value, bool) or not isinstance(value, str):
        return value, None
    match = _QUANTITY_RE.fullmatch(value.strip())
    if not match:
        logger.debug("Passing through unparseable quantity %r", value)
        return value, None
    number = parse_number_loose(match.group(1))
    if number is not None and match.group(2):
        number *= 1000
    unit = (match.group(3) or table.canonical).lower()
    factor = 1.0 if unit == table.canonical else table.factors.get(unit)
    if number is None or factor is None:
        logger.debug("Passing through quantity %r (unknown unit %s)", value, unit)
        return value, None
    reason = "numeric parse" if unit == table.canonical else f"unit {unit} -> {table.canonical}"
    return _tidy_number(number * factor), reason


def coerce_boolean(value: Any) -> Tuple[Any, Optional[str]]:
    if isinstance(value, bool):
        return value, None
    if isinstance(value, int) and value in (0, 1):
        return value == 1, "boolean coercion"
    if isinstance(value, str):
        key = value.strip().casefold()
        if key in TRUTHY:
            return True, "boolean coercion"
        if key in FALSY:
            return False, "boolean coercion"
    return value, None


def canonicalize_alias(value: Any, index: Mapping[str, str]) -> Tuple[Any, Optional[str]]:
    if isinstance(value, bool) or not isinstance(value, (str, int)):
        return value, None
    canonical = index.get(_alias_key(value))
    if canonical is None or canonical == value:
        return value, None
    return canonical, "alias canonicalized"


def normalize_specs(
    specs: Mapping[str, Any],
    tables: NormalizationTables,
) -> Tuple[Dict[str, Any], List[NormalizationChange]]:
    """
    Normalize a raw specs map for one category.

    Args:
        specs: Raw field map (not modified)
        tables: Category alias/unit/boolean tables

    Returns:
        (normalized field map, ordered change list)
    """
    normalized: Dict[str, Any] = {}
    changes: List[NormalizationChange] = []

    for name, value in specs.items():
        if name in tables.booleans:
            new_value, reason = coerce_boolean(value)
        elif name in tables.units:
            new_value, reason = coerce_quantity(value, tables.units[name])
        elif name in tables.aliases:
            new_value, reason = canonicalize_alias(value, tables.aliases[name])
        else:
            new_value, reason = value, None

        if reason is not None:
            changes.append(NormalizationChange(field=name, before=value, after=new_value, reason=reason))
        normalized[name] = new_value

    return normalized, changes
