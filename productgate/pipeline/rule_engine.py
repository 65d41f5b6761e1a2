"""Deterministic condition -> score-delta rules over normalized specs.

Rules are data: each one is compiled once into a pure condition plus a
(criterion, delta) modifier. Evaluation is a single pass over the rule list
against the normalized specs only, so no rule can observe another rule's
output and there is nothing to iterate to a fixpoint.

Conditions are False when the field is absent or not comparable -- no
fabrication.
"""

import logging
import math
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from ..errors import ConfigError
from ..models import CRITERIA, SCORE_MAX, SCORE_MIN

logger = logging.getLogger(__name__)

Condition = Callable[[Mapping[str, Any]], bool]


@dataclass(frozen=True)
class Rule:
    id: str
    field: str
    condition: Condition
    criterion: str
    delta: float


def _as_number(value: Any) -> Optional[float]:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        return float(value)
    return None


def _numeric_condition(field: str, compare: Callable[[float], bool]) -> Condition:
    def condition(specs: Mapping[str, Any]) -> bool:
        number = _as_number(specs.get(field))
        return number is not None and compare(number)
    return condition


def _threshold(rule_id: str, value: Any) -> float:
    number = _as_number(value)
    if number is None:
        raise ConfigError(f"Rule {rule_id}: threshold must be a number, got {value!r}")
    return number


def build_condition(rule_id: str, when: Mapping[str, Any]) -> Condition:
    """
    Compile a ``when`` clause into a pure predicate over specs.

    Supported ops:
    - eq / ne: value equality (string compare is exact on canonical tokens)
    - in / not_in: membership in a list
    - gt / gte / lt / lte: numeric threshold
    - between: inclusive [low, high]
    - truthy / falsy: boolean True / boolean False (not merely falsy values)
    - present: field has a non-empty value

    Raises:
        ConfigError: If the op is unknown or its value has the wrong shape
    """
    field = when.get("field")
    op = when.get("op")
    value = when.get("value")
    if not field:
        raise ConfigError(f"Rule {rule_id}: missing condition field")

    if op == "eq":
        return lambda specs: field in specs and specs[field] == value
    if op == "ne":
        return lambda specs: field in specs and specs[field] is not None and specs[field] != value
    if op in ("in", "not_in"):
        if not isinstance(value, list):
            raise ConfigError(f"Rule {rule_id}: op '{op}' requires a list value")
        members = tuple(value)
        if op == "in":
            return lambda specs: specs.get(field) in members
        return lambda specs: specs.get(field) is not None and specs.get(field) not in members
    if op == "gt":
        threshold = _threshold(rule_id, value)
        return _numeric_condition(field, lambda n: n > threshold)
    if op == "gte":
        threshold = _threshold(rule_id, value)
        return _numeric_condition(field, lambda n: n >= threshold)
    if op == "lt":
        threshold = _threshold(rule_id, value)
        return _numeric_condition(field, lambda n: n < threshold)
    if op == "lte":
        threshold = _threshold(rule_id, value)
        return _numeric_condition(field, lambda n: n <= threshold)
    if op == "between":
        if not isinstance(value, list) or len(value) != 2:
            raise ConfigError(f"Rule {rule_id}: op 'between' requires [low, high]")
        low, high = _threshold(rule_id, value[0]), _threshold(rule_id, value[1])
        if low > high:
            raise ConfigError(f"Rule {rule_id}: between bounds reversed ({low} > {high})")
        return _numeric_condition(field, lambda n: low <= n <= high)
    if op == "truthy":
        return lambda specs: specs.get(field) is True
    if op == "falsy":
        return lambda specs: specs.get(field) is False
    if op == "present":
        return lambda specs: specs.get(field) not in (None, "", [], {})

    raise ConfigError(f"Rule {rule_id}: unknown op '{op}'")


def compile_rules(raw_rules: Iterable[Mapping[str, Any]]) -> Tuple[Rule, ...]:
    """
    Compile rule definitions, preserving declaration order.

    Raises:
        ConfigError: On duplicate ids, unknown criteria or bad conditions
    """
    compiled: List[Rule] = []
    seen = set()
    for raw in raw_rules:
        rule_id = raw.get("id")
        if not rule_id:
            raise ConfigError("Rule missing id")
        if rule_id in seen:
            raise ConfigError(f"Duplicate rule id: {rule_id}")
        seen.add(rule_id)

        modifier = raw.get("modifier") or {}
        criterion = modifier.get("criterion")
        if criterion not in CRITERIA:
            raise ConfigError(f"Rule {rule_id}: unknown criterion {criterion!r}")
        delta = _as_number(modifier.get("delta"))
        if delta is None:
            raise ConfigError(f"Rule {rule_id}: delta must be a number")

        when = raw.get("when") or {}
        compiled.append(Rule(
            id=rule_id,
            field=str(when.get("field", "")),
            condition=build_condition(rule_id, when),
            criterion=criterion,
            delta=delta,
        ))
    return tuple(compiled)


def clamp(value: float, low: float = SCORE_MIN, high: float = SCORE_MAX) -> float:
    return max(low, min(high, value))


def apply_rules(
    specs: Mapping[str, Any],
    baseline: Mapping[str, float],
    rules: Sequence[Rule],
) -> Tuple[Dict[str, float], List[str]]:
    """
    Apply every rule whose condition holds to the baseline vector.

    Deltas are summed per criterion with ``math.fsum`` so the totals do not
    depend on declaration order; only the fired-rule log does.

    Args:
        specs: Normalized specs
        baseline: Baseline score per criterion (c1..c10)
        rules: Compiled rules in declared order

    Returns:
        (scores clamped to [0, 10], ids of fired rules in declared order)
    """
    deltas: Dict[str, List[float]] = {c: [] for c in CRITERIA}
    fired: List[str] = []

    for rule in rules:
        if rule.condition(specs):
            deltas[rule.criterion].append(rule.delta)
            fired.append(rule.id)

    scores = {
        c: clamp(round(math.fsum([float(baseline[c])] + deltas[c]), 4))
        for c in CRITERIA
    }
    logger.debug("Rules fired: %s", ", ".join(fired) or "(none)")
    return scores, fired
