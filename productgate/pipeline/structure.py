"""
Structural checks.

The envelope check runs on the raw record before normalization and aborts
with StructuralError. The spec check runs after normalization and reports
one INVALID_VALUE violation per offending field instead of aborting.
"""

from __future__ import annotations

import json
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Mapping

import jsonschema

from ..errors import ConfigError, StructuralError
from ..models import PLACEHOLDER_TOKEN, Severity, Violation, ViolationKind


@lru_cache(maxsize=None)
def load_envelope_schema(config_dir: str) -> Dict[str, Any]:
    path = Path(config_dir) / "schemas" / "raw_input.schema.json"
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigError(f"{path}: cannot load envelope schema ({e})")


def _error_path(error: jsonschema.ValidationError) -> str:
    return ".".join(str(p) for p in error.absolute_path) or "$"


def check_envelope(data: Any, schema: Mapping[str, Any]) -> None:
    """
    Validate the raw record envelope.

    Raises:
        StructuralError: With every schema message, sorted by path
    """
    validator = jsonschema.Draft7Validator(schema)
    errors = sorted(validator.iter_errors(data), key=lambda e: (_error_path(e), e.message))
    if errors:
        messages = [f"{_error_path(e)}: {e.message}" for e in errors]
        raise StructuralError(f"Record failed structural schema ({len(messages)} error(s))", messages)


def is_placeholder(value: Any) -> bool:
    return isinstance(value, str) and value.startswith(PLACEHOLDER_TOKEN)


def check_spec_values(specs: Mapping[str, Any], spec_schema: Mapping[str, Any]) -> List[Violation]:
    """
    Type/enum/range check of normalized specs against the category schema.

    Absent values and placeholders are skipped; completeness owns those.
    """
    checked = {k: v for k, v in specs.items() if v is not None and not is_placeholder(v)}
    validator = jsonschema.Draft7Validator(spec_schema)
    violations: Dict[str, Violation] = {}
    for error in validator.iter_errors(checked):
        field = str(error.absolute_path[0]) if error.absolute_path else "specs"
        if field in violations:
            continue
        violations[field] = Violation(
            field=field,
            kind=ViolationKind.INVALID_VALUE,
            severity=Severity.ERROR,
            detail=f"{checked.get(field)!r}: {error.message}",
        )
    return [violations[k] for k in sorted(violations)]
