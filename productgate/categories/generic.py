"""Tags for stub-tier categories (no category-specific facts are derived)."""

from typing import Any, Dict, Mapping


def derive_tags(specs: Mapping[str, Any]) -> Dict[str, bool]:
    # Only echo fields that are already booleans.
    return {name: value for name, value in specs.items() if isinstance(value, bool)}
