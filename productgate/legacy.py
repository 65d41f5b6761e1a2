"""
Compatibility path for legacy records that lack structured specs.

Specs are inferred heuristically by the category's legacy mapper and gaps
are filled from the category's conservative FALLBACK_SPECS. The result is
scored with the same rules as verified records but always carries
``isFallback: True``. It is kept apart from placeholder autofill: nothing
here is a placeholder and nothing here passes through the Decision Engine.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Mapping, Optional

from .errors import ConfigError
from .pipeline.normalizer import normalize_specs
from .pipeline.runner import score_specs
from .registry import CategoryRegistry, get_registry

logger = logging.getLogger(__name__)


def infer_legacy_record(
    legacy: Mapping[str, Any],
    category_id: Optional[str] = None,
    registry: Optional[CategoryRegistry] = None,
) -> Dict[str, Any]:
    """
    Build a visibly-marked fallback record from a legacy product.

    Args:
        legacy: Legacy product dict
        category_id: Category (default: ``legacy["categoryId"]``)
        registry: Category registry

    Returns:
        Record dict with specs, tags, scores, ``isFallback`` and a
        ``fallback`` block (missingKeys, inferredCount, sourcesUsed)

    Raises:
        ConfigError: Unknown category, or category without a legacy mapper
    """
    if registry is None:
        registry = get_registry()
    category_id = category_id or legacy.get("categoryId") or ""
    bundle = registry.lookup(category_id)
    if bundle.legacy_mapper is None:
        raise ConfigError(f"Category {category_id} has no legacy mapper")

    inferred, sources_used = bundle.legacy_mapper(legacy)
    specs, _ = normalize_specs(inferred, bundle.normalization)
    missing_keys = [k for k in bundle.fallback_specs if k not in specs]
    merged = {**bundle.fallback_specs, **specs}

    scoring = score_specs(merged, bundle)
    vector = scoring.vector.to_dict()
    if missing_keys:
        logger.warning("%s %s: legacy inference fell back for %s",
                       category_id, legacy.get("id", "-"), ", ".join(missing_keys))

    return {
        "id": legacy.get("id", ""),
        "categoryId": category_id,
        "name": legacy.get("name", ""),
        "specs": merged,
        "tags": vector["tags"],
        "scores": vector["scores"],
        "overallScore": vector["overall"],
        "isFallback": True,
        "fallback": {
            "missingKeys": missing_keys,
            "inferredCount": len(inferred),
            "sourcesUsed": sources_used,
        },
    }
