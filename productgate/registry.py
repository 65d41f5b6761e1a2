"""
Category registry: category id -> capability record.

Each bundle carries the per-category functions and tables every pipeline
stage needs (contract, normalization tables, spec schema, weights, baseline,
compiled rules, tag derivation, optional legacy mapper). Lookup is the only
way stages obtain category behavior; there is no class hierarchy.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from .errors import ConfigError
from .models import CompletenessContract, Tier
from .pipeline.normalizer import NormalizationTables
from .pipeline.rule_engine import Rule

logger = logging.getLogger(__name__)

TagFunction = Callable[[Mapping[str, Any]], Dict[str, bool]]
LegacyMapper = Callable[[Mapping[str, Any]], Tuple[Dict[str, Any], List[str]]]


@dataclass(frozen=True)
class CategoryBundle:
    category_id: str
    label: str
    contract: CompletenessContract
    normalization: NormalizationTables
    spec_schema: Mapping[str, Any]
    weights: Mapping[str, float]
    baseline: Mapping[str, float]
    rules: Tuple[Rule, ...]
    derive_tags: TagFunction
    criteria_labels: Mapping[str, str] = field(default_factory=dict)
    legacy_mapper: Optional[LegacyMapper] = None
    fallback_specs: Mapping[str, Any] = field(default_factory=dict)

    @property
    def tier(self) -> Tier:
        return self.contract.tier


class CategoryRegistry:
    """Lookup table of category bundles."""

    def __init__(self, bundles: Optional[List[CategoryBundle]] = None, config_dir: Optional[Path] = None):
        self._bundles: Dict[str, CategoryBundle] = {}
        self.config_dir = config_dir
        for bundle in bundles or []:
            self.register(bundle)

    def register(self, bundle: CategoryBundle) -> None:
        if bundle.category_id in self._bundles:
            raise ConfigError(f"Duplicate category id: {bundle.category_id}")
        self._bundles[bundle.category_id] = bundle

    def lookup(self, category_id: str) -> CategoryBundle:
        """
        Resolve a category id to its bundle.

        Raises:
            ConfigError: If the category is not registered
        """
        if not isinstance(category_id, str):
            raise ConfigError(f"Category id must be a string, got {type(category_id).__name__}")
        bundle = self._bundles.get(category_id)
        if bundle is None:
            raise ConfigError(f"Unknown category: {category_id!r}")
        return bundle

    def contract_for(self, category_id: str, tier: Optional[Tier] = None) -> CompletenessContract:
        """Contract for a (category, tier) pair; tier defaults to the category's own."""
        contract = self.lookup(category_id).contract
        if tier is None:
            return contract
        try:
            tier = Tier(tier)
        except ValueError:
            raise ConfigError(f"Unknown tier {tier!r} for {category_id}")
        if tier != contract.tier:
            raise ConfigError(
                f"No {tier.value} contract for {category_id} (declared tier: {contract.tier.value})"
            )
        return contract

    def list(self) -> List[str]:
        return sorted(self._bundles)

    def __contains__(self, category_id: str) -> bool:
        return isinstance(category_id, str) and category_id in self._bundles

    def __len__(self) -> int:
        return len(self._bundles)


@lru_cache(maxsize=None)
def _load_default(config_dir: str) -> CategoryRegistry:
    from .config.loader import load_registry
    return load_registry(Path(config_dir))


def get_registry(config_dir: Optional[Path] = None) -> CategoryRegistry:
    """
    Registry loaded from the config directory (cached per directory).

    Raises:
        ConfigError: If any category file is missing or malformed
    """
    from .config.settings import get_config_dir
    return _load_default(str(config_dir or get_config_dir()))
