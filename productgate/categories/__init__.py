"""
Per-category behavior referenced by ``module:`` in config/categories/*.yaml.

Each module exposes ``derive_tags(specs) -> Dict[str, bool]`` and may expose
``infer_specs(legacy_product)`` plus ``FALLBACK_SPECS`` for the legacy path.
"""
