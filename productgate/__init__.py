"""
Product Gate - deterministic product record validation.

Turns authored product records into a verdict (WRITE, REPAIR, REJECT) with
a field-addressed repair prompt, or into a normalized and scored record.

Modules:
    registry - Category id -> capability bundle lookup
    pipeline - Normalizer, completeness, evidence, rules and decision stages
    legacy - Heuristic fallback records for legacy products
    qa - Golden-set snapshots and batch sweeps
    cli - Command-line interface entrypoints
"""

__version__ = "0.3.0"
