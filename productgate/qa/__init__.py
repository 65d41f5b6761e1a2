"""
Quality assurance over derived output.

Modules:
    golden - Golden-set snapshots with hashing and drift diffs
    sweep - Concurrent batch validation with a summary report
"""

from . import golden
from . import sweep
