"""
Kakeibo - Source Package

A household expense tracker: record expenses against a user-defined
category/tag taxonomy and look at them month by month.

DESIGN PRINCIPLES:
1. Validate before writing - the store never sees bad input
2. Always re-read after a write
3. Aggregates are derived, never stored
4. Every step must be auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Kakeibo Team"
