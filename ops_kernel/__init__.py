"""
Operations Kernel -- workflow core for purchase requests and production orders.

Provides:
- A generic status transition engine driven by per-domain workflow definitions
- Append-only history ledgers per entity type
- Consecutive code allocation from a settings-backed counter
- Read-only selectors for active/archived listings and audit export
"""

__version__ = "0.1.0"
