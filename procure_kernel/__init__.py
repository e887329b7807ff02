"""
Procure Kernel

Shared foundation for the procurement document engine:
- Typed exception hierarchy with machine-readable codes
- Structured JSON logging
- Deterministic clock
- Decimal money helpers and document value objects
- Workflow (state machine) value objects
"""

__version__ = "0.1.0"
