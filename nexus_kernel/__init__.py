"""
Nexus Kernel - shared primitives for the domain packages.

- Money and ISO 4217 currency handling with explicit rounding
- Injectable clocks for deterministic time
- Declarative workflow state machines
- Typed exception hierarchy with machine-readable codes
- Structured JSON logging
"""

__version__ = "0.1.0"
