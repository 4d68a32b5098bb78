"""Track development progress across machines through a shared update ledger."""

__version__ = "0.1.0"

__all__ = ["__version__"]
