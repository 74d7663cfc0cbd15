"""In-memory staking derivative and token stream contracts, with their value types and errors."""

__version__ = "0.1.0"
__all__ = ["errors", "types", "ledger", "chain", "streams", "staking"]