"""Zero-knowledge state trees, Poseidon hashing, and peer, firewall, mempool and wallet bookkeeping for a node."""

__version__ = "0.1.0"

__all__ = [
    "context",
    "field",
    "firewall",
    "grouping",
    "mempool",
    "peers",
    "poseidon",
    "statedb",
    "utils",
    "wallet",
    "zkmodel",
]