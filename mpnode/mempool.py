"""Pools of transactions waiting to be included in a block."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class TransactionStats:
    """When a pooled transaction was first seen."""

    first_seen: int


@dataclass
class Mempool:
    """Regular transactions, payment-network deposits, withdrawals and transfers."""

    tx: dict[Any, TransactionStats] = field(default_factory=dict)
    tx_zk: dict[Any, TransactionStats] = field(default_factory=dict)
    zk_tx: dict[Any, TransactionStats] = field(default_factory=dict)
    zk: dict[Any, TransactionStats] = field(default_factory=dict)

    def expire(self, now: int, max_age: int) -> int:
        """Drop regular, deposit and transfer entries older than ``max_age``.

        Withdrawals are left alone. Returns how many entries were dropped.
        """
        removed = 0
        for pool in (self.tx, self.tx_zk, self.zk):
            stale = [tx for tx, stats in pool.items() if now - stats.first_seen > max_age]
            for tx in stale:
                del pool[tx]
            removed += len(stale)
        return removed