"""Shared state of a running node and the housekeeping done on it."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from .firewall import Firewall
from .mempool import Mempool
from .peers import PeerAddress, PeerManager
from .utils import local_timestamp as _system_timestamp

log = logging.getLogger(__name__)

_U32_MASK = 0xFFFF_FFFF


@dataclass(frozen=True)
class NodeOptions:
    """Tunable limits and timings of a node; durations are in seconds."""

    tx_max_time_alive: Optional[int]
    heartbeat_interval: float
    num_peers: int
    max_blocks_fetch: int
    outdated_heights_threshold: int
    default_punish: int
    no_response_punish: int
    invalid_data_punish: int
    incorrect_power_punish: int
    max_punish: int
    state_unavailable_ban_time: int
    candidate_remove_threshold: int


@dataclass
class NodeContext:
    """Everything a node keeps between requests and heartbeats.

    ``blockchain``, when given, must offer ``cleanup_mempool``,
    ``cleanup_mpn_transaction_mempool``, ``cleanup_mpn_deposit_mempool`` and
    ``cleanup_mpn_withdraw_mempool``, each pruning the pool it is handed in place.
    """

    opts: NodeOptions
    network: str
    peer_manager: PeerManager
    address: Optional[PeerAddress] = None
    blockchain: Any = None
    wallet: Any = None
    outgoing: Any = None
    firewall: Optional[Firewall] = None
    miner_token: Optional[str] = None
    social_profiles: Any = None
    timestamp_offset: int = 0
    shutdown: bool = False
    miner_puzzle: Any = None
    mempool: Mempool = field(default_factory=Mempool)
    outdated_since: Optional[int] = None
    banned_headers: dict[Any, int] = field(default_factory=dict)
    clock: Callable[[], int] = field(default=_system_timestamp, repr=False)

    def local_timestamp(self) -> int:
        """Seconds since the epoch by the local clock."""
        return self.clock()

    def network_timestamp(self) -> int:
        """The local time corrected by the offset agreed with the network."""
        return (self.local_timestamp() + self.timestamp_offset) & _U32_MASK

    def punish_bad_behavior(self, bad_peer: PeerAddress, secs: int, reason: str) -> None:
        log.warning("Peer %s is behaving bad! Reason: %s", bad_peer, reason)
        log.warning("Punishing %s for %s seconds...", bad_peer, secs)
        self.peer_manager.punish_ip_for(self.local_timestamp(), bad_peer.ip, secs)

    def punish_unresponsive(self, bad_peer: PeerAddress) -> None:
        log.warning("Peer %s is unresponsive!", bad_peer)
        log.warning("Moving peer %s to the candidate list!", bad_peer)
        self.peer_manager.mark_as_candidate(self.local_timestamp(), bad_peer)

    def refresh(self) -> None:
        """Expire punishments, bans, rate counters and stale pooled transactions."""
        now = self.local_timestamp()
        self.peer_manager.refresh(now)

        ban_time = self.opts.state_unavailable_ban_time
        self.banned_headers = {
            header: banned_at
            for header, banned_at in self.banned_headers.items()
            if now - banned_at <= ban_time
        }

        if self.firewall is not None:
            self.firewall.refresh(now)

        if self.blockchain is not None:
            self.blockchain.cleanup_mempool(self.mempool.tx)
            self.blockchain.cleanup_mpn_transaction_mempool(self.mempool.zk)
            self.blockchain.cleanup_mpn_deposit_mempool(self.mempool.tx_zk)
            self.blockchain.cleanup_mpn_withdraw_mempool(self.mempool.zk_tx)

        if self.opts.tx_max_time_alive is not None:
            self.mempool.expire(now, self.opts.tx_max_time_alive)

    def on_update(self) -> None:
        """Called whenever the chain is extended or rolled back."""
        self.outdated_since = None
        self.miner_puzzle = None