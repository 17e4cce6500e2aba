"""Bookkeeping of known peers, candidate peers and punished addresses."""

from __future__ import annotations

import ipaddress
import random
from dataclasses import dataclass
from typing import Any, Iterable, Optional, Union

IpAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]


def _ip(value: Union[str, IpAddress]) -> IpAddress:
    if isinstance(value, (ipaddress.IPv4Address, ipaddress.IPv6Address)):
        return value
    return ipaddress.ip_address(value)


@dataclass(frozen=True)
class PeerAddress:
    """The network address of a node: an IP address and a port."""

    ip: IpAddress
    port: int

    def __post_init__(self) -> None:
        object.__setattr__(self, "ip", _ip(self.ip))
        if isinstance(self.port, bool) or not isinstance(self.port, int) or not 0 <= self.port <= 0xFFFF:
            raise ValueError(f"invalid port: {self.port!r}")

    def __str__(self) -> str:
        if self.ip.version == 6:
            return f"[{self.ip}]:{self.port}"
        return f"{self.ip}:{self.port}"


@dataclass(frozen=True)
class Peer:
    """A peer that answered a handshake, with the chain state it reported."""

    address: PeerAddress
    height: int = 0
    power: int = 0
    pub_key: Any = None
    outdated_states: int = 0


@dataclass
class _Candidate:
    address: PeerAddress
    candidated_since: int


class PeerManager:
    """Tracks active peers, candidates to connect to, and punished IPs."""

    def __init__(
        self,
        self_addr: Optional[PeerAddress],
        bootstrap: Iterable[PeerAddress],
        now: int,
        candidate_remove_threshold: int,
    ) -> None:
        self.candidate_remove_threshold = candidate_remove_threshold
        self.self_addr = self_addr
        self._candidates: dict[IpAddress, _Candidate] = {
            addr.ip: _Candidate(addr, now) for addr in bootstrap
        }
        self._punishments: dict[IpAddress, int] = {}
        self._peers: dict[IpAddress, Peer] = {}

    def refresh(self, now: int) -> None:
        """Lift expired punishments and drop candidates that are too old."""
        self._punishments = {ip: till for ip, till in self._punishments.items() if now <= till}
        self._candidates = {
            ip: cand
            for ip, cand in self._candidates.items()
            if now - cand.candidated_since < self.candidate_remove_threshold
        }

    def is_ip_punished(self, now: int, ip: Union[str, IpAddress]) -> bool:
        till = self._punishments.get(_ip(ip))
        return till is not None and now < till

    def punish_ip_for(self, now: int, ip: Union[str, IpAddress], secs: int) -> None:
        """Forget the IP as peer and candidate and refuse it for ``secs`` seconds."""
        ip = _ip(ip)
        self._candidates.pop(ip, None)
        self._peers.pop(ip, None)
        self._punishments[ip] = now + secs

    def mark_as_candidate(self, now: int, addr: PeerAddress) -> None:
        """Demote an active peer back to a candidate."""
        if addr.ip in self._peers:
            del self._peers[addr.ip]
            self._candidates[addr.ip] = _Candidate(addr, now)

    def get_peers(self) -> list[Peer]:
        return list(self._peers.values())

    def random_candidates(self, count: int) -> list[PeerAddress]:
        """Up to ``count`` distinct candidate addresses chosen at random."""
        candidates = list(self._candidates.values())
        return [c.address for c in random.sample(candidates, min(count, len(candidates)))]

    def random_peers(self, count: int) -> list[Peer]:
        """Up to ``count`` distinct active peers chosen at random."""
        peers = list(self._peers.values())
        return random.sample(peers, min(count, len(peers)))

    def add_candidate(self, now: int, addr: PeerAddress) -> None:
        if self.self_addr == addr:
            return
        if addr.ip not in self._peers:
            self._candidates[addr.ip] = _Candidate(addr, now)

    def add_peer(self, peer: Peer) -> None:
        if self.self_addr == peer.address:
            return
        self._candidates.pop(peer.address.ip, None)
        self._peers[peer.address.ip] = peer