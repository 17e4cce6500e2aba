"""Per-IP rate and traffic limiting for incoming requests."""

from __future__ import annotations

import ipaddress
from collections import Counter
from typing import Union

IpLike = Union[str, ipaddress.IPv4Address, ipaddress.IPv6Address]

_REQUEST_WINDOW = 60
_TRAFFIC_WINDOW = 900


def _ip(value: IpLike) -> Union[ipaddress.IPv4Address, ipaddress.IPv6Address]:
    if isinstance(value, (ipaddress.IPv4Address, ipaddress.IPv6Address)):
        return value
    return ipaddress.ip_address(value)


class Firewall:
    """Limits requests per minute and bytes per 15 minutes for each client IP."""

    def __init__(self, request_count_limit_per_minute: int, traffic_limit_per_15m: int) -> None:
        self.request_count_limit_per_minute = request_count_limit_per_minute
        self.traffic_limit_per_15m = traffic_limit_per_15m
        self._request_count_last_reset = 0
        self._request_count: Counter = Counter()
        self._traffic_last_reset = 0
        self._traffic: Counter = Counter()

    def refresh(self, now: int) -> None:
        """Reset the counters whose window has passed."""
        if now - self._request_count_last_reset > _REQUEST_WINDOW:
            self._request_count.clear()
            self._request_count_last_reset = now
        if now - self._traffic_last_reset > _TRAFFIC_WINDOW:
            self._traffic.clear()
            self._traffic_last_reset = now

    def add_traffic(self, ip: IpLike, amount: int) -> None:
        self._traffic[_ip(ip)] += amount

    def incoming_permitted(self, client_ip: IpLike) -> bool:
        """Whether a request from ``client_ip`` may be served; counts it if so."""
        ip = _ip(client_ip)
        if ip.is_loopback:
            return True
        if self._traffic[ip] > self.traffic_limit_per_15m:
            return False
        if self._request_count[ip] > self.request_count_limit_per_minute:
            return False
        self._request_count[ip] += 1
        return True