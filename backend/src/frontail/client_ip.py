"""Client address lookup for connection logs."""
from __future__ import annotations

from typing import Any, Mapping, Optional


def client_address(headers: Mapping[str, str], client: Optional[Any] = None) -> str:
    forwarded = (headers.get("x-forwarded-for") or "").strip()
    if forwarded:
        first_hop = forwarded.split(",", 1)[0].strip()
        if first_hop:
            return first_hop
    real_ip = (headers.get("x-real-ip") or "").strip()
    if real_ip:
        return real_ip
    host = getattr(client, "host", None)
    return host or "unknown"
