"""Flow records reconstructed from the connection-tracking table.

A `Flow` holds the two directions the kernel tracks for one connection:
`original` as first observed and `reply` as the return traffic, which NAT may
have rewritten. Both are always present; fields missing from the table are
zero (`NO_ADDRESS` for addresses).
"""
from __future__ import annotations

import dataclasses
import ipaddress
import typing as t

Address = t.Union[ipaddress.IPv4Address, ipaddress.IPv6Address]

# sentinel for a missing or unparsable address
NO_ADDRESS: t.Optional[Address] = None


def parse_address(text: t.Optional[str]) -> t.Optional[Address]:
    """Parse a textual IPv4/IPv6 address, returning NO_ADDRESS on failure.

    IPv4-mapped IPv6 addresses are folded to IPv4 so both spellings compare equal.
    """
    if not text:
        return NO_ADDRESS
    try:
        addr = ipaddress.ip_address(text)
    except ValueError:
        return NO_ADDRESS
    if isinstance(addr, ipaddress.IPv6Address) and addr.ipv4_mapped is not None:
        return addr.ipv4_mapped
    return addr


@dataclasses.dataclass(frozen=True)
class Subflow:
    source: t.Optional[Address] = NO_ADDRESS
    destination: t.Optional[Address] = NO_ADDRESS
    sport: int = 0
    dport: int = 0
    bytes: int = 0
    packets: int = 0

    def addresses(self) -> tuple:
        return (self.source, self.destination)


@dataclasses.dataclass(frozen=True)
class Flow:
    original: Subflow = dataclasses.field(default_factory=Subflow)
    reply: Subflow = dataclasses.field(default_factory=Subflow)
    protocol: str = ""
    state: str = ""
    ttl: int = 0
    unreplied: bool = False
    assured: bool = False

    @classmethod
    def build(
        cls,
        original: Subflow,
        reply: Subflow,
        protocol: str,
        state: str,
        ttl: int,
        unreplied: bool = False,
        assured: bool = False,
    ) -> "Flow":
        """Create a Flow, synthesizing the state from the flags when none was reported."""
        return cls(
            original=original,
            reply=reply,
            protocol=protocol,
            state=effective_state(state, unreplied, assured),
            ttl=ttl,
            unreplied=unreplied,
            assured=assured,
        )

    def addresses(self) -> tuple:
        """All four tuple addresses: original src/dst then reply src/dst."""
        return self.original.addresses() + self.reply.addresses()


def effective_state(state: str, unreplied: bool, assured: bool) -> str:
    if state:
        return state
    if unreplied:
        return "UNREPLIED"
    if assured:
        return "ASSURED"
    return ""
