"""Registry of the host's own interface addresses.

Membership is exact address equality: an address inside one of the local
subnets but not assigned to an interface is not local. The registry is
built once via `LocalAddresses.discover()` and never refreshed.
"""
from __future__ import annotations

import ipaddress
import logging
import socket
import typing as t

import psutil

from .errors import InterfaceEnumerationError
from .flow import parse_address

log = logging.getLogger("nattrack.local_addrs")

Interface = t.Union[ipaddress.IPv4Interface, ipaddress.IPv6Interface]

_INET_FAMILIES = (socket.AF_INET, socket.AF_INET6)


def _prefixlen(address: str, netmask: t.Optional[str]) -> t.Optional[int]:
    if not netmask:
        return None
    try:
        mask = ipaddress.ip_address(netmask)
    except ValueError:
        # psutil reports some IPv6 masks as "ffff:ffff::/64"
        if "/" in netmask:
            try:
                return int(netmask.rsplit("/", 1)[1])
            except ValueError:
                return None
        return None
    if mask.version != ipaddress.ip_address(address).version:
        return None
    return bin(int(mask)).count("1")


def _make_interface(address: str, netmask: t.Optional[str] = None) -> t.Optional[Interface]:
    address = address.split("%", 1)[0]
    if parse_address(address) is None:
        return None
    prefix = _prefixlen(address, netmask)
    try:
        if prefix is None:
            return ipaddress.ip_interface(address)
        return ipaddress.ip_interface(f"{address}/{prefix}")
    except ValueError:
        return None


class LocalAddresses:
    def __init__(self, entries: t.Iterable[Interface] = ()):
        self._entries: tuple = tuple(entries)
        self._addrs = frozenset(parse_address(str(e.ip)) for e in self._entries)

    @classmethod
    def discover(cls) -> "LocalAddresses":
        """Enumerate every configured interface address on this host.

        Raises InterfaceEnumerationError if psutil fails or nothing is found:
        an empty registry would make every local flow look routed.
        """
        try:
            by_nic = psutil.net_if_addrs()
        except (OSError, psutil.Error) as e:
            raise InterfaceEnumerationError(f"unable to enumerate interfaces: {e}") from e

        entries = []
        for nic in sorted(by_nic):
            for snic in by_nic[nic]:
                if snic.family not in _INET_FAMILIES:
                    continue
                iface = _make_interface(snic.address, snic.netmask)
                if iface is None:
                    log.debug("skipping unparsable address %r on %s", snic.address, nic)
                    continue
                entries.append(iface)

        if not entries:
            raise InterfaceEnumerationError("no IPv4/IPv6 interface addresses found")
        log.debug("discovered %d local addresses on %d interfaces", len(entries), len(by_nic))
        return cls(entries)

    @classmethod
    def from_addresses(cls, addresses: t.Iterable[str]) -> "LocalAddresses":
        """Build a registry from "addr" or "addr/prefix" strings."""
        entries = []
        for text in addresses:
            addr, _, prefix = str(text).partition("/")
            iface = _make_interface(addr)
            if iface is None:
                raise ValueError(f"not an IP address: {text!r}")
            if prefix:
                iface = ipaddress.ip_interface(f"{iface.ip}/{prefix}")
            entries.append(iface)
        return cls(entries)

    @property
    def addresses(self) -> tuple:
        return self._entries

    def is_local(self, address) -> bool:
        if isinstance(address, str):
            address = parse_address(address)
        if address is None:
            return False
        return address in self._addrs

    def __contains__(self, address) -> bool:
        return self.is_local(address)

    def __iter__(self):
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"LocalAddresses({[str(e) for e in self._entries]!r})"
