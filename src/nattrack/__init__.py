"""nattrack: inspect the kernel connection-tracking table and classify NAT flows."""
from __future__ import annotations

__version__ = "0.1.0"

from .errors import InterfaceEnumerationError, NattrackError, SnapshotError
from .flow import NO_ADDRESS, Flow, Subflow
from .local_addrs import LocalAddresses
from .parser import parse_line, parse_table
from .classify import classify_flow, is_dnat, is_local, is_routed, is_snat
from .filters import TypeFilter, filter_by_protocol, filter_by_state, filter_by_type, filter_flows
from .conntrack import DEFAULT_SOURCE, snapshot

__all__ = [
    "__version__",
    "DEFAULT_SOURCE",
    "NO_ADDRESS",
    "Flow",
    "InterfaceEnumerationError",
    "LocalAddresses",
    "NattrackError",
    "SnapshotError",
    "Subflow",
    "TypeFilter",
    "classify_flow",
    "filter_by_protocol",
    "filter_by_state",
    "filter_by_type",
    "filter_flows",
    "is_dnat",
    "is_local",
    "is_routed",
    "is_snat",
    "parse_line",
    "parse_table",
    "snapshot",
]
