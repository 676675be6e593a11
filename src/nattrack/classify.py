"""NAT direction predicates over a single Flow.

O is the original tuple, R the reply tuple. The predicates are independent:
a flow may match none, one or several of them.
"""
from __future__ import annotations

import typing as t

from .filters import TypeFilter
from .flow import Flow
from .local_addrs import LocalAddresses


def _unnatted(flow: Flow) -> bool:
    o, r = flow.original, flow.reply
    return o.source == r.destination and o.destination == r.source


def _any_local(flow: Flow, local: LocalAddresses) -> bool:
    return any(local.is_local(a) for a in flow.addresses())


def is_snat(flow: Flow, local: t.Optional[LocalAddresses] = None) -> bool:
    o, r = flow.original, flow.reply
    # the far end replies to our public address, never to the private source
    if o.source == r.destination:
        return False
    return o.destination == r.source


def is_dnat(flow: Flow, local: t.Optional[LocalAddresses] = None) -> bool:
    o, r = flow.original, flow.reply
    # reply goes back to the source but comes from the rewritten target
    if o.source == r.destination and o.destination != r.source:
        return True
    # netstat-nat's "DNAT (1 interface)" signature
    return (
        o.source != r.source
        and o.source != r.destination
        and o.destination != r.source
        and o.destination == r.destination
    )


def is_local(flow: Flow, local: LocalAddresses) -> bool:
    return _unnatted(flow) and _any_local(flow, local)


def is_routed(flow: Flow, local: LocalAddresses) -> bool:
    return _unnatted(flow) and not _any_local(flow, local)


PREDICATES = {
    TypeFilter.SNAT: is_snat,
    TypeFilter.DNAT: is_dnat,
    TypeFilter.ROUTED: is_routed,
    TypeFilter.LOCAL: is_local,
}


def classify_flow(flow: Flow, local: LocalAddresses) -> TypeFilter:
    """Return the union of every category the flow matches."""
    result = TypeFilter(0)
    for category, predicate in PREDICATES.items():
        if predicate(flow, local):
            result |= category
    return result
