"""Filtering over snapshots of flows.

All filters return a new list in input order and leave the input untouched.
"""
from __future__ import annotations

import enum
import typing as t

from .flow import Flow


class TypeFilter(enum.Flag):
    SNAT = 1
    DNAT = 2
    ROUTED = 4
    LOCAL = 8
    ALL = SNAT | DNAT | ROUTED | LOCAL

    @classmethod
    def parse(cls, names: t.Union[str, t.Iterable[str]]) -> "TypeFilter":
        """Build a mask from names like "snat,dnat" (case-insensitive)."""
        if isinstance(names, str):
            names = names.split(",")
        mask = cls(0)
        for name in names:
            name = name.strip()
            if not name:
                continue
            try:
                mask |= cls[name.upper()]
            except KeyError:
                raise ValueError(f"unknown flow type: {name!r}") from None
        return mask

    def names(self) -> list[str]:
        """Lower-case names of the single categories in this mask, in bit order."""
        return [m.name.lower() for m in CATEGORIES if m in self]


CATEGORIES = (TypeFilter.SNAT, TypeFilter.DNAT, TypeFilter.ROUTED, TypeFilter.LOCAL)


def filter_flows(flows: t.Iterable[Flow], predicate: t.Callable[[Flow], bool]) -> list[Flow]:
    return [flow for flow in flows if predicate(flow)]


def filter_by_type(flows: t.Iterable[Flow], which: TypeFilter, local) -> list[Flow]:
    """Keep flows matching ANY of the categories requested in `which`."""
    from .classify import PREDICATES

    which = TypeFilter(which)
    wanted = [PREDICATES[c] for c in CATEGORIES if c in which]
    return filter_flows(flows, lambda flow: any(p(flow, local) for p in wanted))


def filter_by_protocol(flows: t.Iterable[Flow], protocol: str) -> list[Flow]:
    return filter_flows(flows, lambda flow: flow.protocol == protocol)


def filter_by_state(flows: t.Iterable[Flow], state: str) -> list[Flow]:
    return filter_flows(flows, lambda flow: flow.state == state)
