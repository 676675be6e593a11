"""JSON-safe and tabular renderings of flows for the CLI."""
from __future__ import annotations

import dataclasses
import json
import typing as t
from collections import Counter

from .classify import classify_flow
from .filters import CATEGORIES
from .flow import Flow, Subflow
from .local_addrs import LocalAddresses

TABLE_COLUMNS = (
    "proto",
    "state",
    "ttl",
    "type",
    "orig_src",
    "orig_dst",
    "reply_src",
    "reply_dst",
    "packets",
    "bytes",
)


def _addr(a) -> t.Optional[str]:
    return None if a is None else str(a)


def _endpoint(a, port: int) -> str:
    if a is None:
        return "-"
    if a.version == 6:
        return f"[{a}]:{port}"
    return f"{a}:{port}"


def subflow_to_dict(sub: Subflow) -> dict:
    d = dataclasses.asdict(sub)
    d["source"] = _addr(sub.source)
    d["destination"] = _addr(sub.destination)
    return d


def flow_to_dict(flow: Flow, local: t.Optional[LocalAddresses] = None) -> dict:
    out = {
        "protocol": flow.protocol,
        "state": flow.state,
        "ttl": flow.ttl,
        "unreplied": flow.unreplied,
        "assured": flow.assured,
        "original": subflow_to_dict(flow.original),
        "reply": subflow_to_dict(flow.reply),
    }
    if local is not None:
        out["types"] = classify_flow(flow, local).names()
    return out


def canonical_json(obj) -> str:
    return json.dumps(obj, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def flow_row(flow: Flow, local: LocalAddresses) -> list[str]:
    o, r = flow.original, flow.reply
    types = classify_flow(flow, local).names()
    return [
        flow.protocol,
        flow.state or "-",
        str(flow.ttl),
        ",".join(types) or "-",
        _endpoint(o.source, o.sport),
        _endpoint(o.destination, o.dport),
        _endpoint(r.source, r.sport),
        _endpoint(r.destination, r.dport),
        f"{o.packets}/{r.packets}",
        f"{o.bytes}/{r.bytes}",
    ]


def format_table(flows: t.Iterable[Flow], local: LocalAddresses) -> str:
    lines = ["\t".join(TABLE_COLUMNS)]
    for flow in flows:
        lines.append("\t".join(flow_row(flow, local)))
    return "\n".join(lines)


def summarize(flows: t.Sequence[Flow], local: LocalAddresses) -> dict:
    """Count flows per category, protocol and state.

    A flow matching several categories is counted once in each; a flow
    matching none is counted as "unclassified".
    """
    by_type = {c.name.lower(): 0 for c in CATEGORIES}
    by_type["unclassified"] = 0
    for flow in flows:
        names = classify_flow(flow, local).names()
        if not names:
            by_type["unclassified"] += 1
        for name in names:
            by_type[name] += 1
    return {
        "total": len(flows),
        "types": by_type,
        "protocols": dict(sorted(Counter(f.protocol for f in flows).items())),
        "states": dict(sorted(Counter(f.state or "-" for f in flows).items())),
    }
