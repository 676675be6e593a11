"""Parser for the legacy /proc/net/ip_conntrack table.

Each line looks like::

    tcp      6 431999 ESTABLISHED src=10.0.0.5 dst=93.184.216.34 sport=4000 dport=80
        packets=5 bytes=600 src=93.184.216.34 dst=203.0.113.9 sport=80 dport=4000
        packets=3 bytes=300 [ASSURED] mark=0 use=1

The original and reply tuples use the same key names, original first. Parsing
is done in two phases: `tokenize_line` records every key=value pair in order
with how many times its key was already seen, then `split_directions` sends
first occurrences to the original tuple and repeats to the reply tuple.

Parsing stops at the first line with no tokens; lines after it are ignored.
"""
from __future__ import annotations

import dataclasses
import logging
import re
import typing as t

from .flow import Flow, Subflow, parse_address

log = logging.getLogger("nattrack.parser")

UNREPLIED_TOKEN = "[UNREPLIED]"
ASSURED_TOKEN = "[ASSURED]"

_UINT_RE = re.compile(r"[0-9]+")
_MAX_U16 = (1 << 16) - 1
_MAX_U64 = (1 << 64) - 1


@dataclasses.dataclass(frozen=True)
class FieldToken:
    key: str
    value: str
    occurrence: int


@dataclasses.dataclass
class LineTokens:
    protocol: str
    ttl: int
    state: str = ""
    unreplied: bool = False
    assured: bool = False
    fields: list = dataclasses.field(default_factory=list)


def parse_uint(text: t.Optional[str], maximum: int = _MAX_U64) -> int:
    """Parse an unsigned decimal, returning 0 for anything malformed or too large."""
    # 20 significant digits covers 2**64
    if not text or len(text.lstrip("0")) > 20 or not _UINT_RE.fullmatch(text):
        return 0
    value = int(text)
    if value > maximum:
        return 0
    return value


def tokenize_line(line: str) -> t.Optional[LineTokens]:
    """First phase: split a table line into header values, flags and ordered fields.

    Returns None when the line has no tokens at all.
    """
    tokens = line.split()
    if not tokens:
        return None

    protocol = tokens[0]
    ttl = parse_uint(tokens[2]) if len(tokens) > 2 else 0
    state = ""
    if protocol == "tcp" and len(tokens) > 3:
        state = tokens[3]

    out = LineTokens(protocol=protocol, ttl=ttl, state=state)
    seen: dict[str, int] = {}
    for tok in tokens[3:]:
        if tok == UNREPLIED_TOKEN:
            out.unreplied = True
        elif tok == ASSURED_TOKEN:
            out.assured = True
        else:
            kv = tok.split("=")
            if len(kv) != 2:
                continue
            key, value = kv
            out.fields.append(FieldToken(key=key, value=value, occurrence=seen.get(key, 0)))
            seen[key] = seen.get(key, 0) + 1
    return out


def split_directions(fields: t.Iterable[FieldToken]) -> tuple:
    """Second phase: assign fields to (original, reply) by occurrence.

    A key's first occurrence belongs to the original tuple; later occurrences
    belong to the reply tuple, the last one winning.
    """
    original: dict[str, str] = {}
    reply: dict[str, str] = {}
    for f in fields:
        if f.occurrence == 0:
            original[f.key] = f.value
        else:
            reply[f.key] = f.value
    return original, reply


def build_subflow(values: t.Mapping[str, str]) -> Subflow:
    return Subflow(
        source=parse_address(values.get("src")),
        destination=parse_address(values.get("dst")),
        sport=parse_uint(values.get("sport"), _MAX_U16),
        dport=parse_uint(values.get("dport"), _MAX_U16),
        bytes=parse_uint(values.get("bytes")),
        packets=parse_uint(values.get("packets")),
    )


def parse_line(line: str) -> t.Optional[Flow]:
    tokens = tokenize_line(line)
    if tokens is None:
        return None
    original, reply = split_directions(tokens.fields)
    return Flow.build(
        original=build_subflow(original),
        reply=build_subflow(reply),
        protocol=tokens.protocol,
        state=tokens.state,
        ttl=tokens.ttl,
        unreplied=tokens.unreplied,
        assured=tokens.assured,
    )


def parse_table(text: str) -> list[Flow]:
    """Parse the whole table, in order, stopping at the first empty line."""
    flows: list[Flow] = []
    for lineno, line in enumerate(text.split("\n"), 1):
        flow = parse_line(line)
        if flow is None:
            log.debug("empty line %d ends the table after %d flows", lineno, len(flows))
            break
        flows.append(flow)
    return flows
