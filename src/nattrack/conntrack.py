"""Point-in-time snapshots of the connection-tracking table."""
from __future__ import annotations

import logging
from pathlib import Path

from .errors import SnapshotError
from .flow import Flow
from .parser import parse_table

log = logging.getLogger("nattrack.conntrack")

DEFAULT_SOURCE = "/proc/net/ip_conntrack"


def snapshot(source: str = DEFAULT_SOURCE) -> list[Flow]:
    """Read `source` once and return its flows in table order.

    Raises SnapshotError if the source cannot be read; malformed content never
    raises.
    """
    try:
        data = Path(source).read_text(encoding="utf-8", errors="replace")
    except OSError as e:
        raise SnapshotError(str(source), str(e)) from e
    flows = parse_table(data)
    log.debug("read %d flows from %s", len(flows), source)
    return flows
