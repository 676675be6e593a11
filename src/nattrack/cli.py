"""Command line interface for nattrack."""
from __future__ import annotations

import argparse
import logging
import sys

from . import __version__
from .conntrack import DEFAULT_SOURCE, snapshot
from .errors import InterfaceEnumerationError, SnapshotError
from .filters import TypeFilter, filter_by_protocol, filter_by_state, filter_by_type
from .local_addrs import LocalAddresses
from .logging_config import setup_logging
from .report import canonical_json, flow_to_dict, format_table, summarize

EXIT_OK = 0
EXIT_USAGE = 2
EXIT_SOURCE = 3
EXIT_INTERFACES = 4
EXIT_INTERNAL = 10

log = logging.getLogger("nattrack.cli")


def _doctor_checks(source: str):
    """Run environment checks and return (exit_code, report_dict)."""
    report = {"python": sys.version.splitlines()[0], "checks": []}
    py_ok = sys.version_info >= (3, 9)
    report["checks"].append({"name": "python_version", "ok": py_ok, "detail": sys.version.split()[0]})

    try:
        flows = snapshot(source)
        src_ok = True
        src_detail = f"{source}: {len(flows)} flows"
    except SnapshotError as e:
        src_ok = False
        src_detail = e.reason
    report["checks"].append({"name": "conntrack_source", "ok": src_ok, "detail": src_detail})

    try:
        local = LocalAddresses.discover()
        if_ok = True
        if_detail = f"{len(local)} local addresses"
    except InterfaceEnumerationError as e:
        if_ok = False
        if_detail = str(e)
    report["checks"].append({"name": "local_addresses", "ok": if_ok, "detail": if_detail})

    if not py_ok or not if_ok:
        code = EXIT_INTERNAL
    elif not src_ok:
        code = EXIT_SOURCE
    else:
        code = EXIT_OK
    return code, report


def build_parser():
    p = argparse.ArgumentParser(prog="nattrack", description="Inspect NAT'd connections in the conntrack table")
    p.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    p.add_argument("--log", default="INFO", help="Log level")
    sub = p.add_subparsers(dest="cmd")

    ls = sub.add_parser("list", help="List tracked flows")
    ls.add_argument("--source", default=DEFAULT_SOURCE, help=f"Conntrack table to read (default: {DEFAULT_SOURCE})")
    ls.add_argument("--type", dest="types", metavar="NAMES", help="Comma-separated flow types to keep: snat,dnat,local,routed,all")
    ls.add_argument("--protocol", help="Keep only flows of this protocol (e.g. tcp)")
    ls.add_argument("--state", help="Keep only flows in this state (e.g. ESTABLISHED)")
    ls.add_argument("--json", action="store_true", help="Emit canonical JSON instead of a table")

    s = sub.add_parser("summary", help="Count flows per type, protocol and state")
    s.add_argument("--source", default=DEFAULT_SOURCE, help=f"Conntrack table to read (default: {DEFAULT_SOURCE})")
    s.add_argument("--json", action="store_true", help="Emit canonical JSON instead of a human summary")

    d = sub.add_parser("doctor", help="Run environment checks and exit with a machine-friendly code")
    d.add_argument("--source", default=DEFAULT_SOURCE, help=f"Conntrack table to check (default: {DEFAULT_SOURCE})")
    d.add_argument("--json", action="store_true", help="Emit canonical JSON report instead of human summary")
    return p, {"list": ls, "summary": s, "doctor": d}


def _load(source: str):
    """Snapshot the table and discover local addresses, or return an exit code."""
    try:
        flows = snapshot(source)
    except SnapshotError as e:
        log.error("%s", e)
        return None, None, EXIT_SOURCE
    try:
        local = LocalAddresses.discover()
    except InterfaceEnumerationError as e:
        log.error("%s", e)
        return None, None, EXIT_INTERFACES
    return flows, local, EXIT_OK


def _cmd_list(args) -> int:
    mask = None
    if args.types:
        try:
            mask = TypeFilter.parse(args.types)
        except ValueError as e:
            log.error("%s", e)
            return EXIT_USAGE

    flows, local, code = _load(args.source)
    if code != EXIT_OK:
        return code

    total = len(flows)
    if mask is not None:
        flows = filter_by_type(flows, mask, local)
    if args.protocol:
        flows = filter_by_protocol(flows, args.protocol)
    if args.state:
        flows = filter_by_state(flows, args.state)
    log.debug("%d of %d flows kept", len(flows), total)

    if args.json:
        out = {
            "meta": {"version": __version__, "source": args.source, "total": total, "count": len(flows)},
            "flows": [flow_to_dict(f, local) for f in flows],
        }
        print(canonical_json(out))
    else:
        print(format_table(flows, local))
    return EXIT_OK


def _cmd_summary(args) -> int:
    flows, local, code = _load(args.source)
    if code != EXIT_OK:
        return code
    summary = summarize(flows, local)
    if args.json:
        summary["meta"] = {"version": __version__, "source": args.source}
        print(canonical_json(summary))
        return EXIT_OK
    print(f"nattrack v{__version__} - {summary['total']} flows in {args.source}")
    for name, count in summary["types"].items():
        print(f"  {name}: {count}")
    print("  protocols: " + ", ".join(f"{k}={v}" for k, v in summary["protocols"].items()))
    print("  states: " + ", ".join(f"{k}={v}" for k, v in summary["states"].items()))
    return EXIT_OK


def _cmd_doctor(args) -> int:
    code, report = _doctor_checks(args.source)
    report.setdefault("meta", {})
    report["meta"]["version"] = __version__
    if args.json:
        print(canonical_json(report))
    else:
        ok = all(c.get("ok") for c in report.get("checks", []))
        print(f"nattrack v{__version__} - Doctor checks: {'OK' if ok else 'ISSUES'}")
        for c in report.get("checks", []):
            status = "OK" if c.get("ok") else "FAIL"
            print(f"- {c.get('name')}: {status} ({c.get('detail')})")
    return code


COMMANDS = {
    "list": _cmd_list,
    "summary": _cmd_summary,
    "doctor": _cmd_doctor,
}


def main(argv=None) -> int:
    parser, _ = build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.log)
    handler = COMMANDS.get(args.cmd)
    if handler is None:
        parser.print_help()
        return EXIT_USAGE
    try:
        return handler(args)
    except Exception:
        log.exception("%s failed unexpectedly", args.cmd)
        return EXIT_INTERNAL


if __name__ == "__main__":
    sys.exit(main())
