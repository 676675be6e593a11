"""Unit tests for the conntrack table parser."""
import ipaddress

from nattrack.flow import NO_ADDRESS, Flow, Subflow
from nattrack.parser import FieldToken, parse_line, parse_table, parse_uint, split_directions, tokenize_line

SNAT_LINE = (
    "tcp 6 999 ESTABLISHED "
    "src=10.0.0.5 dst=93.184.216.34 sport=4000 dport=80 packets=5 bytes=600 "
    "src=93.184.216.34 dst=203.0.113.9 sport=80 dport=4000 packets=3 bytes=300"
)


def ip(s):
    return ipaddress.ip_address(s)


def test_snat_line_tuples():
    flow = parse_line(SNAT_LINE)
    assert flow.protocol == "tcp"
    assert flow.ttl == 999
    assert flow.state == "ESTABLISHED"
    assert not flow.unreplied and not flow.assured
    assert flow.original == Subflow(ip("10.0.0.5"), ip("93.184.216.34"), 4000, 80, 600, 5)
    assert flow.reply == Subflow(ip("93.184.216.34"), ip("203.0.113.9"), 80, 4000, 300, 3)


def test_parse_is_deterministic(sample_text):
    assert parse_table(sample_text) == parse_table(sample_text)


def test_sample_table_stops_at_blank_line(sample_text):
    flows = parse_table(sample_text)
    # the line after the blank line is never reached
    assert [f.protocol for f in flows] == ["tcp", "tcp", "udp", "udp", "icmp"]
    assert all(f.original.source != ip("10.0.0.1") for f in flows)


def test_blank_line_stops_rather_than_skips():
    text = SNAT_LINE + "\n   \n" + SNAT_LINE + "\n"
    assert len(parse_table(text)) == 1


def test_empty_first_line_yields_nothing():
    assert parse_table("") == []
    assert parse_table("\n" + SNAT_LINE) == []


def test_order_preserved():
    lines = [f"udp 17 {n} src=10.0.0.{n} dst=10.0.1.1 src=10.0.1.1 dst=10.0.0.{n}" for n in range(1, 6)]
    flows = parse_table("\n".join(lines))
    assert [f.ttl for f in flows] == [1, 2, 3, 4, 5]


def test_state_synthesized_from_flags():
    assert parse_line("udp 17 30 src=1.1.1.1 dst=2.2.2.2 [UNREPLIED] src=2.2.2.2 dst=1.1.1.1").state == "UNREPLIED"
    assert parse_line("udp 17 30 src=1.1.1.1 dst=2.2.2.2 src=2.2.2.2 dst=1.1.1.1 [ASSURED]").state == "ASSURED"
    both = parse_line("udp 17 30 [UNREPLIED] [ASSURED]")
    assert both.state == "UNREPLIED"
    assert both.unreplied and both.assured


def test_udp_without_flags_has_empty_state():
    flow = parse_line("udp 17 30 src=1.1.1.1 dst=2.2.2.2 sport=1 dport=2 src=2.2.2.2 dst=1.1.1.1 sport=2 dport=1")
    assert flow.state == ""


def test_tcp_state_is_not_overridden_by_flags():
    flow = parse_line("tcp 6 10 TIME_WAIT src=1.1.1.1 dst=2.2.2.2 [ASSURED]")
    assert flow.state == "TIME_WAIT"
    assert flow.assured


def test_only_tcp_reads_state_token():
    # for udp, token 3 is a regular field
    flow = parse_line("udp 17 30 src=1.1.1.1 dst=2.2.2.2")
    assert flow.state == ""
    assert flow.original.source == ip("1.1.1.1")


def test_malformed_fields_degrade_to_zero():
    flow = parse_line("tcp 6 abc CLOSE src=not-an-ip dst=2.2.2.2 sport=-1 dport=99999 packets=+3 bytes=1e3")
    assert flow.ttl == 0
    assert flow.original.source is NO_ADDRESS
    assert flow.original.destination == ip("2.2.2.2")
    assert flow.original.sport == 0
    assert flow.original.dport == 0
    assert flow.original.packets == 0
    assert flow.original.bytes == 0
    assert flow.reply == Subflow()


def test_short_lines_do_not_crash():
    assert parse_line("tcp") == Flow(protocol="tcp")
    assert parse_line("tcp 6") == Flow(protocol="tcp")
    assert parse_line("tcp 6 12") == Flow(protocol="tcp", ttl=12)


def test_missing_reply_defaults_to_zero_subflow():
    flow = parse_line("udp 17 5 src=1.1.1.1 dst=2.2.2.2 sport=1 dport=2")
    assert flow.reply == Subflow()


def test_ignores_unknown_tokens_and_keys():
    flow = parse_line("tcp 6 5 ESTABLISHED src=1.1.1.1 a=b=c [OFFLOAD] mark=0 zone=3 dst=2.2.2.2")
    assert flow.original.source == ip("1.1.1.1")
    assert flow.original.destination == ip("2.2.2.2")


def test_ipv6_addresses():
    flow = parse_line("tcp 6 60 ESTABLISHED src=2001:db8::1 dst=2001:db8::2 sport=1 dport=22 src=2001:db8::2 dst=2001:db8::1 sport=22 dport=1")
    assert flow.original.source == ip("2001:db8::1")
    assert flow.reply.destination == ip("2001:db8::1")


def test_ipv4_mapped_address_folds_to_ipv4():
    flow = parse_line("udp 17 1 src=::ffff:10.0.0.1 dst=10.0.0.2")
    assert flow.original.source == ip("10.0.0.1")


def test_crlf_lines():
    flows = parse_table(SNAT_LINE + "\r\n" + SNAT_LINE + "\r\n")
    assert len(flows) == 2
    assert flows[0].reply.packets == 3


def test_tokenize_tracks_occurrences():
    tokens = tokenize_line("udp 17 9 src=a dst=b src=c sport=1 dst=d src=e")
    assert tokens.protocol == "udp"
    assert tokens.ttl == 9
    assert [(f.key, f.occurrence) for f in tokens.fields] == [
        ("src", 0),
        ("dst", 0),
        ("src", 1),
        ("sport", 0),
        ("dst", 1),
        ("src", 2),
    ]
    assert tokenize_line(" \t ") is None


def test_split_directions_first_original_then_reply():
    fields = [
        FieldToken("src", "a", 0),
        FieldToken("sport", "1", 0),
        FieldToken("src", "b", 1),
        FieldToken("dst", "c", 0),
        FieldToken("src", "z", 2),
    ]
    original, reply = split_directions(fields)
    assert original == {"src": "a", "sport": "1", "dst": "c"}
    # a third occurrence overwrites the reply value
    assert reply == {"src": "z"}


def test_keys_are_order_independent_within_direction():
    a = parse_line("udp 17 1 dport=2 sport=1 dst=2.2.2.2 src=1.1.1.1 src=2.2.2.2 dst=1.1.1.1 sport=2 dport=1")
    b = parse_line("udp 17 1 src=1.1.1.1 dst=2.2.2.2 sport=1 dport=2 src=2.2.2.2 dst=1.1.1.1 sport=2 dport=1")
    assert a == b


def test_parse_uint_bounds():
    assert parse_uint("65535", 65535) == 65535
    assert parse_uint("65536", 65535) == 0
    assert parse_uint("18446744073709551615") == (1 << 64) - 1
    assert parse_uint("18446744073709551616") == 0
    assert parse_uint(" 5") == 0
    assert parse_uint(None) == 0
