"""Tests for the fake wg tool's rendering, fed back through our parsers."""

from wg_exporter.collector.dump_parser import parse_dump
from wg_exporter.collector.human_format import parse_show_output
from wg_exporter.metrics import DumpShape
from wg_exporter.mock.fake_wg import demo_state, fake_key, format_ago, main, render_dump, render_show


def test_fake_key_looks_like_a_wireguard_key():
    key = fake_key("alice")
    assert len(key) == 44
    assert key.endswith("=")
    assert key == fake_key("alice")
    assert key != fake_key("bob")


def test_demo_state_is_deterministic():
    assert demo_state(now=1_700_000_000) == demo_state(now=1_700_000_000)
    later = demo_state(now=1_700_000_060)
    assert later["interfaces"][0]["peers"][0]["rx"] > demo_state(now=1_700_000_000)["interfaces"][0]["peers"][0]["rx"]


def test_demo_dump_parses():
    state = demo_state(now=1_700_000_000)
    for iface_state in state["interfaces"]:
        iface = parse_dump(iface_state["name"], render_dump(iface_state))
        assert iface.shape is DumpShape.PRIVILEGED
        assert iface.public_key == iface_state["public_key"]
        assert len(iface.peers) == len(iface_state["peers"])

    wg0 = parse_dump("wg0", render_dump(state["interfaces"][0]))
    ci_runner = wg0.peers[2]
    assert ci_runner.endpoint is None
    assert ci_runner.latest_handshake is None


def test_demo_show_output_parses():
    iface_state = demo_state(now=1_700_000_000)["interfaces"][1]
    iface = parse_show_output("wg1", render_show(iface_state, now=1_700_000_000))
    assert iface.listening_port == 51821
    assert iface.peers[0].allowed_ips == ["10.9.0.0/24", "172.16.0.0/16"]


def test_format_ago():
    assert format_ago(0) == "Now"
    assert format_ago(61) == "1 minute, 1 second ago"
    assert format_ago(90061) == "1 day, 1 hour, 1 minute, 1 second ago"


def test_usage_error(capsys):
    assert main([]) == 1
    assert "Usage" in capsys.readouterr().err
