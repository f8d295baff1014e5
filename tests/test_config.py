"""Tests for configuration loading and merge priority."""

import json
from pathlib import Path

import pytest

from wg_exporter.config import ExporterConfig, load_config, parse_bool, split_list
from wg_exporter.errors import ConfigError


def _write(tmp_path, data) -> str:
    path = tmp_path / "exporter.json"
    path.write_text(json.dumps(data))
    return str(path)


def test_defaults():
    cfg = load_config(env={})
    assert cfg.listen_address == ":9586"
    assert cfg.metrics_path == "/metrics"
    assert cfg.wg_command_path == "wg"
    assert cfg.show_endpoints is True
    assert cfg.interfaces_denylist == []
    assert cfg.interface_labels == {}


def test_file_env_cli_priority(tmp_path):
    path = _write(tmp_path, {
        "listen_address": ":1111",
        "metrics_path": "/file",
        "wg_command_path": "/file/wg",
        "show_endpoints": False,
    })
    env = {"WG_LISTEN_ADDRESS": ":2222", "WG_METRICS_PATH": "/env"}
    overrides = {"listen_address": ":3333", "metrics_path": None}

    cfg = load_config(path, env=env, overrides=overrides)

    assert cfg.listen_address == ":3333"     # CLI beats env and file
    assert cfg.metrics_path == "/env"        # env beats file, None override ignored
    assert cfg.wg_command_path == "/file/wg"
    assert cfg.show_endpoints is False


def test_env_parsing():
    cfg = load_config(env={
        "WG_INTERFACES_DENYLIST": " wg1 , wg-test ,,",
        "WG_SHOW_ENDPOINTS": "0",
        "WG_DISPLAY_NAMES": "false",
        "WG_HUMAN_FALLBACK": "TRUE",
        "WG_CONFIG_DIR": "/opt/wg",
        "WG_COMMAND_PATH": "/usr/local/bin/wg",
    })
    assert cfg.interfaces_denylist == ["wg1", "wg-test"]
    assert cfg.show_endpoints is False
    assert cfg.display_names is False
    assert cfg.human_fallback is True
    assert cfg.wireguard_config_dir == "/opt/wg"
    assert cfg.wg_command_path == "/usr/local/bin/wg"


def test_interface_labels_from_file(tmp_path):
    path = _write(tmp_path, {"interface_labels": {
        "wg0": {"site": "fra1", "role": "edge"},
        "wg1": {"site": "ams2", "interface": "nope"},
    }})

    cfg = load_config(path, env={})

    assert cfg.interface_labels == {
        "wg0": {"site": "fra1", "role": "edge"},
        "wg1": {"site": "ams2"},
    }
    assert cfg.static_label_names() == ("role", "site")


def test_invalid_label_name(tmp_path):
    path = _write(tmp_path, {"interface_labels": {"wg0": {"bad-label": "x"}}})
    with pytest.raises(ConfigError):
        load_config(path, env={})


def test_double_underscore_label_rejected(tmp_path):
    path = _write(tmp_path, {"interface_labels": {"wg0": {"__name__": "x"}}})
    with pytest.raises(ConfigError):
        load_config(path, env={})


def test_unknown_keys_are_ignored(tmp_path):
    path = _write(tmp_path, {"colour": "blue", "metrics_path": "/m"})
    cfg = load_config(path, env={})
    assert cfg.metrics_path == "/m"


def test_missing_file(tmp_path):
    with pytest.raises(ConfigError):
        load_config(str(tmp_path / "nope.json"), env={})


def test_invalid_json(tmp_path):
    path = tmp_path / "exporter.json"
    path.write_text("{not json")
    with pytest.raises(ConfigError):
        load_config(str(path), env={})


def test_non_object_json(tmp_path):
    path = _write(tmp_path, ["wg0"])
    with pytest.raises(ConfigError):
        load_config(path, env={})


@pytest.mark.parametrize("address, expected", [
    (":9586", ("", 9586)),
    ("127.0.0.1:9100", ("127.0.0.1", 9100)),
    ("[::1]:9586", ("::1", 9586)),
])
def test_listen_host_port(address, expected):
    assert ExporterConfig(listen_address=address).listen_host_port() == expected


def test_listen_address_without_port():
    with pytest.raises(ConfigError):
        ExporterConfig(listen_address="localhost").listen_host_port()


def test_display_name_file_resolution():
    cfg = ExporterConfig(wireguard_config_dir="/etc/wg", display_name_files={"wg1": "/srv/wg1.conf"})
    assert cfg.display_name_file("wg0") == Path("/etc/wg/wg0.conf")
    assert cfg.display_name_file("wg1") == Path("/srv/wg1.conf")


def test_helpers():
    assert split_list("a, b,,c ") == ["a", "b", "c"]
    assert parse_bool("Yes") and parse_bool("1") and not parse_bool("no")


@pytest.mark.parametrize("raw, expected", [("false", False), ("yes", True), (False, False)])
def test_bool_from_file_is_coerced(tmp_path, raw, expected):
    path = _write(tmp_path, {"show_endpoints": raw})
    cfg = load_config(path, env={})
    assert cfg.show_endpoints is expected


def test_denylist_string_from_file(tmp_path):
    path = _write(tmp_path, {"interfaces_denylist": "wg1, wg2"})
    assert load_config(path, env={}).interfaces_denylist == ["wg1", "wg2"]


@pytest.mark.parametrize("data", [
    {"interface_labels": ["wg0"]},
    {"interface_labels": {"wg0": "site"}},
    {"display_name_files": ["/etc/wireguard/wg0.conf"]},
    {"display_name_files": {"wg0": 42}},
    {"show_endpoints": 1},
    {"metrics_path": 9586},
    {"interfaces_denylist": ["wg0", 1]},
])
def test_wrong_types_in_file_rejected(tmp_path, data):
    path = _write(tmp_path, data)
    with pytest.raises(ConfigError):
        load_config(path, env={})
