"""
Exporter configuration.

Sources, lowest priority first: built-in defaults, a JSON config file,
environment variables, then CLI flags. The collector only ever sees the
merged ExporterConfig and doesn't care where a value came from.

Example config file:

    {
        "listen_address": ":9586",
        "interfaces_denylist": ["wg-test"],
        "interface_labels": {"wg0": {"site": "fra1"}},
        "show_endpoints": false
    }
"""

from __future__ import annotations

import json
import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Tuple

from wg_exporter.errors import ConfigError

log = logging.getLogger(__name__)

# These are set by the collector itself and can't be overridden per interface
RESERVED_LABELS = frozenset({"interface", "peer", "endpoint"})

_LABEL_NAME_RE = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_]*$")

_TRUE_VALUES = {"true", "1", "yes", "on"}

# config field -> kind; strings are accepted for bool and list fields
_FIELD_KINDS = {
    "listen_address": "str",
    "metrics_path": "str",
    "interfaces_denylist": "list",
    "interface_labels": "mapping",
    "wg_command_path": "str",
    "show_endpoints": "bool",
    "display_names": "bool",
    "wireguard_config_dir": "str",
    "display_name_files": "mapping",
    "human_fallback": "bool",
    "log_level": "str",
}

_ENV_VARS = {
    "WG_LISTEN_ADDRESS": "listen_address",
    "WG_METRICS_PATH": "metrics_path",
    "WG_INTERFACES_DENYLIST": "interfaces_denylist",
    "WG_COMMAND_PATH": "wg_command_path",
    "WG_SHOW_ENDPOINTS": "show_endpoints",
    "WG_DISPLAY_NAMES": "display_names",
    "WG_CONFIG_DIR": "wireguard_config_dir",
    "WG_HUMAN_FALLBACK": "human_fallback",
    "LOG_LEVEL": "log_level",
}


@dataclass
class ExporterConfig:
    listen_address: str = ":9586"
    metrics_path: str = "/metrics"
    interfaces_denylist: List[str] = field(default_factory=list)
    interface_labels: Dict[str, Dict[str, str]] = field(default_factory=dict)
    wg_command_path: str = "wg"
    show_endpoints: bool = True
    display_names: bool = True
    wireguard_config_dir: str = "/etc/wireguard"
    display_name_files: Dict[str, str] = field(default_factory=dict)
    human_fallback: bool = False
    log_level: str = "info"

    def static_label_names(self) -> Tuple[str, ...]:
        """Every static label name used by any interface, sorted.

        Gauges need a fixed label set, so interfaces that don't define one
        of these get an empty value for it.
        """
        names = set()
        for labels in self.interface_labels.values():
            names.update(labels)
        return tuple(sorted(names - RESERVED_LABELS))

    def display_name_file(self, interface: str) -> Path:
        override = self.display_name_files.get(interface)
        if override:
            return Path(override)
        return Path(self.wireguard_config_dir) / f"{interface}.conf"

    def listen_host_port(self) -> Tuple[str, int]:
        """Split ":9586", "127.0.0.1:9586" or "[::1]:9586"."""
        host, sep, port = self.listen_address.rpartition(":")
        if not sep:
            raise ConfigError(f"listen address needs a port: {self.listen_address!r}")
        try:
            port_num = int(port)
        except ValueError as e:
            raise ConfigError(f"invalid listen port: {port!r}") from e
        return host.strip("[]"), port_num


def split_list(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


def parse_bool(value: str) -> bool:
    return value.strip().lower() in _TRUE_VALUES


def _check_labels(interface_labels: Mapping) -> Dict[str, Dict[str, str]]:
    checked: Dict[str, Dict[str, str]] = {}
    for iface, labels in interface_labels.items():
        if not isinstance(labels, Mapping):
            raise ConfigError(f"interface_labels.{iface} must be an object")
        clean = {}
        for name, value in labels.items():
            if name in RESERVED_LABELS:
                log.warning("Ignoring reserved label %r configured for interface %s", name, iface)
                continue
            if not isinstance(name, str) or not _LABEL_NAME_RE.match(name) or name.startswith("__"):
                raise ConfigError(f"invalid label name {name!r} for interface {iface}")
            clean[name] = str(value)
        checked[str(iface)] = clean
    return checked


def _coerce(key: str, value, source: str):
    kind = _FIELD_KINDS[key]

    if kind == "bool":
        if isinstance(value, bool):
            return value
        if isinstance(value, str):
            return parse_bool(value)
    elif kind == "str":
        if isinstance(value, str):
            return value
    elif kind == "list":
        if isinstance(value, str):
            return split_list(value)
        if isinstance(value, (list, tuple)) and all(isinstance(v, str) for v in value):
            return list(value)
    elif kind == "mapping":
        if isinstance(value, Mapping):
            return dict(value)

    raise ConfigError(
        f"{key} in {source} must be a {kind}, got {type(value).__name__}: {value!r}"
    )


def _apply(cfg: ExporterConfig, values: Mapping, source: str):
    for key, value in values.items():
        if key not in _FIELD_KINDS:
            log.warning("Unknown config key %r in %s, ignoring", key, source)
            continue
        if value is None:
            continue
        setattr(cfg, key, _coerce(key, value, source))


def _load_file(path: str) -> dict:
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except OSError as e:
        raise ConfigError(f"failed to read config file {path}: {e}") from e
    except ValueError as e:
        raise ConfigError(f"invalid JSON in config file {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"config file {path} must contain a JSON object")
    return data


def _from_env(env: Mapping[str, str]) -> dict:
    return {key: env[var] for var, key in _ENV_VARS.items() if env.get(var)}


def load_config(
    config_file: Optional[str] = None,
    env: Optional[Mapping[str, str]] = None,
    overrides: Optional[Mapping] = None,
) -> ExporterConfig:
    """Merge defaults < config file < environment < overrides (CLI flags)."""
    cfg = ExporterConfig()

    if config_file:
        _apply(cfg, _load_file(config_file), config_file)

    _apply(cfg, _from_env(os.environ if env is None else env), "environment")

    if overrides:
        _apply(cfg, overrides, "command line")

    cfg.interface_labels = _check_labels(cfg.interface_labels)
    for iface, path in cfg.display_name_files.items():
        if not isinstance(path, str):
            raise ConfigError(f"display_name_files.{iface} must be a path string")

    log.info(
        "Configuration loaded: listen_address=%s metrics_path=%s",
        cfg.listen_address, cfg.metrics_path,
    )
    return cfg
