"""Shared fixtures: a fake wg tool driven by a JSON state file."""

import json
import os
import shlex
import sys
from pathlib import Path

import pytest

from wg_exporter.mock.fake_wg import STATE_ENV

FAKE_WG = f"{shlex.quote(sys.executable)} -m wg_exporter.mock.fake_wg"

SRC_DIR = str(Path(__file__).resolve().parent.parent / "src")


@pytest.fixture
def fake_wg(tmp_path, monkeypatch):
    """Call with a state dict; returns the wg command to configure."""
    state_file = tmp_path / "wg-state.json"
    monkeypatch.setenv(STATE_ENV, str(state_file))
    # the fake tool runs in a child interpreter, which needs to find the package
    pythonpath = os.environ.get("PYTHONPATH")
    monkeypatch.setenv("PYTHONPATH", SRC_DIR + (os.pathsep + pythonpath if pythonpath else ""))

    def _write(state: dict) -> str:
        state_file.write_text(json.dumps(state))
        return FAKE_WG

    return _write
