"""
Peer display names from wg-quick config files.

Operators annotate peers with a comment inside the [Peer] section:

    [Peer]
    # display-name = Alice's phone
    PublicKey = 5vNp...=

The comment may come before or after the PublicKey line; `display_name`
and a missing space after `#` are accepted too. Only those two lines and
the section headings are looked at, everything else in the file is ignored.
"""

from __future__ import annotations

import enum
import logging
import re
from pathlib import Path
from typing import Dict, Optional, Union

from wg_exporter.errors import ConfigFileMissing, ConfigReadError

log = logging.getLogger(__name__)

_SECTION_RE = re.compile(r"^\[\s*([^\]]*?)\s*\]")
_DISPLAY_NAME_RE = re.compile(r"^#\s*display[-_]name\s*=\s*(.+)$", re.IGNORECASE)
_PUBLIC_KEY_RE = re.compile(r"^publickey\s*=\s*(.+)$", re.IGNORECASE)


class _State(enum.Enum):
    OUTSIDE = "outside"
    IN_PEER = "in_peer"


class _PeerSectionScanner:
    """Two-state scanner that pairs PublicKey lines with display-name comments.

    Within one [Peer] section the last value seen for each field wins.
    A pair is committed as soon as both halves are known, and again when
    the section ends.
    """

    def __init__(self):
        self.names: Dict[str, str] = {}
        self._state = _State.OUTSIDE
        self._public_key: Optional[str] = None
        self._display_name: Optional[str] = None

    def _commit(self):
        if self._public_key and self._display_name:
            self.names[self._public_key] = self._display_name

    def _leave_section(self):
        if self._state is _State.IN_PEER:
            self._commit()
        self._state = _State.OUTSIDE
        self._public_key = None
        self._display_name = None

    def feed(self, line: str):
        line = line.strip()
        if not line:
            return

        section = _SECTION_RE.match(line)
        if section:
            self._leave_section()
            if section.group(1).lower() == "peer":
                self._state = _State.IN_PEER
            return

        if self._state is not _State.IN_PEER:
            return

        match = _DISPLAY_NAME_RE.match(line)
        if match:
            value = match.group(1).strip()
            if value:
                self._display_name = value
                self._commit()
            return

        match = _PUBLIC_KEY_RE.match(line)
        if match:
            # keys are base64, so anything after a '#' is an inline comment
            value = match.group(1).split("#", 1)[0].strip()
            if value:
                self._public_key = value
                self._commit()

    def finish(self) -> Dict[str, str]:
        self._leave_section()
        return self.names


def parse_display_names(text: str) -> Dict[str, str]:
    """Map peer public key -> display name for one config file's contents."""
    scanner = _PeerSectionScanner()
    for line in text.splitlines():
        scanner.feed(line)
    return scanner.finish()


def load_display_names(path: Union[str, Path]) -> Dict[str, str]:
    """Read a wg-quick config and return its display names.

    Raises ConfigFileMissing if the file doesn't exist and ConfigReadError
    if it can't be read or isn't valid UTF-8.
    """
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError as e:
        raise ConfigFileMissing(f"config file not found: {path}") from e
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigReadError(f"failed to read config file {path}: {e}") from e

    names = parse_display_names(text)
    log.debug("Parsed config file: path=%s display_names=%d", path, len(names))
    return names
