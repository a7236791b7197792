"""Flat ``KEY=VALUE`` state file.

Each line is ``KEY=VALUE``; the first ``=`` is the delimiter, so values may
contain ``=``.  ANSI colour escapes that leaked into a value are stripped on
read.  Blank, malformed and unknown-key lines are skipped by lookups but
preserved on rewrite.

There is no locking: two processes writing the same key race, and the last
writer wins.
"""

from __future__ import annotations

import logging
import os
import re
import shutil
from datetime import datetime
from pathlib import Path
from typing import Dict, Iterator, List, Optional

from autolab.state.models import StateEntry, StateKey

logger = logging.getLogger(__name__)

ANSI_ESCAPE = re.compile(r"\x1b\[[0-9;]*m")


class StateKeyNotFound(KeyError):
    """Raised by :meth:`StateStore.get` when a key is absent."""

    def __init__(self, key: StateKey, path: Path) -> None:
        self.key = key
        self.path = path
        super().__init__(f"{key.value} not found in {path}")


def strip_ansi(value: str) -> str:
    return ANSI_ESCAPE.sub("", value)


def parse_line(line: str) -> Optional[StateEntry]:
    """Parse one state-file line, returning ``None`` if it is not an entry."""
    line = line.rstrip("\r\n")
    if not line or "=" not in line:
        return None
    raw_key, _, raw_value = line.partition("=")
    key = StateKey.parse(raw_key)
    if key is None:
        return None
    return StateEntry(key=key, value=strip_ansi(raw_value))


class StateStore:
    """Durable upsert-only key/value record of created identifiers.

    With ``dry_run=True`` every mutating call logs its intent and returns
    without touching the file.
    """

    def __init__(self, path: str | Path, *, dry_run: bool = False) -> None:
        self.path = Path(path)
        self.dry_run = dry_run

    # -- reading ------------------------------------------------------------

    def exists(self) -> bool:
        return self.path.is_file()

    def _raw_lines(self) -> List[str]:
        if not self.path.is_file():
            return []
        return self.path.read_text(encoding="utf-8").splitlines()

    def _entries(self) -> Iterator[StateEntry]:
        for line in self._raw_lines():
            entry = parse_line(line)
            if entry is not None:
                yield entry

    def get(self, key: StateKey) -> str:
        """Return the value stored for *key*.

        Raises :class:`StateKeyNotFound` when the key (or the file) is
        absent.  An empty value is returned as ``""``.
        """
        found: Optional[str] = None
        for entry in self._entries():
            if entry.key == key:
                found = entry.value
        if found is None:
            raise StateKeyNotFound(key, self.path)
        return found

    def lookup(self, key: StateKey) -> Optional[str]:
        """Like :meth:`get` but returns ``None`` when the key is absent."""
        try:
            return self.get(key)
        except StateKeyNotFound:
            return None

    def snapshot(self) -> List[StateEntry]:
        """All entries in file order."""
        return list(self._entries())

    def as_dict(self) -> Dict[StateKey, str]:
        return {e.key: e.value for e in self._entries()}

    # -- writing ------------------------------------------------------------

    def _write_lines(self, lines: List[str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_name(self.path.name + ".tmp")
        body = "\n".join(lines)
        if lines:
            body += "\n"
        tmp.write_text(body, encoding="utf-8")
        os.replace(tmp, self.path)

    def _without(self, key: StateKey) -> List[str]:
        kept = []
        for ln in self._raw_lines():
            entry = parse_line(ln)
            if entry is None or entry.key != key:
                kept.append(ln)
        return kept

    def put(self, key: StateKey, value: str) -> None:
        """Upsert *key*; any previous line for it is removed first."""
        if self.dry_run:
            logger.info("[DRY RUN] Would save state: %s=%s", key.value, value)
            return
        lines = self._without(key)
        lines.append(StateEntry(key=key, value=value).to_line())
        self._write_lines(lines)
        logger.info("State saved: %s=%s", key.value, value)

    def delete(self, key: StateKey) -> None:
        """Remove *key* if present."""
        if self.dry_run:
            logger.info("[DRY RUN] Would remove state: %s", key.value)
            return
        if not self.path.is_file():
            return
        lines = self._raw_lines()
        kept = self._without(key)
        if len(kept) != len(lines):
            self._write_lines(kept)
            logger.debug("Removed state entry for %s", key.value)

    def clear(self) -> None:
        """Truncate the store.  Used only after a fully successful teardown."""
        if self.dry_run:
            logger.info("[DRY RUN] Would clear state file %s", self.path)
            return
        if self.path.is_file():
            self._write_lines([])
            logger.info("State file cleared")

    def backup(self) -> Optional[Path]:
        """Copy the state file to ``<name>.backup.<YYYYmmdd_HHMMSS>``."""
        if not self.path.is_file():
            return None
        ts = datetime.now().strftime("%Y%m%d_%H%M%S")
        dest = self.path.with_name(f"{self.path.name}.backup.{ts}")
        shutil.copy2(self.path, dest)
        logger.info("State file backed up to: %s", dest)
        return dest

    def touch(self) -> None:
        """Create an empty state file if none exists."""
        if self.dry_run or self.path.exists():
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.touch()
        logger.info("Created state file: %s", self.path)
