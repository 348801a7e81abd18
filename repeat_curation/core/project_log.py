#!/usr/bin/env python3

"""
Append-only project log.

The log starts with a comment line and a ``key: value`` header echoing the
project configuration, followed by one tab-separated line per accepted
curation decision::

    <id>\t<exclude 0|1>\t<reverse 0|1>\t<new label or empty>

Replaying the entries in order and folding them with ``fold_entries``
rebuilds every decision made so far. Evidence is never logged.
"""

import os
import re
import logging
from typing import Dict, Iterable, List, Optional

from .data_structures import ProjectLogEntry, CurationState
from .exceptions import ProjectLogError, ParseError


LOG_TITLE = "# RepeatMatcher project log"

_HEADER_LINE = re.compile(r'^(\w+): ?(.*)$')
_HEADER_KEY = re.compile(r'^\w+$')
_FLAG_VALUES = {'0': False, '1': True}


class ProjectLog:
    """Durable, line-oriented record of curation decisions for one project."""

    def __init__(self, path: str):
        self.path = path

    @classmethod
    def create(cls, path: str, header: Optional[Dict[str, str]] = None,
               reload: bool = False) -> 'ProjectLog':
        """
        Start a new project log.

        Args:
            path: Log file location
            header: Configuration values echoed at the top of the log
            reload: Reuse an existing log at ``path`` instead of failing

        Raises:
            ProjectLogError: if a log already exists and reload was not requested
                or a header value contains a tab or line break
        """
        if os.path.exists(path):
            if reload:
                return cls.open(path)
            raise ProjectLogError("a project log already exists here; resume it instead", path)

        # Lines with a tab are read back as entries
        for key, value in (header or {}).items():
            if any(c in str(value) for c in '\t\r\n') or not _HEADER_KEY.match(key):
                raise ProjectLogError(f"header value for {key!r} cannot be written as one log line", path)

        logging.info(f"Creating project log in {path}")
        try:
            with open(path, 'x') as f:
                f.write(LOG_TITLE + '\n')
                for key, value in (header or {}).items():
                    f.write(f"{key}: {value}\n")
                f.flush()
                os.fsync(f.fileno())
        except OSError as e:
            raise ProjectLogError(f"cannot create log: {e}", path)

        return cls(path)

    @classmethod
    def open(cls, path: str) -> 'ProjectLog':
        """Open an existing project log."""
        if not os.path.isfile(path):
            raise ProjectLogError("project log not found", path)
        logging.info(f"Reading project log from {path}")
        return cls(path)

    def append(self, entry: ProjectLogEntry) -> None:
        """Write one entry and make sure it reached the disk before returning."""
        if '\t' in entry.seq_id or '\n' in entry.new_label or '\t' in entry.new_label:
            raise ProjectLogError(f"entry for {entry.seq_id!r} cannot be written as one log line", self.path)

        line = entry.to_line()
        try:
            with open(self.path, 'a') as f:
                f.write(line + '\n')
                f.flush()
                os.fsync(f.fileno())
        except OSError as e:
            raise ProjectLogError(f"cannot append entry: {e}", self.path)

        logging.debug(f"LOG> {line}")

    def read_header(self) -> Dict[str, str]:
        """Get the configuration header values."""
        header, _ = self._read()
        return header

    def replay(self) -> List[ProjectLogEntry]:
        """Get all entries in the order they were appended."""
        _, entries = self._read()
        return entries

    def _read(self):
        header: Dict[str, str] = {}
        entries: List[ProjectLogEntry] = []

        try:
            with open(self.path, 'r') as f:
                for line_num, line in enumerate(f, 1):
                    line = line.rstrip('\r\n')
                    if not line.strip() or line.startswith('#'):
                        continue

                    if '\t' in line:
                        entries.append(parse_entry(line, self.path, line_num))
                        continue

                    match = _HEADER_LINE.match(line)
                    if match:
                        header[match.group(1)] = match.group(2).strip()
                        continue

                    raise ParseError(f"unrecognised log line: {line!r}", self.path, line_num)
        except OSError as e:
            raise ProjectLogError(f"cannot read log: {e}", self.path)

        return header, entries


def parse_entry(line: str, filename: str = "", line_number: int = 0) -> ProjectLogEntry:
    """Parse one tab-separated decision line."""
    fields = line.split('\t')
    if len(fields) < 3 or len(fields) > 4:
        raise ParseError(f"expected 4 tab-separated fields, got {len(fields)}", filename, line_number)

    seq_id, exclude, reverse = fields[0], fields[1].strip(), fields[2].strip()
    new_label = fields[3] if len(fields) == 4 else ''

    if not seq_id:
        raise ParseError("entry has an empty identifier", filename, line_number)
    if exclude not in _FLAG_VALUES or reverse not in _FLAG_VALUES:
        raise ParseError(f"flags must be 0 or 1, got {exclude!r}/{reverse!r}", filename, line_number)

    return ProjectLogEntry(
        seq_id=seq_id,
        exclude=_FLAG_VALUES[exclude],
        reverse=_FLAG_VALUES[reverse],
        new_label=new_label if new_label.strip() else '',
    )


def fold_entries(entries: Iterable[ProjectLogEntry]) -> Dict[str, CurationState]:
    """
    Reduce an ordered entry sequence to the final curation state per id.

    Later entries override earlier ones for the flags. An empty label means
    "no label change" and never clears a label set by an earlier entry.
    """
    states: Dict[str, CurationState] = {}
    for entry in entries:
        state = states.setdefault(entry.seq_id, CurationState())
        state.exclude = entry.exclude
        state.reverse = entry.reverse
        if entry.new_label:
            state.label = entry.new_label
        state.reviewed = True
    return states
