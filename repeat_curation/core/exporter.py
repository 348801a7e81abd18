#!/usr/bin/env python3

"""
Final FASTA export.

Writes every record either to the kept or to the excluded FASTA file,
using the curated label and reverse-complementing sequences marked for
reversal. Both files are staged next to their targets and only moved into
place once everything has been written.
"""

import os
import errno
import logging
import tempfile
from dataclasses import dataclass
from typing import List, Optional, Tuple

from .exceptions import ExportError


_COMPLEMENT = str.maketrans('ACGTacgt', 'TGCAtgca')


def reverse_complement(sequence: str) -> str:
    """Get the reverse complement of a nucleotide sequence, ignoring whitespace."""
    return ''.join(sequence.split())[::-1].translate(_COMPLEMENT)


def wrap_sequence(sequence: str, width: int = 50) -> str:
    """Break a sequence into lines of at most ``width`` characters."""
    if width < 1:
        raise ValueError(f"Invalid line width: {width}")
    return ''.join(sequence[i:i + width] + '\n' for i in range(0, len(sequence), width))


@dataclass
class ExportSummary:
    """Counts and locations of one export pass."""
    keep_path: str
    exclude_path: str
    kept: int = 0
    excluded: int = 0
    reversed: int = 0


class FastaExporter:
    """Serialize final curation decisions to kept/excluded FASTA files."""

    def __init__(self, line_width: int = 50):
        if line_width < 1:
            raise ValueError(f"Invalid line width: {line_width}")
        self.line_width = line_width

    def format_record(self, record) -> str:
        """Render one record as FASTA text."""
        if record.reverse_flag:
            body = wrap_sequence(reverse_complement(record.sequence), self.line_width)
        else:
            body = record.sequence
            if body and not body.endswith('\n'):
                body += '\n'
        return f">{record.current_label}\n{body}"

    def export(self, store, keep_path: str, exclude_path: str) -> ExportSummary:
        """
        Write kept and excluded sequences.

        Every identifier in the store ends up in exactly one of the two
        files. On any failure both targets keep their previous content.

        Returns:
            ExportSummary with record counts

        Raises:
            ExportError: if either file cannot be written
        """
        if os.path.abspath(keep_path) == os.path.abspath(exclude_path):
            raise ExportError("kept and excluded outputs must be different files", keep_path)

        summary = ExportSummary(keep_path=keep_path, exclude_path=exclude_path)
        staged: List[Tuple[str, str]] = []
        replaced: List[Tuple[str, Optional[str]]] = []

        logging.info(f"Writing final sequences to {keep_path}")
        logging.info(f"Writing excluded sequences to {exclude_path}")

        try:
            for target in (keep_path, exclude_path):
                if os.path.isdir(target):
                    raise IsADirectoryError(errno.EISDIR, os.strerror(errno.EISDIR), target)

            keep_tmp = self._stage(keep_path)
            staged.append((keep_tmp, keep_path))
            exclude_tmp = self._stage(exclude_path)
            staged.append((exclude_tmp, exclude_path))

            with open(keep_tmp, 'w') as keep_handle, open(exclude_tmp, 'w') as exclude_handle:
                for record in store:
                    if record.synthetic and not record.sequence:
                        logging.warning(f"{record.id} has no sequence, writing header only")
                    text = self.format_record(record)
                    if record.exclude_flag:
                        exclude_handle.write(text)
                        summary.excluded += 1
                    else:
                        keep_handle.write(text)
                        summary.kept += 1
                    if record.reverse_flag:
                        summary.reversed += 1

            # Previous outputs are set aside so both can be restored together
            for tmp_path, target in staged:
                replaced.append((target, self._set_aside(target)))
                os.replace(tmp_path, target)

        except OSError as e:
            self._roll_back(staged, replaced)
            failed = getattr(e, 'filename', None) or keep_path
            raise ExportError(str(e.strerror or e), failed)

        for _, backup in replaced:
            if backup is not None:
                os.unlink(backup)

        logging.info(f"Exported {summary.kept} kept and {summary.excluded} excluded sequences")
        return summary

    def _set_aside(self, target: str) -> Optional[str]:
        if not os.path.exists(target):
            return None
        directory = os.path.dirname(os.path.abspath(target))
        fd, backup = tempfile.mkstemp(
            prefix=f".{os.path.basename(target)}.", suffix=".bak", dir=directory
        )
        os.close(fd)
        try:
            os.replace(target, backup)
        except OSError:
            os.unlink(backup)
            raise
        return backup

    def _roll_back(self, staged: List[Tuple[str, str]],
                   replaced: List[Tuple[str, Optional[str]]]) -> None:
        """Put every target back the way it was before the export started."""
        for target, backup in reversed(replaced):
            try:
                if backup is not None:
                    os.replace(backup, target)
                elif os.path.exists(target):
                    os.unlink(target)
            except OSError as e:
                logging.error(f"Could not restore {target}: {e}")

        for tmp_path, _ in staged:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)

    def _stage(self, target: str) -> str:
        directory = os.path.dirname(os.path.abspath(target))
        fd, tmp_path = tempfile.mkstemp(
            prefix=f".{os.path.basename(target)}.", suffix=".tmp", dir=directory
        )
        os.close(fd)
        os.chmod(tmp_path, 0o644)
        return tmp_path
