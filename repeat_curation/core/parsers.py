#!/usr/bin/env python3

"""
Evidence parsers for repeat consensus curation.

Reads the primary consensus FASTA plus the optional cross_match, BLASTX and
RNAfold evidence and merges everything into an AnnotationStore keyed by
sequence identifier. Only the primary FASTA is required; problems with any
other source are logged and the load carries on.
"""

import os
import re
import logging
from typing import List, Optional, Set, Tuple

from .data_structures import (
    SequenceRecord, SelfAlignment, AlignmentSpan, NO_HITS, strip_class_tag,
)
from .exceptions import ParseError


# cross_match score rows start with two integers
SCORE_ROW = re.compile(r'^\s*\d+\s+\d+')
BLAST_BLOCK_MARKER = "\nBLASTX"
QUERY_LINE = re.compile(r'Query=\s*(\S+)')
HEADER_END_MARKER = "Searching"
HEADER_TAIL_LINES = 3


class EvidenceParser:
    """Base class for optional evidence sources."""

    description = "evidence"

    def __init__(self, file_path: Optional[str]):
        self.file_path = file_path

    def parse_into(self, store) -> int:
        """
        Merge this source's evidence into the store.

        Returns:
            Number of evidence items merged (0 if the source was skipped)
        """
        if not self.file_path:
            logging.info(f"No {self.description} provided, skipping")
            return 0
        if not os.path.exists(self.file_path):
            logging.warning(f"{self.description.capitalize()} not found: {self.file_path}, skipping")
            return 0

        logging.info(f"Loading {self.description} from {self.file_path}")
        try:
            count = self._parse(store)
        except (OSError, UnicodeDecodeError) as e:
            logging.warning(f"Failed to read {self.description} {self.file_path}: {e}")
            return 0

        logging.info(f"Loaded {count} {self.description} items")
        return count

    def _parse(self, store) -> int:
        raise NotImplementedError


class FastaSequenceParser:
    """Parse the consensus FASTA; the only required input."""

    def __init__(self, file_path: str):
        self.file_path = file_path

    def parse_into(self, store) -> int:
        """Create one record per FASTA entry."""
        logging.info(f"Loading sequences from {self.file_path}")

        loaded = 0
        current: Optional[SequenceRecord] = None
        lines: List[str] = []

        try:
            with open(self.file_path, 'r') as f:
                for line_num, line in enumerate(f, 1):
                    line = line.rstrip('\r\n')

                    if line.startswith('>'):
                        if current is not None and self._store(store, current, lines):
                            loaded += 1
                        lines = []
                        try:
                            current = SequenceRecord.from_header(line)
                        except ValueError as e:
                            logging.warning(f"Skipping invalid header at line {line_num}: {e}")
                            current = None
                        continue

                    if not line.strip():
                        continue
                    if current is None:
                        logging.debug(f"Ignoring sequence line {line_num} outside a record")
                        continue
                    lines.append(line + '\n')

                if current is not None and self._store(store, current, lines):
                    loaded += 1

        except FileNotFoundError:
            raise ParseError(f"Sequence file not found: {self.file_path}")
        except (OSError, UnicodeDecodeError) as e:
            raise ParseError(f"Failed to read sequence file: {e}", self.file_path)

        logging.info(f"Loaded {loaded} sequences")
        return loaded

    def _store(self, store, record: SequenceRecord, lines: List[str]) -> bool:
        record.sequence = ''.join(lines)
        return store.add_record(record)


class ReferenceAlignmentParser(EvidenceParser):
    """Collect cross_match alignments against a reference repeat library."""

    description = "reference alignments"

    def _parse(self, store) -> int:
        count = 0
        seq_id: Optional[str] = None

        with open(self.file_path, 'r') as f:
            for line_num, line in enumerate(f, 1):
                if SCORE_ROW.match(line):
                    line = line.lstrip()
                    fields = line.split()
                    seq_id = strip_class_tag(fields[4]) if len(fields) > 4 else None
                    if not seq_id:
                        logging.debug(f"Short score row at line {line_num} in {self.file_path}")
                        seq_id = None
                        continue
                    count += 1

                if seq_id is not None:
                    store.append_reference_alignment(seq_id, line)

        return count


class SelfAlignmentParser(EvidenceParser):
    """Collect cross_match self-comparison hits, recording each span pair once per direction."""

    description = "self-alignments"

    def __init__(self, file_path: Optional[str]):
        super().__init__(file_path)
        self.seen: Set[Tuple[AlignmentSpan, AlignmentSpan]] = set()

    def _parse(self, store) -> int:
        count = 0

        with open(self.file_path, 'r') as f:
            for line_num, line in enumerate(f, 1):
                if not SCORE_ROW.match(line):
                    continue
                try:
                    hit = parse_self_alignment_row(line)
                    if hit is not None:
                        count += self.record_hit(store, hit)
                except (ValueError, IndexError) as e:
                    logging.debug(f"Skipping self-alignment line {line_num}: {e}")

        return count

    def record_hit(self, store, hit: SelfAlignment) -> int:
        """
        Store a hit under both participants.

        The ordered (query, subject) span pair is the dedup key, so a hit
        reported from both sides of the alignment is only kept once per
        record.

        Returns:
            Number of entries added (0, 1 or 2)
        """
        added = 0
        forward = (hit.query, hit.subject)
        backward = (hit.subject, hit.query)

        if forward not in self.seen:
            store.add_self_alignment(hit.query.sequence_id, hit)
            added += 1
        if backward not in self.seen:
            store.add_self_alignment(hit.subject.sequence_id, hit.mirrored())
            added += 1

        self.seen.add(forward)
        self.seen.add(backward)
        return added


def parse_self_alignment_row(line: str) -> Optional[SelfAlignment]:
    """
    Parse one cross_match score row.

    Returns None for rows whose query name is purely numeric, which
    cross_match emits when fields are missing.
    """
    fields = line.split()
    if re.fullmatch(r'\d+', strip_class_tag(fields[4])):
        return None

    query = _span(fields[4:8])
    if fields[8] == 'C':
        orientation = '-'
        subject = _span(fields[9:13])
    else:
        orientation = '+'
        subject = _span(fields[8:12])

    return SelfAlignment(
        score=int(fields[0]),
        substitution_pct=float(fields[1]),
        deletion_pct=float(fields[2]),
        insertion_pct=float(fields[3]),
        query=query,
        subject=subject,
        orientation=orientation,
    )


def _span(tokens: List[str]) -> AlignmentSpan:
    if len(tokens) != 4 or not strip_class_tag(tokens[0]):
        raise ValueError(f"incomplete alignment span: {tokens}")
    return AlignmentSpan(*tokens)


class PeptideHitParser(EvidenceParser):
    """Collect BLASTX hit summaries against a peptide database."""

    def __init__(self, file_path: Optional[str], source: str):
        super().__init__(file_path)
        if source not in ('repeat', 'nr'):
            raise ValueError(f"Unknown peptide hit source: {source}")
        self.source = source
        self.description = "repeat peptide hits" if source == 'repeat' else "NR peptide hits"

    def _parse(self, store) -> int:
        with open(self.file_path, 'r') as f:
            content = f.read()

        count = 0
        for block_num, block in enumerate(content.split(BLAST_BLOCK_MARKER), 1):
            if not block.strip():
                continue

            match = QUERY_LINE.search(block)
            if not match:
                logging.debug(f"BLASTX block {block_num} in {self.file_path} has no query")
                continue
            seq_id = strip_class_tag(match.group(1))
            if not seq_id:
                continue

            if NO_HITS in block:
                store.add_peptide_hits(seq_id, self.source, NO_HITS)
                count += 1
                continue

            hits = trim_blast_block(block)
            if hits is None:
                logging.warning(f"Malformed BLASTX block for {seq_id} in {self.file_path}, skipping")
                continue
            store.add_peptide_hits(seq_id, self.source, hits)
            count += 1

        return count


def trim_blast_block(block: str) -> Optional[str]:
    """
    Strip program header and database statistics from one BLASTX block.

    Returns None when the header end marker is missing.
    """
    lines = block.split('\n')

    for index, line in enumerate(lines):
        if HEADER_END_MARKER in line:
            lines = lines[index + 1 + HEADER_TAIL_LINES:]
            break
    else:
        return None

    for index, line in enumerate(lines):
        if line.strip().startswith('Database:'):
            lines = lines[:index]
            break

    while lines and not lines[-1].strip():
        lines.pop()
    while lines and not lines[0].strip():
        lines.pop(0)

    return '\n'.join(lines)


class FoldImageResolver(EvidenceParser):
    """Associate RNAfold PNG images with records by file name."""

    description = "fold images"

    def _parse(self, store) -> int:
        if not os.path.isdir(self.file_path):
            logging.warning(f"Fold image path is not a directory: {self.file_path}")
            return 0

        count = 0
        for name in sorted(os.listdir(self.file_path)):
            if not name.endswith('.png'):
                continue
            seq_id = name[:-len('.png')]
            try:
                if store.set_fold_image(seq_id, os.path.join(self.file_path, name)):
                    count += 1
            except ValueError as e:
                logging.debug(f"Ignoring fold image {name}: {e}")

        return count
