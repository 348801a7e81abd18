#!/usr/bin/env python3

"""
Core data structures for repeat consensus curation.

Defines the per-sequence record that accumulates evidence and curation
decisions, the self-alignment hit types, and the small value types that
flow between the store and the project log.
"""

import re
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from .taxonomy import UNCLASSIFIED, AMBIGUOUS_MARK, strip_ambiguity


NO_HITS = "No hits found"


def format_label(seq_id: str, class_label: str, ambiguous: bool = False,
                 free_text: str = "") -> str:
    """Build the canonical label ``id#class[?] free text``."""
    head = f"{seq_id}#{class_label}{AMBIGUOUS_MARK if ambiguous else ''}"
    if free_text:
        return f"{head} {free_text}"
    return head


def parse_label(label: str) -> Tuple[str, str, bool, str]:
    """
    Split a label into (id, class, ambiguous, free text).

    Accepts both the canonical form and bare FASTA headers without a class
    tag, which fall back to the unclassified sentinel. Only the first
    whitespace-delimited token is searched for the ``#`` separator.
    """
    label = label.rstrip('\r\n')
    parts = re.split(r'\s', label, maxsplit=1)
    head = parts[0]
    free_text = parts[1] if len(parts) > 1 else ''

    if '#' in head:
        seq_id, class_label = head.split('#', 1)
    else:
        seq_id, class_label = head, UNCLASSIFIED

    ambiguous = class_label.endswith(AMBIGUOUS_MARK)
    class_label = strip_ambiguity(class_label)
    if not class_label:
        class_label = UNCLASSIFIED

    return seq_id, class_label, ambiguous, free_text


def strip_class_tag(name: str) -> str:
    """Remove a ``#class`` suffix from an identifier found in a report."""
    return name.split('#', 1)[0]


@dataclass(frozen=True)
class AlignmentSpan:
    """One participant of a cross_match alignment row (name plus three coordinate tokens)."""
    name: str
    first: str
    second: str
    third: str

    @property
    def sequence_id(self) -> str:
        return strip_class_tag(self.name)

    def as_tokens(self) -> Tuple[str, str, str, str]:
        return (self.name, self.first, self.second, self.third)


@dataclass(frozen=True)
class SelfAlignment:
    """A pairwise self-comparison hit as seen from the query's side."""
    score: int
    substitution_pct: float
    deletion_pct: float
    insertion_pct: float
    query: AlignmentSpan
    subject: AlignmentSpan
    orientation: str = '+'

    def __post_init__(self):
        if self.orientation not in ('+', '-'):
            raise ValueError(f"Invalid orientation: {self.orientation}")

    def mirrored(self) -> 'SelfAlignment':
        """Get the same hit from the subject's side."""
        return SelfAlignment(
            score=self.score,
            substitution_pct=self.substitution_pct,
            deletion_pct=self.deletion_pct,
            insertion_pct=self.insertion_pct,
            query=self.subject,
            subject=self.query,
            orientation=self.orientation,
        )

    def to_row(self) -> str:
        """Render as a tab-separated display row."""
        parts = [str(self.score), f"{self.substitution_pct:.2f}",
                 f"{self.deletion_pct:.2f}", f"{self.insertion_pct:.2f}"]
        parts.extend(self.query.as_tokens())
        parts.extend(self.subject.as_tokens())
        parts.append(self.orientation)
        return '\t'.join(parts)


@dataclass
class SequenceRecord:
    """All evidence and curation state for one consensus sequence."""
    id: str
    original_label: str
    class_label: str = UNCLASSIFIED
    free_text: str = ""
    sequence: str = ""
    # Evidence
    self_alignments: List[SelfAlignment] = field(default_factory=list)
    reference_alignment: str = ""
    repeat_peptide_hits: Optional[str] = None
    nr_peptide_hits: Optional[str] = None
    fold_image_path: Optional[str] = None
    # Curation state
    reviewed: bool = False
    exclude_flag: bool = False
    reverse_flag: bool = False
    ambiguous_flag: bool = False
    synthetic: bool = False

    def __post_init__(self):
        if not self.id:
            raise ValueError("Sequence ID cannot be empty")
        if '#' in self.id or any(c.isspace() for c in self.id):
            raise ValueError(f"Invalid sequence ID: {self.id!r}")

    @classmethod
    def from_header(cls, header: str, sequence: str = "") -> 'SequenceRecord':
        """Create a record from a FASTA header line (with or without '>')."""
        header = header.rstrip('\r\n')
        if header.startswith('>'):
            header = header[1:]
        seq_id, class_label, ambiguous, free_text = parse_label(header)
        return cls(
            id=seq_id,
            original_label=header,
            class_label=class_label,
            free_text=free_text,
            ambiguous_flag=ambiguous,
            sequence=sequence,
        )

    @classmethod
    def placeholder(cls, seq_id: str) -> 'SequenceRecord':
        """Create a synthetic record for an id only seen in secondary evidence."""
        return cls(id=seq_id, original_label=seq_id, synthetic=True)

    @property
    def current_label(self) -> str:
        """Get the canonical label reflecting the current curation state."""
        return format_label(self.id, self.class_label, self.ambiguous_flag, self.free_text)

    @property
    def original_canonical_label(self) -> str:
        """Get the canonical form of the label first seen in the input."""
        _, class_label, ambiguous, free_text = parse_label(self.original_label)
        return format_label(self.id, class_label, ambiguous, free_text)

    @property
    def is_modified(self) -> bool:
        """Check if a saved decision changes the record's label or placement."""
        if not self.reviewed:
            return False
        return (self.current_label != self.original_canonical_label
                or self.reverse_flag or self.exclude_flag)

    @property
    def sequence_length(self) -> int:
        """Get sequence length ignoring line breaks."""
        return sum(len(line) for line in self.sequence.split())

    def apply_label(self, label: str) -> None:
        """Take class, ambiguity and free text from a label, keeping this record's id."""
        _, class_label, ambiguous, free_text = parse_label(label)
        self.class_label = class_label
        self.ambiguous_flag = ambiguous
        self.free_text = free_text


@dataclass(frozen=True)
class ProjectLogEntry:
    """One accepted curation decision as persisted in the project log."""
    seq_id: str
    exclude: bool = False
    reverse: bool = False
    new_label: str = ""

    def to_line(self) -> str:
        return f"{self.seq_id}\t{int(self.exclude)}\t{int(self.reverse)}\t{self.new_label}"


@dataclass
class CurationState:
    """Curation fields of one record, as rebuilt from the log or snapshotted."""
    label: Optional[str] = None
    exclude: bool = False
    reverse: bool = False
    reviewed: bool = False


@dataclass
class CurationIntent:
    """A curator's requested change; ``None`` fields are left untouched."""
    seq_id: str
    new_class: Optional[str] = None
    new_free_text: Optional[str] = None
    reverse: Optional[bool] = None
    exclude: Optional[bool] = None
    ambiguous: Optional[bool] = None


@dataclass(frozen=True)
class IntentResult:
    """Outcome of an accepted intent."""
    entry: ProjectLogEntry
    class_recognized: bool = True
