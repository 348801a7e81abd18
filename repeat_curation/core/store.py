#!/usr/bin/env python3

"""
In-memory annotation store.

Maps each sequence identifier to its SequenceRecord and owns every mutation
rule: evidence merging during load, curator intents during the session and
restoration of decisions replayed from the project log.
"""

import logging
from dataclasses import replace
from typing import Dict, Iterator, List, Optional

from .data_structures import (
    SequenceRecord, SelfAlignment, ProjectLogEntry, CurationState,
    CurationIntent, IntentResult, NO_HITS,
)
from .exceptions import ValidationError, RecordNotFoundError
from .taxonomy import TaxonomyIndex, AMBIGUOUS_MARK, strip_ambiguity


PEPTIDE_SOURCES = {
    'repeat': 'repeat_peptide_hits',
    'nr': 'nr_peptide_hits',
}


class AnnotationStore:
    """Identifier -> SequenceRecord mapping with curation invariants."""

    def __init__(self, taxonomy: Optional[TaxonomyIndex] = None):
        self.taxonomy = taxonomy or TaxonomyIndex()
        self.records: Dict[str, SequenceRecord] = {}

    def __contains__(self, seq_id: str) -> bool:
        return seq_id in self.records

    def __len__(self) -> int:
        return len(self.records)

    def __iter__(self) -> Iterator[SequenceRecord]:
        for seq_id in self.all_ids_sorted():
            yield self.records[seq_id]

    # Record lifecycle

    def add_record(self, record: SequenceRecord) -> bool:
        """
        Add a record read from the primary sequence input.

        The first record for an identifier wins. A synthetic placeholder
        created earlier by secondary evidence is filled in rather than
        replaced, so evidence already attached to it is kept.

        Returns:
            True if the record was stored
        """
        existing = self.records.get(record.id)
        if existing is None:
            self.records[record.id] = record
            return True

        if existing.synthetic:
            existing.original_label = record.original_label
            existing.class_label = record.class_label
            existing.free_text = record.free_text
            existing.ambiguous_flag = record.ambiguous_flag
            existing.sequence = record.sequence
            existing.synthetic = False
            return True

        logging.warning(f"Duplicate sequence identifier {record.id}, keeping first record")
        return False

    def ensure_record(self, seq_id: str) -> SequenceRecord:
        """Get a record, creating a synthetic placeholder if the id is unknown."""
        record = self.records.get(seq_id)
        if record is None:
            logging.debug(f"Creating synthetic record for {seq_id} (not in sequence input)")
            record = SequenceRecord.placeholder(seq_id)
            self.records[seq_id] = record
        return record

    def get_record(self, seq_id: str) -> SequenceRecord:
        """Get a record by identifier."""
        try:
            return self.records[seq_id]
        except KeyError:
            raise RecordNotFoundError(seq_id) from None

    # Evidence merging

    def add_self_alignment(self, seq_id: str, hit: SelfAlignment) -> None:
        self.ensure_record(seq_id).self_alignments.append(hit)

    def append_reference_alignment(self, seq_id: str, text: str) -> None:
        self.ensure_record(seq_id).reference_alignment += text

    def add_peptide_hits(self, seq_id: str, source: str, text: str) -> None:
        """Append a peptide search block for one of the peptide databases."""
        if source not in PEPTIDE_SOURCES:
            raise ValueError(f"Unknown peptide hit source: {source}")
        attribute = PEPTIDE_SOURCES[source]
        record = self.ensure_record(seq_id)
        existing = getattr(record, attribute)
        if existing is None:
            setattr(record, attribute, text)
        elif text == NO_HITS and existing == NO_HITS:
            return
        else:
            setattr(record, attribute, f"{existing}\n{text}")

    def set_fold_image(self, seq_id: str, path: str) -> bool:
        """Attach a folding image; the first path seen for an id wins."""
        record = self.ensure_record(seq_id)
        if record.fold_image_path is not None:
            return False
        record.fold_image_path = path
        return True

    # Curation

    def apply_intent(self, intent: CurationIntent) -> IntentResult:
        """
        Validate and apply a curator intent.

        Nothing is mutated unless the intent is valid. Unknown classes are
        accepted with a warning because the taxonomy is advisory.

        Returns:
            IntentResult with the entry to append to the project log
        """
        record = self.get_record(intent.seq_id)

        class_label = record.class_label
        ambiguous = record.ambiguous_flag
        if intent.new_class is not None:
            class_label, implied_ambiguous = self._validate_class(intent.seq_id, intent.new_class)
            if implied_ambiguous:
                ambiguous = True
        if intent.ambiguous is not None:
            ambiguous = intent.ambiguous

        free_text = record.free_text
        if intent.new_free_text is not None:
            free_text = self._validate_free_text(intent.seq_id, intent.new_free_text)

        class_recognized = self.taxonomy.is_known(class_label)
        if not class_recognized:
            logging.warning(f"Class '{class_label}' for {intent.seq_id} is not a known repeat class")

        previous_label = record.current_label

        record.class_label = class_label
        record.ambiguous_flag = ambiguous
        record.free_text = free_text
        if intent.reverse is not None:
            record.reverse_flag = intent.reverse
        if intent.exclude is not None:
            record.exclude_flag = intent.exclude
        record.reviewed = True

        new_label = record.current_label
        entry = ProjectLogEntry(
            seq_id=record.id,
            exclude=record.exclude_flag,
            reverse=record.reverse_flag,
            new_label=new_label if new_label != previous_label else '',
        )
        return IntentResult(entry=entry, class_recognized=class_recognized)

    def _validate_class(self, seq_id: str, new_class: str):
        value = new_class.strip()
        if not value or not strip_ambiguity(value):
            raise ValidationError("class label cannot be empty", seq_id)
        if '#' in value or any(c.isspace() for c in value):
            raise ValidationError(f"class label may not contain '#' or whitespace: {new_class!r}", seq_id)
        implied_ambiguous = value.endswith(AMBIGUOUS_MARK)
        return strip_ambiguity(value), implied_ambiguous

    def _validate_free_text(self, seq_id: str, free_text: str) -> str:
        if any(c in free_text for c in '\t\r\n'):
            raise ValidationError("annotation text may not contain tabs or line breaks", seq_id)
        return free_text.strip()

    def curation_state(self, seq_id: str) -> CurationState:
        """Snapshot the curation fields of a record."""
        record = self.get_record(seq_id)
        return CurationState(
            label=record.current_label,
            exclude=record.exclude_flag,
            reverse=record.reverse_flag,
            reviewed=record.reviewed,
        )

    def restore_state(self, seq_id: str, state: CurationState) -> SequenceRecord:
        """Overwrite a record's curation fields from a state."""
        record = self.ensure_record(seq_id)
        if state.label:
            record.apply_label(state.label)
        record.exclude_flag = state.exclude
        record.reverse_flag = state.reverse
        record.reviewed = state.reviewed
        return record

    def restore(self, states: Dict[str, CurationState]) -> int:
        """
        Apply curation states folded from a project log.

        Identifiers missing from the evidence are kept as synthetic records
        so that no logged decision is lost.

        Returns:
            Number of records restored
        """
        for seq_id, state in states.items():
            if seq_id not in self.records:
                logging.warning(f"Logged decision for {seq_id} has no matching sequence")
            self.restore_state(seq_id, replace(state, reviewed=True))
        return len(states)

    # Views

    def all_ids_sorted(self) -> List[str]:
        """Get all identifiers in lexicographic order."""
        return sorted(self.records)

    def grouped_by_class(self) -> Dict[str, List[str]]:
        """
        Group identifiers by class label.

        Every taxonomy class is present even with no members, as is every
        class actually used by a record.
        """
        groups: Dict[str, List[str]] = {c: [] for c in self.taxonomy.classes()}
        for seq_id in self.all_ids_sorted():
            groups.setdefault(self.records[seq_id].class_label, []).append(seq_id)
        return {class_label: groups[class_label] for class_label in sorted(groups)}

    def summary(self) -> Dict[str, int]:
        """Count records by curation status."""
        records = list(self.records.values())
        return {
            'total': len(records),
            'reviewed': sum(1 for r in records if r.reviewed),
            'modified': sum(1 for r in records if r.is_modified),
            'excluded': sum(1 for r in records if r.exclude_flag),
            'reversed': sum(1 for r in records if r.reverse_flag),
            'synthetic': sum(1 for r in records if r.synthetic),
        }
