#!/usr/bin/env python3

"""
Unit tests for the annotation store.

Tests evidence merging, curator intent validation and application, and
restoration of logged decisions.
"""

import unittest
import sys
import os

# Add the parent directory to the path to import modules
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '../..')))

from repeat_curation.core.store import AnnotationStore
from repeat_curation.core.data_structures import (
    SequenceRecord, CurationIntent, CurationState, NO_HITS,
)
from repeat_curation.core.exceptions import ValidationError, RecordNotFoundError
from repeat_curation.core.taxonomy import TaxonomyIndex, UNCLASSIFIED


def build_store():
    store = AnnotationStore()
    store.add_record(SequenceRecord.from_header(">seq1#DNA/hAT-Charlie desc one", "ACGT\n"))
    store.add_record(SequenceRecord.from_header(">seq2 desc two", "GGCC\n"))
    return store


class TestRecordLifecycle(unittest.TestCase):
    """Test adding and looking up records."""

    def setUp(self):
        self.store = build_store()

    def test_get_record(self):
        self.assertEqual(self.store.get_record("seq1").free_text, "desc one")
        self.assertIn("seq2", self.store)
        self.assertEqual(len(self.store), 2)

    def test_get_unknown_record(self):
        """Test that unknown ids raise RecordNotFoundError, which is also a KeyError."""
        with self.assertRaises(RecordNotFoundError):
            self.store.get_record("nope")
        with self.assertRaises(KeyError):
            self.store.get_record("nope")

    def test_synthetic_placeholder_filled_in(self):
        """Evidence attached before the FASTA record arrives is kept."""
        store = AnnotationStore()
        store.add_peptide_hits("seq3", 'repeat', NO_HITS)
        self.assertTrue(store.get_record("seq3").synthetic)

        stored = store.add_record(SequenceRecord.from_header(">seq3#LINE x", "AAAA\n"))

        self.assertTrue(stored)
        record = store.get_record("seq3")
        self.assertFalse(record.synthetic)
        self.assertEqual(record.class_label, "LINE")
        self.assertEqual(record.sequence, "AAAA\n")
        self.assertEqual(record.repeat_peptide_hits, NO_HITS)

    def test_iteration_is_sorted(self):
        self.store.ensure_record("aaa")
        self.assertEqual([record.id for record in self.store], ["aaa", "seq1", "seq2"])


class TestEvidenceMerging(unittest.TestCase):
    """Test evidence accumulation rules."""

    def setUp(self):
        self.store = build_store()

    def test_peptide_hits_accumulate(self):
        self.store.add_peptide_hits("seq1", 'nr', "block one")
        self.store.add_peptide_hits("seq1", 'nr', "block two")
        self.assertEqual(self.store.get_record("seq1").nr_peptide_hits, "block one\nblock two")

    def test_repeated_no_hits_not_duplicated(self):
        self.store.add_peptide_hits("seq1", 'repeat', NO_HITS)
        self.store.add_peptide_hits("seq1", 'repeat', NO_HITS)
        self.assertEqual(self.store.get_record("seq1").repeat_peptide_hits, NO_HITS)

    def test_unknown_peptide_source(self):
        with self.assertRaises(ValueError):
            self.store.add_peptide_hits("seq1", 'pfam', "x")

    def test_first_fold_image_wins(self):
        self.assertTrue(self.store.set_fold_image("seq1", "/a/seq1.png"))
        self.assertFalse(self.store.set_fold_image("seq1", "/b/seq1.png"))
        self.assertEqual(self.store.get_record("seq1").fold_image_path, "/a/seq1.png")

    def test_reference_alignment_concatenates(self):
        self.store.append_reference_alignment("seq1", "row one\n")
        self.store.append_reference_alignment("seq1", "row two\n")
        self.assertEqual(self.store.get_record("seq1").reference_alignment, "row one\nrow two\n")


class TestApplyIntent(unittest.TestCase):
    """Test curator intents."""

    def setUp(self):
        self.store = build_store()

    def test_reclassify(self):
        """Test a class change produces a log entry with the new label."""
        result = self.store.apply_intent(CurationIntent("seq1", new_class="LINE/L1"))

        record = self.store.get_record("seq1")
        self.assertTrue(record.reviewed)
        self.assertEqual(record.current_label, "seq1#LINE/L1 desc one")
        self.assertEqual(result.entry.new_label, "seq1#LINE/L1 desc one")
        self.assertTrue(result.class_recognized)

    def test_flags_only(self):
        """Test that a flag change leaves the logged label empty."""
        result = self.store.apply_intent(CurationIntent("seq2", exclude=True))

        self.assertEqual(result.entry.to_line(), "seq2\t1\t0\t")
        record = self.store.get_record("seq2")
        self.assertTrue(record.exclude_flag)
        self.assertTrue(record.reviewed)
        self.assertEqual(record.class_label, UNCLASSIFIED)

    def test_mark_reviewed_without_changes(self):
        result = self.store.apply_intent(CurationIntent("seq1"))
        self.assertTrue(self.store.get_record("seq1").reviewed)
        self.assertEqual(result.entry.new_label, "")

    def test_rename_back_to_original_is_logged(self):
        """Reverting to the original label after a change must be logged."""
        self.store.apply_intent(CurationIntent("seq1", new_class="LINE/L1"))
        result = self.store.apply_intent(CurationIntent("seq1", new_class="DNA/hAT-Charlie"))
        self.assertEqual(result.entry.new_label, "seq1#DNA/hAT-Charlie desc one")

    def test_ambiguity_marker_in_class(self):
        """A trailing '?' sets the flag and never doubles."""
        self.store.apply_intent(CurationIntent("seq1", new_class="LINE/L1?"))
        record = self.store.get_record("seq1")
        self.assertTrue(record.ambiguous_flag)
        self.assertEqual(record.class_label, "LINE/L1")
        self.assertEqual(record.current_label, "seq1#LINE/L1? desc one")

        self.store.apply_intent(CurationIntent("seq1", new_class="LINE/L1?", ambiguous=True))
        self.assertEqual(record.current_label, "seq1#LINE/L1? desc one")

        self.store.apply_intent(CurationIntent("seq1", ambiguous=False))
        self.assertEqual(record.current_label, "seq1#LINE/L1 desc one")

    def test_logged_label_replays_to_live_state(self):
        """Clearing ambiguity on a '??' header logs a label that replays identically."""
        self.store.add_record(SequenceRecord.from_header(">s#DNA?? x", "ACGT\n"))
        result = self.store.apply_intent(CurationIntent("s", ambiguous=False))

        self.assertEqual(result.entry.new_label, "s#DNA x")

        replayed = AnnotationStore()
        replayed.add_record(SequenceRecord.from_header(">s#DNA?? x", "ACGT\n"))
        replayed.restore({"s": CurationState(label=result.entry.new_label)})
        self.assertEqual(replayed.curation_state("s"), self.store.curation_state("s"))
        self.assertFalse(replayed.get_record("s").ambiguous_flag)

    def test_free_text_trimmed(self):
        self.store.apply_intent(CurationIntent("seq2", new_free_text="  full length  "))
        self.assertEqual(self.store.get_record("seq2").current_label, f"seq2#{UNCLASSIFIED} full length")

    def test_unknown_class_accepted_with_warning(self):
        with self.assertLogs(level='WARNING'):
            result = self.store.apply_intent(CurationIntent("seq1", new_class="DNA/Madeup"))
        self.assertFalse(result.class_recognized)
        self.assertEqual(self.store.get_record("seq1").class_label, "DNA/Madeup")

    def test_invalid_class_rejected_without_mutation(self):
        """A rejected intent leaves every field untouched."""
        for bad_class in ("", "?", "LINE L1", "LINE#L1"):
            with self.subTest(new_class=bad_class):
                with self.assertRaises(ValidationError):
                    self.store.apply_intent(
                        CurationIntent("seq1", new_class=bad_class, exclude=True, reverse=True)
                    )
                record = self.store.get_record("seq1")
                self.assertFalse(record.reviewed)
                self.assertFalse(record.exclude_flag)
                self.assertFalse(record.reverse_flag)
                self.assertEqual(record.class_label, "DNA/hAT-Charlie")

    def test_invalid_free_text_rejected(self):
        with self.assertRaises(ValidationError):
            self.store.apply_intent(CurationIntent("seq1", new_free_text="two\nlines"))
        with self.assertRaises(ValidationError):
            self.store.apply_intent(CurationIntent("seq1", new_free_text="tab\there"))
        self.assertEqual(self.store.get_record("seq1").free_text, "desc one")

    def test_unknown_record(self):
        with self.assertRaises(RecordNotFoundError):
            self.store.apply_intent(CurationIntent("nope", exclude=True))


class TestRestore(unittest.TestCase):
    """Test restoring curation states."""

    def setUp(self):
        self.store = build_store()

    def test_restore_states(self):
        states = {
            "seq1": CurationState(label="seq1#LINE/L1? from log", exclude=False, reverse=True),
            "seq2": CurationState(exclude=True),
        }
        restored = self.store.restore(states)

        self.assertEqual(restored, 2)
        seq1 = self.store.get_record("seq1")
        self.assertEqual(seq1.current_label, "seq1#LINE/L1? from log")
        self.assertTrue(seq1.reverse_flag)
        self.assertTrue(seq1.reviewed)

        seq2 = self.store.get_record("seq2")
        self.assertTrue(seq2.exclude_flag)
        self.assertTrue(seq2.reviewed)
        self.assertEqual(seq2.current_label, f"seq2#{UNCLASSIFIED} desc two")

    def test_restore_unknown_id(self):
        """Logged decisions for unknown ids are kept as synthetic records."""
        with self.assertLogs(level='WARNING'):
            self.store.restore({"ghost": CurationState(exclude=True)})
        ghost = self.store.get_record("ghost")
        self.assertTrue(ghost.synthetic)
        self.assertTrue(ghost.exclude_flag)

    def test_snapshot_and_restore_state(self):
        before = self.store.curation_state("seq1")
        self.store.apply_intent(CurationIntent("seq1", new_class="LTR", exclude=True))

        self.store.restore_state("seq1", before)
        record = self.store.get_record("seq1")
        self.assertEqual(record.current_label, "seq1#DNA/hAT-Charlie desc one")
        self.assertFalse(record.exclude_flag)
        self.assertFalse(record.reviewed)


class TestViews(unittest.TestCase):
    """Test grouping and summaries."""

    def test_grouped_by_class(self):
        store = AnnotationStore(TaxonomyIndex(["DNA/hAT-Charlie", "LINE/L1", UNCLASSIFIED]))
        store.add_record(SequenceRecord.from_header(">seq1#DNA/hAT-Charlie x"))
        store.add_record(SequenceRecord.from_header(">seq2 y"))
        store.add_record(SequenceRecord.from_header(">seq0#Custom z"))

        groups = store.grouped_by_class()

        self.assertEqual(list(groups), sorted(["DNA/hAT-Charlie", "LINE/L1", UNCLASSIFIED, "Custom"]))
        self.assertEqual(groups["DNA/hAT-Charlie"], ["seq1"])
        self.assertEqual(groups["LINE/L1"], [])
        self.assertEqual(groups[UNCLASSIFIED], ["seq2"])
        self.assertEqual(groups["Custom"], ["seq0"])

    def test_every_id_in_exactly_one_group(self):
        store = build_store()
        store.ensure_record("ghost")
        members = [seq_id for ids in store.grouped_by_class().values() for seq_id in ids]
        self.assertEqual(sorted(members), store.all_ids_sorted())

    def test_summary(self):
        store = build_store()
        store.apply_intent(CurationIntent("seq1", new_class="LINE/L1"))
        store.apply_intent(CurationIntent("seq2", reverse=True))

        summary = store.summary()
        self.assertEqual(summary['total'], 2)
        self.assertEqual(summary['reviewed'], 2)
        self.assertEqual(summary['modified'], 2)
        self.assertEqual(summary['reversed'], 1)
        self.assertEqual(summary['excluded'], 0)


if __name__ == '__main__':
    unittest.main()
