#!/usr/bin/env python3

"""
Curation session.

Ties the parsers, the annotation store, the project log and the exporter
together and exposes the small surface a presentation layer needs:
list groups, inspect a record, apply an intent and export.
"""

import os
import logging
from typing import Dict, List, Optional, Any

from .config import CurationConfig
from .data_structures import SequenceRecord, CurationIntent, IntentResult
from .exceptions import ProjectLogError, ConfigurationError, ParseError
from .exporter import FastaExporter, ExportSummary
from .parsers import (
    FastaSequenceParser, ReferenceAlignmentParser, SelfAlignmentParser,
    PeptideHitParser, FoldImageResolver,
)
from .project_log import ProjectLog, fold_entries
from .store import AnnotationStore
from .taxonomy import TaxonomyIndex
from ..utils.performance_monitor import PerformanceMonitor


class CurationSession:
    """One curator's working session on one project."""

    def __init__(self, config: CurationConfig, project_log: ProjectLog,
                 store: Optional[AnnotationStore] = None,
                 taxonomy: Optional[TaxonomyIndex] = None):
        self.config = config
        self.project_log = project_log
        self.taxonomy = taxonomy or TaxonomyIndex()
        self.store = store or AnnotationStore(self.taxonomy)
        self.exporter = FastaExporter(line_width=config.line_width)

    @classmethod
    def start(cls, config: CurationConfig,
              taxonomy: Optional[TaxonomyIndex] = None) -> 'CurationSession':
        """
        Start a new project.

        Evidence is loaded before the log is created, so a missing primary
        input leaves nothing behind on disk.

        Raises:
            ConfigurationError: required settings are missing
            ParseError: the primary sequence file cannot be read
            ProjectLogError: a log already exists at the configured path
        """
        config.validate_for_new_project()
        _apply_verbosity(config)
        if os.path.exists(config.log_file):
            raise ProjectLogError("a project log already exists here; resume it instead", config.log_file)

        store = AnnotationStore(taxonomy or TaxonomyIndex())
        load_evidence(store, config)

        project_log = ProjectLog.create(config.log_file, config.to_log_header())
        logging.info(f"Started new project with {len(store)} sequences")
        return cls(config, project_log, store, store.taxonomy)

    @classmethod
    def resume(cls, log_path: str, overrides: Optional[Dict[str, Any]] = None,
               taxonomy: Optional[TaxonomyIndex] = None) -> 'CurationSession':
        """
        Reopen a project from its log.

        The configuration is rebuilt from the log header, evidence is parsed
        again and the logged decisions are replayed on top of it.
        """
        project_log = ProjectLog.open(log_path)
        values = CurationConfig.from_log_header(project_log.read_header()).to_dict()
        values['log_file'] = log_path
        for key, value in (overrides or {}).items():
            if value is not None:
                values[key] = value
        config = CurationConfig.from_dict(values)

        _apply_verbosity(config)
        if not config.seq_file:
            raise ConfigurationError(f"project log {log_path} does not name a sequence file")

        entries = project_log.replay()
        states = fold_entries(entries)

        store = AnnotationStore(taxonomy or TaxonomyIndex())
        load_evidence(store, config)
        restored = store.restore(states)

        logging.info(f"Resumed project: replayed {len(entries)} log entries for {restored} sequences")
        return cls(config, project_log, store, store.taxonomy)

    # Presentation-layer interface

    def list_groups(self) -> Dict[str, List[str]]:
        """Get identifiers grouped by class, every known class included."""
        return self.store.grouped_by_class()

    def get_record(self, seq_id: str) -> SequenceRecord:
        return self.store.get_record(seq_id)

    def apply_intent(self, intent: CurationIntent) -> IntentResult:
        """
        Apply a curator intent and persist it.

        The store is updated first and the decision is then appended to the
        log. If the append fails the record is rolled back so that the
        reviewed flag never runs ahead of the log.
        """
        before = self.store.curation_state(intent.seq_id)
        result = self.store.apply_intent(intent)
        try:
            self.project_log.append(result.entry)
        except ProjectLogError:
            self.store.restore_state(intent.seq_id, before)
            raise
        return result

    def export_all(self, keep_path: Optional[str] = None,
                   exclude_path: Optional[str] = None) -> ExportSummary:
        """Write kept and excluded FASTA files."""
        keep_path = keep_path or self.config.out_file
        exclude_path = exclude_path or self.config.exclude_file
        if not keep_path or not exclude_path:
            raise ConfigurationError("both output and exclude files are required for export")
        return self.exporter.export(self.store, keep_path, exclude_path)

    def progress(self) -> Dict[str, int]:
        return self.store.summary()


def load_evidence(store: AnnotationStore, config: CurationConfig,
                  monitor: Optional[PerformanceMonitor] = None) -> AnnotationStore:
    """
    Populate a store from every input named in the configuration.

    The primary FASTA must load; every other source is optional.
    """
    if not config.seq_file:
        raise ParseError("no sequence file configured")

    monitor = monitor or PerformanceMonitor(memory_limit_mb=config.memory_limit_mb)
    sources = [
        ("sequences", FastaSequenceParser(config.seq_file)),
        ("self_alignments", SelfAlignmentParser(config.self_file)),
        ("reference_alignments", ReferenceAlignmentParser(config.align_file)),
        ("repeat_peptide_hits", PeptideHitParser(config.repblast_file, 'repeat')),
        ("nr_peptide_hits", PeptideHitParser(config.nrblast_file, 'nr')),
        ("fold_images", FoldImageResolver(config.fold_dir)),
    ]

    for phase_name, parser in sources:
        with monitor.phase_context(phase_name) as metrics:
            metrics.items_loaded = parser.parse_into(store)

    synthetic = store.summary()['synthetic']
    if synthetic:
        logging.info(f"{synthetic} identifiers appear only in secondary evidence")

    monitor.log_performance_report()
    return store


def _apply_verbosity(config: CurationConfig) -> None:
    """Enable per-record diagnostics when the project runs in verbose mode."""
    if config.verbose:
        logging.getLogger().setLevel(logging.DEBUG)
