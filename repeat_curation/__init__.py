#!/usr/bin/env python3

"""
Repeat Consensus Curation

Evidence aggregation and resumable manual curation for repeat-family
consensus sequences (RepeatModeler output).

Modules:
- core: Data structures, parsers, annotation store, project log and export
- utils: Load-phase monitoring
- tests: Unit and end-to-end tests
"""

__version__ = "0.2.0"
__author__ = "Repeat Curation Team"

# Import main components for easy access
from .core.data_structures import (
    SequenceRecord, SelfAlignment, AlignmentSpan, ProjectLogEntry,
    CurationState, CurationIntent, IntentResult, format_label, parse_label
)
from .core.exceptions import (
    CurationError, ParseError, ValidationError, RecordNotFoundError,
    ProjectLogError, ExportError, ConfigurationError, MemoryLimitError
)
from .core.config import CurationConfig, load_config
from .core.taxonomy import TaxonomyIndex, UNCLASSIFIED
from .core.store import AnnotationStore
from .core.project_log import ProjectLog, fold_entries
from .core.exporter import FastaExporter, reverse_complement
from .core.session import CurationSession, load_evidence

__all__ = [
    # Session
    'CurationSession', 'load_evidence',
    # Data structures
    'SequenceRecord', 'SelfAlignment', 'AlignmentSpan', 'ProjectLogEntry',
    'CurationState', 'CurationIntent', 'IntentResult', 'format_label', 'parse_label',
    # Components
    'TaxonomyIndex', 'UNCLASSIFIED', 'AnnotationStore', 'ProjectLog', 'fold_entries',
    'FastaExporter', 'reverse_complement',
    # Exceptions
    'CurationError', 'ParseError', 'ValidationError', 'RecordNotFoundError',
    'ProjectLogError', 'ExportError', 'ConfigurationError', 'MemoryLimitError',
    # Configuration
    'CurationConfig', 'load_config'
]
