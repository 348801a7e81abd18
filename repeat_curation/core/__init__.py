#!/usr/bin/env python3

"""
Core module for repeat consensus curation.

Contains the data structures, evidence parsers, annotation store, project
log, taxonomy, exporter and configuration management components.
"""

from .data_structures import SequenceRecord, SelfAlignment, ProjectLogEntry, CurationIntent
from .exceptions import (
    CurationError, ParseError, ValidationError, RecordNotFoundError,
    ProjectLogError, ExportError, ConfigurationError, MemoryLimitError
)
from .config import CurationConfig, load_config

__all__ = [
    'SequenceRecord', 'SelfAlignment', 'ProjectLogEntry', 'CurationIntent',
    'CurationError', 'ParseError', 'ValidationError', 'RecordNotFoundError',
    'ProjectLogError', 'ExportError', 'ConfigurationError', 'MemoryLimitError',
    'CurationConfig', 'load_config'
]
