#!/usr/bin/env python3

"""
Custom exceptions for repeat consensus curation.

Provides specific exception types so that fatal startup failures, project
log problems and rejected curation intents can be told apart.
"""

class CurationError(Exception):
    """Base exception for all curation-related errors."""
    pass


class ParseError(CurationError):
    """Error occurred while reading an input or project log file."""

    def __init__(self, message: str, filename: str = "", line_number: int = 0):
        super().__init__(message)
        self.filename = filename
        self.line_number = line_number

    def __str__(self):
        if self.filename and self.line_number:
            return f"Parse error in {self.filename} at line {self.line_number}: {super().__str__()}"
        elif self.filename:
            return f"Parse error in {self.filename}: {super().__str__()}"
        return super().__str__()


class ValidationError(CurationError):
    """A curation intent was rejected before any mutation happened."""

    def __init__(self, message: str, seq_id: str = ""):
        super().__init__(message)
        self.seq_id = seq_id

    def __str__(self):
        if self.seq_id:
            return f"Validation error for {self.seq_id}: {super().__str__()}"
        return super().__str__()


class RecordNotFoundError(CurationError, KeyError):
    """No sequence record exists for the requested identifier."""

    def __init__(self, seq_id: str):
        super().__init__(seq_id)
        self.seq_id = seq_id

    def __str__(self):
        return f"Unknown sequence identifier: {self.seq_id}"


class ProjectLogError(CurationError):
    """Error creating, opening or appending to a project log."""

    def __init__(self, message: str, path: str = ""):
        super().__init__(message)
        self.path = path

    def __str__(self):
        if self.path:
            return f"Project log error ({self.path}): {super().__str__()}"
        return super().__str__()


class ExportError(CurationError):
    """Final FASTA export could not be completed."""

    def __init__(self, message: str, path: str = ""):
        super().__init__(message)
        self.path = path

    def __str__(self):
        if self.path:
            return f"Export error writing {self.path}: {super().__str__()}"
        return super().__str__()


class ConfigurationError(CurationError):
    """Error in curation configuration."""
    pass


class MemoryLimitError(CurationError):
    """Memory usage exceeded limits while loading evidence."""

    def __init__(self, message: str, current_usage: float, limit: float):
        super().__init__(message)
        self.current_usage = current_usage
        self.limit = limit

    def __str__(self):
        return f"Memory error: {super().__str__()} (current: {self.current_usage:.1f}MB, limit: {self.limit:.1f}MB)"
