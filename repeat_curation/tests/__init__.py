#!/usr/bin/env python3

"""
Test suite for repeat consensus curation.

Unit tests covering:
- Labels, records and self-alignment hits
- Configuration management and validation
- Evidence parsers and self-alignment deduplication
- Annotation store intents and grouping
- Project log persistence and replay
- FASTA export
- End-to-end sessions, including resuming a project
"""
