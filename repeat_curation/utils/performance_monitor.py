#!/usr/bin/env python3

"""
Load-phase monitoring for curation sessions.

Tracks wall time, item counts and resident memory for each evidence source
loaded at session start, and enforces the configured memory ceiling.
"""

import time
import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Optional, Dict, Any

import psutil

from ..core.exceptions import MemoryLimitError


@dataclass
class PhaseMetrics:
    """Metrics for one loading phase."""
    phase_name: str
    start_time: float
    end_time: Optional[float] = None
    peak_memory_mb: float = 0.0
    items_loaded: int = 0

    @property
    def elapsed_time(self) -> float:
        """Get elapsed time in seconds."""
        if self.end_time is None:
            return time.time() - self.start_time
        return self.end_time - self.start_time


class PerformanceMonitor:
    """Per-phase timing and memory accounting."""

    def __init__(self, memory_limit_mb: int = 4096):
        self.memory_limit_mb = memory_limit_mb
        self.start_time = time.time()
        self.phase_metrics: Dict[str, PhaseMetrics] = {}
        self.current_phase: Optional[str] = None
        self.process = psutil.Process()

    def get_memory_usage(self) -> float:
        """Get current resident memory in MB."""
        try:
            memory_mb = self.process.memory_info().rss / 1024 / 1024
        except psutil.Error as e:
            logging.warning(f"Error getting memory usage: {e}")
            return 0.0

        if self.current_phase in self.phase_metrics:
            metrics = self.phase_metrics[self.current_phase]
            metrics.peak_memory_mb = max(metrics.peak_memory_mb, memory_mb)

        return memory_mb

    def check_memory_limit(self) -> None:
        """Raise if memory usage exceeds the configured limit."""
        current_memory = self.get_memory_usage()
        if current_memory > self.memory_limit_mb:
            raise MemoryLimitError("Memory usage exceeded limit", current_memory, self.memory_limit_mb)

    @contextmanager
    def phase_context(self, phase_name: str):
        """Context manager for monitoring a loading phase."""
        self.current_phase = phase_name
        metrics = PhaseMetrics(phase_name=phase_name, start_time=time.time())
        self.phase_metrics[phase_name] = metrics
        self.get_memory_usage()
        try:
            yield metrics
        finally:
            metrics.end_time = time.time()
            self.get_memory_usage()
            self.current_phase = None
            logging.debug(f"Completed phase {phase_name} in {metrics.elapsed_time:.2f}s "
                          f"({metrics.items_loaded} items, peak memory: {metrics.peak_memory_mb:.1f}MB)")
        self.check_memory_limit()

    def get_total_elapsed_time(self) -> float:
        """Get total elapsed time since monitor creation."""
        return time.time() - self.start_time

    def get_peak_memory(self) -> float:
        """Get peak memory usage across all phases."""
        if not self.phase_metrics:
            return self.get_memory_usage()
        return max(metrics.peak_memory_mb for metrics in self.phase_metrics.values())

    def get_performance_summary(self) -> Dict[str, Any]:
        """Get a summary of all recorded phases."""
        return {
            "total_elapsed_time": self.get_total_elapsed_time(),
            "peak_memory_mb": self.get_peak_memory(),
            "memory_limit_mb": self.memory_limit_mb,
            "phases": {
                name: {
                    "elapsed_time": metrics.elapsed_time,
                    "items_loaded": metrics.items_loaded,
                    "peak_memory_mb": metrics.peak_memory_mb,
                }
                for name, metrics in self.phase_metrics.items()
            },
        }

    def log_performance_report(self) -> None:
        """Log the load report at debug level."""
        summary = self.get_performance_summary()

        logging.debug("=" * 50)
        logging.debug("LOAD REPORT")
        logging.debug("=" * 50)
        logging.debug(f"Total time: {summary['total_elapsed_time']:.2f} seconds")
        logging.debug(f"Peak memory: {summary['peak_memory_mb']:.1f} MB (limit {summary['memory_limit_mb']} MB)")
        for phase_name, phase_data in summary['phases'].items():
            logging.debug(f"  {phase_name}: {phase_data['elapsed_time']:.2f}s "
                          f"({phase_data['items_loaded']} items, {phase_data['peak_memory_mb']:.1f}MB)")
