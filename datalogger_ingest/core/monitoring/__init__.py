"""Monitoring layer - Métricas y diagnóstico."""

from .stats import Stats
from .reporter import DiagnosticReporter

__all__ = ["Stats", "DiagnosticReporter"]
