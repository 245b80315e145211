"""Exporter SPI and implementations."""

from .atomic import write_text_atomic
from .audit_exporter import BuildAuditExporter, RequestAuditExporter
from .base import BaseExporter

__all__ = ["BaseExporter", "BuildAuditExporter", "RequestAuditExporter", "write_text_atomic"]
