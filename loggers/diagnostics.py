"""
Diagnostics context handed to every pipeline component.

Fatal problems are raised as exceptions (see models/errors.py). Everything
recoverable is logged and also kept as a structured warning so callers can
tell a clean run from a degraded-but-successful one.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from loggers.main_logger import get_logger

DEPENDENCY_UNRESOLVED = "dependency_unresolved"
LICENSE_DETECTION_FAILED = "license_detection_failed"
LICENSE_MISSING = "license_missing"
FILE_HASH_FAILED = "file_hash_failed"
DEPENDENCY_EDGE_DROPPED = "dependency_edge_dropped"
MERGE_REFERENCE_UNKNOWN = "merge_reference_unknown"
SYMLINK_UNRESOLVED = "symlink_unresolved"


@dataclass(frozen=True)
class DiagnosticWarning:
    kind: str
    message: str
    subject: Optional[str] = None


@dataclass
class Diagnostics:
    logger: logging.Logger = field(default_factory=lambda: get_logger("pipeline"))
    warnings: List[DiagnosticWarning] = field(default_factory=list)

    def child(self, name: str) -> "Diagnostics":
        """Same warning list, logger scoped to a component."""
        return Diagnostics(logger=self.logger.getChild(name), warnings=self.warnings)

    def debug(self, msg: str, *args) -> None:
        self.logger.debug(msg, *args)

    def info(self, msg: str, *args) -> None:
        self.logger.info(msg, *args)

    def error(self, msg: str, *args) -> None:
        self.logger.error(msg, *args)

    def warn(self, kind: str, message: str, subject: Optional[str] = None, level: int = logging.WARNING) -> None:
        self.logger.log(level, "%s: %s", kind, message)
        self.warnings.append(DiagnosticWarning(kind=kind, message=message, subject=subject))

    def of_kind(self, kind: str) -> List[DiagnosticWarning]:
        return [w for w in self.warnings if w.kind == kind]

    @property
    def degraded(self) -> bool:
        return bool(self.warnings)
