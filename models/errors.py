from typing import Optional


class SbomError(RuntimeError):
    """Base class for every fatal pipeline error."""


class EnvironmentDetectionError(SbomError):
    """No supported package manager database was found."""


class PackageDatabaseError(SbomError):
    """A package database is missing or structurally invalid."""


class AttributionError(SbomError):
    """An observed file could not be attributed to any installed package."""

    def __init__(self, path: str, message: Optional[str] = None) -> None:
        self.path = path
        super().__init__(message or f"failed to resolve package for file {path}: not found")


class ObservationParseError(SbomError):
    def __init__(self, line_number: int, line: str) -> None:
        self.line_number = line_number
        self.line = line
        super().__init__(f"parse error: line {line_number}: {line!r}")


class ConfigError(SbomError):
    """Raised when the scan configuration file cannot be read or parsed."""


class BomFormatError(SbomError):
    """Raised when a document is not a CycloneDX JSON BOM."""
