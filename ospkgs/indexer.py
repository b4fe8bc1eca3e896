"""Contract shared by the package database backends."""
from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from licenses.detector import LicenseDetector
from loggers.diagnostics import Diagnostics
from models.package import License, OsPackage


class PackageIndexer(ABC):
    """
    File-to-package and name-to-package lookups over one package database.

    Implementations fill `files` (path -> owning package name) and
    `packages` (lookup key -> package) in `create()`. Lookups never raise;
    a miss returns None.
    """

    def __init__(self, detector=None, diagnostics: Optional[Diagnostics] = None) -> None:
        self.detector = detector or LicenseDetector()
        self.diagnostics = diagnostics or Diagnostics()
        self.files: Dict[str, str] = {}
        self.packages: Dict[str, OsPackage] = {}

    @abstractmethod
    def create(self) -> None:
        """Build the index from on-disk state. Raises PackageDatabaseError."""

    @abstractmethod
    def licenses_for_package(self, name: str) -> List[License]:
        """Licenses for an installed package, deduplicated by (id, expression)."""

    def package_name_for_file(self, filename: str) -> Optional[str]:
        return self.files.get(filename)

    def package_for_file(self, filename: str) -> Optional[OsPackage]:
        name = self.files.get(filename)
        if name is None:
            return None

        pkg = self.packages.get(name)
        if pkg is None:
            # owners can carry an architecture, e.g. 'linux-libc-dev:amd64'
            pkg = self.packages.get(name.split(":")[0])
        return pkg

    def installed_package(self, name: str) -> Optional[OsPackage]:
        return self.packages.get(name)

    def package_that_provides(self, name: str) -> Optional[OsPackage]:
        pkg = self.installed_package(name)
        if pkg is not None:
            return pkg

        for candidate in self.packages.values():
            if name in candidate.provides:
                return candidate
        return None
