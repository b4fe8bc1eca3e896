from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from models.enums import PackageManager, Scope

SOURCE_ID_PREFIX = "src:"


@dataclass
class OSFamily:
    name: str = "unknown"
    distro: str = "unknown"
    release: str = "unknown"
    package_manager: PackageManager = PackageManager.UNKNOWN


@dataclass(frozen=True)
class License:
    file: str = ""
    id: str = ""
    expression: str = ""
    declared: bool = False
    confidence: float = 0.0


def dedupe_licenses(licenses: Iterable[License]) -> List[License]:
    """Keep the first license for every (id, expression) pair."""
    deduped: List[License] = []
    seen = set()
    for lic in licenses:
        key = (lic.id, lic.expression)
        if key in seen:
            continue
        seen.add(key)
        deduped.append(lic)
    return deduped


@dataclass
class OsPackage:
    """One installed package as recorded by the package manager database."""
    name: str
    version: str
    architecture: str = ""
    maintainer: str = ""
    source_name: str = ""
    source_version: str = ""
    source_rpm: str = ""
    release: str = ""
    epoch: Optional[int] = None
    license: str = ""
    provides: List[str] = field(default_factory=list)
    dependencies: List[str] = field(default_factory=list)


def package_id(name: str, version: str) -> str:
    return f"{name}@{version}"


def source_package_id(name: str, version: str) -> str:
    return f"{SOURCE_ID_PREFIX}{name}@{version}"


@dataclass
class Package:
    """
    A package taking part in a build.

    `dependencies` holds raw dependency names straight after resolution and
    canonical package ids once the id-rewrite stage has run.
    """
    id: str
    name: str
    version: str
    arch: str = ""
    dependencies: List[str] = field(default_factory=list)
    files: List[str] = field(default_factory=list)
    is_source_package: bool = False
    licenses: List[License] = field(default_factory=list)
    os_family: OSFamily = field(default_factory=OSFamily)
    scope: Scope = Scope.CODE

    @property
    def sort_key(self):
        return self.name, self.version


@dataclass
class BuildDependencies:
    # NOTE: code and tools may contain the same package id
    code: List[Package] = field(default_factory=list)
    tools: List[Package] = field(default_factory=list)
    transitive: List[Package] = field(default_factory=list)

    def direct(self) -> List[Package]:
        return self.code + self.tools

    def all(self) -> List[Package]:
        return self.code + self.tools + self.transitive
