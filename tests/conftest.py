import os
from pathlib import Path
from typing import Dict, List, Optional

import pytest

from loggers.diagnostics import Diagnostics
from models.enums import PackageManager
from models.package import License, OSFamily, OsPackage
from ospkgs.indexer import PackageIndexer
from ospkgs.rpmdb import RpmHeader

# -------------------------
# rpm headers
# -------------------------


def rpm_header(
    name: str,
    version: str,
    release: str = "1.el9",
    arch: str = "x86_64",
    files: Optional[List[str]] = None,
    provides: Optional[List[str]] = None,
    requires: Optional[List[str]] = None,
    license: str = "MIT",
    epoch: Optional[int] = None,
    dir_indexes: Optional[List[int]] = None,
) -> RpmHeader:
    """Header as the rpm database stores it: basenames indexing into dirnames."""
    dir_names: List[str] = []
    base_names: List[str] = []
    indexes: List[int] = []
    for f in files or []:
        dirname, basename = os.path.split(f)
        dirname += "/"
        if dirname not in dir_names:
            dir_names.append(dirname)
        base_names.append(basename)
        indexes.append(dir_names.index(dirname))

    return RpmHeader(
        name=name,
        version=version,
        release=release,
        epoch=epoch,
        arch=arch,
        license=license,
        vendor="Example Vendor",
        source_rpm=f"{name}-{version}-{release}.src.rpm",
        provides=provides or [name],
        requires=requires or [],
        base_names=base_names,
        dir_indexes=indexes if dir_indexes is None else dir_indexes,
        dir_names=dir_names,
    )


# -------------------------
# dpkg trees
# -------------------------


class DpkgTree:
    def __init__(self, root: Path) -> None:
        self.root = root
        self.info_dir = root / "var/lib/dpkg/info"
        self.status_path = root / "var/lib/dpkg/status"
        self.doc_dir = root / "usr/share/doc"
        self.common_licenses_dir = root / "usr/share/common-licenses"
        for d in (self.info_dir, self.doc_dir, self.common_licenses_dir):
            d.mkdir(parents=True, exist_ok=True)
        self.stanzas: List[str] = []

    def add_package(self, stanza: str, list_name: Optional[str] = None, files: Optional[List[str]] = None) -> None:
        self.stanzas.append(stanza.strip("\n"))
        if list_name is not None:
            rows = ["/.", "/usr"] + list(files or [])
            (self.info_dir / f"{list_name}.list").write_text("\n".join(rows) + "\n", encoding="utf-8")
        self.status_path.write_text("\n\n".join(self.stanzas) + "\n", encoding="utf-8")

    def add_copyright(self, package: str, text: str) -> Path:
        path = self.doc_dir / package / "copyright"
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
        return path

    def add_common_license(self, name: str, text: str) -> Path:
        path = self.common_licenses_dir / name
        path.write_text(text, encoding="utf-8")
        return path

    def indexer_kwargs(self) -> dict:
        return {
            "info_dir": str(self.info_dir),
            "status_paths": [str(self.status_path)],
            "doc_dir": str(self.doc_dir),
            "common_licenses_dir": str(self.common_licenses_dir),
        }


@pytest.fixture
def dpkg_tree(tmp_path):
    return DpkgTree(tmp_path / "root")


# -------------------------
# in-memory indexer
# -------------------------


class FakeIndexer(PackageIndexer):
    """Package database held in memory; `create()` only records that it ran."""

    def __init__(self, packages: List[OsPackage], files: Optional[Dict[str, str]] = None,
                 licenses: Optional[Dict[str, List[License]]] = None, diagnostics: Optional[Diagnostics] = None):
        super().__init__(diagnostics=diagnostics)
        for pkg in packages:
            self.packages[pkg.name] = pkg
        self.files.update(files or {})
        self.licenses = licenses or {}
        self.created = False

    def create(self) -> None:
        self.created = True

    def licenses_for_package(self, name: str) -> List[License]:
        value = self.licenses.get(name, [])
        if isinstance(value, Exception):
            raise value
        return list(value)


@pytest.fixture
def debian_family():
    return OSFamily(name="debian", distro="debian", release="12", package_manager=PackageManager.DEBIAN)


@pytest.fixture
def rpm_family():
    return OSFamily(name="rhel", distro="rocky", release="9.3", package_manager=PackageManager.RPM)
