"""
Debian package database backend.

Reads the per-package file lists under /var/lib/dpkg/info and the MIME
style stanzas of /var/lib/dpkg/status. Example stanza:

    Package: adduser
    Status: install ok installed
    Architecture: all
    Version: 3.134
    Depends: passwd
    Conffiles:
     /etc/adduser.conf cc3493ecd2d09837ffdcc3e25fdfff18
"""
import os
import re
from typing import Dict, Iterable, List, Optional

from configuration import Configuration as Config
from loggers.diagnostics import Diagnostics
from models.errors import PackageDatabaseError
from models.package import License, OsPackage, dedupe_licenses
from ospkgs.indexer import PackageIndexer
from timer import Timer

SRC_CAPTURE_RE = re.compile(r"(?P<name>[^\s]*)( \((?P<version>.*)\))?")
UPSTREAM_VERSION_RE = re.compile(r"^(?:[0-9]+:)?(?P<version>(?:\.?[0-9]+)*)")
COMMON_LICENSE_FILE_RE = re.compile(r"/?usr/share/common-licenses/(?P<licensefile>[0-9A-Za-z_.-]+[0-9A-Za-z+])")


def parse_depends_package_names(line: str) -> List[str]:
    """
    Reduce a Depends/Provides field to bare package names.

    'libc6-dev | libc-dev, libuuid1 (= 2.38.1-5+deb12u1)' ->
    ['libc-dev', 'libc6-dev', 'libuuid1']. Alternatives are all kept,
    version constraints and architecture qualifiers are dropped.
    """
    names = set()
    for group in line.split(","):
        if not group:
            continue
        for dep in group.split("|"):
            dep = dep.split("(", 1)[0]
            dep = dep.split(":", 1)[0]
            names.add(dep.strip())
    names.discard("")
    return sorted(names)


def parse_status_stanza(lines: Iterable[str]) -> Dict[str, str]:
    """Fields of one stanza; continuation lines are folded into the previous field."""
    fields: Dict[str, str] = {}
    key = None
    for line in lines:
        if not line.strip():
            continue
        if line[0] in (" ", "\t"):
            if key is not None:
                continuation = line.strip()
                fields[key] = f"{fields[key]} {continuation}".strip() if fields[key] else continuation
            continue
        if ":" not in line:
            raise PackageDatabaseError(f"malformed dpkg status line: {line!r}")
        key, value = line.split(":", 1)
        key = key.strip()
        # first occurrence wins
        if key in fields:
            key = None
            continue
        fields[key] = value.strip()
    return fields


def package_from_stanza(fields: Dict[str, str]) -> OsPackage:
    pkg = OsPackage(
        name=fields.get("Package", ""),
        version=fields.get("Version", ""),
        architecture=fields.get("Architecture", ""),
        maintainer=fields.get("Maintainer", ""),
        provides=parse_depends_package_names(fields.get("Provides", "")),
        dependencies=parse_depends_package_names(fields.get("Depends", "")),
    )

    src = fields.get("Source", "")
    if src:
        match = SRC_CAPTURE_RE.match(src)
        pkg.source_name = match.group("name") or ""
        pkg.source_version = match.group("version") or ""

        # no version on the Source line: the binary is built from the upstream
        # version with epoch and revision stripped (7.88.1-10+deb12u5 -> 7.88.1)
        if not pkg.source_version:
            upstream = UPSTREAM_VERSION_RE.match(pkg.version)
            pkg.source_version = upstream.group("version") if upstream else ""

    return pkg


class DpkgIndexer(PackageIndexer):

    def __init__(
        self,
        info_dir: Optional[str] = None,
        status_paths: Optional[List[str]] = None,
        doc_dir: Optional[str] = None,
        common_licenses_dir: Optional[str] = None,
        detector=None,
        diagnostics: Optional[Diagnostics] = None,
    ) -> None:
        super().__init__(detector=detector, diagnostics=(diagnostics or Diagnostics()).child("dpkg"))
        self.info_dir = info_dir or Config.dpkg_info_dir
        self.status_paths = status_paths or Config.dpkg_status_paths
        self.doc_dir = doc_dir or Config.dpkg_doc_dir
        self.common_licenses_dir = common_licenses_dir or Config.dpkg_common_licenses_dir

    def create(self) -> None:
        timer = Timer()
        timer.start("creating dpkg file index")
        self._index_list_files()
        timer.stop(f"indexed {len(self.files)} files")
        self.diagnostics.debug(timer.elapsed("dpkg file index took"))

        timer.start("creating dpkg package index")
        self._index_status_files()
        timer.stop(f"indexed {len(self.packages)} packages")
        self.diagnostics.debug(timer.elapsed("dpkg package index took"))

    # -------------------------
    # File lists
    # -------------------------

    def _index_list_files(self) -> None:
        if not os.path.isdir(self.info_dir):
            raise PackageDatabaseError(f"dpkg info directory {self.info_dir} not found")

        for entry in sorted(os.listdir(self.info_dir)):
            if entry.startswith(".") or not entry.endswith(".list"):
                continue
            list_path = os.path.join(self.info_dir, entry)
            if os.path.isfile(list_path):
                self._parse_list_file(list_path)

        # lists declare every parent directory too: '/.', '/usr', '/usr/lib', ...
        for filename in list(self.files):
            if os.path.isdir(filename):
                del self.files[filename]

    def _parse_list_file(self, list_path: str) -> None:
        try:
            with open(list_path, "r", encoding="utf-8", errors="replace") as f:
                rows = [line.rstrip("\n") for line in f]
        except OSError as e:
            raise PackageDatabaseError(f"failed to read {list_path}: {e}") from e

        package_name = os.path.splitext(os.path.basename(list_path))[0]

        # first sorted row is the '/.' root entry
        rows.sort()
        for row in rows[1:]:
            self.files[row] = package_name

    # -------------------------
    # Status database
    # -------------------------

    def _status_files(self) -> List[str]:
        found: List[str] = []
        for status_path in self.status_paths:
            if os.path.isfile(status_path):
                found.append(status_path)
            elif os.path.isdir(status_path):
                for root, dirs, files in os.walk(status_path):
                    dirs[:] = sorted(d for d in dirs if not d.startswith("."))
                    found.extend(os.path.join(root, name) for name in sorted(files) if name == "status")
        return found

    def _index_status_files(self) -> None:
        status_files = self._status_files()
        if not status_files:
            raise PackageDatabaseError(f"no dpkg status database found in {', '.join(self.status_paths)}")

        for status_file in status_files:
            self._parse_status_file(status_file)

        # keep only dependencies that are installed, by their installed name
        # NOTE: every alternative of 'libc6-dev | libc-dev' that is installed is kept
        for pkg in self.packages.values():
            installed = set()
            for dep in pkg.dependencies:
                installed_pkg = self.packages.get(dep)
                if installed_pkg is not None:
                    installed.add(installed_pkg.name)
            pkg.dependencies = sorted(installed)

    def _parse_status_file(self, status_file: str) -> None:
        try:
            with open(status_file, "r", encoding="utf-8", errors="replace") as f:
                contents = f.read()
        except OSError as e:
            raise PackageDatabaseError(f"failed to read {status_file}: {e}") from e

        stanza: List[str] = []
        for line in contents.splitlines():
            if line.strip():
                stanza.append(line)
                continue
            self._add_stanza(stanza)
            stanza = []
        self._add_stanza(stanza)

    def _add_stanza(self, stanza: List[str]) -> None:
        if not stanza:
            return
        pkg = package_from_stanza(parse_status_stanza(stanza))
        if not pkg.name:
            return

        self.packages[pkg.name] = pkg
        for provided in pkg.provides:
            self.packages[provided] = pkg

    # -------------------------
    # Licenses
    # -------------------------

    def licenses_for_package(self, name: str) -> List[License]:
        """
        Licenses from /usr/share/doc/<pkg>/copyright.

        Referenced common-licenses files are classified first, then the
        copyright file itself. A missing copyright file raises OSError.
        """
        pkg = self.packages.get(name)
        if pkg is None:
            return []

        copyright_path = os.path.join(self.doc_dir, pkg.name, "copyright")
        with open(copyright_path, "r", encoding="utf-8", errors="replace") as f:
            lines = f.read().splitlines()

        found: List[License] = []
        for line in lines:
            if "/usr/share/common-licenses" not in line:
                continue
            match = COMMON_LICENSE_FILE_RE.search(line)
            if match:
                license_file = os.path.join(self.common_licenses_dir, match.group("licensefile"))
                found.extend(self.detector.detect_file(license_file))

        found.extend(self.detector.detect_file(copyright_path))
        return dedupe_licenses(found)
