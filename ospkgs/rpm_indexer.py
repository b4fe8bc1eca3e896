import os
from typing import Dict, List, Optional

import rpm_vercmp

from configuration import Configuration as Config
from loggers.diagnostics import LICENSE_DETECTION_FAILED, Diagnostics
from models.errors import PackageDatabaseError
from models.package import License, OsPackage, dedupe_licenses
from ospkgs.indexer import PackageIndexer
from ospkgs.rpmdb import RpmHeader, read_rpm_database
from timer import Timer

DEVEL_SUFFIX = "-devel"


def compare_evr(a: RpmHeader, b: RpmHeader) -> int:
    """
    RPM ordering: epoch (int), then version and release (rpmvercmp).
    Return: -1 if a<b, 0 if equal, +1 if a>b
    """
    a_epoch, b_epoch = a.epoch or 0, b.epoch or 0
    if a_epoch != b_epoch:
        return -1 if a_epoch < b_epoch else 1

    vc = rpm_vercmp.vercmp(a.version, b.version)
    if vc != 0:
        return vc

    # Release can be blank
    return rpm_vercmp.vercmp(a.release or "", b.release or "")


def header_to_package(header: RpmHeader) -> OsPackage:
    # source_name stays empty: rpm has no separate source package identity,
    # the resolver only promotes source packages when one is set
    return OsPackage(
        name=header.name,
        version=header.version,
        architecture=header.arch,
        maintainer=header.vendor,
        source_rpm=header.source_rpm,
        source_version=header.version,
        release=header.release,
        epoch=header.epoch,
        license=header.license,
        provides=list(header.provides),
        dependencies=list(header.requires),
    )


class RpmIndexer(PackageIndexer):

    def __init__(self, db_paths: Optional[List[str]] = None, detector=None, diagnostics: Optional[Diagnostics] = None) -> None:
        super().__init__(detector=detector, diagnostics=(diagnostics or Diagnostics()).child("rpm"))
        self.db_paths = db_paths or Config.rpm_db_paths
        self.db_path: Optional[str] = None

    def _find_database(self) -> str:
        for candidate in self.db_paths:
            if os.path.exists(candidate):
                return candidate
        raise PackageDatabaseError(f"no rpm db found in {', '.join(self.db_paths)}")

    def create(self) -> None:
        timer = Timer()
        timer.start("creating rpm file index")

        self.db_path = self._find_database()
        self.diagnostics.debug("loading rpm db from %s", self.db_path)
        headers = read_rpm_database(self.db_path)
        if not headers:
            raise PackageDatabaseError(f"rpm db {self.db_path} contains no packages")

        newest: Dict[str, RpmHeader] = {}
        for header in headers:
            current = newest.get(header.name)
            if current is None or compare_evr(header, current) > 0:
                newest[header.name] = header

        for header in headers:
            # validates the basename/dirindex arrays of every record, not only the kept ones
            installed_files = header.installed_files()
            if newest[header.name] is not header:
                continue
            for filename in installed_files:
                self.files[filename] = header.name
            self.packages[header.name] = header_to_package(header)

        timer.stop(f"indexed {len(self.packages)} packages and {len(self.files)} files")
        self.diagnostics.debug(timer.elapsed("rpm index took"))

    def package_that_provides(self, name: str) -> Optional[OsPackage]:
        pkg = super().package_that_provides(name)
        if pkg is not None:
            return pkg

        # requires can name a file, e.g. '/bin/sh'
        return self.package_for_file(name)

    def _files_of(self, name: str) -> List[str]:
        return sorted(filename for filename, owner in self.files.items() if owner == name)

    def licenses_for_package(self, name: str) -> List[License]:
        """
        Licenses detected from the package's files under a 'licenses' path
        (typically /usr/share/licenses/<pkg>/*).

        Falls back to the base package for -devel packages and then to the
        License tag of the header as a declared license.
        """
        found: List[License] = []
        for filename in self._files_of(name):
            if "licenses" not in filename or not os.path.isfile(filename):
                continue
            try:
                found.extend(self.detector.detect_file(filename))
            except OSError as e:
                self.diagnostics.warn(LICENSE_DETECTION_FAILED, f"failed to detect licenses for {filename}: {e}", subject=name)

        if not found:
            if name.endswith(DEVEL_SUFFIX):
                return self.licenses_for_package(name[:-len(DEVEL_SUFFIX)])

            pkg = self.packages.get(name)
            if pkg is not None and pkg.license:
                return [License(expression=pkg.license, declared=True)]

        return dedupe_licenses(found)
