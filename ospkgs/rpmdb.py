"""
Access to the installed rpm package database through the rpm bindings.

The database directory is the one holding the first candidate file found
(rpmdb.sqlite, Packages.db or Packages); rpm itself picks the backend.
"""
import os
from dataclasses import dataclass, field
from typing import List, Optional

from models.errors import PackageDatabaseError


@dataclass
class RpmHeader:
    """The subset of an rpm header used for file attribution and SBOMs."""
    name: str = ""
    version: str = ""
    release: str = ""
    epoch: Optional[int] = None
    arch: str = ""
    license: str = ""
    vendor: str = ""
    source_rpm: str = ""
    provides: List[str] = field(default_factory=list)
    requires: List[str] = field(default_factory=list)
    base_names: List[str] = field(default_factory=list)
    dir_indexes: List[int] = field(default_factory=list)
    dir_names: List[str] = field(default_factory=list)

    def installed_files(self) -> List[str]:
        if len(self.base_names) != len(self.dir_indexes):
            raise PackageDatabaseError(
                f"package {self.name} has {len(self.base_names)} basenames and {len(self.dir_indexes)} dirindexes"
            )
        files = []
        for base_name, dir_index in zip(self.base_names, self.dir_indexes):
            if dir_index < 0 or dir_index >= len(self.dir_names):
                raise PackageDatabaseError(f"package {self.name} has dirindex {dir_index} out of range")
            files.append(os.path.join(self.dir_names[dir_index], base_name))
        return files


def _text(value) -> str:
    # older bindings hand back bytes
    if value is None:
        return ""
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return str(value)


def _texts(values) -> List[str]:
    return [_text(v) for v in values or []]


def header_from_rpm(hdr) -> RpmHeader:
    """Copy the tags we use out of an rpm.hdr."""
    import rpm

    epoch = hdr[rpm.RPMTAG_EPOCH]
    return RpmHeader(
        name=_text(hdr[rpm.RPMTAG_NAME]),
        version=_text(hdr[rpm.RPMTAG_VERSION]),
        release=_text(hdr[rpm.RPMTAG_RELEASE]),
        epoch=int(epoch) if epoch is not None else None,
        arch=_text(hdr[rpm.RPMTAG_ARCH]),
        license=_text(hdr[rpm.RPMTAG_LICENSE]),
        vendor=_text(hdr[rpm.RPMTAG_VENDOR]),
        source_rpm=_text(hdr[rpm.RPMTAG_SOURCERPM]),
        provides=_texts(hdr[rpm.RPMTAG_PROVIDENAME]),
        requires=_texts(hdr[rpm.RPMTAG_REQUIRENAME]),
        base_names=_texts(hdr[rpm.RPMTAG_BASENAMES]),
        dir_indexes=[int(i) for i in hdr[rpm.RPMTAG_DIRINDEXES] or []],
        dir_names=_texts(hdr[rpm.RPMTAG_DIRNAMES]),
    )


def read_rpm_database(path: str) -> List[RpmHeader]:
    """Read every package header of the database that `path` belongs to."""
    import rpm

    rpm.addMacro("_dbpath", os.path.dirname(os.path.abspath(path)))
    try:
        ts = rpm.TransactionSet("/")
        ts.setVSFlags(rpm._RPMVSF_NOSIGNATURES | rpm._RPMVSF_NODIGESTS)
        try:
            return [header_from_rpm(hdr) for hdr in ts.dbMatch()]
        finally:
            ts.closeDB()
    except rpm.error as e:
        raise PackageDatabaseError(f"failed to read rpm database {path}: {e}") from e
    finally:
        rpm.delMacro("_dbpath")
