import pytest

from conftest import rpm_header
from models.errors import PackageDatabaseError
from ospkgs.rpmdb import RpmHeader, header_from_rpm, read_rpm_database


def test_installed_files_join_dirnames():
    header = rpm_header("zlib", "1.2.11", files=["/usr/lib64/libz.so.1", "/usr/share/licenses/zlib/README", "/usr/lib64/libz.so"])
    assert header.dir_names == ["/usr/lib64/", "/usr/share/licenses/zlib/"]
    assert header.installed_files() == ["/usr/lib64/libz.so.1", "/usr/share/licenses/zlib/README", "/usr/lib64/libz.so"]


def test_package_without_files():
    assert RpmHeader(name="filesystem").installed_files() == []


def test_basenames_dirindexes_mismatch():
    header = RpmHeader(name="broken", base_names=["a", "b"], dir_indexes=[0], dir_names=["/usr/bin/"])
    with pytest.raises(PackageDatabaseError):
        header.installed_files()


def test_dirindex_out_of_range():
    header = RpmHeader(name="broken", base_names=["a"], dir_indexes=[3], dir_names=["/usr/bin/"])
    with pytest.raises(PackageDatabaseError):
        header.installed_files()


def _hdr(rpm, overrides=None):
    """Tag lookups the way rpm.hdr answers them; absent tags are None."""
    hdr = {
        rpm.RPMTAG_NAME: "zlib",
        rpm.RPMTAG_VERSION: "1.2.11",
        rpm.RPMTAG_RELEASE: "40.el9",
        rpm.RPMTAG_EPOCH: None,
        rpm.RPMTAG_ARCH: "x86_64",
        rpm.RPMTAG_LICENSE: "zlib and Boost",
        rpm.RPMTAG_VENDOR: "Rocky Enterprise Software Foundation",
        rpm.RPMTAG_SOURCERPM: "zlib-1.2.11-40.el9.src.rpm",
        rpm.RPMTAG_PROVIDENAME: ["zlib", "libz.so.1()(64bit)"],
        rpm.RPMTAG_REQUIRENAME: ["libc.so.6()(64bit)", "rpmlib(CompressedFileNames)"],
        rpm.RPMTAG_BASENAMES: ["libz.so.1", "README"],
        rpm.RPMTAG_DIRINDEXES: [0, 1],
        rpm.RPMTAG_DIRNAMES: ["/usr/lib64/", "/usr/share/licenses/zlib/"],
    }
    hdr.update(overrides or {})
    return hdr


def test_header_fields_from_bindings():
    rpm = pytest.importorskip("rpm")

    header = header_from_rpm(_hdr(rpm))

    assert (header.name, header.version, header.release, header.epoch) == ("zlib", "1.2.11", "40.el9", None)
    assert header.arch == "x86_64"
    assert header.license == "zlib and Boost"
    assert header.source_rpm == "zlib-1.2.11-40.el9.src.rpm"
    assert header.provides == ["zlib", "libz.so.1()(64bit)"]
    assert header.requires == ["libc.so.6()(64bit)", "rpmlib(CompressedFileNames)"]
    assert header.installed_files() == ["/usr/lib64/libz.so.1", "/usr/share/licenses/zlib/README"]


def test_header_bytes_and_missing_arrays():
    rpm = pytest.importorskip("rpm")

    header = header_from_rpm(_hdr(rpm, {
        rpm.RPMTAG_NAME: b"filesystem",
        rpm.RPMTAG_EPOCH: 2,
        rpm.RPMTAG_BASENAMES: None,
        rpm.RPMTAG_DIRINDEXES: None,
        rpm.RPMTAG_DIRNAMES: None,
        rpm.RPMTAG_LICENSE: None,
    }))

    assert header.name == "filesystem"
    assert header.epoch == 2
    assert header.license == ""
    assert header.installed_files() == []


def test_read_empty_database(tmp_path):
    rpm = pytest.importorskip("rpm")
    rpm.addMacro("_dbpath", str(tmp_path))
    try:
        ts = rpm.TransactionSet("/")
        ts.initDB()
        ts.closeDB()
    finally:
        rpm.delMacro("_dbpath")

    assert read_rpm_database(str(tmp_path / "rpmdb.sqlite")) == []
