import pytest

from models.enums import PackageManager
from models.errors import EnvironmentDetectionError
from ospkgs.osfamily import detect_os_family, detect_package_manager, parse_os_release

ROCKY_OS_RELEASE = """NAME="Rocky Linux"
VERSION="9.3 (Blue Onyx)"
ID="rocky"
ID_LIKE="rhel centos fedora"
VERSION_ID="9.3"
# comment
"""


def test_parse_os_release_unquotes_values():
    fields = parse_os_release(ROCKY_OS_RELEASE)
    assert fields["NAME"] == "Rocky Linux"
    assert fields["ID_LIKE"] == "rhel centos fedora"
    assert "# comment" not in fields


def test_os_release_family_from_id_like(tmp_path):
    redhat = tmp_path / "redhat-release"
    redhat.write_text("Rocky Linux release 9.3 (Blue Onyx)\n")
    os_release = tmp_path / "os-release"
    os_release.write_text(ROCKY_OS_RELEASE)

    family = detect_os_family([str(redhat), str(os_release)])
    assert (family.name, family.distro, family.release) == ("rhel", "rocky", "9.3")


def test_os_release_without_id_like(tmp_path):
    os_release = tmp_path / "os-release"
    os_release.write_text("ID=debian\nVERSION_ID=\"12\"\n")

    family = detect_os_family([str(os_release)])
    assert (family.name, family.distro, family.release) == ("debian", "debian", "12")


def test_debian_version_file(tmp_path):
    debian_version = tmp_path / "debian_version"
    debian_version.write_text("12.5\n")

    family = detect_os_family([str(tmp_path / "os-release"), str(debian_version)])
    assert (family.name, family.distro, family.release) == ("debian", "debian", "12.5")


def test_nothing_found_is_unknown(tmp_path):
    family = detect_os_family([str(tmp_path / "os-release")])
    assert (family.name, family.distro, family.release) == ("unknown", "unknown", "unknown")


def test_missing_os_release_values_are_unknown(tmp_path):
    os_release = tmp_path / "os-release"
    os_release.write_text("NAME=Custom\n")

    family = detect_os_family([str(os_release)])
    assert (family.name, family.distro, family.release) == ("unknown", "unknown", "unknown")


def test_detect_package_manager(tmp_path):
    status = tmp_path / "status"
    rpmdb = tmp_path / "rpmdb.sqlite"

    with pytest.raises(EnvironmentDetectionError):
        detect_package_manager(str(status), [str(rpmdb)])

    status.write_text("")
    assert detect_package_manager(str(status), [str(rpmdb)]) is PackageManager.DEBIAN

    rpmdb.write_bytes(b"")
    assert detect_package_manager(str(status), [str(rpmdb)]) is PackageManager.RPM
