import os
from typing import Dict, Iterable, Optional

from configuration import Configuration as Config
from models.enums import PackageManager
from models.errors import EnvironmentDetectionError
from models.package import OSFamily


def detect_os_family(candidates: Optional[Iterable[str]] = None) -> OSFamily:
    """
    Identify the running distribution from the first os-release style file found.

    os-release(5): ID is the distro, VERSION_ID the release and the first
    ID_LIKE token (when present) the family, e.g. ID=amzn ID_LIKE=fedora.
    """
    for filename in candidates or Config.os_release_files:
        if not os.path.isfile(filename):
            continue

        base = os.path.basename(filename)
        if base == "redhat-release":
            continue

        with open(filename, "r", encoding="utf-8", errors="replace") as f:
            contents = f.read()

        if base == "debian_version":
            return OSFamily(name="debian", distro="debian", release=contents.strip())

        if base == "os-release":
            fields = parse_os_release(contents)
            name = fields.get("ID", "")
            like = fields.get("ID_LIKE", "").split()
            if like:
                name = like[0]
            return OSFamily(
                name=name or Config.os_family_unknown,
                distro=fields.get("ID", "") or Config.os_family_unknown,
                release=fields.get("VERSION_ID", "") or Config.os_release_unknown,
            )

    return OSFamily(name=Config.os_family_unknown, distro=Config.os_family_unknown, release=Config.os_release_unknown)


def parse_os_release(contents: str) -> Dict[str, str]:
    fields: Dict[str, str] = {}
    for raw in contents.splitlines():
        line = raw.strip()
        if "=" not in line or line.startswith("#"):
            continue
        key, value = line.split("=", 1)
        fields[key] = _unquote(value)
    return fields


def _unquote(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in ("\"", "'"):
        return value[1:-1]
    return value


def detect_package_manager(dpkg_status_path: Optional[str] = None, rpm_db_paths: Optional[Iterable[str]] = None) -> PackageManager:
    """rpm wins when both databases are present."""
    status_path = dpkg_status_path or Config.dpkg_status_paths[0]
    manager = PackageManager.UNKNOWN

    if os.path.exists(status_path):
        manager = PackageManager.DEBIAN

    for db in rpm_db_paths or Config.rpm_db_paths:
        if os.path.exists(db):
            manager = PackageManager.RPM
            break

    if manager is PackageManager.UNKNOWN:
        raise EnvironmentDetectionError("unsupported build environment 'unknown' - cannot resolve dependencies")

    return manager
