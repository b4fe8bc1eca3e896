import os
from pathlib import Path

import utils
from root import get_project_root

p = Path(__file__).resolve()


class Configuration:
    # DIRECTORIES
    root_dir = get_project_root()
    input_dir = Path(root_dir, "input")
    output_dir = Path(root_dir, "output")

    # PROJECT SETUP
    utils.load_env_vars(Path(root_dir, ".env"))
    log_dir = Path(os.getenv("SBOM_LOG_DIR", str(Path(root_dir, "logs"))))
    log_file_name = "build_sbom.log"
    log_level = os.getenv("SBOM_LOG_LEVEL", "INFO").upper()

    # GENERATOR PROPERTIES
    tool_name = "build-sbom"
    tool_version = "0.4.0"
    tool_publisher = "build-sbom contributors"
    tool_website = "https://github.com/build-sbom/build-sbom"
    cyclonedx_spec_version = "1.5"
    hash_algorithm = "SHA-256"
    build_role_property = "build-sbom:build:role"
    build_role_tool = "tool"

    # OS DETECTION
    os_release_files = [
        "/etc/redhat-release",
        "/etc/os-release",
        "/usr/lib/os-release",
        "/etc/debian_version",
    ]
    os_family_unknown = "unknown"
    os_release_unknown = "unknown"

    # DPKG PROPERTIES
    dpkg_info_dir = "/var/lib/dpkg/info"
    dpkg_status_paths = ["/var/lib/dpkg/status", "/var/lib/dpkg/status.d"]
    dpkg_doc_dir = "/usr/share/doc"
    dpkg_common_licenses_dir = "/usr/share/common-licenses"

    # RPM PROPERTIES
    rpm_db_paths = [
        "/var/lib/rpm/Packages",
        "/var/lib/rpm/Packages.db",
        "/var/lib/rpm/rpmdb.sqlite",
        "/usr/lib/sysimage/rpm/Packages",
        "/usr/lib/sysimage/rpm/Packages.db",
        "/usr/lib/sysimage/rpm/rpmdb.sqlite",
        "/usr/share/rpm/Packages",
        "/usr/share/rpm/Packages.db",
        "/usr/share/rpm/rpmdb.sqlite",
    ]

    # OBSERVATION FILTER PROPERTIES
    include_search_root = "/usr"
    include_extensions = (".h", ".pc")
    toolchain_binaries = ("cc", "cc1", "gcc", "clang", "c++", "g++", "ld", "as", "go")

    # SCAN CONFIG
    scan_config_file_name = "build-sbom.yml"
