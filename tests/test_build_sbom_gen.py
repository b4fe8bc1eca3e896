import hashlib
import re

from configuration import Configuration as Config
from loggers.diagnostics import DEPENDENCY_EDGE_DROPPED, FILE_HASH_FAILED, Diagnostics
from models.enums import PackageManager, Scope
from models.package import BuildDependencies, License, OSFamily, Package
from models.scan_config import ScanConfig, ScanConfigComponent, ScanConfigContact, ScanConfigOrganizationalEntity
from sbom_generators.build_sbom_gen import TIMESTAMP_FORMAT, generate_cyclonedx, license_choices, purl_for_package


def _pkg(family, name, version, deps=(), scope=Scope.CODE, files=(), source=False, licenses=()):
    return Package(
        id=f"src:{name}@{version}" if source else f"{name}@{version}",
        name=name,
        version=version,
        arch="" if source else "amd64",
        dependencies=list(deps),
        files=list(files),
        is_source_package=source,
        licenses=list(licenses),
        os_family=family,
        scope=scope,
    )


def test_debian_purl(debian_family):
    pkg = _pkg(debian_family, "curl", "7.88.1")
    assert purl_for_package(pkg) == "pkg:deb/debian/curl@7.88.1?arch=amd64&distro=debian-12"


def test_debian_derivative_purl_has_unknown_distro():
    ubuntu = OSFamily(name="ubuntu", distro="ubuntu", release="22.04", package_manager=PackageManager.DEBIAN)
    assert purl_for_package(_pkg(ubuntu, "curl", "7.81.0")) == "pkg:deb/debian/curl@7.81.0?arch=amd64&distro=unknown"


def test_rpm_purl(rpm_family):
    assert purl_for_package(_pkg(rpm_family, "gcc", "11.4.1")) == "pkg:rpm/rhel/gcc@11.4.1?arch=amd64&distro=rocky-9.3"


def test_generic_purl_without_package_manager():
    assert purl_for_package(_pkg(OSFamily(), "foo", "1.0")) == "pkg:generic/foo@1.0"


def test_license_choices():
    choices = license_choices([License(id="MIT"), License(expression="GPL-2.0-only OR MIT"), License(file="LICENSE")])
    assert [(c.id, c.expression) for c in choices] == [("MIT", None), (None, "GPL-2.0-only OR MIT")]


def test_metadata_from_config(debian_family):
    config = ScanConfig(
        component=ScanConfigComponent(name="my-app", group="com.example", version="2.1.0", license="Apache-2.0"),
        author=ScanConfigOrganizationalEntity(name="Team", contacts=[ScanConfigContact(name="Jane", email="jane@example.com")]),
        supplier=ScanConfigOrganizationalEntity(name="Example Corp", url="https://example.com"),
    )
    bom = generate_cyclonedx(BuildDependencies(), config)

    root = bom.metadata.component
    assert (root.name, root.group, root.version, root.type) == ("my-app", "com.example", "2.1.0", "application")
    assert root.licenses[0].id == "Apache-2.0"
    assert re.fullmatch(r"[0-9a-f-]{36}", root.bom_ref)
    assert bom.serial_number.startswith("urn:uuid:")
    assert bom.spec_version == Config.cyclonedx_spec_version
    assert [lc.phase for lc in bom.metadata.lifecycles] == ["build"]
    assert [t.name for t in bom.metadata.tools] == [Config.tool_name]
    assert bom.metadata.supplier.url == ["https://example.com"]
    assert bom.metadata.authors[0].email == "jane@example.com"
    assert bom.metadata.timestamp.endswith("+00:00")
    assert TIMESTAMP_FORMAT.endswith("+00:00")
    assert bom.dependencies[0].ref == root.bom_ref
    assert bom.dependencies[0].depends_on == []


def test_components_and_edges(debian_family):
    src = _pkg(debian_family, "curl", "7.88.1", source=True)
    dev = _pkg(debian_family, "libcurl4-openssl-dev", "7.88.1-10",
               deps=["libcurl4@7.88.1-10", "src:curl@7.88.1"], licenses=[License(id="curl")])
    libcurl = _pkg(debian_family, "libcurl4", "7.88.1-10", deps=["libc6@2.36-9"])
    libc = _pkg(debian_family, "libc6", "2.36-9")
    deps = BuildDependencies(code=[src, dev], transitive=[libc, libcurl])

    bom = generate_cyclonedx(deps)

    dev_ref = "pkg:deb/debian/libcurl4-openssl-dev@7.88.1-10?arch=amd64&distro=debian-12"
    libcurl_ref = "pkg:deb/debian/libcurl4@7.88.1-10?arch=amd64&distro=debian-12"
    assert [c.bom_ref for c in bom.components] == [
        "pkg:generic/curl@7.88.1",
        dev_ref,
        "pkg:deb/debian/libc6@2.36-9?arch=amd64&distro=debian-12",
        libcurl_ref,
    ]
    assert bom.components[1].licenses[0].id == "curl"

    dep_map = bom.dependency_map()
    # source packages are not direct dependencies of the root
    assert dep_map[bom.root_ref] == [dev_ref]
    assert dep_map[dev_ref] == [libcurl_ref, "pkg:generic/curl@7.88.1"]
    # transitive packages carry no edges
    assert libcurl_ref not in dep_map
    assert [d.ref for d in bom.dependencies] == [bom.root_ref, dev_ref]


def test_first_partition_wins(debian_family, tmp_path):
    gcc_code = _pkg(debian_family, "gcc-12", "12.2.0-14")
    gcc_tool = _pkg(debian_family, "gcc-12", "12.2.0-14", scope=Scope.TOOL, files=[str(tmp_path / "gcc")])
    gcc_transitive = _pkg(debian_family, "gcc-12", "12.2.0-14")
    bom = generate_cyclonedx(BuildDependencies(code=[gcc_code], tools=[gcc_tool], transitive=[gcc_transitive]))

    assert len(bom.components) == 1
    assert bom.components[0].type == "library"
    assert bom.components[0].scope is None


def test_tool_component(debian_family, tmp_path):
    binary = tmp_path / "x86_64-linux-gnu-gcc-12"
    binary.write_bytes(b"\x7fELF")
    missing = tmp_path / "gone"
    tool = _pkg(debian_family, "gcc-12", "12.2.0-14", scope=Scope.TOOL, files=[str(binary), str(missing)])
    diagnostics = Diagnostics()

    bom = generate_cyclonedx(BuildDependencies(tools=[tool]), diagnostics=diagnostics)

    component = bom.components[0]
    assert component.type == "application"
    assert component.scope == "excluded"
    assert [(p.name, p.value) for p in component.properties] == [(Config.build_role_property, "tool")]
    assert [f.name for f in component.components] == [str(binary)]
    assert component.components[0].type == "file"
    assert component.components[0].hashes[0].alg == "SHA-256"
    assert component.components[0].hashes[0].content == hashlib.sha256(b"\x7fELF").hexdigest()
    assert [w.subject for w in diagnostics.of_kind(FILE_HASH_FAILED)] == [str(missing)]
    assert bom.dependency_map()[bom.root_ref] == [component.bom_ref]


def test_transitive_tool_dependency_is_excluded(debian_family):
    cpp = _pkg(debian_family, "cpp-12", "12.2.0-14", scope=Scope.TOOL)
    libc = _pkg(debian_family, "libc6", "2.36-9")
    bom = generate_cyclonedx(BuildDependencies(transitive=[cpp, libc]))

    assert [c.scope for c in bom.components] == ["excluded", None]


def test_missing_edge_target_is_dropped(debian_family):
    dev = _pkg(debian_family, "libfoo-dev", "1.0", deps=["libfoo1@1.0"])
    diagnostics = Diagnostics()

    bom = generate_cyclonedx(BuildDependencies(code=[dev]), diagnostics=diagnostics)

    assert [d.ref for d in bom.dependencies] == [bom.root_ref]
    assert [w.subject for w in diagnostics.of_kind(DEPENDENCY_EDGE_DROPPED)] == ["libfoo1@1.0"]


def test_root_dependencies_are_deduplicated(debian_family):
    a = _pkg(debian_family, "libfoo-dev", "1.0")
    bom = generate_cyclonedx(BuildDependencies(code=[a, a]))
    assert len(bom.components) == 1
    assert len(bom.dependencies[0].depends_on) == 1
