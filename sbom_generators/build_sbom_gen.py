"""
Turn resolved build dependencies into a CycloneDX BOM.

Component refs are package URLs, so the same package resolved in two
builds lands on the same ref when their BOMs are merged. The metadata root
component gets a random uuid ref.
"""
import uuid
from datetime import datetime, timezone
from typing import Dict, List, Optional

import utils
from configuration import Configuration as Config
from loggers.diagnostics import DEPENDENCY_EDGE_DROPPED, FILE_HASH_FAILED, Diagnostics
from models.bom import Bom, Dependency, Lifecycle, Metadata
from models.component import (
    Component,
    ExternalReference,
    Hash,
    LicenseChoice,
    OrganizationalContact,
    OrganizationalEntity,
    Property,
)
from models.enums import ComponentScope, ComponentType, PackageManager, Scope
from models.package import BuildDependencies, License, Package
from models.scan_config import ScanConfig, ScanConfigOrganizationalEntity

# https://json-schema.org/understanding-json-schema/reference/string.html#dates-and-times
TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%S+00:00"
LIFECYCLE_BUILD = "build"


def _now_iso8601_utc() -> str:
    return datetime.now(timezone.utc).strftime(TIMESTAMP_FORMAT)


def purl_for_package(pkg: Package) -> str:
    """
    deb: pkg:deb/debian/<name>@<version>?arch=<arch>&distro=<distro>-<release>
    rpm: pkg:rpm/<family>/<name>@<version>?arch=<arch>&distro=<distro>-<release>
    anything else: pkg:generic/<name>@<version>
    """
    family = pkg.os_family

    if family.package_manager is PackageManager.DEBIAN:
        distro = f"{family.distro}-{family.release}" if family.name == "debian" else "unknown"
        return f"pkg:deb/debian/{pkg.name}@{pkg.version}?arch={pkg.arch}&distro={distro}"

    if family.package_manager is PackageManager.RPM:
        distro = f"{family.distro}-{family.release}"
        return f"pkg:rpm/{family.name}/{pkg.name}@{pkg.version}?arch={pkg.arch}&distro={distro}"

    return generic_purl(pkg.name, pkg.version)


def generic_purl(name: str, version: str) -> str:
    return f"pkg:generic/{name}@{version}"


def license_choices(licenses: List[License]) -> List[LicenseChoice]:
    choices: List[LicenseChoice] = []
    for lic in licenses:
        if lic.expression:
            choices.append(LicenseChoice(expression=lic.expression))
        if lic.id:
            choices.append(LicenseChoice(id=lic.id))
    return choices


def generator_tool() -> Component:
    return Component(
        type=ComponentType.APPLICATION.value,
        name=Config.tool_name,
        version=Config.tool_version,
        publisher=Config.tool_publisher,
        external_references=[ExternalReference(type="website", url=Config.tool_website)],
    )


def organizational_entity(entity: ScanConfigOrganizationalEntity) -> Optional[OrganizationalEntity]:
    if not entity.name:
        return None
    return OrganizationalEntity(
        name=entity.name,
        url=[entity.url] if entity.url else [],
        contacts=[OrganizationalContact(name=c.name, email=c.email, phone=c.phone) for c in entity.contacts],
    )


def _build_metadata(config: ScanConfig) -> Metadata:
    root = Component(
        bom_ref=str(uuid.uuid4()),
        type=ComponentType.APPLICATION.value,
        name=config.component.name or "",
        group=config.component.group,
        version=config.component.version,
    )
    if config.component.license:
        root.licenses = [LicenseChoice(id=config.component.license)]

    return Metadata(
        timestamp=_now_iso8601_utc(),
        tools=[generator_tool()],
        component=root,
        # https://cyclonedx.org/docs/1.5/json/#metadata_lifecycles
        lifecycles=[Lifecycle(phase=LIFECYCLE_BUILD)],
        supplier=organizational_entity(config.supplier),
        authors=[OrganizationalContact(name=c.name, email=c.email, phone=c.phone) for c in config.author.contacts],
    )


# -------------------------
# Components
# -------------------------

def _code_component(pkg: Package) -> Component:
    purl = generic_purl(pkg.name, pkg.version) if pkg.is_source_package else purl_for_package(pkg)
    return Component(
        bom_ref=purl,
        type=ComponentType.LIBRARY.value,
        name=pkg.name,
        version=pkg.version,
        purl=purl,
        licenses=license_choices(pkg.licenses),
    )


def _file_components(pkg: Package, diagnostics: Diagnostics) -> List[Component]:
    files: List[Component] = []
    for filename in pkg.files:
        try:
            digest = utils.hash_file_sha256(filename)
        except OSError as e:
            diagnostics.warn(FILE_HASH_FAILED, f"failed to hash file {filename}: {e}", subject=filename)
            continue
        files.append(
            Component(
                type=ComponentType.FILE.value,
                name=filename,
                hashes=[Hash(alg=Config.hash_algorithm, content=digest)],
            )
        )
    return files


def _tool_component(pkg: Package, diagnostics: Diagnostics) -> Component:
    purl = purl_for_package(pkg)
    return Component(
        bom_ref=purl,
        type=ComponentType.APPLICATION.value,
        name=pkg.name,
        version=pkg.version,
        purl=purl,
        scope=ComponentScope.EXCLUDED.value,
        licenses=license_choices(pkg.licenses),
        properties=[Property(name=Config.build_role_property, value=Config.build_role_tool)],
        components=_file_components(pkg, diagnostics),
    )


def _transitive_component(pkg: Package) -> Component:
    purl = purl_for_package(pkg)
    component = Component(
        bom_ref=purl,
        type=ComponentType.LIBRARY.value,
        name=pkg.name,
        version=pkg.version,
        purl=purl,
    )
    if pkg.scope is Scope.TOOL:
        component.scope = ComponentScope.EXCLUDED.value
    return component


# -------------------------
# BOM
# -------------------------

def generate_cyclonedx(
    deps: BuildDependencies,
    config: Optional[ScanConfig] = None,
    diagnostics: Optional[Diagnostics] = None,
) -> Bom:
    """
    One component per package id; the first partition naming an id wins
    (Code, then Tools, then Transitive). Edges are emitted for Code and
    Tools packages only.
    """
    config = config or ScanConfig()
    diagnostics = (diagnostics or Diagnostics()).child("cyclonedx")

    bom = Bom(
        metadata=_build_metadata(config),
        serial_number=f"urn:uuid:{uuid.uuid4()}",
        version=1,
        spec_version=Config.cyclonedx_spec_version,
    )

    components: List[Component] = []
    ref_by_id: Dict[str, str] = {}
    root_dependencies: List[str] = []

    for pkg in deps.code:
        if pkg.id in ref_by_id:
            continue
        component = _code_component(pkg)
        components.append(component)
        ref_by_id[pkg.id] = component.bom_ref
        if not pkg.is_source_package:
            root_dependencies.append(component.bom_ref)

    for pkg in deps.tools:
        # skip if already added as code
        if pkg.id in ref_by_id:
            continue
        if pkg.is_source_package:
            diagnostics.error("build tool %s is unexpectedly a source package", pkg.name)
        component = _tool_component(pkg, diagnostics)
        components.append(component)
        ref_by_id[pkg.id] = component.bom_ref
        root_dependencies.append(component.bom_ref)

    for pkg in deps.transitive:
        if pkg.id in ref_by_id:
            continue
        component = _transitive_component(pkg)
        components.append(component)
        ref_by_id[pkg.id] = component.bom_ref

    edges: Dict[str, List[str]] = {}
    for pkg in deps.direct():
        source_ref = ref_by_id[pkg.id]
        for dep_id in pkg.dependencies:
            target_ref = ref_by_id.get(dep_id)
            if target_ref is None:
                diagnostics.warn(
                    DEPENDENCY_EDGE_DROPPED,
                    f"package dependency {dep_id} of {pkg.id} has no component",
                    subject=dep_id,
                )
                continue
            edges.setdefault(source_ref, []).append(target_ref)

    dependencies = [Dependency(ref=bom.root_ref, depends_on=utils.dedupe(root_dependencies))]
    for component in components:
        if component.bom_ref in edges:
            dependencies.append(Dependency(ref=component.bom_ref, depends_on=utils.dedupe(edges[component.bom_ref])))

    bom.components = components
    bom.dependencies = dependencies
    return bom
