"""
Attribute observed build files to installed OS packages.

Resolution runs as two stages: first a raw-name graph is built (direct
Code/Tools packages plus their transitive closure, dependencies still named
the way the package database names them), then a pure rewrite turns every
dependency name into a canonical package id.
"""
import logging
from dataclasses import replace
from pathlib import Path
from typing import Dict, Iterable, List, Optional

import utils
from loggers.diagnostics import (
    DEPENDENCY_UNRESOLVED,
    LICENSE_DETECTION_FAILED,
    LICENSE_MISSING,
    SYMLINK_UNRESOLVED,
    Diagnostics,
)
from models.enums import PackageManager, Scope
from models.errors import AttributionError, EnvironmentDetectionError
from models.observations import BuildObservations
from models.package import (
    SOURCE_ID_PREFIX,
    BuildDependencies,
    License,
    OSFamily,
    OsPackage,
    Package,
    package_id,
    source_package_id,
)
from ospkgs.dpkg_indexer import DpkgIndexer
from ospkgs.indexer import PackageIndexer
from ospkgs.osfamily import detect_os_family, detect_package_manager
from ospkgs.rpm_indexer import RpmIndexer

# rpmlib(...) names are capabilities of rpm itself, not packages
VIRTUAL_CAPABILITY_PREFIX = "rpmlib("


def _is_skipped_name(name: str) -> bool:
    return name.startswith(VIRTUAL_CAPABILITY_PREFIX) or name.startswith(SOURCE_ID_PREFIX)


def _package_from_os_package(os_pkg: OsPackage, os_family: OSFamily, scope: Scope = Scope.CODE) -> Package:
    return Package(
        id=package_id(os_pkg.name, os_pkg.version),
        name=os_pkg.name,
        version=os_pkg.version,
        arch=os_pkg.architecture,
        dependencies=list(os_pkg.dependencies),
        os_family=os_family,
        scope=scope,
    )


def _licenses_for(indexer: PackageIndexer, name: str, diagnostics: Diagnostics) -> List[License]:
    try:
        licenses = indexer.licenses_for_package(name)
    except OSError as e:
        diagnostics.warn(LICENSE_DETECTION_FAILED, f"failed to get licenses for package {name}: {e}", subject=name, level=logging.ERROR)
        licenses = []

    if not licenses:
        diagnostics.warn(LICENSE_MISSING, f"no licenses found for package {name}", subject=name)
    return licenses


def _resolve_symlinks(filename: str, diagnostics: Diagnostics) -> str:
    # /usr/bin/cc -> /etc/alternatives/cc -> /usr/bin/gcc -> /usr/bin/gcc-12 -> /usr/bin/x86_64-linux-gnu-gcc-12
    try:
        return str(Path(filename).resolve(strict=True))
    except (OSError, RuntimeError) as e:
        diagnostics.warn(SYMLINK_UNRESOLVED, f"failed to resolve symlinks for {filename}: {e}", subject=filename)
        return filename


def _sorted_packages(packages: Iterable[Package]) -> List[Package]:
    return sorted(packages, key=lambda p: p.sort_key)


# -------------------------
# Direct packages
# -------------------------

def resolve_code_packages(
    os_family: OSFamily,
    opens: Iterable[str],
    indexer: PackageIndexer,
    diagnostics: Diagnostics,
) -> Dict[str, Package]:
    """
    One package per owning package of an opened file. A binary package
    built from a differently named or versioned source package also
    yields a `src:` pseudo-package it depends on.
    """
    code: Dict[str, Package] = {}
    licenses_cache: Dict[str, List[License]] = {}

    # more than one compiler might open the same file
    include_files = sorted(set(opens))
    diagnostics.debug("resolving package attributions for %d observed files", len(include_files))

    for filename in include_files:
        os_pkg = indexer.package_for_file(filename)
        if os_pkg is None:
            raise AttributionError(filename)

        pkg = _package_from_os_package(os_pkg, os_family)
        if os_pkg.name not in licenses_cache:
            licenses_cache[os_pkg.name] = _licenses_for(indexer, os_pkg.name, diagnostics)
        pkg.licenses = licenses_cache[os_pkg.name]

        if os_pkg.source_name and (os_pkg.name != os_pkg.source_name or os_pkg.version != os_pkg.source_version):
            source_pkg = Package(
                id=source_package_id(os_pkg.source_name, os_pkg.source_version),
                name=os_pkg.source_name,
                version=os_pkg.source_version,
                is_source_package=True,
                os_family=os_family,
            )
            pkg.dependencies.append(source_pkg.id)
            code.setdefault(source_pkg.id, source_pkg)

        code[pkg.id] = pkg

    return code


def resolve_tool_packages(
    os_family: OSFamily,
    executions: Iterable[str],
    indexer: PackageIndexer,
    diagnostics: Diagnostics,
) -> Dict[str, Package]:
    """One package per owning package of an executed binary, carrying the binaries' real paths."""
    tools: Dict[str, Package] = {}

    for executed in executions:
        filename = _resolve_symlinks(executed, diagnostics)

        os_pkg = indexer.package_for_file(filename)
        if os_pkg is None and filename != executed:
            os_pkg = indexer.package_for_file(executed)
            filename = executed
        if os_pkg is None:
            raise AttributionError(executed)

        existing = tools.get(package_id(os_pkg.name, os_pkg.version))
        if existing is not None:
            existing.files = utils.union_ordered(existing.files, [filename])
            continue

        pkg = _package_from_os_package(os_pkg, os_family, Scope.TOOL)
        pkg.files = [filename]
        pkg.licenses = _licenses_for(indexer, os_pkg.name, diagnostics)
        tools[pkg.id] = pkg

    return tools


# -------------------------
# Transitive closure
# -------------------------

def resolve_transitive(
    code: List[Package],
    tools: List[Package],
    os_family: OSFamily,
    indexer: PackageIndexer,
    diagnostics: Diagnostics,
) -> List[Package]:
    """
    Every package reachable from the direct packages' dependency names.

    Code roots are walked before Tools roots so a package reachable from
    both keeps the code scope. Direct packages are never repeated here.
    """
    visited = {pkg.id for pkg in code} | {pkg.id for pkg in tools}
    collection: List[Package] = []

    for roots, scope in ((code, Scope.CODE), (tools, Scope.TOOL)):
        pending: List[str] = []
        for root in reversed(roots):
            pending.extend(reversed(root.dependencies))

        while pending:
            name = pending.pop()
            if _is_skipped_name(name):
                continue

            os_pkg = indexer.package_that_provides(name)
            if os_pkg is None:
                diagnostics.warn(DEPENDENCY_UNRESOLVED, f"dependency {name} not found", subject=name, level=logging.DEBUG)
                continue

            dep_id = package_id(os_pkg.name, os_pkg.version)
            if dep_id in visited:
                continue
            visited.add(dep_id)

            dep_pkg = _package_from_os_package(os_pkg, os_family, scope)
            collection.append(dep_pkg)
            pending.extend(reversed(dep_pkg.dependencies))

    return collection


# -------------------------
# Id rewrite
# -------------------------

def rewrite_dependency_ids(
    deps: BuildDependencies,
    indexer: PackageIndexer,
    diagnostics: Optional[Diagnostics] = None,
) -> BuildDependencies:
    """
    Return a copy of `deps` whose dependency lists hold package ids
    instead of package-database names. Names that no longer resolve are
    dropped; `src:` ids are already canonical and kept.
    """
    diagnostics = diagnostics or Diagnostics()

    def rewrite(pkg: Package) -> Package:
        resolved: List[str] = []
        for dep in pkg.dependencies:
            if dep.startswith(SOURCE_ID_PREFIX):
                resolved.append(dep)
                continue
            if dep.startswith(VIRTUAL_CAPABILITY_PREFIX):
                continue

            provider = indexer.package_that_provides(dep)
            if provider is None:
                diagnostics.warn(DEPENDENCY_UNRESOLVED, f"failed to resolve package that provides {dep} for {pkg.id}", subject=dep)
                continue
            resolved.append(package_id(provider.name, provider.version))

        return replace(pkg, dependencies=utils.dedupe(resolved))

    return BuildDependencies(
        code=[rewrite(p) for p in deps.code],
        tools=[rewrite(p) for p in deps.tools],
        transitive=[rewrite(p) for p in deps.transitive],
    )


# -------------------------
# Pipeline
# -------------------------

def resolve_package_dependencies(
    os_family: OSFamily,
    opens: Iterable[str],
    executions: Iterable[str],
    indexer: PackageIndexer,
    diagnostics: Optional[Diagnostics] = None,
) -> BuildDependencies:
    diagnostics = (diagnostics or Diagnostics()).child("resolver")

    indexer.create()

    code = _sorted_packages(resolve_code_packages(os_family, opens, indexer, diagnostics).values())
    tools = _sorted_packages(resolve_tool_packages(os_family, executions, indexer, diagnostics).values())
    transitive = _sorted_packages(resolve_transitive(code, tools, os_family, indexer, diagnostics))

    diagnostics.debug("resolved %d unique code dependencies", len(code))
    diagnostics.debug("resolved %d unique tool dependencies", len(tools))
    diagnostics.debug("resolved %d unique transitive dependencies", len(transitive))

    raw = BuildDependencies(code=code, tools=tools, transitive=transitive)
    return rewrite_dependency_ids(raw, indexer, diagnostics)


def select_indexer(package_manager: PackageManager, diagnostics: Optional[Diagnostics] = None) -> PackageIndexer:
    if package_manager is PackageManager.DEBIAN:
        return DpkgIndexer(diagnostics=diagnostics)
    if package_manager is PackageManager.RPM:
        return RpmIndexer(diagnostics=diagnostics)
    raise EnvironmentDetectionError(f"unsupported build environment '{package_manager.value}' - cannot resolve dependencies")


def resolve_dependencies(observations: BuildObservations, diagnostics: Optional[Diagnostics] = None) -> BuildDependencies:
    """Probe the environment once and resolve `observations` against its package database."""
    diagnostics = diagnostics or Diagnostics()

    package_manager = detect_package_manager()
    os_family = detect_os_family()
    os_family.package_manager = package_manager
    diagnostics.debug("detected os family %s (%s %s, %s)", os_family.name, os_family.distro, os_family.release, package_manager.value)

    indexer = select_indexer(package_manager, diagnostics)
    return resolve_package_dependencies(
        os_family,
        observations.files_opened,
        observations.files_executed,
        indexer,
        diagnostics,
    )
