"""
Fold independently generated BOMs into one.

Merging is deliberately simple: components and dependencies are merged,
every incoming root is folded into the first document's root, and the
caller's scan configuration is stamped on the result. The inputs are
modified and should be considered invalid afterwards.
"""
import uuid
from typing import Dict, List, Optional

import utils
from configuration import Configuration as Config
from loggers.diagnostics import MERGE_REFERENCE_UNKNOWN, Diagnostics
from models.bom import Bom, Dependency, Metadata
from models.component import Component, ComponentStore, LicenseChoice, OrganizationalContact
from models.enums import ComponentType
from models.scan_config import ScanConfig
from sbom_generators.build_sbom_gen import generator_tool, organizational_entity


def _new_root() -> Component:
    return Component(name="", bom_ref=str(uuid.uuid4()), type=ComponentType.APPLICATION.value)


def _empty_bom() -> Bom:
    return Bom(
        metadata=Metadata(component=_new_root()),
        spec_version=Config.cyclonedx_spec_version,
    )


def _fold(boms: List[Bom], merge_root_component: bool, diagnostics: Diagnostics) -> Optional[Bom]:
    if not boms:
        return None

    # short-circuit if there's only one BOM
    if len(boms) == 1:
        return boms[0]

    merged = boms[0]
    if merged.metadata.component is None:
        merged.metadata.component = _new_root()
    root_ref = merged.root_ref

    # bom-ref -> merged bom-ref
    refs: Dict[str, str] = {ref: ref for ref in merged.component_refs()}
    store = ComponentStore(merged.components)
    dependencies: Dict[str, Dependency] = {d.ref: d for d in merged.dependencies}

    for bom in boms[1:]:
        incoming_root = bom.metadata.component
        if incoming_root is not None and incoming_root.bom_ref:
            if merge_root_component:
                # the incoming root becomes a subtree of the merged root
                refs[incoming_root.bom_ref] = root_ref
            else:
                refs[incoming_root.bom_ref] = incoming_root.bom_ref
                store.add_component(incoming_root)
                root_dependency = dependencies.get(root_ref)
                if root_dependency is None:
                    root_dependency = Dependency(ref=root_ref)
                    dependencies[root_ref] = root_dependency
                    merged.dependencies.append(root_dependency)
                root_dependency.depends_on = utils.union_ordered(root_dependency.depends_on, [incoming_root.bom_ref])

        for component in bom.components:
            # first writer wins, no attribute merge
            if component.bom_ref and component.bom_ref not in refs:
                refs[component.bom_ref] = component.bom_ref
            store.add_component(component)

        for dependency in bom.dependencies:
            ref = refs.get(dependency.ref)
            if ref is None:
                diagnostics.warn(
                    MERGE_REFERENCE_UNKNOWN,
                    f"failed to find component for dependency ref {dependency.ref}",
                    subject=dependency.ref,
                )
                continue

            targets = []
            for target in dependency.depends_on:
                if target in refs:
                    targets.append(refs[target])
                elif target == root_ref:
                    targets.append(root_ref)
                else:
                    diagnostics.warn(
                        MERGE_REFERENCE_UNKNOWN,
                        f"dropping edge {dependency.ref} -> {target}, no component has that ref",
                        subject=target,
                    )

            existing = dependencies.get(ref)
            if existing is None:
                existing = Dependency(ref=ref, depends_on=utils.dedupe(targets))
                dependencies[ref] = existing
                merged.dependencies.append(existing)
            else:
                existing.depends_on = utils.union_ordered(existing.depends_on, targets)

        tool_ids = {(t.name, t.version) for t in merged.metadata.tools}
        for tool in bom.metadata.tools:
            if (tool.name, tool.version) not in tool_ids:
                tool_ids.add((tool.name, tool.version))
                merged.metadata.tools.append(tool)

    merged.components = store.get_all_components()
    return merged


def _apply_scan_config(merged: Bom, config: ScanConfig) -> None:
    root = merged.metadata.component
    declared = config.component

    if declared.bom_ref:
        old_ref = root.bom_ref
        root.bom_ref = declared.bom_ref
        for dependency in merged.dependencies:
            if dependency.ref == old_ref:
                dependency.ref = declared.bom_ref
    if declared.type:
        root.type = declared.type
    if declared.name:
        root.name = declared.name
    if declared.group:
        root.group = declared.group
    if declared.version:
        root.version = declared.version
    if declared.description:
        root.description = declared.description
    if declared.license:
        root.licenses = [LicenseChoice(id=declared.license)]

    # author
    if config.author.name:
        contacts = [OrganizationalContact(name=c.name, email=c.email, phone=c.phone) for c in config.author.contacts]
        merged.metadata.authors = contacts or [OrganizationalContact(name=config.author.name)]

    # supplier
    if config.supplier.name:
        merged.metadata.supplier = organizational_entity(config.supplier)

    # manufacturer
    if config.manufacturer.name:
        merged.metadata.manufacturer = organizational_entity(config.manufacturer)


def _ensure_generator_tool(merged: Bom) -> None:
    if not any(tool.name == Config.tool_name for tool in merged.metadata.tools):
        merged.metadata.tools.append(generator_tool())


def merge_boms(
    config: Optional[ScanConfig],
    boms: List[Bom],
    merge_root_component: bool = True,
    diagnostics: Optional[Diagnostics] = None,
) -> Bom:
    """
    Merge `boms` into the first of them.

    With `merge_root_component` the roots of later documents are folded
    into the first root; without it each of them is kept as a component
    the first root depends on. Afterwards no component shares
    (name, group, version) with the merged root.
    """
    config = config or ScanConfig()
    diagnostics = (diagnostics or Diagnostics()).child("merge")

    merged = _fold(boms, merge_root_component, diagnostics)
    if merged is None:
        merged = _empty_bom()
    if merged.metadata.component is None:
        merged.metadata.component = _new_root()

    _apply_scan_config(merged, config)
    _ensure_generator_tool(merged)

    # the root lives in metadata, not in the component list
    root_identity = merged.metadata.component.identity
    kept = [c for c in merged.components if c.identity != root_identity]
    if len(kept) != len(merged.components):
        diagnostics.debug("removed %d components duplicating the root component", len(merged.components) - len(kept))
    merged.components = kept

    return merged
