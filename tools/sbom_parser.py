"""CycloneDX JSON <-> Bom model."""
from __future__ import annotations

from pathlib import Path
from typing import Any, Optional, Union

import utils
from configuration import Configuration as Config
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
from models.errors import BomFormatError

BOM_FORMAT = "CycloneDX"


# --- CycloneDX JSON helpers ---

def _safe_str(v: Any) -> Optional[str]:
    if v is None:
        return None
    if isinstance(v, str):
        s = v.strip()
        return s if s else None
    return str(v).strip() or None


def _component_group_like(c: dict[str, Any]) -> Optional[str]:
    # some producers use "namespace" instead of "group"
    return _safe_str(c.get("group")) or _safe_str(c.get("namespace"))


def _bom_ref(c: dict[str, Any]) -> Optional[str]:
    # CycloneDX JSON commonly uses "bom-ref"; be tolerant of "bomRef"
    return _safe_str(c.get("bom-ref")) or _safe_str(c.get("bomRef"))


def _dependency_ref(d: dict[str, Any]) -> Optional[str]:
    # CycloneDX dependency objects commonly use "ref"; be tolerant of "bom-ref"/"bomRef"
    return _safe_str(d.get("ref")) or _bom_ref(d)


def _dependency_children(d: dict[str, Any]) -> list[str]:
    kids = d.get("dependsOn")
    if not isinstance(kids, list):
        return []
    out: list[str] = []
    for k in kids:
        s = _safe_str(k)
        if s:
            out.append(s)
    return out


def _dicts(value: Any) -> list[dict[str, Any]]:
    if not isinstance(value, list):
        return []
    return [v for v in value if isinstance(v, dict)]


# --- parsing ---

def _parse_licenses(raw: Any) -> list[LicenseChoice]:
    """
    Supports both CycloneDX license forms:
      { "license": { "id": "Apache-2.0" } }  and  { "expression": "MIT OR Apache-2.0" }
    """
    choices: list[LicenseChoice] = []
    for item in _dicts(raw):
        expr = _safe_str(item.get("expression"))
        if expr:
            choices.append(LicenseChoice(expression=expr))
            continue

        lic = item.get("license")
        if not isinstance(lic, dict):
            # some producers flatten fields directly
            lic = item
        lic_id = _safe_str(lic.get("id"))
        lic_name = _safe_str(lic.get("name"))
        if lic_id or lic_name:
            choices.append(LicenseChoice(id=lic_id, name=lic_name))
    return choices


def _parse_contact(raw: dict[str, Any]) -> OrganizationalContact:
    return OrganizationalContact(
        name=_safe_str(raw.get("name")),
        email=_safe_str(raw.get("email")),
        phone=_safe_str(raw.get("phone")),
    )


def _parse_entity(raw: Any) -> Optional[OrganizationalEntity]:
    if not isinstance(raw, dict):
        return None
    urls = raw.get("url")
    if isinstance(urls, str):
        urls = [urls]
    return OrganizationalEntity(
        name=_safe_str(raw.get("name")),
        url=[u for u in (_safe_str(x) for x in urls or []) if u],
        contacts=[_parse_contact(c) for c in _dicts(raw.get("contact") or raw.get("contacts"))],
    )


def parse_component(c: dict[str, Any]) -> Component:
    return Component(
        name=_safe_str(c.get("name")) or "",
        type=_safe_str(c.get("type")) or "library",
        bom_ref=_bom_ref(c),
        group=_component_group_like(c),
        version=_safe_str(c.get("version")),
        purl=_safe_str(c.get("purl")),
        description=_safe_str(c.get("description")),
        publisher=_safe_str(c.get("publisher")),
        scope=_safe_str(c.get("scope")),
        licenses=_parse_licenses(c.get("licenses")),
        hashes=[
            Hash(alg=_safe_str(h.get("alg")) or "", content=_safe_str(h.get("content")) or "")
            for h in _dicts(c.get("hashes"))
        ],
        properties=[
            Property(name=_safe_str(p.get("name")) or "", value=_safe_str(p.get("value")) or "")
            for p in _dicts(c.get("properties"))
        ],
        external_references=[
            ExternalReference(type=_safe_str(r.get("type")) or "other", url=_safe_str(r.get("url")) or "")
            for r in _dicts(c.get("externalReferences"))
        ],
        components=[parse_component(sub) for sub in _dicts(c.get("components"))],
        supplier=_parse_entity(c.get("supplier")),
        manufacturer=_parse_entity(c.get("manufacturer")),
    )


def _parse_tools(raw: Any) -> list[Component]:
    # 1.5 uses {"components": [...]}, older documents a plain list of tools
    if isinstance(raw, dict):
        raw = raw.get("components")
    return [parse_component(t) for t in _dicts(raw)]


def _parse_metadata(raw: Any) -> Metadata:
    if not isinstance(raw, dict):
        return Metadata()
    top_level = raw.get("component")
    return Metadata(
        timestamp=_safe_str(raw.get("timestamp")),
        tools=_parse_tools(raw.get("tools")),
        component=parse_component(top_level) if isinstance(top_level, dict) else None,
        lifecycles=[Lifecycle(phase=_safe_str(lc.get("phase")) or "") for lc in _dicts(raw.get("lifecycles"))],
        licenses=_parse_licenses(raw.get("licenses")),
        supplier=_parse_entity(raw.get("supplier")),
        manufacturer=_parse_entity(raw.get("manufacturer")),
        authors=[_parse_contact(a) for a in _dicts(raw.get("authors"))],
    )


def parse_bom(data: Any) -> Bom:
    if not isinstance(data, dict):
        raise BomFormatError("CycloneDX document must be a JSON object")

    bom_format = data.get("bomFormat")
    if bom_format is not None and bom_format != BOM_FORMAT:
        raise BomFormatError(f"unsupported bomFormat {bom_format!r}")

    dependencies: list[Dependency] = []
    for d in _dicts(data.get("dependencies")):
        ref = _dependency_ref(d)
        if ref:
            dependencies.append(Dependency(ref=ref, depends_on=_dependency_children(d)))

    version = data.get("version", 1)
    try:
        version = int(version)
    except (TypeError, ValueError):
        raise BomFormatError(f"invalid document version {version!r}") from None

    return Bom(
        metadata=_parse_metadata(data.get("metadata")),
        components=[parse_component(c) for c in _dicts(data.get("components"))],
        dependencies=dependencies,
        serial_number=_safe_str(data.get("serialNumber")),
        version=version,
        spec_version=_safe_str(data.get("specVersion")) or Config.cyclonedx_spec_version,
    )


def read_bom(sbom_path: Union[str, Path]) -> Bom:
    try:
        data = utils.read_json_file(sbom_path)
    except (OSError, ValueError) as e:
        raise BomFormatError(str(e)) from e
    return parse_bom(data)


# --- serialization ---

def _compact(d: dict[str, Any]) -> dict[str, Any]:
    """Drop None and empty collections."""
    return {k: v for k, v in d.items() if v is not None and v != [] and v != {}}


def _license_to_dict(lic: LicenseChoice) -> dict[str, Any]:
    if lic.expression:
        return {"expression": lic.expression}
    return {"license": _compact({"id": lic.id, "name": lic.name})}


def _contact_to_dict(c: OrganizationalContact) -> dict[str, Any]:
    return _compact({"name": c.name, "email": c.email, "phone": c.phone})


def _entity_to_dict(e: Optional[OrganizationalEntity]) -> Optional[dict[str, Any]]:
    if e is None:
        return None
    return _compact({
        "name": e.name,
        "url": list(e.url),
        "contact": [_contact_to_dict(c) for c in e.contacts],
    })


def component_to_dict(c: Component) -> dict[str, Any]:
    return _compact({
        "bom-ref": c.bom_ref,
        "type": c.type,
        "supplier": _entity_to_dict(c.supplier),
        "manufacturer": _entity_to_dict(c.manufacturer),
        "publisher": c.publisher,
        "group": c.group,
        "name": c.name,
        "version": c.version,
        "description": c.description,
        "scope": c.scope,
        "hashes": [{"alg": h.alg, "content": h.content} for h in c.hashes],
        "licenses": [_license_to_dict(lic) for lic in c.licenses],
        "purl": c.purl,
        "externalReferences": [{"type": r.type, "url": r.url} for r in c.external_references],
        "properties": [{"name": p.name, "value": p.value} for p in c.properties],
        "components": [component_to_dict(sub) for sub in c.components],
    })


def bom_to_dict(bom: Bom) -> dict[str, Any]:
    m = bom.metadata
    metadata = _compact({
        "timestamp": m.timestamp,
        "lifecycles": [{"phase": lc.phase} for lc in m.lifecycles],
        "tools": {"components": [component_to_dict(t) for t in m.tools]} if m.tools else None,
        "authors": [_contact_to_dict(a) for a in m.authors],
        "component": component_to_dict(m.component) if m.component else None,
        "manufacturer": _entity_to_dict(m.manufacturer),
        "supplier": _entity_to_dict(m.supplier),
        "licenses": [_license_to_dict(lic) for lic in m.licenses],
    })

    doc: dict[str, Any] = {
        "bomFormat": BOM_FORMAT,
        "specVersion": bom.spec_version,
    }
    if bom.serial_number:
        doc["serialNumber"] = bom.serial_number
    doc["version"] = bom.version
    doc["metadata"] = metadata
    doc["components"] = [component_to_dict(c) for c in bom.components]
    doc["dependencies"] = [{"ref": d.ref, "dependsOn": list(d.depends_on)} for d in bom.dependencies]
    return doc


def write_bom(bom: Bom, sbom_path: Union[str, Path]) -> Path:
    return utils.write_json_file(sbom_path, bom_to_dict(bom))
