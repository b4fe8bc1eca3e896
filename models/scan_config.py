"""Scan configuration (build-sbom.yml): metadata the caller wants stamped on the BOM."""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from models.errors import ConfigError


@dataclass
class ScanConfigContact:
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None


@dataclass
class ScanConfigOrganizationalEntity:
    name: Optional[str] = None
    url: Optional[str] = None
    contacts: List[ScanConfigContact] = field(default_factory=list)


@dataclass
class ScanConfigComponent:
    bom_ref: Optional[str] = None
    type: Optional[str] = None
    name: Optional[str] = None
    group: Optional[str] = None
    version: Optional[str] = None
    description: Optional[str] = None
    license: Optional[str] = None


@dataclass
class ScanConfig:
    component: ScanConfigComponent = field(default_factory=ScanConfigComponent)
    author: ScanConfigOrganizationalEntity = field(default_factory=ScanConfigOrganizationalEntity)
    supplier: ScanConfigOrganizationalEntity = field(default_factory=ScanConfigOrganizationalEntity)
    manufacturer: ScanConfigOrganizationalEntity = field(default_factory=ScanConfigOrganizationalEntity)
    output: Optional[str] = None


def load_scan_config(config_path: Path) -> ScanConfig:
    """Load a scan configuration from a YAML file."""
    path = Path(config_path)
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Failed to read {path}: {exc}") from exc

    try:
        data = yaml.safe_load(text) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {path}: {exc}") from exc

    if not isinstance(data, dict):
        raise ConfigError(f"{path} must contain a mapping at the top level")

    return ScanConfig(
        component=_component(data.get("component")),
        author=_entity(data.get("author")),
        supplier=_entity(data.get("supplier")),
        manufacturer=_entity(data.get("manufacturer")),
        output=_optional_str(data.get("output")),
    )


def _component(raw: Any) -> ScanConfigComponent:
    section = _section(raw, "component")
    return ScanConfigComponent(
        bom_ref=_optional_str(section.get("bom-ref") or section.get("bom_ref")),
        type=_optional_str(section.get("type")),
        name=_optional_str(section.get("name")),
        group=_optional_str(section.get("group")),
        version=_optional_str(section.get("version")),
        description=_optional_str(section.get("description")),
        license=_optional_str(section.get("license")),
    )


def _entity(raw: Any) -> ScanConfigOrganizationalEntity:
    section = _section(raw, "entity")
    contacts = []
    for item in section.get("contacts") or []:
        if not isinstance(item, dict):
            raise ConfigError("contacts entries must be mappings")
        contacts.append(
            ScanConfigContact(
                name=_optional_str(item.get("name")),
                email=_optional_str(item.get("email")),
                phone=_optional_str(item.get("phone")),
            )
        )
    return ScanConfigOrganizationalEntity(
        name=_optional_str(section.get("name")),
        url=_optional_str(section.get("url")),
        contacts=contacts,
    )


def _section(raw: Any, label: str) -> Dict[str, Any]:
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ConfigError(f"{label} section must be a mapping")
    return raw


def _optional_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    s = str(value).strip()
    return s or None
