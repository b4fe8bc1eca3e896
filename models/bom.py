from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from models.component import Component, LicenseChoice, OrganizationalContact, OrganizationalEntity


@dataclass
class Dependency:
    ref: str
    depends_on: List[str] = field(default_factory=list)


@dataclass
class Lifecycle:
    phase: str


@dataclass
class Metadata:
    timestamp: Optional[str] = None
    tools: List[Component] = field(default_factory=list)
    component: Optional[Component] = None
    lifecycles: List[Lifecycle] = field(default_factory=list)
    licenses: List[LicenseChoice] = field(default_factory=list)
    supplier: Optional[OrganizationalEntity] = None
    manufacturer: Optional[OrganizationalEntity] = None
    authors: List[OrganizationalContact] = field(default_factory=list)


@dataclass
class Bom:
    metadata: Metadata = field(default_factory=Metadata)
    components: List[Component] = field(default_factory=list)
    dependencies: List[Dependency] = field(default_factory=list)
    serial_number: Optional[str] = None
    version: int = 1
    spec_version: str = "1.5"

    @property
    def root_ref(self) -> Optional[str]:
        if self.metadata.component is None:
            return None
        return self.metadata.component.bom_ref

    def component_refs(self) -> List[str]:
        return [c.bom_ref for c in self.components if c.bom_ref]

    def dependency_map(self) -> Dict[str, List[str]]:
        return {d.ref: list(d.depends_on) for d in self.dependencies}

    def find_component(self, ref: str) -> Optional[Component]:
        for c in self.components:
            if c.bom_ref == ref:
                return c
        return None
