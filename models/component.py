from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple


@dataclass
class Hash:
    alg: str
    content: str


@dataclass
class LicenseChoice:
    id: Optional[str] = None
    name: Optional[str] = None
    expression: Optional[str] = None


@dataclass
class Property:
    name: str
    value: str


@dataclass
class ExternalReference:
    type: str
    url: str


@dataclass
class OrganizationalContact:
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None


@dataclass
class OrganizationalEntity:
    name: Optional[str] = None
    url: List[str] = field(default_factory=list)
    contacts: List[OrganizationalContact] = field(default_factory=list)


@dataclass
class Component:
    name: str
    type: str = "library"
    bom_ref: Optional[str] = None
    group: Optional[str] = None
    version: Optional[str] = None
    purl: Optional[str] = None
    description: Optional[str] = None
    publisher: Optional[str] = None
    scope: Optional[str] = None
    licenses: List[LicenseChoice] = field(default_factory=list)
    hashes: List[Hash] = field(default_factory=list)
    properties: List[Property] = field(default_factory=list)
    external_references: List[ExternalReference] = field(default_factory=list)
    components: List["Component"] = field(default_factory=list)
    supplier: Optional[OrganizationalEntity] = None
    manufacturer: Optional[OrganizationalEntity] = None

    @property
    def identity(self) -> Tuple[str, Optional[str], Optional[str]]:
        return self.name, self.group, self.version


class ComponentStore:
    """
    Ordered component list with a bom-ref index.

    The first component added under a reference wins; later components with
    the same reference are rejected, not merged.
    """

    def __init__(self, components: Optional[Iterable[Component]] = None) -> None:
        self._components: List[Component] = []
        self._by_ref: Dict[str, Component] = {}
        if components:
            self.add_components(components)

    def add_component(self, component: Component) -> bool:
        ref = component.bom_ref
        if ref is not None and ref in self._by_ref:
            return False
        self._components.append(component)
        if ref is not None:
            self._by_ref[ref] = component
        return True

    def add_components(self, components: Iterable[Component]) -> None:
        for c in components:
            self.add_component(c)

    def get_component_by_ref(self, ref: str) -> Optional[Component]:
        return self._by_ref.get(ref)

    def get_all_components(self) -> List[Component]:
        return list(self._components)

    def __len__(self) -> int:
        return len(self._components)
