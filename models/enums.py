from enum import Enum


class PackageManager(str, Enum):
    DEBIAN = "deb"
    RPM = "rpm"
    UNKNOWN = "unknown"


class Scope(str, Enum):
    CODE = "code"
    TOOL = "tool"


class ComponentType(str, Enum):
    APPLICATION = "application"
    LIBRARY = "library"
    FILE = "file"


class ComponentScope(str, Enum):
    REQUIRED = "required"
    OPTIONAL = "optional"
    EXCLUDED = "excluded"
