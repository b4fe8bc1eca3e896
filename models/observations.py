from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional


@dataclass
class BuildObservations:
    """Raw file-open and exec records captured while a build ran."""
    working_directory: str = ""
    files_opened: List[str] = field(default_factory=list)
    files_executed: List[str] = field(default_factory=list)
    start: Optional[str] = None
    stop: Optional[str] = None
