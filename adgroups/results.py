"""Result types returned by group traversals."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterator, List


class Classification(Enum):
    """Kind of directory entry a member DN resolves to."""
    GROUP = "Group"
    PERSON = "Person"
    UNKNOWN = "Unknown"


@dataclass
class ClosureResult:
    """Groups reachable downward from a starting group.

    Attributes:
        group: DN of the starting group
        groups: Nested group DNs in discovery order, without duplicates
        skipped: Member DNs that matched no entry in the directory
        recursive: Whether nested groups were expanded
    """
    group: str
    groups: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    recursive: bool = True

    def __contains__(self, dn: object) -> bool:
        if not isinstance(dn, str):
            return False
        return dn.lower() in {g.lower() for g in self.groups}

    def __iter__(self) -> Iterator[str]:
        return iter(self.groups)

    def __len__(self) -> int:
        return len(self.groups)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'group': self.group,
            'recursive': self.recursive,
            'groups': list(self.groups),
            'skipped': list(self.skipped),
        }
