"""
Plain result records returned by mutating services.
"""
from dataclasses import dataclass, field
from typing import Dict


@dataclass(frozen=True)
class DeleteResult:
    deleted_id: int
    # relation/table name -> number of rows removed alongside the entity
    cascaded: Dict[str, int] = field(default_factory=dict)


@dataclass(frozen=True)
class AssignmentResult:
    assigned: int
    skipped: int


@dataclass(frozen=True)
class RemovalResult:
    removed: bool
