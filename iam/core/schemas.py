"""
Response envelopes and the camelCase base model shared by all features.

The console client speaks camelCase (``isActive``, ``moduleId``); models
accept either spelling on input and emit camelCase.
"""
from typing import Dict, Generic, List, Optional, TypeVar
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class ListResponse(CamelModel, Generic[T]):
    success: bool = True
    count: int
    data: List[T]


class ItemResponse(CamelModel, Generic[T]):
    success: bool = True
    data: T
    message: Optional[str] = None


class MessageResponse(CamelModel):
    success: bool = True
    message: str


class AssignmentCounts(CamelModel):
    assigned: int
    skipped: int


class AssignmentResponse(CamelModel):
    success: bool = True
    message: str
    data: AssignmentCounts


class RemovalResponse(CamelModel):
    success: bool = True
    message: str
    removed: bool


class DeleteResponse(CamelModel):
    success: bool = True
    message: str
    deleted_id: int
    cascaded: Dict[str, int] = Field(default_factory=dict)


class ModuleDeleteResponse(DeleteResponse):
    deleted_permissions: int = 0
