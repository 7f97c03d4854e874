from __future__ import annotations

from typing import Any, Dict, List, Literal

from pydantic import BaseModel, Field


class ExtractEntitiesInput(BaseModel):
    text: str
    labels: List[str] = Field(default_factory=list)


class EntitySchema(BaseModel):
    index: int
    start: int
    end: int
    label: str
    text: str
    probability: float = Field(ge=0, le=1)


class ExtractRelationsInput(BaseModel):
    text: str
    labels: List[str] = Field(default_factory=list, description="Entity types linked by the registered relations.")


class RelationSchema(BaseModel):
    sequence_index: int
    source: str
    target: str
    relation: str
    probability: float = Field(ge=0, le=1)


class TextContent(BaseModel):
    type: Literal["text"] = "text"
    text: str


class ToolResponse(BaseModel):
    is_error: bool = False
    content: List[TextContent]


class ToolDescriptor(BaseModel):
    name: str
    description: str
    input_schema: Dict[str, Any]


class ToolList(BaseModel):
    tools: List[ToolDescriptor]
