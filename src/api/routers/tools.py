from __future__ import annotations

import logging
from typing import Any, Dict, List, Type

import orjson
from fastapi import APIRouter, Depends
from pydantic import BaseModel

from ..dependencies_gline import get_gline_service
from src.engines.nlp.gline import GlineService
from schemas.tools import (
    EntitySchema,
    ExtractEntitiesInput,
    ExtractRelationsInput,
    RelationSchema,
    TextContent,
    ToolDescriptor,
    ToolList,
    ToolResponse,
)

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/tools", tags=["tools"])

EXTRACT_ENTITIES_TOOL = ToolDescriptor(
    name="extract_entities",
    description="Extract named entities from text using GLiNER model.",
    input_schema=ExtractEntitiesInput.model_json_schema(),
)

EXTRACT_RELATIONS_TOOL = ToolDescriptor(
    name="extract_relations",
    description="Extract relations between entities using a GLiNER relation model.",
    input_schema=ExtractRelationsInput.model_json_schema(),
)


def _error(message: str) -> ToolResponse:
    return ToolResponse(is_error=True, content=[TextContent(text=message)])


def _encode(tool: str, items: List[Dict[str, Any]], schema: Type[BaseModel]) -> ToolResponse:
    try:
        payload = orjson.dumps([schema(**item).model_dump() for item in items]).decode("utf-8")
    except (TypeError, ValueError) as exc:
        logger.error("Error serializing %s result: %s", tool, exc, exc_info=True)
        return _error(f"Serialization error: {exc}")
    return ToolResponse(content=[TextContent(text=payload)])


@router.get("", response_model=ToolList)
async def list_tools() -> ToolList:
    return ToolList(tools=[EXTRACT_ENTITIES_TOOL, EXTRACT_RELATIONS_TOOL])


@router.post("/extract_entities", response_model=ToolResponse)
async def extract_entities(
    request: ExtractEntitiesInput,
    service: GlineService = Depends(get_gline_service),
) -> ToolResponse:
    try:
        result = await service.extract_entities(request.text, request.labels)
    except Exception as exc:
        logger.error("Error in extract_entities inference: %s", exc, exc_info=True)
        return _error(f"Inference error: {exc}")

    return _encode("extract_entities", [e.to_dict() for e in result.entities], EntitySchema)


@router.post("/extract_relations", response_model=ToolResponse)
async def extract_relations(
    request: ExtractRelationsInput,
    service: GlineService = Depends(get_gline_service),
) -> ToolResponse:
    try:
        result = await service.extract_relations(request.text, request.labels)
    except Exception as exc:
        logger.error("Error in extract_relations inference: %s", exc, exc_info=True)
        return _error(f"Inference error: {exc}")

    return _encode("extract_relations", [r.to_dict() for r in result.relations], RelationSchema)


__all__ = ["router"]
