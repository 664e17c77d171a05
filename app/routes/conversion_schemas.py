"""Pydantic schemas for the conversion API endpoints."""

from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field, model_validator

from scenegraph.normalize import ConversionSettings


class ConversionRequest(BaseModel):
    """Request for POST /api/conversions.

    Exactly one source: an inline REST document, or a Figma file to fetch.
    """
    document: Optional[Dict[str, Any]] = Field(
        None,
        description=(
            "REST node tree (a single node dict) or a full "
            "GET /v1/files/:key/nodes response"
        ),
    )
    variables: Dict[str, str] = Field(
        default_factory=dict,
        description="Variable id → name for an inline document",
    )
    file_key: Optional[str] = Field(None, description="Figma file key to fetch")
    node_ids: List[str] = Field(
        default_factory=list,
        description="Nodes to convert (all roots when empty)",
    )
    settings: ConversionSettings = Field(default_factory=ConversionSettings)

    @model_validator(mode="after")
    def check_source(self) -> "ConversionRequest":
        if (self.document is None) == (self.file_key is None):
            raise ValueError("Provide exactly one of 'document' or 'file_key'")
        if self.file_key is not None and not self.node_ids:
            raise ValueError("'node_ids' is required with 'file_key'")
        return self


class ConversionJobResponse(BaseModel):
    """Response for POST /api/conversions."""
    job_id: str
    status: str
    created_at: str


class ConversionJobStatus(BaseModel):
    """Response for GET /api/conversions/{job_id}."""
    job_id: str
    status: Literal["running", "completed", "failed", "empty"]
    created_at: str
    completed_at: Optional[str] = None
    error: Optional[str] = None
    warnings: List[str] = Field(default_factory=list)
    node_count: int = 0
    code_length: int = 0
