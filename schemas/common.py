"""
schemas/common.py

Shared schemas used across routers (Pydantic v2):
  1) error envelope: ErrorDetail, ErrorResponse
  2) pagination: Pagination, MetaInfo, make_meta()
"""

from __future__ import annotations

from datetime import datetime, timezone
from math import ceil
from typing import Any, List, Optional, Union

from pydantic import BaseModel, Field, ConfigDict


# =========================================================
# 1) error envelope
# =========================================================

class ErrorDetail(BaseModel):
    """Smallest error unit: code + message"""
    code: Union[int, str] = Field(..., description="HTTP status or symbolic code (e.g. 404, VALIDATION_ERROR)")
    message: str = Field(..., description="Human readable message")
    details: Optional[List[Any]] = Field(default=None, description="Field level errors, when available")

class ErrorResponse(BaseModel):
    """
    Envelope returned by the global error handlers
    (middlewares/error_handler.py)
    """
    success: bool = False
    error: ErrorDetail
    generated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Response time (UTC)"
    )

    model_config = ConfigDict(extra="ignore")


# =========================================================
# 2) pagination
# =========================================================

class Pagination(BaseModel):
    """
    Paging parameters for list endpoints
    - page: starts at 1
    - size: 1..200
    """
    page: int = Field(1, ge=1, description="Current page (1-based)")
    size: int = Field(50, ge=1, le=200, description="Items per page")

    model_config = ConfigDict(extra="ignore")


class MetaInfo(BaseModel):
    """
    Meta block attached to list responses
    - total: total rows
    - page/size: current page and size
    - pages: total number of pages
    """
    total: int = Field(..., ge=0)
    page: int = Field(..., ge=1)
    size: int = Field(..., ge=1)
    pages: int = Field(..., ge=1)

    model_config = ConfigDict(extra="ignore")


def make_meta(total: int, page: int, size: int) -> MetaInfo:
    """
    Build paging meta
    - pages is at least 1 even when total is 0 (keeps the UI simple)
    """
    pages = max(1, ceil(total / max(1, size)))
    return MetaInfo(total=total, page=page, size=size, pages=pages)
