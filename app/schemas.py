"""Pydantic schemas for the HTTP API layer."""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field

from models.records import ReadingName


class ReadingValue(BaseModel):
    """Latest value of one tracked reading."""

    name: ReadingName
    discriminator: Optional[str] = Field(
        default=None, description="Tariff or channel distinguishing readings under one name."
    )
    value: float


class ReadingsResponse(BaseModel):
    """Point-in-time view of the reading store."""

    telegrams_processed: int = Field(..., ge=0)
    readings: List[ReadingValue] = Field(default_factory=list)


class DecoderStatus(BaseModel):
    """Counters and liveness of the background decode task."""

    source: str
    policy: str
    running: bool
    telegrams: int = Field(..., ge=0)
    routed: int = Field(..., ge=0)
    skipped: int = Field(..., ge=0)
    parse_errors: int = Field(..., ge=0)
    unrecognized: int = Field(..., ge=0)
    discontinuities: int = Field(..., ge=0)
    failure: Optional[str] = None
