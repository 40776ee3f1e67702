from __future__ import annotations

from typing import Any, List

from pydantic import BaseModel, ConfigDict


class GroupedCount(BaseModel):
    """One group of the fires count; extra display fields ride along."""
    model_config = ConfigDict(extra="allow")

    key: Any
    count: int


class GroupedCountResponse(BaseModel):
    key: str
    fields: List[str]
    groups: List[GroupedCount]


class TotalCountResponse(BaseModel):
    count: int


class WeeklyCount(BaseModel):
    start: str
    end: str
    count: int
