from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class GeographyNodeCreate(BaseModel):
    code: str
    name: str
    description: str | None = None
    parent_id: int | None = None


class AreaOption(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    code: str
    name: str
    zone_id: int | None = None


class ZoneOption(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    code: str
    name: str
    circle_id: int | None = None
    areas: list[AreaOption] = Field(default_factory=list)


class CircleOption(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    code: str
    name: str
    cluster_id: int | None = None
    zones: list[ZoneOption] = Field(default_factory=list)


class ClusterOption(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    code: str
    name: str
    circles: list[CircleOption] = Field(default_factory=list)
