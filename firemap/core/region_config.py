"""
=============================================================================
FIREMAP - REGION CONFIGURATION
=============================================================================

Static configuration consumed by the filter composer, the extent resolver and
the query facades:

1. SchemaConfig: physical schema/table/column names for every region kind
   and for the fires table (configurations/tables.json).

2. FilterConfig: precomputed extents per region kind (the Region Extent
   Cache) and the map-resolution window in which a click resolves to a
   country instead of a state (configurations/filter.json).

Both files keep the PascalCase keys of the legacy dashboard configuration;
the pydantic models expose them as snake_case attributes. Everything here is
loaded once per process and is immutable afterwards.
=============================================================================
"""
from __future__ import annotations

import json
import logging
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

logger = logging.getLogger(__name__)


class RegionKind(str, Enum):
    """Granularity level a filter or extent operation applies to."""
    COUNTRIES = "countries"
    STATES = "states"
    CITIES = "cities"
    PROTECTED_AREAS = "protected_areas"
    BIOMES = "biomes"


# Keys used by the legacy JSON files for each kind
CONFIG_KEYS: Dict[RegionKind, str] = {
    RegionKind.COUNTRIES: "Countries",
    RegionKind.STATES: "States",
    RegionKind.CITIES: "Cities",
    RegionKind.PROTECTED_AREAS: "ProtectedAreas",
    RegionKind.BIOMES: "Biomes",
}


class _ConfigModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True, extra="ignore")


class RegionTable(_ConfigModel):
    """Table and column bindings for one region kind."""
    schema_name: str = Field(alias="Schema")
    table_name: str = Field(alias="TableName")
    id_field: str = Field(default="id", alias="IdFieldName")
    name_field: str = Field(default="name", alias="NameFieldName")
    geometry_field: Optional[str] = Field(default=None, alias="GeometryFieldName")
    bdq_name_field: Optional[str] = Field(default=None, alias="BdqNameFieldName")
    country_id_field: Optional[str] = Field(default=None, alias="CountryIdFieldName")
    state_id_field: Optional[str] = Field(default=None, alias="StateIdFieldName")

    @property
    def qualified_name(self) -> str:
        return f"{self.schema_name}.{self.table_name}"


class FiresTable(_ConfigModel):
    """Table and column bindings for the fire detections table."""
    schema_name: str = Field(alias="Schema")
    table_name: str = Field(alias="TableName")
    date_time_field: str = Field(alias="DateTimeFieldName")
    satellite_field: str = Field(alias="SatelliteFieldName")
    biome_id_field: str = Field(alias="BiomeIdFieldName")
    country_field: str = Field(alias="CountryFieldName")
    state_field: str = Field(alias="StateFieldName")
    city_field: str = Field(alias="CityFieldName")
    geometry_field: str = Field(alias="GeometryFieldName")

    @property
    def qualified_name(self) -> str:
        return f"{self.schema_name}.{self.table_name}"


class SchemaConfig(_ConfigModel):
    """Physical bindings for every region kind plus the fires table."""
    countries: RegionTable = Field(alias="Countries")
    states: RegionTable = Field(alias="States")
    cities: RegionTable = Field(alias="Cities")
    protected_areas: RegionTable = Field(alias="ProtectedAreas")
    biomes: RegionTable = Field(alias="Biomes")
    fires: FiresTable = Field(alias="Fires")

    def table(self, kind: RegionKind) -> RegionTable:
        return getattr(self, kind.value)


class ResolutionWindow(_ConfigModel):
    min_resolution: float = Field(alias="MinResolution")
    max_resolution: float = Field(alias="MaxResolution")

    def contains(self, resolution: float) -> bool:
        return self.min_resolution <= resolution < self.max_resolution


class SpatialFilterConfig(_ConfigModel):
    countries: ResolutionWindow = Field(alias="Countries")


class ExtentCache:
    """Read-only lookup of precomputed extents keyed by kind and region id.

    Literals are stored as ``"minX,minY,maxX,maxY"`` strings, already expanded
    by whatever margin the configuration author chose. Ids are compared as
    strings so ``12`` and ``"12"`` hit the same entry.
    """

    def __init__(self, entries: Optional[Mapping[RegionKind, Mapping[Any, str]]] = None):
        frozen = {}
        for kind in RegionKind:
            kind_entries = (entries or {}).get(kind) or {}
            frozen[kind] = MappingProxyType(
                {str(key): str(value) for key, value in kind_entries.items()}
            )
        self._entries: Mapping[RegionKind, Mapping[str, str]] = MappingProxyType(frozen)

    def literal(self, kind: RegionKind, region_id: Any) -> Optional[str]:
        return self._entries[kind].get(str(region_id))

    def __contains__(self, item) -> bool:
        kind, region_id = item
        return str(region_id) in self._entries[kind]

    def size(self, kind: Optional[RegionKind] = None) -> int:
        if kind is not None:
            return len(self._entries[kind])
        return sum(len(values) for values in self._entries.values())


class FilterConfig:
    """Parsed filter.json: the extent cache plus the spatial filter window."""

    def __init__(self, extents: ExtentCache, spatial_filter: SpatialFilterConfig):
        self.extents = extents
        self.spatial_filter = spatial_filter

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "FilterConfig":
        raw_extents = data.get("Extents") or {}
        extents = ExtentCache(
            {kind: raw_extents.get(key) or {} for kind, key in CONFIG_KEYS.items()}
        )
        spatial_filter = SpatialFilterConfig.model_validate(data["SpatialFilter"])
        return cls(extents=extents, spatial_filter=spatial_filter)


def _read_json(path: Union[str, Path]) -> Dict[str, Any]:
    with open(path, encoding="utf-8") as handle:
        return json.load(handle)


def load_schema_config(path: Union[str, Path]) -> SchemaConfig:
    config = SchemaConfig.model_validate(_read_json(path))
    logger.info("Loaded table bindings from %s", path)
    return config


def load_filter_config(path: Union[str, Path]) -> FilterConfig:
    config = FilterConfig.from_dict(_read_json(path))
    logger.info(
        "Loaded filter configuration from %s (%d cached extents)",
        path,
        config.extents.size(),
    )
    return config
