"""
=============================================================================
FIREMAP - EXTENT RESOLVER
=============================================================================

Resolves the bounding box of a set of regions of one kind.

Regions with a precomputed extent in filter.json are answered from the
cache; the rest are aggregated by PostGIS. When both groups are present the
cached boxes are collected together with the stored geometries so a single
query returns a single box.

Margins (degrees) are policy constants kept from the legacy dashboard:

    kind              database union   cached-only union
    countries         2                2
    states            0.5              2
    cities            0.1              0.1
    protected areas   2                2

A lone cached region is returned exactly as configured (cache literals are
already expanded).
=============================================================================
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence

from shapely.geometry import GeometryCollection, box

from firemap.core.errors import InvalidInputError
from firemap.core.region_config import ExtentCache, RegionKind, SchemaConfig
from firemap.db.executor import QueryExecutor
from firemap.services.query_builder import DEFAULT_SRID, QueryBuildState

logger = logging.getLogger(__name__)

_BOX_PATTERN = re.compile(
    r"^\s*BOX\(\s*(?P<min_x>[-+0-9.eE]+)\s+(?P<min_y>[-+0-9.eE]+)\s*,"
    r"\s*(?P<max_x>[-+0-9.eE]+)\s+(?P<max_y>[-+0-9.eE]+)\s*\)\s*$",
    re.IGNORECASE,
)


class UnsupportedRegionKindError(InvalidInputError):
    """Raised when an extent is requested for a kind without a policy."""


@dataclass(frozen=True)
class Extent:
    """Axis-aligned longitude/latitude bounding box."""
    min_x: float
    min_y: float
    max_x: float
    max_y: float

    @classmethod
    def from_literal(cls, literal: str) -> "Extent":
        """Parse a configured ``"minX,minY,maxX,maxY"`` literal."""
        parts = [float(part) for part in literal.split(",")]
        if len(parts) != 4:
            raise ValueError(f"Extent literal needs 4 values: {literal!r}")
        return cls(*parts)

    @classmethod
    def from_box(cls, value: str) -> "Extent":
        """Parse a PostGIS ``BOX(minX minY,maxX maxY)`` value."""
        match = _BOX_PATTERN.match(value)
        if not match:
            raise ValueError(f"Not a BOX value: {value!r}")
        return cls(**{key: float(number) for key, number in match.groupdict().items()})

    def expand(self, margin: float) -> "Extent":
        return Extent(
            self.min_x - margin,
            self.min_y - margin,
            self.max_x + margin,
            self.max_y + margin,
        )

    def as_list(self) -> List[float]:
        return [self.min_x, self.min_y, self.max_x, self.max_y]

    def as_dict(self) -> Dict[str, float]:
        return {
            "min_x": self.min_x,
            "min_y": self.min_y,
            "max_x": self.max_x,
            "max_y": self.max_y,
        }

    def as_box(self) -> str:
        return f"BOX({self.min_x} {self.min_y},{self.max_x} {self.max_y})"


@dataclass(frozen=True)
class ExtentPolicy:
    margin: float
    cached_union_margin: float


EXTENT_POLICIES: Mapping[RegionKind, ExtentPolicy] = {
    RegionKind.COUNTRIES: ExtentPolicy(margin=2, cached_union_margin=2),
    RegionKind.STATES: ExtentPolicy(margin=0.5, cached_union_margin=2),
    RegionKind.CITIES: ExtentPolicy(margin=0.1, cached_union_margin=0.1),
    RegionKind.PROTECTED_AREAS: ExtentPolicy(margin=2, cached_union_margin=2),
}


def union_extent(extents: Sequence[Extent]) -> Extent:
    """Bounding box of a collection of boxes."""
    collection = GeometryCollection([box(*extent.as_list()) for extent in extents])
    return Extent(*collection.bounds)


class ExtentResolver:
    """Combines cached extents and PostGIS geometry unions into one box."""

    def __init__(self, executor: QueryExecutor, schema: SchemaConfig, cache: ExtentCache):
        self.executor = executor
        self.schema = schema
        self.cache = cache

        for kind in EXTENT_POLICIES:
            if not schema.table(kind).geometry_field:
                raise ValueError(f"No geometry column configured for {kind.value}")

    def policy(self, kind: RegionKind) -> ExtentPolicy:
        try:
            return EXTENT_POLICIES[kind]
        except KeyError:
            raise UnsupportedRegionKindError(
                f"Extents are not available for {kind.value}"
            ) from None

    def cached_extent(self, kind: RegionKind, region_id: Any) -> Optional[Extent]:
        literal = self.cache.literal(kind, region_id)
        return Extent.from_literal(literal) if literal is not None else None

    def partition(self, kind: RegionKind, ids: Sequence[Any]):
        """Split ids into those with a cached extent and those without."""
        cached: List[Any] = []
        uncached: List[Any] = []
        for region_id in ids:
            if (kind, region_id) in self.cache:
                cached.append(region_id)
            else:
                uncached.append(region_id)
        return cached, uncached

    def build_query(
        self, kind: RegionKind, cached: Sequence[Any], uncached: Sequence[Any]
    ) -> QueryBuildState:
        """Single-row query for the expanded extent of ``uncached`` plus the
        cached envelopes."""
        table = self.schema.table(kind)
        margin = self.policy(kind).margin

        envelopes = [
            "ST_MakeEnvelope({}, {})".format(
                ", ".join(str(value) for value in self.cached_extent(kind, region_id).as_list()),
                DEFAULT_SRID,
            )
            for region_id in cached
        ]
        geometry = table.geometry_field
        if envelopes:
            geometry = f"ST_Collect(ARRAY[{', '.join([geometry, *envelopes])}])"

        state = QueryBuildState(
            f"SELECT ST_Expand(ST_Extent({geometry}), {margin}) AS extent"
            f" FROM {table.qualified_name} WHERE {table.id_field} IN ("
        )
        placeholders = [state.bind(region_id) for region_id in uncached]
        return state.append(", ".join(placeholders) + ")")

    def resolve(self, kind: RegionKind, ids: Sequence[Any]) -> Optional[Extent]:
        """Extent of ``ids``; callers must pass at least one id."""
        policy = self.policy(kind)

        if len(ids) == 1:
            extent = self.cached_extent(kind, ids[0])
            if extent is not None:
                return extent

        cached, uncached = self.partition(kind, ids)

        if not uncached:
            logger.debug("Extent of %d cached %s computed locally", len(cached), kind.value)
            boxes = [self.cached_extent(kind, region_id) for region_id in cached]
            return union_extent(boxes).expand(policy.cached_union_margin)

        state = self.build_query(kind, cached, uncached)
        rows = self.executor.execute(state.query, state.params)
        value = rows[0].get("extent") if rows else None
        if value is None:
            logger.info("No geometry found for %s ids %s", kind.value, list(uncached))
            return None
        return Extent.from_box(str(value))
