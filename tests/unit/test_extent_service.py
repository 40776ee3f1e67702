import pytest

from firemap.core.region_config import ExtentCache, RegionKind
from firemap.services.extent_service import (
    Extent,
    ExtentResolver,
    UnsupportedRegionKindError,
    union_extent,
)


@pytest.fixture
def resolver(executor, schema_config, filter_config):
    return ExtentResolver(executor, schema_config, filter_config.extents)


def test_single_cached_id_needs_no_query(resolver, executor):
    extent = resolver.resolve(RegionKind.COUNTRIES, ["33"])

    assert extent == Extent(-75.0, -35.0, -32.0, 7.0)
    assert executor.calls == []


def test_cache_lookup_ignores_id_type(resolver, executor):
    assert resolver.resolve(RegionKind.COUNTRIES, [33]) == Extent(-75.0, -35.0, -32.0, 7.0)
    assert executor.calls == []


def test_cached_only_union_is_local_and_expanded(resolver, executor):
    extent = resolver.resolve(RegionKind.COUNTRIES, ["33", "9"])

    assert executor.calls == []
    assert extent.as_list() == pytest.approx([-77.6, -58.0, -30.0, 9.0])


def test_uncached_ids_use_one_query_with_kind_margin(resolver, executor):
    executor.queue([{"extent": "BOX(-60 -30,-50 -20)"}])

    extent = resolver.resolve(RegionKind.STATES, ["1", "2"])

    assert len(executor.calls) == 1
    assert executor.last_query == (
        "SELECT ST_Expand(ST_Extent(geom), 0.5) AS extent"
        " FROM public.states WHERE id_1 IN (:p1, :p2)"
    )
    assert executor.last_params == ["1", "2"]
    assert extent == Extent(-60.0, -30.0, -50.0, -20.0)


def test_mixed_ids_collect_cached_envelopes(resolver, executor):
    executor.queue([{"extent": "BOX(-80 -60,-30 10)"}])

    resolver.resolve(RegionKind.COUNTRIES, ["33", "1"])

    assert len(executor.calls) == 1
    assert executor.last_query == (
        "SELECT ST_Expand(ST_Extent(ST_Collect(ARRAY[geom,"
        " ST_MakeEnvelope(-75.0, -35.0, -32.0, 7.0, 4326)])), 2) AS extent"
        " FROM public.countries WHERE id_0 IN (:p1)"
    )
    assert executor.last_params == ["1"]


def test_null_extent_returns_none(resolver, executor):
    executor.queue([{"extent": None}])

    assert resolver.resolve(RegionKind.CITIES, ["404"]) is None


def test_biomes_are_unsupported(resolver, executor):
    with pytest.raises(UnsupportedRegionKindError):
        resolver.resolve(RegionKind.BIOMES, ["1"])
    assert executor.calls == []


def test_cities_margin(executor, schema_config):
    executor.queue([{"extent": "BOX(0 0,1 1)"}])
    resolver = ExtentResolver(executor, schema_config, ExtentCache())

    resolver.resolve(RegionKind.CITIES, ["5"])

    assert "ST_Expand(ST_Extent(geom), 0.1)" in executor.last_query


def test_box_parsing():
    extent = Extent.from_box("BOX(-73.99 -33.75,-28.84 5.27)")

    assert extent.as_list() == [-73.99, -33.75, -28.84, 5.27]
    assert extent.as_box() == "BOX(-73.99 -33.75,-28.84 5.27)"
    assert extent.as_dict() == {"min_x": -73.99, "min_y": -33.75, "max_x": -28.84, "max_y": 5.27}


def test_box_parsing_rejects_garbage():
    with pytest.raises(ValueError):
        Extent.from_box("POLYGON((0 0,1 1))")


def test_union_extent():
    union = union_extent([Extent(0, 0, 1, 1), Extent(-1, 2, 0.5, 3)])

    assert union == Extent(-1.0, 0.0, 1.0, 3.0)
