import json

import pytest
from pydantic import ValidationError

from firemap.core.region_config import (
    ExtentCache,
    RegionKind,
    load_filter_config,
    load_schema_config,
)


def test_schema_config_reads_pascal_case_keys(schema_config):
    states = schema_config.table(RegionKind.STATES)

    assert states.qualified_name == "public.states"
    assert states.id_field == "id_1"
    assert states.country_id_field == "id_0"
    assert schema_config.fires.satellite_field == "satelite"
    assert schema_config.fires.qualified_name == "public.fires"


def test_filter_config_extents_and_window(filter_config):
    assert filter_config.extents.literal(RegionKind.COUNTRIES, 33) == "-75.0,-35.0,-32.0,7.0"
    assert (RegionKind.STATES, "3335") in filter_config.extents
    assert (RegionKind.CITIES, "1") not in filter_config.extents
    assert filter_config.extents.size() == 3
    assert filter_config.extents.size(RegionKind.COUNTRIES) == 2

    window = filter_config.spatial_filter.countries
    assert window.contains(0.0439453125)
    assert not window.contains(0.703125)


def test_extent_cache_is_read_only():
    cache = ExtentCache({RegionKind.CITIES: {1: "0,0,1,1"}})

    assert cache.literal(RegionKind.CITIES, "1") == "0,0,1,1"
    with pytest.raises(TypeError):
        cache._entries[RegionKind.CITIES]["2"] = "0,0,1,1"


def test_load_filter_config_without_extents(tmp_path):
    path = tmp_path / "filter.json"
    path.write_text(
        json.dumps({"SpatialFilter": {"Countries": {"MinResolution": 1, "MaxResolution": 2}}})
    )

    config = load_filter_config(path)

    assert config.extents.size() == 0
    assert config.spatial_filter.countries.min_resolution == 1


def test_load_schema_config_rejects_missing_table(tmp_path):
    path = tmp_path / "tables.json"
    path.write_text(json.dumps({"Countries": {"Schema": "public"}}))

    with pytest.raises(ValidationError):
        load_schema_config(path)
