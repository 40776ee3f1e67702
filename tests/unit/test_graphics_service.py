import pytest

from firemap.services.graphics_service import (
    GraphicsService,
    InvalidGroupFieldError,
    extract_display_fields,
)
from firemap.services.query_builder import FilterOptions, FilterRules

DATE_FROM = "2024-08-01 00:00:00"
DATE_TO = "2024-08-31 23:59:59"


@pytest.fixture
def service(executor, schema_config):
    return GraphicsService(executor, schema_config)


def test_count_grouped_with_filters_and_limit(service, executor):
    executor.queue(
        [
            {"satelite": "NPP-375", "count": 120},
            {"satelite": "AQUA_M-T", "count": 40},
        ]
    )

    result = service.count_grouped(
        DATE_FROM, DATE_TO, "satelite", FilterOptions(countries="33"), limit=10
    )

    assert executor.last_query == (
        "SELECT satelite, count(*) AS count FROM public.fires"
        " WHERE (data_hora_gmt BETWEEN :p1 AND :p2)"
        " AND (id_0 IN (:p3))"
        " GROUP BY satelite ORDER BY count DESC, satelite ASC LIMIT :p4"
    )
    assert executor.last_params == [DATE_FROM, DATE_TO, "33", 10]
    assert [group.key for group in result.groups] == ["NPP-375", "AQUA_M-T"]
    assert result.groups[0].count == 120
    assert result.fields == []


def test_limit_falls_back_to_options(service, executor):
    service.count_grouped(DATE_FROM, DATE_TO, "satelite", FilterOptions(limit=5))

    assert executor.last_query.endswith("LIMIT :p3")
    assert executor.last_params[-1] == 5


def test_display_fields_are_grouped_and_returned(service, executor):
    executor.queue([{"id_1": 3335, "count": 7, "name_1": "RS", "satelite": "NPP"}])

    result = service.count_grouped(
        DATE_FROM,
        DATE_TO,
        "id_1",
        FilterOptions(),
        display_fields="{name_1} / {satelite} ({name_1}) #{id_1}",
    )

    assert executor.last_query.startswith("SELECT id_1, count(*) AS count, name_1, satelite FROM")
    assert "GROUP BY id_1, name_1, satelite ORDER BY count DESC, id_1 ASC" in executor.last_query
    assert result.fields == ["name_1", "satelite"]
    group = result.groups[0].model_dump()
    assert group == {"key": 3335, "count": 7, "name_1": "RS", "satelite": "NPP"}


def test_rules_apply_to_grouped_counts(service, executor):
    service.count_grouped(
        DATE_FROM,
        DATE_TO,
        "id_1",
        FilterOptions(countries="33", states="3335"),
        FilterRules(ignore_state_filter=True),
    )

    assert "id_1 IN" not in executor.last_query
    assert executor.last_params == [DATE_FROM, DATE_TO, "33"]


@pytest.mark.parametrize("key", ["satelite; DROP TABLE fires", "1abc", "count(*)", ""])
def test_invalid_group_key(service, executor, key):
    with pytest.raises(InvalidGroupFieldError):
        service.count_grouped(DATE_FROM, DATE_TO, key, FilterOptions())
    assert executor.calls == []


def test_invalid_display_field(service, executor):
    with pytest.raises(InvalidGroupFieldError):
        service.count_grouped(
            DATE_FROM, DATE_TO, "satelite", FilterOptions(), display_fields="{name) --}"
        )
    assert executor.calls == []


def test_extract_display_fields():
    assert extract_display_fields("{satellite}{biome}", "satellite") == ["biome"]
    assert extract_display_fields("{a} {b} {a}", "key") == ["a", "b"]
    assert extract_display_fields(None, "key") == []


def test_count_total(service, executor):
    executor.queue([{"count": 321}])

    result = service.count_total(DATE_FROM, DATE_TO, FilterOptions(biomes="1"))

    assert result.count == 321
    assert executor.last_query == (
        "SELECT count(*) AS count FROM public.fires"
        " WHERE (data_hora_gmt BETWEEN :p1 AND :p2) AND (id_bioma IN (:p3))"
    )


def test_count_by_week(service, executor):
    executor.queue(
        [
            {"start": "2024/07/29", "end": "2024/08/04", "count": 12},
            {"start": "2024/08/05", "end": "2024/08/11", "count": 30},
        ]
    )

    weeks = service.count_by_week(DATE_FROM, DATE_TO, FilterOptions(extent=(-60, -30, -50, -20)))

    assert [week.count for week in weeks] == [12, 30]
    assert weeks[0].end == "2024/08/04"
    query = executor.last_query
    assert "date_trunc('week', data_hora_gmt)" in query
    assert 'AS "end"' in query
    assert query.endswith(
        "AND ST_Intersects(geom, ST_MakeEnvelope(:p3, :p4, :p5, :p6, 4326)) GROUP BY 1, 2 ORDER BY 1, 2"
    )


@pytest.mark.parametrize("template", ["{key}", "{count}", "{satelite} {COUNT}"])
def test_reserved_display_fields(service, executor, template):
    with pytest.raises(InvalidGroupFieldError):
        service.count_grouped(
            DATE_FROM, DATE_TO, "satelite", FilterOptions(), display_fields=template
        )
    assert executor.calls == []


def test_reserved_group_key(service, executor):
    with pytest.raises(InvalidGroupFieldError):
        service.count_grouped(DATE_FROM, DATE_TO, "count", FilterOptions())
    assert executor.calls == []
