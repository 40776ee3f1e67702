PREFIX = "/api/v1/graphics"
WINDOW = {"date_from": "2024-08-01T00:00:00", "date_to": "2024-08-31T23:59:59"}


def test_fires_count(client, executor):
    executor.queue([{"id_1": 3335, "count": 9, "name_1": "RS"}])

    response = client.get(
        f"{PREFIX}/fires-count",
        params={**WINDOW, "key": "id_1", "y": "{name_1}", "limit": 10, "countries": "33"},
    )

    assert response.status_code == 200
    assert response.json() == {
        "key": "id_1",
        "fields": ["name_1"],
        "groups": [{"key": 3335, "count": 9, "name_1": "RS"}],
    }
    assert executor.last_query.endswith("LIMIT :p4")
    assert executor.last_params[2:] == ["33", 10]


def test_fires_count_ignore_rules(client, executor):
    client.get(
        f"{PREFIX}/fires-count",
        params={
            **WINDOW,
            "key": "id_2",
            "cities": "1,2",
            "states": "3335",
            "ignore_city_filter": "true",
        },
    )

    assert "id_2 IN" not in executor.last_query
    assert "(id_1 IN (:p3))" in executor.last_query


def test_fires_count_rejects_bad_key(client, executor):
    response = client.get(f"{PREFIX}/fires-count", params={**WINDOW, "key": "id_1;--"})

    assert response.status_code == 400
    assert executor.calls == []


def test_fires_count_requires_window(client):
    response = client.get(f"{PREFIX}/fires-count", params={"key": "id_1"})

    assert response.status_code == 422


def test_fires_total_count(client, executor):
    executor.queue([{"count": 42}])

    response = client.get(f"{PREFIX}/fires-total-count", params={**WINDOW, "satellites": "NPP-375"})

    assert response.json() == {"count": 42}
    assert executor.last_params[2:] == ["NPP-375"]


def test_fires_count_by_week(client, executor):
    executor.queue([{"start": "2024/07/29", "end": "2024/08/04", "count": 3}])

    response = client.get(f"{PREFIX}/fires-count-by-week", params=WINDOW)

    assert response.status_code == 200
    assert response.json() == [{"start": "2024/07/29", "end": "2024/08/04", "count": 3}]


def test_fires_count_rejects_reserved_display_field(client, executor):
    response = client.get(
        f"{PREFIX}/fires-count", params={**WINDOW, "key": "satelite", "y": "{key}"}
    )

    assert response.status_code == 400
    assert executor.calls == []
