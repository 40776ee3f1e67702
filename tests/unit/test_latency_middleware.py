import logging

from firemap.core.middleware import LatencyMonitorMiddleware


def _middleware(thresholds=None):
    return LatencyMonitorMiddleware(app=None, thresholds=thresholds)


def test_most_specific_budget_wins():
    middleware = _middleware()

    assert middleware.budget_for("/api/v1/filters/extent") == 0.300
    assert middleware.budget_for("/api/v1/filters/countries") == 0.500
    assert middleware.budget_for("/api/v1/graphics/fires-count") == 1.500
    assert middleware.budget_for("/docs") is None


def test_breach_is_logged(caplog):
    middleware = _middleware({"/slow/": 0.01})

    with caplog.at_level(logging.WARNING, logger="firemap.latency"):
        middleware._check_slo("/slow/query", 0.5)
        middleware._check_slo("/slow/query", 0.001)

    breaches = [record for record in caplog.records if "SLO_BREACH" in record.getMessage()]
    assert len(breaches) == 1
