import pytest

from safe_route.core.models import AlertSeverity
from safe_route.core.selector import RoutePreference, is_degenerate, select_routes


@pytest.fixture
def three(make_route):
    return [
        make_route("a", [(0, 0), (0, 0.01)], risk_score=12, duration_sec=300, distance_km=3.0),
        make_route("b", [(0.01, 0), (0.01, 0.01)], risk_score=3, duration_sec=500, distance_km=2.0),
        make_route("c", [(0.02, 0), (0.02, 0.01)], risk_score=20, duration_sec=400, distance_km=1.0),
    ]


def test_safest_orders_by_risk(three):
    ranked = select_routes(three, RoutePreference.SAFEST)
    assert [r.id for r in ranked] == ["b", "a", "c"]
    assert [r.is_recommended for r in ranked] == [True, False, False]


def test_fastest_and_shortest(three):
    assert [r.id for r in select_routes(three, "fastest")] == ["a", "c", "b"]
    assert [r.id for r in select_routes(three, "shortest")] == ["c", "b", "a"]


def test_inputs_are_not_mutated(three):
    select_routes(three)
    assert all(r.is_recommended is False for r in three)


def test_ties_keep_input_order(make_route):
    routes = [make_route(x, [(0, 0), (0, 0.01)], risk_score=1.0) for x in ("x", "y", "z")]
    assert [r.id for r in select_routes(routes)] == ["x", "y", "z"]


def test_selection_is_deterministic(three):
    assert select_routes(three) == select_routes(three)


def test_unknown_preference_raises(three):
    with pytest.raises(ValueError):
        select_routes(three, "scenic")


def test_empty_input():
    assert select_routes([]) == []


def test_degenerate_candidates_are_rejected(make_route):
    ok = make_route("ok", [(0, 0), (0, 0.01)], risk_score=5)
    no_steps = make_route("no-steps", [(0, 0), (0, 0.01)], steps=[], risk_score=0)
    no_points = make_route("no-points", [], risk_score=0)
    assert is_degenerate(no_steps) and is_degenerate(no_points)
    assert [r.id for r in select_routes([no_steps, ok, no_points])] == ["ok"]
    assert select_routes([no_steps, no_points]) == []


def test_critical_filter_drops_routes_through_critical_alerts(make_route, make_alert):
    risky = make_route("risky", [(0, 0), (0, 0.01)], risk_score=1)
    clean = make_route("clean", [(0.05, 0), (0.05, 0.01)], risk_score=5)
    crit = make_alert(9, AlertSeverity.CRITICA, 0, 0.01)

    unfiltered = select_routes([risky, clean], alerts=[crit])
    assert [r.id for r in unfiltered] == ["risky", "clean"]

    filtered = select_routes([risky, clean], alerts=[crit], avoid_critical_alerts=True)
    assert [r.id for r in filtered] == ["clean"]
    assert filtered[0].is_recommended


def test_critical_filter_ignores_lower_severities(make_route, make_alert):
    risky = make_route("risky", [(0, 0), (0, 0.01)], risk_score=1)
    clean = make_route("clean", [(0.05, 0), (0.05, 0.01)], risk_score=5)
    alta = make_alert(9, AlertSeverity.ALTA, 0, 0.01)
    ranked = select_routes([risky, clean], alerts=[alta], avoid_critical_alerts=True)
    assert [r.id for r in ranked] == ["risky", "clean"]


def test_critical_filter_fails_open(make_route, make_alert):
    a = make_route("a", [(0, 0), (0, 0.01)], risk_score=4)
    b = make_route("b", [(0, 0), (0.001, 0.01)], risk_score=2)
    crit = make_alert(9, AlertSeverity.CRITICA, 0, 0)
    ranked = select_routes([a, b], alerts=[crit], avoid_critical_alerts=True)
    assert [r.id for r in ranked] == ["b", "a"]
