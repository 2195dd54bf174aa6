import pytest

from safe_route.core.models import AlertSeverity, GeoPoint, RawRoute, Step
from safe_route.core.scoring import (
    PLANNING_SEVERITY_WEIGHTS,
    RiskScorer,
    risk_label,
    score_route,
    validate_weights,
)

# 11 vertices along the equator, roughly 111 m apart
LINE = [GeoPoint(lat=0.0, lng=i * 0.001) for i in range(11)]


def test_score_is_zero_without_nearby_alerts(make_alert):
    far = make_alert(1, AlertSeverity.CRITICA, 1.0, 1.0)
    result = score_route(LINE, [far])
    assert result.risk_score == 0.0
    assert result.alerts_on_route == []


def test_score_is_zero_for_empty_route_or_no_alerts(make_alert):
    assert score_route([], [make_alert(1, AlertSeverity.ALTA, 0, 0)]).risk_score == 0.0
    assert score_route(LINE, []).risk_score == 0.0


def test_closer_alert_scores_higher(make_alert):
    near = score_route(LINE, [make_alert(1, AlertSeverity.MEDIA, 0.001, 0.005)])
    farther = score_route(LINE, [make_alert(1, AlertSeverity.MEDIA, 0.003, 0.005)])
    assert near.risk_score > farther.risk_score > 0.0


def test_higher_severity_scores_strictly_higher(make_alert):
    alta = score_route(LINE, [make_alert(1, AlertSeverity.ALTA, 0.001, 0.005)])
    critica = score_route(LINE, [make_alert(1, AlertSeverity.CRITICA, 0.001, 0.005)])
    assert critica.risk_score > alta.risk_score


def test_alert_on_a_vertex_contributes_full_weight(make_alert):
    points = LINE[:5]
    alert = make_alert("c1", AlertSeverity.CRITICA, points[2].lat, points[2].lng)
    result = score_route(points, [alert])
    assert result.risk_score >= 10.0
    assert [a.id for a in result.alerts_on_route] == ["c1"]


def test_alerts_on_route_listed_once_in_first_encounter_order(make_alert):
    late = make_alert("late", AlertSeverity.BAJA, 0.0, 0.01)
    early = make_alert("early", AlertSeverity.BAJA, 0.0, 0.0)
    result = score_route(LINE, [late, early])
    assert [a.id for a in result.alerts_on_route] == ["early", "late"]


def test_separate_on_route_radius(make_alert):
    # ~333 m off the line: inside the 0.5 km influence radius, outside 0.1 km
    alert = make_alert(1, AlertSeverity.ALTA, 0.003, 0.005)
    result = score_route(LINE, [alert], influence_radius_km=0.5, on_route_radius_km=0.1)
    assert result.risk_score > 0.0
    assert result.alerts_on_route == []


def test_scoring_is_pure(make_alert):
    alerts = [make_alert(1, AlertSeverity.ALTA, 0.001, 0.005), make_alert(2, AlertSeverity.BAJA, 0.0, 0.002)]
    before = [a.model_copy() for a in alerts]
    first = score_route(LINE, alerts)
    second = score_route(LINE, alerts)
    assert first == second
    assert alerts == before


def test_validate_weights_rejects_ties_and_missing():
    with pytest.raises(ValueError):
        validate_weights({AlertSeverity.CRITICA: 5, AlertSeverity.ALTA: 5, AlertSeverity.MEDIA: 2, AlertSeverity.BAJA: 1})
    with pytest.raises(ValueError):
        validate_weights({AlertSeverity.CRITICA: 10, AlertSeverity.ALTA: 5})
    assert validate_weights(PLANNING_SEVERITY_WEIGHTS)[AlertSeverity.ALTA] == 6.0


def test_scorer_rejects_bad_weights():
    with pytest.raises(ValueError):
        RiskScorer(weights={AlertSeverity.CRITICA: 1, AlertSeverity.ALTA: 2, AlertSeverity.MEDIA: 3, AlertSeverity.BAJA: 4})


def test_planning_weights_change_the_score(make_alert):
    alert = make_alert(1, AlertSeverity.ALTA, 0.0, 0.005)
    default = RiskScorer().score(LINE, [alert]).risk_score
    planning = RiskScorer(weights=PLANNING_SEVERITY_WEIGHTS).score(LINE, [alert]).risk_score
    assert planning == pytest.approx(default * 6 / 5)


def test_score_candidate_keeps_route_metadata(make_alert):
    raw = RawRoute(
        points=LINE,
        steps=[Step(point=LINE[-1], instruction="Arrive")],
        distance_km=1.1,
        duration_sec=90.0,
    )
    alert = make_alert(7, AlertSeverity.CRITICA, 0.0, 0.005)
    cand = RiskScorer().score_candidate(raw, [alert], route_id="route-0", name="Main route")
    assert cand.id == "route-0"
    assert cand.name == "Main route"
    assert cand.distance_km == 1.1
    assert cand.duration_sec == 90.0
    assert cand.is_recommended is False
    assert cand.risk_score > 10.0
    assert [a.id for a in cand.alerts_on_route] == [7]


@pytest.mark.parametrize(
    "score, label",
    [(0, "low"), (4.99, "low"), (5, "medium"), (9.9, "medium"), (10, "high"), (19.9, "high"), (20, "very_high")],
)
def test_risk_label(score, label):
    assert risk_label(score) == label
