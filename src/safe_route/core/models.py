from __future__ import annotations

from enum import Enum
from typing import Any, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator


class AlertSeverity(str, Enum):
    CRITICA = "CRITICA"
    ALTA = "ALTA"
    MEDIA = "MEDIA"
    BAJA = "BAJA"


class AlertType(str, Enum):
    DERRUMBE = "DERRUMBE"
    ACCIDENTE = "ACCIDENTE"
    INUNDACION = "INUNDACION"
    CIERRE_VIAL = "CIERRE_VIAL"
    MANTENIMIENTO = "MANTENIMIENTO"


class AlertStatus(str, Enum):
    ACTIVE = "ACTIVE"
    RESOLVED = "RESOLVED"
    IN_PROGRESS = "IN_PROGRESS"


class GeoPoint(BaseModel):
    """Immutable geographic coordinate."""

    model_config = ConfigDict(frozen=True)

    lat: float
    lng: float


class Alert(BaseModel):
    id: Union[int, str]
    severity: AlertSeverity
    type: AlertType = AlertType.ACCIDENTE
    position: GeoPoint
    title: str = ""
    description: str = ""
    status: AlertStatus = AlertStatus.ACTIVE

    @model_validator(mode="before")
    @classmethod
    def _accept_flat_coordinates(cls, data: Any) -> Any:
        """The alert backend sends ``latitude``/``longitude`` at the top level."""
        if isinstance(data, dict) and "position" not in data and "latitude" in data:
            data = dict(data)
            data["position"] = {"lat": data.pop("latitude"), "lng": data.pop("longitude")}
        return data


class Step(BaseModel):
    point: GeoPoint
    instruction: str
    distance_km: float = 0.0
    duration_sec: float = 0.0


class RawRoute(BaseModel):
    """One path as returned by the routing oracle, before risk scoring."""

    points: List[GeoPoint]
    steps: List[Step]
    distance_km: float
    duration_sec: float


class RouteCandidate(RawRoute):
    id: str
    name: str = ""
    risk_score: float = 0.0
    alerts_on_route: List[Alert] = Field(default_factory=list)
    is_recommended: bool = False


class PositionSample(BaseModel):
    lat: float
    lng: float
    speed: Optional[float] = None    # m/s, as reported by the position source
    heading: Optional[float] = None  # degrees clockwise from north
    timestamp: float                 # unix seconds

    @property
    def point(self) -> GeoPoint:
        return GeoPoint(lat=self.lat, lng=self.lng)
