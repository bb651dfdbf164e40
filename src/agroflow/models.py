"""Typed inputs and results for each flow, as seen by application code."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Mapping, Optional

Urgency = Literal["Alta", "Media", "Baja"]


def _drop_none(payload: Dict[str, Any]) -> Dict[str, Any]:
    return {key: value for key, value in payload.items() if value is not None}


# Inputs ---------------------------------------------------------------------

@dataclass(frozen=True)
class ProductionEntry:
    """A harvest entry about to be stored."""

    kilos_per_batch: float
    batch_id: str
    farmer_id: str
    average_kilos_per_batch: float
    historical_data: str = "[]"
    timestamp: Optional[str] = None

    def to_payload(self) -> Dict[str, Any]:
        return _drop_none({
            "kilosPerBatch": self.kilos_per_batch,
            "batchId": self.batch_id,
            "farmerId": self.farmer_id,
            "averageKilosPerBatch": self.average_kilos_per_batch,
            "historicalData": self.historical_data,
            "timestamp": self.timestamp,
        })


@dataclass(frozen=True)
class PackagingEntry:
    kilograms_packaged: float
    packer_id: str
    hours_worked: float
    cost_per_hour: float
    historical_packaging_data: str = "[]"

    def to_payload(self) -> Dict[str, Any]:
        return {
            "kilogramsPackaged": self.kilograms_packaged,
            "packerId": self.packer_id,
            "hoursWorked": self.hours_worked,
            "costPerHour": self.cost_per_hour,
            "historicalPackagingData": self.historical_packaging_data,
        }


@dataclass(frozen=True)
class WeatherAlertsRequest:
    weather_forecast: str
    phenology_logs: str
    agronomist_logs: Optional[str] = None

    def to_payload(self) -> Dict[str, Any]:
        return _drop_none({
            "weatherForecast": self.weather_forecast,
            "phenologyLogs": self.phenology_logs,
            "agronomistLogs": self.agronomist_logs,
        })


@dataclass(frozen=True)
class PlantPhoto:
    photo_data_uri: str
    description: str

    def to_payload(self) -> Dict[str, Any]:
        return {"photoDataUri": self.photo_data_uri, "description": self.description}


@dataclass(frozen=True)
class AgronomistLogs:
    agronomist_logs: str
    phenology_logs: str

    def to_payload(self) -> Dict[str, Any]:
        return {"agronomistLogs": self.agronomist_logs, "phenologyLogs": self.phenology_logs}


@dataclass(frozen=True)
class HarvestData:
    production_data: str
    cost_data: str
    agronomist_logs: str

    def to_payload(self) -> Dict[str, Any]:
        return {
            "productionData": self.production_data,
            "costData": self.cost_data,
            "agronomistLogs": self.agronomist_logs,
        }


@dataclass(frozen=True)
class YieldPredictionRequest:
    batch_id: str
    recent_harvests: str
    agronomist_logs: str
    phenology_logs: str
    environmental_logs: str
    weather_forecast: str

    def to_payload(self) -> Dict[str, Any]:
        return {
            "batchId": self.batch_id,
            "recentHarvests": self.recent_harvests,
            "agronomistLogs": self.agronomist_logs,
            "phenologyLogs": self.phenology_logs,
            "environmentalLogs": self.environmental_logs,
            "weatherForecast": self.weather_forecast,
        }


@dataclass(frozen=True)
class ApplicationPlanRequest:
    supplies: str
    agronomist_logs: str
    phenology_logs: str
    weather_forecast: str

    def to_payload(self) -> Dict[str, Any]:
        return {
            "supplies": self.supplies,
            "agronomistLogs": self.agronomist_logs,
            "phenologyLogs": self.phenology_logs,
            "weatherForecast": self.weather_forecast,
        }


# Results --------------------------------------------------------------------

@dataclass
class Verdict:
    """Outcome of a judgment flow. ``reason`` is only set for invalid entries."""

    is_valid: bool
    reason: Optional[str] = None

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "Verdict":
        return cls(is_valid=payload["isValid"], reason=payload.get("reason"))


@dataclass
class WeatherAlert:
    risk: str
    recommendation: str
    urgency: Urgency


@dataclass
class WeatherAlerts:
    alerts: List[WeatherAlert]

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "WeatherAlerts":
        return cls(alerts=[
            WeatherAlert(risk=a["risk"], recommendation=a["recommendation"], urgency=a["urgency"])
            for a in payload["alerts"]
        ])

    @property
    def most_urgent(self) -> WeatherAlert:
        order = {"Alta": 0, "Media": 1, "Baja": 2}
        return min(self.alerts, key=lambda alert: order[alert.urgency])


@dataclass
class PossibleDiagnosis:
    nombre: str
    probabilidad: float
    descripcion: str


@dataclass
class PlantDiagnosis:
    diagnostico_principal: str
    posibles_diagnosticos: List[PossibleDiagnosis]
    recomendacion_general: str

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "PlantDiagnosis":
        return cls(
            diagnostico_principal=payload["diagnosticoPrincipal"],
            posibles_diagnosticos=[
                PossibleDiagnosis(d["nombre"], d["probabilidad"], d["descripcion"])
                for d in payload["posiblesDiagnosticos"]
            ],
            recomendacion_general=payload["recomendacionGeneral"],
        )


@dataclass
class AgronomistReport:
    technical_analysis: str
    conclusions_and_recommendations: str

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "AgronomistReport":
        return cls(payload["technicalAnalysis"], payload["conclusionsAndRecommendations"])


@dataclass
class HarvestSummary:
    executive_summary: str
    analysis_and_interpretation: str
    conclusions_and_recommendations: str

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "HarvestSummary":
        return cls(
            payload["executiveSummary"],
            payload["analysisAndInterpretation"],
            payload["conclusionsAndRecommendations"],
        )


@dataclass
class YieldPrediction:
    prediction: str
    confidence: Urgency

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "YieldPrediction":
        return cls(payload["prediction"], payload["confidence"])


@dataclass
class ApplicationRecommendation:
    recommendation: str
    reason: str
    urgency: Urgency
    suggested_products: List[str] = field(default_factory=list)


@dataclass
class ApplicationPlan:
    recommendations: List[ApplicationRecommendation]

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "ApplicationPlan":
        return cls(recommendations=[
            ApplicationRecommendation(
                recommendation=r["recommendation"],
                reason=r["reason"],
                urgency=r["urgency"],
                suggested_products=list(r["suggestedProducts"]),
            )
            for r in payload["recommendations"]
        ])
