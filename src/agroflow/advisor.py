"""Typed entry points, one per flow, used by the application layer."""

from __future__ import annotations

from typing import Optional

from . import flows
from .composer import HistoricalContext
from .config import DEFAULT_LLM_CONFIG
from .models import (
    AgronomistLogs,
    AgronomistReport,
    ApplicationPlan,
    ApplicationPlanRequest,
    HarvestData,
    HarvestSummary,
    PackagingEntry,
    PlantDiagnosis,
    PlantPhoto,
    ProductionEntry,
    Verdict,
    WeatherAlerts,
    WeatherAlertsRequest,
    YieldPrediction,
    YieldPredictionRequest,
)
from .pipeline import InferencePipeline


class FarmAdvisor:
    """Façade over :class:`InferencePipeline` returning typed results."""

    def __init__(self, pipeline: InferencePipeline):
        self.pipeline = pipeline

    @classmethod
    def from_config(cls, llm_config: str = DEFAULT_LLM_CONFIG, config_tag: str = "default") -> "FarmAdvisor":
        return cls(InferencePipeline.from_config(llm_config, config_tag=config_tag))

    # Judgment flows -------------------------------------------------------
    def validate_production_data(
        self, entry: ProductionEntry, history: Optional[HistoricalContext] = None
    ) -> Verdict:
        """Never blocks data entry: failures come back as a valid verdict."""
        result = self.pipeline.run(flows.VALIDATE_PRODUCTION_DATA, entry.to_payload(), history)
        return Verdict.from_payload(result)

    def validate_packaging_data(
        self, entry: PackagingEntry, history: Optional[HistoricalContext] = None
    ) -> Verdict:
        result = self.pipeline.run(flows.VALIDATE_PACKAGING_DATA, entry.to_payload(), history)
        return Verdict.from_payload(result)

    # Generative flows -----------------------------------------------------
    def generate_weather_alerts(self, request: WeatherAlertsRequest) -> WeatherAlerts:
        result = self.pipeline.run(flows.GENERATE_WEATHER_ALERTS, request.to_payload())
        return WeatherAlerts.from_payload(result)

    def diagnose_plant(self, photo: PlantPhoto) -> PlantDiagnosis:
        result = self.pipeline.run(flows.DIAGNOSE_PLANT, photo.to_payload())
        return PlantDiagnosis.from_payload(result)

    def summarize_agronomist_report(self, logs: AgronomistLogs) -> AgronomistReport:
        result = self.pipeline.run(flows.SUMMARIZE_AGRONOMIST_REPORT, logs.to_payload())
        return AgronomistReport.from_payload(result)

    def summarize_harvest_data(self, data: HarvestData) -> HarvestSummary:
        result = self.pipeline.run(flows.SUMMARIZE_HARVEST_DATA, data.to_payload())
        return HarvestSummary.from_payload(result)

    def predict_yield(self, request: YieldPredictionRequest) -> YieldPrediction:
        result = self.pipeline.run(flows.PREDICT_YIELD, request.to_payload())
        return YieldPrediction.from_payload(result)

    def recommend_applications(self, request: ApplicationPlanRequest) -> ApplicationPlan:
        result = self.pipeline.run(flows.RECOMMEND_APPLICATIONS, request.to_payload())
        return ApplicationPlan.from_payload(result)
