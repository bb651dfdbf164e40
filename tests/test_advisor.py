import pytest

from agroflow.advisor import FarmAdvisor
from agroflow.composer import HistoricalContext
from agroflow.exceptions import InvocationError, OutputError
from agroflow.llm_client import MockLLMClient
from agroflow.models import (
    AgronomistLogs,
    ApplicationPlanRequest,
    HarvestData,
    PackagingEntry,
    PlantPhoto,
    ProductionEntry,
    Verdict,
    WeatherAlertsRequest,
    YieldPredictionRequest,
)
from agroflow.pipeline import InferencePipeline

from conftest import ScriptedClient


@pytest.fixture
def advisor():
    return FarmAdvisor(InferencePipeline.with_client(MockLLMClient()))


def test_production_outlier_is_flagged(advisor) -> None:
    entry = ProductionEntry(kilos_per_batch=40000, batch_id="L014", farmer_id="F1", average_kilos_per_batch=400)
    history = HistoricalContext("F1", [{"batchId": "L013", "kilosPerBatch": 410}])
    verdict = advisor.validate_production_data(entry, history)
    assert verdict.is_valid is False
    assert verdict.reason


def test_failed_reasoner_never_blocks_data_entry() -> None:
    advisor = FarmAdvisor(InferencePipeline.with_client(ScriptedClient([InvocationError("down")])))
    entry = ProductionEntry(kilos_per_batch=40000, batch_id="L014", farmer_id="F1", average_kilos_per_batch=400)
    assert advisor.validate_production_data(entry) == Verdict(is_valid=True, reason=None)


def test_packaging_rate_is_checked(advisor) -> None:
    plausible = PackagingEntry(kilograms_packaged=600, packer_id="P7", hours_worked=8, cost_per_hour=1500)
    inflated = PackagingEntry(kilograms_packaged=6000, packer_id="P7", hours_worked=8, cost_per_hour=1500)
    assert advisor.validate_packaging_data(plausible).is_valid
    assert not advisor.validate_packaging_data(inflated).is_valid


def test_frost_during_flowering_is_high_urgency(advisor) -> None:
    alerts = advisor.generate_weather_alerts(WeatherAlertsRequest(
        weather_forecast="Jueves: mínima de -3°C con helada.",
        phenology_logs="Plena floración en todos los lotes.",
    ))
    assert alerts.most_urgent.urgency == "Alta"
    assert all(alert.urgency in {"Alta", "Media", "Baja"} for alert in alerts.alerts)


def test_calm_forecast_still_yields_an_alert(advisor) -> None:
    alerts = advisor.generate_weather_alerts(WeatherAlertsRequest("Soleado, 22°C.", "Crecimiento vegetativo."))
    assert [alert.urgency for alert in alerts.alerts] == ["Baja"]


def test_plant_diagnosis_shape(advisor, photo_data_uri) -> None:
    diagnosis = advisor.diagnose_plant(PlantPhoto(photo_data_uri, "Frutos con moho gris y podredumbre"))
    assert 1 <= len(diagnosis.posibles_diagnosticos) <= 3
    assert all(0 <= d.probabilidad <= 100 for d in diagnosis.posibles_diagnosticos)
    assert diagnosis.diagnostico_principal == diagnosis.posibles_diagnosticos[0].nombre


def test_reports_and_plans(advisor) -> None:
    report = advisor.summarize_agronomist_report(AgronomistLogs("[]", "[]"))
    assert report.technical_analysis
    summary = advisor.summarize_harvest_data(HarvestData("[]", "[]", "[]"))
    assert summary.executive_summary
    prediction = advisor.predict_yield(YieldPredictionRequest("L014", "[]", "[]", "[]", "[]", "Soleado"))
    assert prediction.confidence in {"Alta", "Media", "Baja"}
    plan = advisor.recommend_applications(ApplicationPlanRequest("[]", "[]", "[]", "Soleado"))
    assert plan.recommendations[0].suggested_products == []


def test_generative_failure_surfaces_to_caller() -> None:
    advisor = FarmAdvisor(InferencePipeline.with_client(ScriptedClient(["{}"])))
    with pytest.raises(OutputError):
        advisor.summarize_agronomist_report(AgronomistLogs("[]", "[]"))
