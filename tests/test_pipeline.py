import logging

import pytest

from agroflow.exceptions import InputError, InvocationError, OutputError, UnknownFlowError
from agroflow.flows import DIAGNOSE_PLANT, GENERATE_WEATHER_ALERTS, VALIDATE_PRODUCTION_DATA, build_default_registry
from agroflow.llm_client import MockLLMClient
from agroflow.pipeline import InferencePipeline

WEATHER_PAYLOAD = {
    "weatherForecast": "Martes: mín -2°C, helada probable. Miércoles: despejado.",
    "phenologyLogs": "Lote L014 en plena floración.",
}

ALERTS = {
    "alerts": [
        {"risk": "Daño por helada", "recommendation": "Cubrir túneles", "urgency": "Alta"},
    ]
}


def test_valid_result_is_returned_as_is(scripted, production_payload) -> None:
    verdict = {"isValid": False, "reason": "  Cantidad 100 veces mayor al promedio.  ", "extra": 1}
    pipeline, client = scripted(verdict)
    result = pipeline.run(VALIDATE_PRODUCTION_DATA, production_payload)
    assert result == verdict
    assert len(client.requests) == 1


def test_accepted_payload_is_not_copied(scripted) -> None:
    pipeline, _ = scripted()
    sentinel = {"isValid": True}

    class Candidate:
        payload = sentinel
        model = "m"

    assert pipeline.finalize(pipeline.registry.get(VALIDATE_PRODUCTION_DATA), Candidate()) is sentinel


@pytest.mark.parametrize(
    "response",
    [
        "",
        "no hay respuesta estructurada",
        {"isValid": "no"},
        {"reason": "falta el veredicto"},
        InvocationError("timeout"),
        ConnectionResetError("reset"),
    ],
)
def test_judgment_flow_falls_back_to_valid(scripted, production_payload, response, caplog) -> None:
    pipeline, _ = scripted(response)
    with caplog.at_level(logging.WARNING, logger="agroflow"):
        result = pipeline.run(VALIDATE_PRODUCTION_DATA, production_payload)
    assert result == {"isValid": True}
    assert "reason" not in result
    assert any(VALIDATE_PRODUCTION_DATA in record.getMessage() for record in caplog.records)


def test_fallback_results_are_independent(scripted, production_payload) -> None:
    pipeline, _ = scripted("", "")
    first = pipeline.run(VALIDATE_PRODUCTION_DATA, production_payload)
    first["isValid"] = False
    assert pipeline.run(VALIDATE_PRODUCTION_DATA, production_payload) == {"isValid": True}


@pytest.mark.parametrize(
    "response",
    [
        "",
        {"alerts": []},
        {"alerts": [{"risk": "Helada", "recommendation": "Cubrir", "urgency": "Urgente"}]},
    ],
)
def test_generative_flow_raises_without_valid_result(scripted, response) -> None:
    pipeline, _ = scripted(response)
    with pytest.raises(OutputError) as excinfo:
        pipeline.run(GENERATE_WEATHER_ALERTS, WEATHER_PAYLOAD)
    assert excinfo.value.errors


def test_generative_flow_propagates_invocation_errors(scripted) -> None:
    pipeline, _ = scripted(InvocationError("quota exceeded"))
    with pytest.raises(InvocationError, match="quota"):
        pipeline.run(GENERATE_WEATHER_ALERTS, WEATHER_PAYLOAD)


def test_generative_flow_returns_alerts(scripted) -> None:
    pipeline, client = scripted(ALERTS)
    assert pipeline.run(GENERATE_WEATHER_ALERTS, WEATHER_PAYLOAD) == ALERTS
    assert "helada probable" in client.requests[0].text


def test_invalid_input_never_reaches_the_reasoner(scripted, production_payload) -> None:
    pipeline, client = scripted({"isValid": True})
    with pytest.raises(InputError) as excinfo:
        pipeline.run(VALIDATE_PRODUCTION_DATA, {**production_payload, "batchId": "L42"})
    assert excinfo.value.flow_name == VALIDATE_PRODUCTION_DATA
    assert client.requests == []
    assert client.call_count == 0


def test_invalid_input_is_not_absorbed_by_judgment_fallback(scripted, production_payload) -> None:
    pipeline, _ = scripted()
    with pytest.raises(InputError):
        pipeline.run(VALIDATE_PRODUCTION_DATA, {**production_payload, "kilosPerBatch": -5})


def test_unknown_flow(scripted) -> None:
    pipeline, client = scripted()
    with pytest.raises(UnknownFlowError):
        pipeline.run("forecastPrices", {})
    assert client.requests == []


def test_multimodal_flow_uses_pinned_model(scripted, photo_data_uri) -> None:
    diagnosis = {
        "diagnosticoPrincipal": "Oídio (Cenicilla)",
        "posiblesDiagnosticos": [{"nombre": "Oídio (Cenicilla)", "probabilidad": 80, "descripcion": "polvo blanco"}],
        "recomendacionGeneral": "Mejorar ventilación.",
    }
    pipeline, client = scripted(diagnosis)
    payload = {"photoDataUri": photo_data_uri, "description": "polvo blanco en hojas"}
    assert pipeline.run(DIAGNOSE_PLANT, payload, model="ignored") == diagnosis
    assert client.models == ["gemini-1.5-flash-latest"]
    assert client.requests[0].has_media


def test_call_override_model_for_unpinned_flow(scripted, production_payload) -> None:
    pipeline, client = scripted({"isValid": True})
    pipeline.run(VALIDATE_PRODUCTION_DATA, production_payload, model="gemini-1.5-pro")
    assert client.models == ["gemini-1.5-pro"]


def test_caller_payload_is_left_untouched(scripted, production_payload) -> None:
    pipeline, _ = scripted({"isValid": True})
    snapshot = dict(production_payload)
    pipeline.run(VALIDATE_PRODUCTION_DATA, production_payload)
    assert production_payload == snapshot


def test_mock_pipeline_flags_hundredfold_batch(production_payload) -> None:
    pipeline = InferencePipeline.with_client(MockLLMClient())
    result = pipeline.run(VALIDATE_PRODUCTION_DATA, production_payload)
    assert result["isValid"] is False
    assert result["reason"]


def test_mock_pipeline_accepts_typical_batch(production_payload) -> None:
    pipeline = InferencePipeline.with_client(MockLLMClient())
    result = pipeline.run(VALIDATE_PRODUCTION_DATA, {**production_payload, "kilosPerBatch": 415})
    assert result == {"isValid": True}


PHOTO_URI = "data:image/png;base64,iVBORw0KGgo="

FLOW_INPUTS = {
    "validateProductionData": {
        "kilosPerBatch": 410,
        "batchId": "L014",
        "farmerId": "F1",
        "averageKilosPerBatch": 400,
        "historicalData": "[]",
    },
    "validatePackagingData": {
        "kilogramsPackaged": 600,
        "packerId": "P7",
        "hoursWorked": 8,
        "costPerHour": 1500,
        "historicalPackagingData": "[]",
    },
    "generateWeatherAlerts": WEATHER_PAYLOAD,
    "diagnosePlant": {"photoDataUri": PHOTO_URI, "description": "Hojas con manchas"},
    "summarizeAgronomistReport": {"agronomistLogs": "[]", "phenologyLogs": "[]"},
    "summarizeHarvestData": {"productionData": "[]", "costData": "[]", "agronomistLogs": "[]"},
    "predictYield": {
        "batchId": "L014",
        "recentHarvests": "[]",
        "agronomistLogs": "[]",
        "phenologyLogs": "[]",
        "environmentalLogs": "[]",
        "weatherForecast": "Soleado",
    },
    "recommendApplications": {
        "supplies": "[]",
        "agronomistLogs": "[]",
        "phenologyLogs": "[]",
        "weatherForecast": "Soleado",
    },
}

JUDGMENT_FLOWS = [name for name in FLOW_INPUTS if build_default_registry().get(name).flow_class == "judgment"]
GENERATIVE_FLOWS = [name for name in FLOW_INPUTS if build_default_registry().get(name).flow_class == "generative"]

UNUSABLE_REPLIES = [
    pytest.param("", id="empty"),
    pytest.param("sin opinión", id="prose"),
    pytest.param({"unexpected": True}, id="wrong-shape"),
    pytest.param('{"isValid": ' + "[" * 100000 + "]" * 100000 + "}", id="deeply-nested"),
]


def test_every_registered_flow_has_sample_input() -> None:
    assert sorted(FLOW_INPUTS) == build_default_registry().names()
    assert JUDGMENT_FLOWS == ["validateProductionData", "validatePackagingData"]


@pytest.mark.parametrize("flow_name", JUDGMENT_FLOWS)
@pytest.mark.parametrize("response", UNUSABLE_REPLIES + [pytest.param(InvocationError("timeout"), id="call-failed")])
def test_each_judgment_flow_defaults_to_valid(scripted, flow_name, response) -> None:
    pipeline, client = scripted(response)
    assert pipeline.run(flow_name, FLOW_INPUTS[flow_name]) == {"isValid": True}
    assert client.call_count == 1


@pytest.mark.parametrize("flow_name", GENERATIVE_FLOWS)
@pytest.mark.parametrize("response", UNUSABLE_REPLIES)
def test_each_generative_flow_fails_explicitly(scripted, flow_name, response) -> None:
    pipeline, _ = scripted(response)
    with pytest.raises(OutputError):
        pipeline.run(flow_name, FLOW_INPUTS[flow_name])


@pytest.mark.parametrize("flow_name", GENERATIVE_FLOWS)
def test_each_generative_flow_propagates_call_failures(scripted, flow_name) -> None:
    pipeline, _ = scripted(InvocationError("quota exceeded"))
    with pytest.raises(InvocationError):
        pipeline.run(flow_name, FLOW_INPUTS[flow_name])


@pytest.mark.parametrize("payload", [None, "x", ["kilosPerBatch", 410], 410])
def test_non_object_payload_is_an_input_error(scripted, payload) -> None:
    pipeline, client = scripted({"isValid": True})
    with pytest.raises(InputError) as excinfo:
        pipeline.run(VALIDATE_PRODUCTION_DATA, payload)
    assert excinfo.value.errors == [f"payload: expected object, got {type(payload).__name__}"]
    assert client.requests == []
