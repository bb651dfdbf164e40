"""Input/output schemas and definitions for every flow the application uses."""

from __future__ import annotations

from .fallback import OPTIMISTIC_ACCEPT, RaiseFailure
from .registry import FlowDefinition, FlowRegistry
from .schema import array, boolean, number, string

URGENCY_LEVELS = ("Alta", "Media", "Baja")
BATCH_ID_PATTERN = r"[A-Z]\d{3}"
DATA_URI_PATTERN = r"data:[\w.+-]+/[\w.+-]+;base64,.+"
MULTIMODAL_MODEL = "gemini-1.5-flash-latest"
TEXT_MODEL = "gemini-pro"

VALIDATE_PRODUCTION_DATA = "validateProductionData"
VALIDATE_PACKAGING_DATA = "validatePackagingData"
GENERATE_WEATHER_ALERTS = "generateWeatherAlerts"
DIAGNOSE_PLANT = "diagnosePlant"
SUMMARIZE_AGRONOMIST_REPORT = "summarizeAgronomistReport"
SUMMARIZE_HARVEST_DATA = "summarizeHarvestData"
PREDICT_YIELD = "predictYield"
RECOMMEND_APPLICATIONS = "recommendApplications"


# ============================================================================
# Judgment flows
# ============================================================================

VERDICT_SCHEMA = {
    "isValid": boolean(description="Whether the entry is consistent with history."),
    "reason": string(required=False, description="Why the entry is invalid, in Spanish."),
}

PRODUCTION_INPUT_SCHEMA = {
    "kilosPerBatch": number(min_value=0, description="Kilos harvested in this batch."),
    "batchId": string(pattern=BATCH_ID_PATTERN, description="Batch id, e.g. L014."),
    "farmerId": string(min_length=1),
    "averageKilosPerBatch": number(min_value=0),
    "historicalData": string(description="Prior batches for this farmer, serialized."),
    "timestamp": string(required=False),
}

PACKAGING_INPUT_SCHEMA = {
    "kilogramsPackaged": number(min_value=0),
    "packerId": string(min_length=1),
    "hoursWorked": number(min_value=0),
    "costPerHour": number(min_value=0),
    "historicalPackagingData": string(description="Prior entries for this packer, serialized."),
}


# ============================================================================
# Generative flows
# ============================================================================

WEATHER_ALERTS_INPUT_SCHEMA = {
    "weatherForecast": string(min_length=1, description="Pre-formatted forecast summary."),
    "phenologyLogs": string(),
    "agronomistLogs": string(required=False),
}

ALERT_SCHEMA = {
    "risk": string(),
    "recommendation": string(),
    "urgency": string(allowed=URGENCY_LEVELS),
}

WEATHER_ALERTS_OUTPUT_SCHEMA = {
    "alerts": array(ALERT_SCHEMA, min_items=1),
}

DIAGNOSE_PLANT_INPUT_SCHEMA = {
    "photoDataUri": string(pattern=DATA_URI_PATTERN, media=True, description="Base64 data URI of the photo."),
    "description": string(description="Symptoms observed on the plant."),
}

POSSIBLE_DIAGNOSIS_SCHEMA = {
    "nombre": string(),
    "probabilidad": number(min_value=0, max_value=100),
    "descripcion": string(),
}

DIAGNOSE_PLANT_OUTPUT_SCHEMA = {
    "diagnosticoPrincipal": string(),
    "posiblesDiagnosticos": array(POSSIBLE_DIAGNOSIS_SCHEMA, min_items=1, max_items=3),
    "recomendacionGeneral": string(),
}

AGRONOMIST_REPORT_INPUT_SCHEMA = {
    "agronomistLogs": string(),
    "phenologyLogs": string(),
}

AGRONOMIST_REPORT_OUTPUT_SCHEMA = {
    "technicalAnalysis": string(),
    "conclusionsAndRecommendations": string(),
}

HARVEST_SUMMARY_INPUT_SCHEMA = {
    "productionData": string(),
    "costData": string(),
    "agronomistLogs": string(),
}

HARVEST_SUMMARY_OUTPUT_SCHEMA = {
    "executiveSummary": string(),
    "analysisAndInterpretation": string(),
    "conclusionsAndRecommendations": string(),
}

YIELD_INPUT_SCHEMA = {
    "batchId": string(pattern=BATCH_ID_PATTERN),
    "recentHarvests": string(),
    "agronomistLogs": string(),
    "phenologyLogs": string(),
    "environmentalLogs": string(),
    "weatherForecast": string(),
}

YIELD_OUTPUT_SCHEMA = {
    "prediction": string(),
    "confidence": string(allowed=URGENCY_LEVELS),
}

RECOMMENDATION_SCHEMA = {
    "recommendation": string(),
    "reason": string(),
    "urgency": string(allowed=URGENCY_LEVELS),
    "suggestedProducts": array(string()),
}

APPLICATIONS_INPUT_SCHEMA = {
    "supplies": string(),
    "agronomistLogs": string(),
    "phenologyLogs": string(),
    "weatherForecast": string(),
}

APPLICATIONS_OUTPUT_SCHEMA = {
    "recommendations": array(RECOMMENDATION_SCHEMA, min_items=1),
}


def default_definitions() -> list[FlowDefinition]:
    return [
        FlowDefinition(
            name=VALIDATE_PRODUCTION_DATA,
            description="Flag harvest entries inconsistent with the farmer's history.",
            input_schema=PRODUCTION_INPUT_SCHEMA,
            output_schema=VERDICT_SCHEMA,
            prompt="validate_production_data",
            fallback=OPTIMISTIC_ACCEPT,
            context_field="historicalData",
        ),
        FlowDefinition(
            name=VALIDATE_PACKAGING_DATA,
            description="Flag packaging entries inconsistent with the packer's history.",
            input_schema=PACKAGING_INPUT_SCHEMA,
            output_schema=VERDICT_SCHEMA,
            prompt="validate_packaging_data",
            fallback=OPTIMISTIC_ACCEPT,
            model=TEXT_MODEL,
            context_field="historicalPackagingData",
        ),
        FlowDefinition(
            name=GENERATE_WEATHER_ALERTS,
            description="Agronomic risk alerts from the forecast and crop stage.",
            input_schema=WEATHER_ALERTS_INPUT_SCHEMA,
            output_schema=WEATHER_ALERTS_OUTPUT_SCHEMA,
            prompt="generate_weather_alerts",
            fallback=RaiseFailure("La generación de alertas no produjo una respuesta."),
            context_field="phenologyLogs",
        ),
        FlowDefinition(
            name=DIAGNOSE_PLANT,
            description="Pest/disease diagnosis from a photo and a description.",
            input_schema=DIAGNOSE_PLANT_INPUT_SCHEMA,
            output_schema=DIAGNOSE_PLANT_OUTPUT_SCHEMA,
            prompt="diagnose_plant",
            fallback=RaiseFailure("El resultado del diagnóstico está vacío."),
            model=MULTIMODAL_MODEL,
        ),
        FlowDefinition(
            name=SUMMARIZE_AGRONOMIST_REPORT,
            description="Technical report from the agronomist and phenology logs.",
            input_schema=AGRONOMIST_REPORT_INPUT_SCHEMA,
            output_schema=AGRONOMIST_REPORT_OUTPUT_SCHEMA,
            prompt="summarize_agronomist_report",
            fallback=RaiseFailure("No se pudo generar el informe técnico."),
            model=MULTIMODAL_MODEL,
            context_field="agronomistLogs",
        ),
        FlowDefinition(
            name=SUMMARIZE_HARVEST_DATA,
            description="Production and cost report for the season.",
            input_schema=HARVEST_SUMMARY_INPUT_SCHEMA,
            output_schema=HARVEST_SUMMARY_OUTPUT_SCHEMA,
            prompt="summarize_harvest_data",
            fallback=RaiseFailure("No se pudo generar el resumen de cosecha."),
            model=MULTIMODAL_MODEL,
            context_field="agronomistLogs",
        ),
        FlowDefinition(
            name=PREDICT_YIELD,
            description="Next-week yield projection for one batch.",
            input_schema=YIELD_INPUT_SCHEMA,
            output_schema=YIELD_OUTPUT_SCHEMA,
            prompt="predict_yield",
            fallback=RaiseFailure("No se pudo generar la predicción de rendimiento."),
            context_field="recentHarvests",
        ),
        FlowDefinition(
            name=RECOMMEND_APPLICATIONS,
            description="Weekly application and labour plan from stock and crop state.",
            input_schema=APPLICATIONS_INPUT_SCHEMA,
            output_schema=APPLICATIONS_OUTPUT_SCHEMA,
            prompt="recommend_applications",
            fallback=RaiseFailure("No se pudieron generar recomendaciones de aplicación."),
            model=MULTIMODAL_MODEL,
            context_field="agronomistLogs",
        ),
    ]


def build_default_registry() -> FlowRegistry:
    """Register every flow and freeze the registry."""
    registry = FlowRegistry()
    for definition in default_definitions():
        registry.register(definition)
    return registry.freeze()
