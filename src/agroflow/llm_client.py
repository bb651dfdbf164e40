"""LLM client abstractions and the reasoning invoker built on top of them."""

from __future__ import annotations

import json
import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import requests
from openai import OpenAI, OpenAIError

from .composer import ComposedRequest, MediaPart, TextPart
from .config import DEFAULT_LLM_CONFIG, auto_load_json_config
from .exceptions import InvocationError
from .utils import parse_llm_json_object

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 60


class LLMClient(ABC):
    """Base interface for structured text generation."""

    provider = "abstract"
    model: Optional[str] = None

    def __init__(self) -> None:
        self.call_count = 0

    def complete(self, request: ComposedRequest, model: Optional[str] = None) -> str:
        self.call_count += 1
        return self._complete(request, model or self.model)

    @abstractmethod
    def _complete(self, request: ComposedRequest, model: Optional[str]) -> str:
        raise NotImplementedError


class HTTPLLMClient(LLMClient):
    """Generic HTTP-based LLM client."""

    provider = "http"

    def __init__(self, config: Dict[str, Any]):
        super().__init__()
        self.endpoint = config.get("endpoint")
        self.api_key = config.get("api_key")
        self.model = config.get("model")
        self.timeout = config.get("timeout", DEFAULT_TIMEOUT)
        self.payload_template = config.get("payload_template", {})
        if not self.endpoint or not self.api_key:
            raise InvocationError("LLM endpoint or API key missing")

    def _complete(self, request: ComposedRequest, model: Optional[str]) -> str:
        payload = {
            "model": model,
            "system": request.system,
            "prompt": request.text,
            "media": [
                {"field": part.field, "mime_type": part.mime_type, "data": part.data}
                for part in request.parts
                if isinstance(part, MediaPart)
            ],
            "response_schema": request.schema_hint(),
        }
        payload.update(self.payload_template)

        try:
            response = requests.post(
                self.endpoint,
                headers={
                    "Content-Type": "application/json",
                    "Authorization": f"Bearer {self.api_key}",
                },
                data=json.dumps(payload, ensure_ascii=False).encode("utf-8"),
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise InvocationError(f"LLM provider unreachable: {exc}") from exc
        if response.status_code >= 400:
            raise InvocationError(
                f"LLM provider error {response.status_code}: {response.text[:200]}"
            )
        try:
            data = response.json()
        except ValueError as exc:
            raise InvocationError("LLM provider returned a non-JSON envelope") from exc
        # Support both OpenAI-style {choices: [{text: ...}]} and plain {output: str}
        if "choices" in data:
            return data["choices"][0].get("text") or ""
        return data.get("output") or data.get("text") or ""


class OpenAILLMClient(LLMClient):
    """Chat-completions client for any OpenAI-compatible endpoint (Gemini included)."""

    provider = "openai"

    def __init__(self, config: Dict[str, Any], client: Optional[OpenAI] = None):
        super().__init__()
        self.base_url = config.get("base_url") or config.get("endpoint")
        self.api_key = config.get("api_key")
        self.model = config.get("model")
        self.timeout = config.get("timeout", DEFAULT_TIMEOUT)
        self.payload_template = config.get("payload_template", {})
        if client is None:
            if not self.api_key:
                raise InvocationError("LLM API key missing")
            client = OpenAI(api_key=self.api_key, base_url=self.base_url, timeout=self.timeout)
        self.client = client

    @staticmethod
    def build_messages(request: ComposedRequest) -> List[Dict[str, Any]]:
        content: List[Dict[str, Any]] = []
        for part in request.parts:
            if isinstance(part, TextPart):
                content.append({"type": "text", "text": part.text})
            else:
                content.append({"type": "image_url", "image_url": {"url": part.data_uri}})
        messages: List[Dict[str, Any]] = []
        if request.system:
            messages.append({"role": "system", "content": request.system})
        # plain string keeps text-only flows compatible with every backend
        if not request.has_media:
            messages.append({"role": "user", "content": request.text})
        else:
            messages.append({"role": "user", "content": content})
        return messages

    def _complete(self, request: ComposedRequest, model: Optional[str]) -> str:
        try:
            response = self.client.chat.completions.create(
                model=model,
                messages=self.build_messages(request),
                response_format={"type": "json_object"},
                **self.payload_template,
            )
        except OpenAIError as exc:
            raise InvocationError(f"LLM provider error: {exc}") from exc

        if not response.choices:
            return ""
        return response.choices[0].message.content or ""


class MockLLMClient(LLMClient):
    """Deterministic heuristics standing in for the reasoner in offline demos."""

    provider = "mock"

    def __init__(self, model: str = "mock-agronomist"):
        super().__init__()
        self.model = model

    def _complete(self, request: ComposedRequest, model: Optional[str]) -> str:
        handler = getattr(self, f"_mock_{_snake(request.flow_name)}", None)
        if handler is None:
            return json.dumps({"text": "Unsupported mock prompt"})
        return json.dumps(handler(request.text), ensure_ascii=False)

    @staticmethod
    def _number_after(label: str, text: str) -> Optional[float]:
        match = re.search(rf"^{re.escape(label)}:\s*(-?[\d.]+)\s*$", text, re.MULTILINE)
        return float(match.group(1)) if match else None

    def _mock_validate_production_data(self, text: str) -> Dict[str, Any]:
        kilos = self._number_after("Kilos per Batch", text)
        average = self._number_after("Average Kilos per Batch", text)
        if kilos is None or not average:
            return {"isValid": True}
        ratio = kilos / average
        if ratio > 3 or ratio < 1 / 3:
            return {
                "isValid": False,
                "reason": (
                    f"La cantidad de {kilos:g} kg se desvía {ratio:.1f} veces del promedio "
                    f"histórico de {average:g} kg por lote."
                ),
            }
        return {"isValid": True}

    def _mock_validate_packaging_data(self, text: str) -> Dict[str, Any]:
        kilos = self._number_after("Kilos Packaged", text)
        hours = self._number_after("Hours Worked", text)
        if kilos is None or not hours:
            return {"isValid": True}
        rate = kilos / hours
        if rate > 150:
            return {
                "isValid": False,
                "reason": f"Productividad de {rate:.0f} kg/hora, muy superior a lo esperable para un empacador.",
            }
        return {"isValid": True}

    def _mock_generate_weather_alerts(self, text: str) -> Dict[str, Any]:
        lowered = text.lower()
        alerts = []
        if "helada" in lowered or re.search(r"temp\s*-\d", lowered):
            urgency = "Alta" if "flor" in lowered else "Media"
            alerts.append({
                "risk": "Daño por helada",
                "recommendation": "Cubrir los túneles y preparar riego antihelada durante la noche.",
                "urgency": urgency,
            })
        if "lluvia" in lowered and ("fructific" in lowered or "madur" in lowered):
            alerts.append({
                "risk": "Riesgo de Botrytis por alta humedad y lluvias",
                "recommendation": "Asegurar ventilación máxima de los túneles y preparar aplicación preventiva.",
                "urgency": "Alta",
            })
        if not alerts:
            alerts.append({
                "risk": "Condiciones óptimas de cultivo",
                "recommendation": "Mantener monitoreo regular.",
                "urgency": "Baja",
            })
        return {"alerts": alerts}

    def _mock_diagnose_plant(self, text: str) -> Dict[str, Any]:
        lowered = text.lower()
        catalogue = [
            ("Botrytis (Moho Gris)", ("moho", "gris", "podrid")),
            ("Oídio (Cenicilla)", ("polvo", "blanc", "ceniz")),
            ("Araña Roja", ("telaraña", "punteado", "ácaro", "acaro")),
        ]
        found = []
        for name, keywords in catalogue:
            hits = sum(1 for keyword in keywords if keyword in lowered)
            if hits:
                found.append((name, min(95, 40 + 25 * hits)))
        if not found:
            found = [("Deficiencia nutricional", 35)]
        found.sort(key=lambda item: item[1], reverse=True)
        return {
            "diagnosticoPrincipal": found[0][0],
            "posiblesDiagnosticos": [
                {
                    "nombre": name,
                    "probabilidad": probability,
                    "descripcion": "Síntomas descritos compatibles con el cuadro.",
                }
                for name, probability in found[:3]
            ],
            "recomendacionGeneral": "Monitorear lotes vecinos y confirmar con un análisis de laboratorio.",
        }

    def _mock_summarize_agronomist_report(self, text: str) -> Dict[str, Any]:
        return {
            "technicalAnalysis": "Análisis generado sin conexión: las bitácoras no fueron evaluadas por un modelo.",
            "conclusionsAndRecommendations": "Revisar el informe con el modelo real antes de tomar decisiones.",
        }

    def _mock_summarize_harvest_data(self, text: str) -> Dict[str, Any]:
        return {
            "executiveSummary": "Resumen generado sin conexión.",
            "analysisAndInterpretation": "Sin análisis: el modelo no estuvo disponible.",
            "conclusionsAndRecommendations": "Repetir el informe con el modelo real.",
        }

    def _mock_predict_yield(self, text: str) -> Dict[str, Any]:
        return {"prediction": "Rendimiento estable para la próxima semana.", "confidence": "Baja"}

    def _mock_recommend_applications(self, text: str) -> Dict[str, Any]:
        return {
            "recommendations": [
                {
                    "recommendation": "Mantener monitoreo de plagas y enfermedades.",
                    "reason": "No se detectaron necesidades urgentes en los datos provistos.",
                    "urgency": "Baja",
                    "suggestedProducts": [],
                }
            ]
        }


def _snake(name: str) -> str:
    return re.sub(r"(?<!^)(?=[A-Z])", "_", name).lower()


def build_llm_client(config_name: str = DEFAULT_LLM_CONFIG, config_tag: str = "default") -> LLMClient:
    config = auto_load_json_config(config_name, tag=config_tag)
    provider = config.get("provider", "mock").lower()
    if provider == "mock":
        return MockLLMClient(model=config.get("model", "mock-agronomist"))
    if provider == "openai":
        return OpenAILLMClient(config)
    if provider == "http":
        return HTTPLLMClient(config)
    raise ValueError(f"Unknown LLM provider '{provider}' in {config_name}")


# Invoker --------------------------------------------------------------------

@dataclass(frozen=True)
class ReasoningCandidate:
    """Raw result from the reasoner. ``payload`` is None when nothing usable came back."""

    payload: Optional[Dict[str, Any]]
    raw: Optional[str]
    model: Optional[str] = None

    @property
    def present(self) -> bool:
        return self.payload is not None


class ReasoningInvoker:
    """Sends one composed request to the reasoner. No retries happen here."""

    def __init__(self, client: LLMClient, default_model: Optional[str] = None):
        self.client = client
        self.default_model = default_model

    def resolve_model(self, request: ComposedRequest, model: Optional[str] = None) -> Optional[str]:
        return request.model or model or self.default_model or self.client.model

    def invoke(self, request: ComposedRequest, model: Optional[str] = None) -> ReasoningCandidate:
        chosen = self.resolve_model(request, model)
        logger.debug("Invoking %s for flow '%s' with model %s", self.client.provider, request.flow_name, chosen)
        try:
            raw = self.client.complete(request, chosen)
        except InvocationError:
            raise
        except Exception as exc:
            raise InvocationError(f"Reasoning call for '{request.flow_name}' failed: {exc}") from exc

        payload = parse_llm_json_object(raw)
        if payload is None:
            logger.info("Flow '%s': reasoner returned no JSON object", request.flow_name)
        return ReasoningCandidate(payload=payload, raw=raw, model=chosen)
