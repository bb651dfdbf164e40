import base64
import json
from typing import List, Optional, Union

import pytest

from agroflow.composer import ComposedRequest
from agroflow.flows import build_default_registry
from agroflow.llm_client import LLMClient, ReasoningInvoker
from agroflow.pipeline import InferencePipeline


class ScriptedClient(LLMClient):
    """Replays canned responses; an Exception entry is raised instead of returned."""

    provider = "scripted"

    def __init__(self, responses: List[Union[str, dict, Exception]], model: str = "scripted-model"):
        super().__init__()
        self.responses = list(responses)
        self.model = model
        self.requests: List[ComposedRequest] = []
        self.models: List[Optional[str]] = []

    def _complete(self, request: ComposedRequest, model: Optional[str]) -> str:
        self.requests.append(request)
        self.models.append(model)
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        if isinstance(response, dict):
            return json.dumps(response, ensure_ascii=False)
        return response


@pytest.fixture
def scripted():
    def factory(*responses):
        client = ScriptedClient(list(responses))
        pipeline = InferencePipeline(build_default_registry(), ReasoningInvoker(client))
        return pipeline, client

    return factory


@pytest.fixture
def production_payload():
    return {
        "kilosPerBatch": 40000,
        "batchId": "L014",
        "farmerId": "F1",
        "averageKilosPerBatch": 400,
        "historicalData": json.dumps([{"batch": "L013", "kilograms": 410}, {"batch": "L012", "kilograms": 390}]),
    }


@pytest.fixture
def photo_data_uri():
    return "data:image/jpeg;base64," + base64.b64encode(b"\xff\xd8\xff\xe0fake-jpeg").decode("ascii")
