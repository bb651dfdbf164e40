import pytest

from agroflow.exceptions import DuplicateFlowError, OutputError, RegistryFrozenError, UnknownFlowError
from agroflow.fallback import OPTIMISTIC_ACCEPT, PermissiveDefault, RaiseFailure
from agroflow.flows import (
    DIAGNOSE_PLANT,
    MULTIMODAL_MODEL,
    VALIDATE_PRODUCTION_DATA,
    VERDICT_SCHEMA,
    build_default_registry,
)
from agroflow.registry import FlowDefinition, FlowRegistry
from agroflow.schema import number, string


def _definition(name: str = "scoreEntry", **overrides) -> FlowDefinition:
    params = dict(
        name=name,
        input_schema={"value": number(), "notes": string(required=False)},
        output_schema=VERDICT_SCHEMA,
        prompt="validate_production_data",
        fallback=OPTIMISTIC_ACCEPT,
    )
    params.update(overrides)
    return FlowDefinition(**params)


def test_default_registry_holds_every_flow() -> None:
    registry = build_default_registry()
    assert registry.frozen
    assert len(registry) == 8
    assert registry.names() == [
        "diagnosePlant",
        "generateWeatherAlerts",
        "predictYield",
        "recommendApplications",
        "summarizeAgronomistReport",
        "summarizeHarvestData",
        "validatePackagingData",
        "validateProductionData",
    ]


def test_flow_classes_follow_fallback_policy() -> None:
    registry = build_default_registry()
    classes = {definition.name: definition.flow_class for definition in registry}
    assert classes.pop("validateProductionData") == "judgment"
    assert classes.pop("validatePackagingData") == "judgment"
    assert set(classes.values()) == {"generative"}


def test_multimodal_flow_pins_model_and_media_field() -> None:
    definition = build_default_registry().get(DIAGNOSE_PLANT)
    assert definition.model == MULTIMODAL_MODEL
    assert definition.media_fields == ("photoDataUri",)
    assert build_default_registry().get(VALIDATE_PRODUCTION_DATA).model is None


def test_duplicate_registration_is_rejected() -> None:
    registry = FlowRegistry()
    registry.register(_definition())
    with pytest.raises(DuplicateFlowError):
        registry.register(_definition())


def test_frozen_registry_rejects_new_flows() -> None:
    registry = FlowRegistry().freeze()
    with pytest.raises(RegistryFrozenError):
        registry.register(_definition())
    assert "scoreEntry" not in registry


def test_unknown_flow_lists_known_names() -> None:
    registry = FlowRegistry()
    registry.register(_definition())
    with pytest.raises(UnknownFlowError, match="scoreEntry"):
        registry.get("missingFlow")


def test_schemas_are_read_only() -> None:
    definition = _definition()
    with pytest.raises(TypeError):
        definition.input_schema["extra"] = number()
    with pytest.raises(TypeError):
        definition.output_schema["isValid"] = number()


def test_registering_does_not_alias_caller_schema() -> None:
    schema = {"value": number()}
    definition = _definition(input_schema=schema)
    schema["late"] = number()
    assert "late" not in definition.input_schema


def test_context_field_must_be_an_input_field() -> None:
    with pytest.raises(ValueError, match="history"):
        _definition(context_field="history")


def test_fallback_policies() -> None:
    permissive = PermissiveDefault({"isValid": True, "tags": []})
    first = permissive.resolve("scoreEntry")
    first["tags"].append("mutated")
    assert permissive.resolve("scoreEntry") == {"isValid": True, "tags": []}
    assert permissive.absorbs_invocation_errors

    strict = RaiseFailure("sin resultado")
    assert not strict.absorbs_invocation_errors
    with pytest.raises(OutputError, match="sin resultado") as excinfo:
        strict.resolve("scoreEntry", ["alerts: value is required"])
    assert excinfo.value.errors == ["alerts: value is required"]
