import pytest
from pydantic import ValidationError as PydanticValidationError

from videoworker.errors import ConfigurationError
from videoworker.generation.capabilities import AUDIO_FIELDS, VIDEO_MODEL_CATALOG
from videoworker.generation.models import ModelCapability, PayloadFormat
from videoworker.generation.registry import (
    CapabilityRegistry,
    capability_from_entry,
    get_registry,
)


def _cap(**overrides):
    fields = {
        "id": "test-model",
        "label": "Test",
        "provider_model_id": "acme:1@1",
        "durations": (5, 10),
        "aspect_ratios": ("16:9",),
        "resolutions": ("720p",),
        "is_default": True,
    }
    fields.update(overrides)
    return ModelCapability(**fields)


def test_default_catalog_loads(registry):
    assert len(registry) == len(VIDEO_MODEL_CATALOG) == 16
    assert registry.get_default().id == "seedance-1.0-pro"


def test_list_all_keeps_catalog_order(registry):
    assert [c.id for c in registry.list_all()] == [e["id"] for e in VIDEO_MODEL_CATALOG]


def test_every_model_has_provider_id_and_durations(registry):
    for cap in registry.list_all():
        assert cap.provider_model_id
        assert cap.durations
        assert ":" in cap.provider_model_id


def test_no_catalog_default_carries_audio_flag(registry):
    for cap in registry.list_all():
        field = AUDIO_FIELDS.get(cap.provider_tag)
        assert field not in cap.provider_defaults.get(cap.provider_tag, {})


def test_wrapped_format_models(registry):
    wrapped = {c.id for c in registry.list_all() if c.payload_format == PayloadFormat.WRAPPED}
    assert wrapped == {"kling-video-2.6-pro", "kling-video-o1", "runway-gen4-turbo", "alibaba-wan-2.6"}


def test_only_kling_o1_omits_dimensions(registry):
    assert [c.id for c in registry.list_all() if c.omit_dimensions] == ["kling-video-o1"]


def test_unknown_model_is_configuration_error(registry):
    with pytest.raises(ConfigurationError, match="nonexistent-model"):
        registry.lookup("nonexistent-model")


def test_capabilities_are_frozen(registry):
    cap = registry.lookup("veo-3.1")
    with pytest.raises(PydanticValidationError):
        cap.has_audio = False


def test_provider_tag(registry):
    assert registry.lookup("veo-3-fast").provider_tag == "google"
    assert registry.lookup("kling-video-2.6-pro").provider_tag == "klingai"


def test_constraints(registry):
    c = registry.constraints("klingai-2.5-turbo-pro")
    assert c["supported_durations"] == [5, 10]
    assert c["min_duration"] == 5
    assert c["max_duration"] == 10
    assert c["has_audio"] is False
    assert c["aspect_ratios"] == ["16:9", "1:1", "9:16"]


def test_frame_support_helpers(registry):
    assert registry.supports_start_end_frame("veo-3.1")
    assert not registry.supports_start_end_frame("veo-3.0")
    assert registry.supports_first_frame("veo-3.0")


def test_image_only_models_require_start_frame(registry):
    assert registry.lookup("runway-gen4-turbo").requires_start_frame
    assert registry.lookup("klingai-2.1-pro").requires_start_frame
    assert not registry.lookup("seedance-1.0-pro").requires_start_frame


def test_runway_pairs_come_from_its_table(registry):
    cap = registry.lookup("runway-gen4-turbo")
    assert cap.supported_resolutions("21:9") == ("672p",)
    assert ("21:9", "720p") not in cap.declared_pairs()


def test_get_registry_is_cached():
    assert get_registry() is get_registry()


# ── Load-time rejection ──────────────────────────────────────────────────────

def test_rejects_empty_durations():
    with pytest.raises(ConfigurationError, match="durations"):
        CapabilityRegistry([_cap(durations=())])


def test_rejects_missing_provider_id():
    with pytest.raises(ConfigurationError, match="provider model id"):
        CapabilityRegistry([_cap(provider_model_id="")])


def test_rejects_no_default():
    with pytest.raises(ConfigurationError, match="default"):
        CapabilityRegistry([_cap(is_default=False)])


def test_rejects_two_defaults():
    with pytest.raises(ConfigurationError, match="default"):
        CapabilityRegistry([_cap(), _cap(id="other")])


def test_rejects_duplicate_ids():
    with pytest.raises(ConfigurationError, match="Duplicate"):
        CapabilityRegistry([_cap(), _cap(is_default=False)])


def test_rejects_pair_without_dimensions():
    # 5:4 is in neither the model table nor the generic table
    with pytest.raises(ConfigurationError, match="5:4@720p"):
        CapabilityRegistry([_cap(aspect_ratios=("16:9", "5:4"))])


def test_rejects_table_resolution_not_declared():
    table = {"16:9": {"900p": {"width": 1600, "height": 900}}}
    with pytest.raises(ConfigurationError, match="900p"):
        CapabilityRegistry([_cap(dimension_table=table)])


def test_rejects_audio_flag_in_defaults():
    cap = _cap(provider_model_id="google:3@9", provider_defaults={"google": {"generateAudio": True}})
    with pytest.raises(ConfigurationError, match="generateAudio"):
        CapabilityRegistry([cap])


def test_malformed_entry_is_configuration_error():
    with pytest.raises(ConfigurationError, match="broken"):
        capability_from_entry({"id": "broken", "label": "Broken"})


def test_fixture_registry_with_custom_generic_table():
    generic = {"5:4": {"720p": {"width": 900, "height": 720}}}
    registry = CapabilityRegistry([_cap(aspect_ratios=("5:4",))], generic_dimensions=generic)
    assert registry.lookup("test-model").aspect_ratios == ("5:4",)


def test_capability_tables_are_read_only(registry):
    cap = registry.lookup("seedance-1.0-pro")
    with pytest.raises(TypeError):
        cap.dimension_table["16:9"]["720p"] = None
    with pytest.raises(TypeError):
        registry.lookup("veo-3.1").provider_defaults["google"]["enhancePrompt"] = False
    assert registry.lookup("veo-3-fast").provider_defaults["google"]["enhancePrompt"] is True
