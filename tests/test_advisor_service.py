import json
import pytest
from unittest.mock import AsyncMock
from decision_app.core.errors import UpstreamError, StorageError
from decision_app.models.advisor import AdvisorFormData, AdvisorSliders
from decision_app.services.advisor_service import (
    AdvisorService, slider_description, describe_advisor, get_advisor_prompt, DEFAULT_ADVISOR_PROMPT
)
from decision_app.services.profile_store import ProfileStore

@pytest.fixture
def profile_store(tmp_path):
    return ProfileStore(path=str(tmp_path / "profiles.json"))

def make_form():
    return AdvisorFormData(
        name="Sage",
        communication_traits=["Direct", "Warm"],
        personality_traits=["Analytical"],
        sliders=AdvisorSliders(directness=9, optimism=2, creativity=5, detail=7),
        expertise="Career change"
    )

@pytest.mark.parametrize("value,expected", [
    (1, "Very gentle and indirect"),
    (3, "Very gentle and indirect"),
    (4, "Balanced directness"),
    (7, "Balanced directness"),
    (8, "Very direct and straightforward"),
    (10, "Very direct and straightforward"),
])
def test_slider_description(value, expected):
    assert slider_description("directness", value) == expected

def test_describe_advisor():
    text = describe_advisor(make_form())
    assert "Name: Sage" in text
    assert "Communication Style: Direct, Warm" in text
    assert "Directness: Very direct and straightforward" in text
    assert "Optimism: Realistic and pragmatic" in text
    assert "Approach: Balanced creativity" in text
    assert "Focus: Balanced attention to detail" in text
    assert "Areas of Expertise: Career change" in text
    assert "Background" not in text

def test_get_advisor_prompt_shapes():
    assert get_advisor_prompt(None) == DEFAULT_ADVISOR_PROMPT
    assert get_advisor_prompt("Not Set") == DEFAULT_ADVISOR_PROMPT
    assert get_advisor_prompt({"raw": {}, "prompt": "Be bold."}) == "Be bold."
    assert get_advisor_prompt({"raw": {}}) == DEFAULT_ADVISOR_PROMPT
    assert get_advisor_prompt(json.dumps({"prompt": "From JSON."})) == "From JSON."
    assert get_advisor_prompt(json.dumps({"name": "Max"})).startswith("I am Max, your personal advisor.")
    assert get_advisor_prompt(json.dumps({"other": 1})) == DEFAULT_ADVISOR_PROMPT
    assert get_advisor_prompt("Plain persona text") == "Plain persona text"
    assert get_advisor_prompt(42) == DEFAULT_ADVISOR_PROMPT

@pytest.mark.asyncio
async def test_generate_advisor_prompt(profile_store):
    client = AsyncMock()
    client.complete.return_value = "You are Sage. Be direct."
    service = AdvisorService(client, profile_store)
    assert await service.generate_advisor_prompt(make_form()) == "You are Sage. Be direct."
    assert "Name: Sage" in client.complete.call_args.args[1]

@pytest.mark.asyncio
async def test_generate_advisor_prompt_fallback(profile_store):
    client = AsyncMock()
    client.complete.side_effect = UpstreamError("down")
    service = AdvisorService(client, profile_store)
    prompt = await service.generate_advisor_prompt(make_form())
    assert prompt == "I am Sage, your personal advisor. I will provide advice based on your needs."

@pytest.mark.asyncio
async def test_create_custom_advisor_saves_profile(profile_store):
    client = AsyncMock()
    client.complete.return_value = "You are Sage."
    service = AdvisorService(client, profile_store)

    result = await service.create_custom_advisor(make_form(), "user1")

    assert result == {"success": True, "advisor_prompt": "You are Sage."}
    stored = profile_store.get_custom_advisor("user1")
    assert stored["prompt"] == "You are Sage."
    assert stored["raw"]["name"] == "Sage"

    reloaded = ProfileStore(path=profile_store.path)
    assert reloaded.get_custom_advisor("user1")["prompt"] == "You are Sage."

@pytest.mark.asyncio
async def test_create_custom_advisor_preview_does_not_save(profile_store):
    client = AsyncMock()
    client.complete.return_value = "Preview persona."
    service = AdvisorService(client, profile_store)
    result = await service.create_custom_advisor(make_form(), "preview")
    assert result["advisor_prompt"] == "Preview persona."
    assert profile_store.get_custom_advisor("preview") is None

@pytest.mark.asyncio
async def test_create_custom_advisor_requires_user(profile_store):
    service = AdvisorService(AsyncMock(), profile_store)
    result = await service.create_custom_advisor(make_form(), "")
    assert result["success"] is False

def test_personalization_for(profile_store):
    service = AdvisorService(AsyncMock(), profile_store)
    empty = service.personalization_for("user1")
    assert empty.personality_type is None
    assert empty.advisor_prompt is None

    profile_store.set_personality_type("user1", "enfp")
    profile_store.set_custom_advisor("user1", {"raw": {}, "prompt": "Be kind."})
    personalization = service.personalization_for("user1")
    assert personalization.personality_type == "ENFP"
    assert personalization.advisor_prompt == "Be kind."

def test_personality_none_means_unset(profile_store):
    profile_store.set_personality_type("user1", "NONE")
    assert profile_store.get_personality_type("user1") is None

def test_corrupt_profiles_file_is_not_overwritten(profile_store):
    profile_store.set_personality_type("alice", "INTJ")
    with open(profile_store.path, "r", encoding="utf-8") as f:
        original = f.read()
    truncated = original[:len(original) // 2]
    with open(profile_store.path, "w", encoding="utf-8") as f:
        f.write(truncated)

    with pytest.raises(StorageError):
        profile_store.set_personality_type("bob", "ENFP")
    with pytest.raises(StorageError):
        profile_store.get_personality_type("alice")

    with open(profile_store.path, "r", encoding="utf-8") as f:
        assert f.read() == truncated

def test_profile_writes_leave_no_temp_file(profile_store, tmp_path):
    profile_store.set_personality_type("alice", "INTJ")
    profile_store.set_custom_advisor("bob", {"raw": {}, "prompt": "Be brief."})
    assert sorted(p.name for p in tmp_path.iterdir()) == ["profiles.json"]
    data = json.loads((tmp_path / "profiles.json").read_text(encoding="utf-8"))
    assert data["alice"]["personality_type"] == "INTJ"
    assert data["bob"]["custom_advisors"]["prompt"] == "Be brief."

def test_profile_store_sees_writes_from_other_instances(profile_store):
    other = ProfileStore(path=profile_store.path)
    other.set_personality_type("alice", "istp")
    assert profile_store.get_personality_type("alice") == "ISTP"
