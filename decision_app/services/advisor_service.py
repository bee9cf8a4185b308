import json
import logging
from typing import Optional, Any, Dict
from decision_app.models.advisor import AdvisorFormData, CustomAdvisor
from decision_app.models.decision_tree import Personalization
from decision_app.services.completion_client import SamplingConfig

logger = logging.getLogger(__name__)

DEFAULT_ADVISOR_PROMPT = "I am your personal advisor. How can I help you?"
PREVIEW_USER = "preview"

SLIDER_DESCRIPTIONS = {
    "directness": {
        "low": "Very gentle and indirect",
        "medium": "Balanced directness",
        "high": "Very direct and straightforward",
    },
    "optimism": {
        "low": "Realistic and pragmatic",
        "medium": "Balanced optimism",
        "high": "Highly optimistic and positive",
    },
    "creativity": {
        "low": "Conventional and traditional",
        "medium": "Balanced creativity",
        "high": "Highly creative and innovative",
    },
    "detail": {
        "low": "Big picture focused",
        "medium": "Balanced attention to detail",
        "high": "Highly detail-oriented",
    },
}

ADVISOR_SYSTEM_PROMPT = (
    "You are a prompt engineer. Based on the following user-submitted information, create a 2-sentence "
    "prompt that captures the user's desired advisor persona, tone, and focus area. This prompt will later "
    "be prepended to any advice the user requests. The output should be specific, helpful, and easy to "
    "append to future prompts."
)


def slider_description(slider_name: str, value: int) -> str:
    if value <= 3:
        level = "low"
    elif value <= 7:
        level = "medium"
    else:
        level = "high"
    return SLIDER_DESCRIPTIONS[slider_name][level]


def describe_advisor(data: AdvisorFormData) -> str:
    lines = [
        f"Name: {data.name}",
        f"Communication Style: {', '.join(data.communication_traits)}",
        f"Personality Traits: {', '.join(data.personality_traits)}",
        f"Directness: {slider_description('directness', data.sliders.directness)}",
        f"Optimism: {slider_description('optimism', data.sliders.optimism)}",
        f"Approach: {slider_description('creativity', data.sliders.creativity)}",
        f"Focus: {slider_description('detail', data.sliders.detail)}",
    ]
    if data.background:
        lines.append(f"Background: {data.background}")
    if data.expertise:
        lines.append(f"Areas of Expertise: {data.expertise}")
    if data.tone:
        lines.append(f"Tone and Voice: {data.tone}")
    return "\n".join(lines)


def fallback_advisor_prompt(name: str) -> str:
    return f"I am {name}, your personal advisor. I will provide advice based on your needs."


def get_advisor_prompt(custom_advisor: Any) -> str:
    """Extracts the persona prompt from stored advisor data in any of its historical shapes."""
    if not custom_advisor:
        return DEFAULT_ADVISOR_PROMPT

    if isinstance(custom_advisor, dict):
        if custom_advisor.get("prompt"):
            return custom_advisor["prompt"]
        return DEFAULT_ADVISOR_PROMPT

    if isinstance(custom_advisor, str):
        if custom_advisor == "Not Set":
            return DEFAULT_ADVISOR_PROMPT
        try:
            parsed = json.loads(custom_advisor)
        except ValueError:
            return custom_advisor
        if isinstance(parsed, dict):
            if parsed.get("prompt"):
                return parsed["prompt"]
            if parsed.get("name"):
                return fallback_advisor_prompt(parsed["name"])
            return DEFAULT_ADVISOR_PROMPT
        return custom_advisor

    return DEFAULT_ADVISOR_PROMPT


class AdvisorService:
    def __init__(self, completion_client, profile_store):
        self.completion_client = completion_client
        self.profile_store = profile_store

    async def generate_advisor_prompt(self, data: AdvisorFormData) -> str:
        try:
            prompt = await self.completion_client.complete(
                ADVISOR_SYSTEM_PROMPT, describe_advisor(data), SamplingConfig(max_tokens=800)
            )
        except Exception as e:
            logger.warning(f"Advisor prompt generation failed for {data.name}: {e}")
            return fallback_advisor_prompt(data.name)
        return prompt.strip() or fallback_advisor_prompt(data.name)

    async def create_custom_advisor(self, data: AdvisorFormData, user_id: str) -> Dict:
        if not user_id:
            return {"success": False, "error": "User ID is required"}

        advisor_prompt = await self.generate_advisor_prompt(data)
        if user_id == PREVIEW_USER:
            return {"success": True, "advisor_prompt": advisor_prompt}

        try:
            advisor = CustomAdvisor(raw=data, prompt=advisor_prompt)
            self.profile_store.set_custom_advisor(user_id, advisor.model_dump())
        except Exception as e:
            logger.error(f"Error creating custom advisor for {user_id}: {e}")
            return {"success": False, "error": str(e)}
        return {"success": True, "advisor_prompt": advisor_prompt}

    def personalization_for(self, user_id: str) -> Personalization:
        stored = self.profile_store.get_custom_advisor(user_id)
        return Personalization(
            personality_type=self.profile_store.get_personality_type(user_id),
            advisor_prompt=get_advisor_prompt(stored) if stored else None
        )
