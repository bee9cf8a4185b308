from typing import List, Optional
from pydantic import BaseModel, Field


class AdvisorSliders(BaseModel):
    directness: int = Field(5, ge=1, le=10)
    optimism: int = Field(5, ge=1, le=10)
    creativity: int = Field(5, ge=1, le=10)
    detail: int = Field(5, ge=1, le=10)


class AdvisorFormData(BaseModel):
    name: str
    communication_traits: List[str] = []
    personality_traits: List[str] = []
    sliders: AdvisorSliders = AdvisorSliders()
    background: Optional[str] = None
    expertise: Optional[str] = None
    tone: Optional[str] = None


class CustomAdvisor(BaseModel):
    raw: AdvisorFormData
    prompt: str
