import logging
import httpx
from typing import Optional
from pydantic import BaseModel
from decision_app.core import config
from decision_app.core.errors import UpstreamError

logger = logging.getLogger(__name__)


class SamplingConfig(BaseModel):
    max_tokens: int = 800
    temperature: float = 0.7
    top_p: float = 0.95
    frequency_penalty: float = 0
    presence_penalty: float = 0


class CompletionClient:
    """Sends system/user prompts to an OpenAI-compatible chat completions endpoint."""

    def __init__(
        self,
        endpoint: Optional[str] = None,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        api_version: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.endpoint = (endpoint or config.DECISION_AI_ENDPOINT).rstrip("/")
        self.api_key = api_key if api_key is not None else config.DECISION_AI_API_KEY
        self.model = model or config.DECISION_AI_MODEL
        self.api_version = api_version if api_version is not None else config.DECISION_AI_API_VERSION
        self.client = client or httpx.AsyncClient(timeout=config.DECISION_AI_TIMEOUT)

    def _headers(self) -> dict:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
            headers["api-key"] = self.api_key
        return headers

    def build_request(self, system_prompt: str, user_prompt: str, sampling: SamplingConfig) -> dict:
        return {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            **sampling.model_dump(),
        }

    async def complete(self, system_prompt: str, user_prompt: str, sampling: Optional[SamplingConfig] = None) -> str:
        body = self.build_request(system_prompt, user_prompt, sampling or SamplingConfig())
        params = {"api-version": self.api_version} if self.api_version else None
        url = f"{self.endpoint}/chat/completions"

        try:
            response = await self.client.post(url, json=body, headers=self._headers(), params=params)
        except httpx.HTTPError as e:
            logger.error(f"Completion request to {url} failed: {e}")
            raise UpstreamError(f"Completion service unreachable: {e}") from e

        if not response.is_success:
            logger.error(f"Completion service returned {response.status_code}: {response.text[:200]}")
            raise UpstreamError(
                f"Completion service returned status {response.status_code}",
                status_code=response.status_code
            )

        try:
            data = response.json()
        except ValueError as e:
            logger.error(f"Completion service returned invalid JSON: {e}")
            raise UpstreamError(f"Completion service returned invalid JSON: {e}") from e

        return self._extract_content(data)

    @staticmethod
    def _extract_content(data) -> str:
        choices = data.get("choices") if isinstance(data, dict) else None
        if not isinstance(choices, list) or not choices:
            logger.error(f"Completion response has no choices: {str(data)[:200]}")
            raise UpstreamError("Invalid response from completion service: no choices")

        choice = choices[0]
        message = choice.get("message") if isinstance(choice, dict) else None
        if message is None and isinstance(choice, dict):
            message = {}
        if not isinstance(message, dict):
            logger.error(f"Completion response has a malformed choice: {str(choice)[:200]}")
            raise UpstreamError("Invalid response from completion service: malformed choice")

        content = message.get("content")
        if content is None:
            return ""
        if not isinstance(content, str):
            logger.error(f"Completion response has non-text content: {str(content)[:200]}")
            raise UpstreamError("Invalid response from completion service: non-text content")
        return content.strip()

    async def aclose(self):
        await self.client.aclose()
