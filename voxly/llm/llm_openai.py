"""
OpenAI chat completions backend.

POST {LLM_OPENAI_URL}/chat/completions

```json
{
    "model": "gpt-4o-mini",
    "temperature": 0.2,
    "response_format": {"type": "json_object"},
    "messages": [{"role": "system", "content": "..."}, ...]
}
```
"""

from typing import Any

import httpx

from voxly.llm.base import CHAT_TEMPERATURE, LLMProvider
from voxly.llm.prompts import CHAT_SYSTEM_PROMPT, summary_to_json


class OpenAILLM(LLMProvider):
    name = "openai"
    rate_limit_codes = ("rate_limit_exceeded", "429")

    async def _generate(
        self,
        model: str,
        system: str | None,
        messages: list[dict],
        temperature: float,
        json_mode: bool,
    ) -> str:
        payload = {
            "model": model,
            "temperature": temperature,
            "messages": ([{"role": "system", "content": system}] if system else [])
            + messages,
        }
        if json_mode:
            payload["response_format"] = {"type": "json_object"}

        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"

        response = await self.client.post(
            f"{self.url}/chat/completions", json=payload, headers=headers
        )
        response.raise_for_status()
        result = response.json()
        if not isinstance(result, dict):
            raise ValueError(f"expected a JSON object, got {type(result).__name__}")

        choices = result.get("choices") or [{}]
        content = (choices[0].get("message") or {}).get("content")
        if not isinstance(content, str) or not content:
            return "{}" if json_mode else ""
        return content

    async def _chat(self, messages: list[dict], summary: Any, model: str) -> str:
        # native chat turns: instructions and summary context as system messages
        return await self.generate(
            model=model,
            system=CHAT_SYSTEM_PROMPT,
            messages=[
                {
                    "role": "system",
                    "content": f"Current summary JSON:\n{summary_to_json(summary)}",
                },
                *messages,
            ],
            temperature=CHAT_TEMPERATURE,
            json_mode=False,
        )

    def _error_code(self, response: httpx.Response) -> str | None:
        try:
            error = response.json().get("error") or {}
        except (ValueError, AttributeError):
            return None
        if not isinstance(error, dict):
            return None
        code = error.get("code") or error.get("type")
        return str(code) if code is not None else None


LLMProvider.register("openai", OpenAILLM)
