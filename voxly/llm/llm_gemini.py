"""
Google Gemini backend, using the generateContent REST endpoint.

POST {LLM_GEMINI_URL}/models/{model}:generateContent

```json
{
    "systemInstruction": {"parts": [{"text": "..."}]},
    "contents": [{"role": "user", "parts": [{"text": "..."}]}],
    "generationConfig": {
        "temperature": 0.2,
        "topP": 0.9,
        "responseMimeType": "application/json"
    }
}
```
"""

import httpx

from voxly.llm.base import LLMProvider

TOP_P = 0.9


class GeminiLLM(LLMProvider):
    name = "gemini"
    rate_limit_codes = ("RESOURCE_EXHAUSTED",)

    async def _generate(
        self,
        model: str,
        system: str | None,
        messages: list[dict],
        temperature: float,
        json_mode: bool,
    ) -> str:
        payload = {
            "contents": [
                {
                    "role": "model" if message["role"] == "assistant" else "user",
                    "parts": [{"text": message["content"]}],
                }
                for message in messages
            ],
            "generationConfig": {
                "temperature": temperature,
                "topP": TOP_P,
                "responseMimeType": "application/json" if json_mode else "text/plain",
            },
        }
        if system:
            payload["systemInstruction"] = {"parts": [{"text": system}]}

        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["x-goog-api-key"] = self.api_key

        response = await self.client.post(
            f"{self.url}/models/{model}:generateContent",
            json=payload,
            headers=headers,
        )
        response.raise_for_status()
        result = response.json()
        if not isinstance(result, dict):
            raise ValueError(f"expected a JSON object, got {type(result).__name__}")

        candidates = result.get("candidates") or [{}]
        parts = (candidates[0].get("content") or {}).get("parts") or []
        text = "".join(part.get("text", "") for part in parts)
        if not text:
            return "{}" if json_mode else ""
        return text

    def _error_code(self, response: httpx.Response) -> str | None:
        try:
            error = response.json().get("error") or {}
        except (ValueError, AttributeError):
            return None
        if not isinstance(error, dict):
            return None
        return error.get("status")


LLMProvider.register("gemini", GeminiLLM)
