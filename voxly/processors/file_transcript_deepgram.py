"""
File transcription using Deepgram prerecorded audio API

The audio is fetched by Deepgram from the signed url:

POST {TRANSCRIPT_URL}/v1/listen?model=nova-3&language=en&smart_format=true

```json
{
    "url": "https://..."
}
```
"""

import httpx

from voxly.errors import TranscriptionError
from voxly.processors.file_transcript import FileTranscriptProcessor
from voxly.processors.file_transcript_auto import FileTranscriptAutoProcessor
from voxly.settings import settings


class FileTranscriptDeepgramProcessor(FileTranscriptProcessor):
    def __init__(self, deepgram_api_key: str | None = None, **kwargs):
        super().__init__(**kwargs)
        if not settings.TRANSCRIPT_URL:
            raise Exception(
                "TRANSCRIPT_URL required to use FileTranscriptDeepgramProcessor"
            )
        self.transcript_url = settings.TRANSCRIPT_URL.rstrip("/")
        self.timeout = settings.TRANSCRIPT_TIMEOUT
        self.model = settings.TRANSCRIPT_MODEL
        self.language = settings.TRANSCRIPT_LANGUAGE
        self.deepgram_api_key = deepgram_api_key

    async def _transcript(self, audio_url: str) -> str:
        url = f"{self.transcript_url}/v1/listen"

        self.logger.info("Starting file transcription", audio_url=audio_url)

        headers = {"Content-Type": "application/json"}
        if self.deepgram_api_key:
            headers["Authorization"] = f"Token {self.deepgram_api_key}"

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.post(
                url,
                headers=headers,
                params={
                    "model": self.model,
                    "language": self.language,
                    "smart_format": "true",
                },
                json={"url": audio_url},
                follow_redirects=True,
            )

            if response.status_code != 200:
                self.logger.error(
                    "Deepgram API error",
                    audio_url=audio_url,
                    status_code=response.status_code,
                    error_body=response.text,
                )
                raise TranscriptionError(
                    f"Deepgram returned HTTP {response.status_code}"
                )

            result = response.json()

        try:
            alternative = result["results"]["channels"][0]["alternatives"][0]
        except (KeyError, IndexError, TypeError):
            return ""
        return alternative.get("transcript") or ""


FileTranscriptAutoProcessor.register("deepgram", FileTranscriptDeepgramProcessor)
