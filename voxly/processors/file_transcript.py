from prometheus_client import Counter, Histogram

from voxly.errors import InvalidInputError, TranscriptionError
from voxly.logger import logger


class FileTranscriptProcessor:
    """
    Transcribe a complete audio file reachable at a (signed) URL.

    Returns the transcript text, or an empty string when the backend found
    nothing usable; deciding whether that is fatal is up to the caller.
    """

    m_transcript = Histogram(
        "file_transcript",
        "Time spent in FileTranscript.transcript",
        ["backend"],
    )
    m_transcript_call = Counter(
        "file_transcript_call",
        "Number of calls to FileTranscript.transcript",
        ["backend"],
    )
    m_transcript_success = Counter(
        "file_transcript_success",
        "Number of successful calls to FileTranscript.transcript",
        ["backend"],
    )
    m_transcript_failure = Counter(
        "file_transcript_failure",
        "Number of failed calls to FileTranscript.transcript",
        ["backend"],
    )

    def __init__(self, *args, **kwargs):
        name = self.__class__.__name__
        self.logger = logger.bind(processor=name)
        self.m_transcript = self.m_transcript.labels(name)
        self.m_transcript_call = self.m_transcript_call.labels(name)
        self.m_transcript_success = self.m_transcript_success.labels(name)
        self.m_transcript_failure = self.m_transcript_failure.labels(name)

    async def transcribe(self, audio_url: str) -> str:
        if not audio_url:
            raise InvalidInputError("Transcription requires an audio url")

        try:
            self.m_transcript_call.inc()
            with self.m_transcript.time():
                result = await self._transcript(audio_url)
            self.m_transcript_success.inc()
        except TranscriptionError:
            self.m_transcript_failure.inc()
            raise
        except Exception as e:
            self.m_transcript_failure.inc()
            self.logger.error("Transcription failed", error=str(e), exc_info=e)
            raise TranscriptionError(f"Transcription failed: {e}") from e

        return (result or "").strip()

    async def _transcript(self, audio_url: str) -> str:
        raise NotImplementedError
