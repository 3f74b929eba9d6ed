"""
Speech-to-text backend selection.

`FileTranscriptAutoProcessor()` returns the processor named by
`TRANSCRIPT_BACKEND`, built with its `TRANSCRIPT_<BACKEND>_*` options.
Backend modules live next to this one as `file_transcript_<backend>.py` and
register themselves on import.
"""

import importlib

from voxly.processors.file_transcript import FileTranscriptProcessor
from voxly.settings import settings


class FileTranscriptAutoProcessor(FileTranscriptProcessor):
    _backends: dict[str, type[FileTranscriptProcessor]] = {}

    @classmethod
    def register(cls, name: str, processor_class: type[FileTranscriptProcessor]):
        cls._backends[name] = processor_class

    def __new__(cls, backend: str | None = None, **kwargs) -> FileTranscriptProcessor:
        backend = backend or settings.TRANSCRIPT_BACKEND
        if backend not in cls._backends:
            importlib.import_module(f"voxly.processors.file_transcript_{backend}")

        # TRANSCRIPT_DEEPGRAM_API_KEY -> deepgram_api_key
        options = settings.backend_options(
            f"TRANSCRIPT_{backend.upper()}_", strip="TRANSCRIPT_"
        )
        return cls._backends[backend](**options | kwargs)
