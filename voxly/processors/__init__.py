from .file_transcript import FileTranscriptProcessor  # noqa
from .file_transcript_auto import FileTranscriptAutoProcessor  # noqa
