from unittest.mock import patch

import pytest
import sqlalchemy


@pytest.fixture(scope="session", autouse=True)
def settings_configuration():
    # endpoints are fake, every backend call in tests goes through httpx_mock
    from voxly.settings import settings

    settings.DATABASE_URL = "sqlite:///./test.sqlite"
    settings.TRANSCRIPT_BACKEND = "deepgram"
    settings.TRANSCRIPT_URL = "https://deepgram.test"
    settings.TRANSCRIPT_DEEPGRAM_API_KEY = "dg-test-key"
    settings.LLM_PROVIDER = None
    settings.LLM_PROVIDER_ORDER = ["gemini", "openai"]
    settings.LLM_OPENAI_URL = "https://openai.test/v1"
    settings.LLM_OPENAI_API_KEY = "sk-test"
    settings.LLM_OPENAI_MODELS = []
    settings.LLM_OPENAI_DEFAULT_MODEL = "gpt-4o-mini"
    settings.LLM_GEMINI_URL = "https://gemini.test/v1beta"
    settings.LLM_GEMINI_API_KEY = "gm-test"
    settings.LLM_GEMINI_MODELS = []
    settings.LLM_GEMINI_DEFAULT_MODEL = "gemini-2.5-flash"
    settings.AUDIO_STORAGE_BACKEND = "aws"
    settings.AUDIO_STORAGE_AWS_BUCKET_NAME = "voxly-test"
    settings.AUDIO_STORAGE_AWS_REGION = "us-east-1"


@pytest.fixture
async def database(tmp_path):
    """A fresh sqlite database with the tables created, connected."""
    from voxly.db import get_database, metadata, reset_database
    from voxly.settings import settings

    previous_url = settings.DATABASE_URL
    settings.DATABASE_URL = f"sqlite:///{tmp_path}/voxly.sqlite"
    reset_database()

    engine = sqlalchemy.create_engine(settings.DATABASE_URL)
    metadata.create_all(engine)
    engine.dispose()

    database = get_database()
    await database.connect()
    try:
        yield database
    finally:
        await database.disconnect()
        settings.DATABASE_URL = previous_url
        reset_database()


SUMMARY_OK = {
    "decisions": ["Ship the beta on Friday"],
    "keyPoints": ["Beta scope is frozen"],
    "nextSteps": ["Prepare release notes"],
    "actionItems": [
        {"text": "Write release notes", "priority": "high", "assignee": "Sam"},
        {"text": "", "priority": "LOW"},
        {"text": "Book the demo room", "priority": "URGENT"},
    ],
}


@pytest.fixture
def summary_ok():
    return {key: list(value) for key, value in SUMMARY_OK.items()}


class FakeJobController:
    """In-memory stand-in for `JobController`, records every write."""

    def __init__(self):
        self.jobs = {}
        self.writes = []
        self.fail_on_status = None

    async def get_by_id(self, job_id):
        return self.jobs.get(job_id)

    async def add(self, storage_key, template=None):
        from voxly.db.jobs import Job

        job = Job(storage_key=storage_key, template=template)
        self.jobs[job.id] = job
        return job

    async def update(self, job_id, values):
        self.writes.append((job_id, dict(values)))
        job = self.jobs.get(job_id)
        if job is not None:
            self.jobs[job_id] = job.model_validate({**job.model_dump(), **values})

    async def set_status(self, job_id, status):
        if self.fail_on_status == status:
            raise RuntimeError(f"database unavailable while writing {status}")
        await self.update(job_id, {"status": status})


@pytest.fixture
def fake_jobs():
    return FakeJobController()


@pytest.fixture
def dummy_storage():
    from voxly.storage.base import FileResult, Storage

    class DummyStorage(Storage):
        def __init__(self):
            self.files = {}
            self.signed = []

        @property
        def bucket_name(self):
            return "dummy-bucket"

        async def _put_file(self, filename, data, bucket=None):
            self.files[filename] = data if isinstance(data, bytes) else data.read()
            url = await self._get_file_url(filename, bucket=bucket)
            return FileResult(filename=filename, url=url)

        async def _get_file_url(
            self,
            filename,
            operation="get_object",
            expires_in=3600,
            bucket=None,
        ):
            self.signed.append((filename, expires_in, bucket))
            return f"https://storage.test/{bucket or self.bucket_name}/{filename}?sig=1"

    storage = DummyStorage()
    with patch("voxly.storage.base.Storage.get_instance") as mock_get_instance:
        mock_get_instance.return_value = storage
        yield storage


@pytest.fixture
def dummy_file_transcript():
    from voxly.processors.file_transcript import FileTranscriptProcessor

    class TestFileTranscriptProcessor(FileTranscriptProcessor):
        text = "Hello team, we agreed to ship the beta on Friday."

        async def _transcript(self, audio_url):
            self.audio_url = audio_url
            return self.text

    processor = TestFileTranscriptProcessor()
    with patch(
        "voxly.processors.file_transcript_auto.FileTranscriptAutoProcessor.__new__"
    ) as mock_auto:
        mock_auto.return_value = processor
        yield processor


class ScriptedProvider:
    """
    Provider double answering from a per-model script.

    A script entry is either a value to return or an exception to raise;
    every call is recorded in `calls` as `(operation, model)`.
    """

    def __init__(self, name, script, models=None):
        self.name = name
        self.script = script
        self.default_models = models or list(script)
        self.calls = []

    def models(self, explicit_model=None):
        if explicit_model:
            return [explicit_model]
        return list(self.default_models)

    async def _answer(self, operation, model):
        self.calls.append((operation, model))
        answer = self.script[model]
        if isinstance(answer, Exception):
            raise answer
        return answer

    async def summarize(self, transcript, model, template=None):
        self.last_template = template
        return await self._answer("summarize", model)

    async def edit_summary(self, summary, instruction, model):
        return await self._answer("edit_summary", model)

    async def chat(self, history, summary, model):
        return await self._answer("chat", model)


@pytest.fixture
def scripted_provider():
    return ScriptedProvider


def rate_limited(provider, model):
    from voxly.errors import RateLimitedError

    return RateLimitedError(
        f"{provider} returned HTTP 429",
        provider=provider,
        model=model,
        status_code=429,
    )


def server_error(provider, model, status_code=500):
    from voxly.errors import ProviderError

    return ProviderError(
        f"{provider} returned HTTP {status_code}",
        provider=provider,
        model=model,
        status_code=status_code,
    )


@pytest.fixture
def rate_limited_error():
    return rate_limited


@pytest.fixture
def provider_error():
    return server_error
