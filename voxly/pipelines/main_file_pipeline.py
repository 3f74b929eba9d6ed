"""
File processing pipeline
========================

Turns an uploaded audio file into a transcript and a structured summary.

Steps run one after the other, each one logged:
load-job -> mark-processing -> sign-file-url -> transcribe-audio
-> generate-summary -> update-db

Any failure after the job was found marks it as `error` before being
re-raised; a missing job is reported as is and nothing is written.
"""

import functools

import structlog
from celery import shared_task
from celery.utils.log import get_task_logger
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from voxly.asynctask import asynctask
from voxly.db.jobs import Job, JobController, JobStatus, jobs_controller
from voxly.errors import (
    EmptyTranscriptError,
    InvalidInputError,
    NotFoundError,
    ProviderError,
    TranscriptionError,
)
from voxly.llm import LLMAgent
from voxly.llm.fallback import ProviderSelection
from voxly.llm.prompts import DEFAULT_TEMPLATE
from voxly.llm.schema import (
    normalize_action_items,
    normalize_string_list,
    normalize_summary,
)
from voxly.logger import logger
from voxly.processors import FileTranscriptAutoProcessor, FileTranscriptProcessor
from voxly.settings import settings
from voxly.storage import Storage, get_audio_storage

task_logger = structlog.wrap_logger(get_task_logger(__name__))


class AudioUploadedEvent(BaseModel):
    """Notification that the audio of a job landed in storage."""

    model_config = ConfigDict(populate_by_name=True)

    job_id: str = Field(alias="jobId")
    storage_key: str = Field(alias="storageKey")
    template: str | None = None
    bucket: str | None = None

    @field_validator("job_id", "storage_key")
    @classmethod
    def not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value

    @classmethod
    def parse(cls, payload: dict) -> "AudioUploadedEvent":
        try:
            return cls.model_validate(payload)
        except ValidationError as e:
            fields = ", ".join(
                ".".join(str(p) for p in error["loc"]) for error in e.errors()
            )
            raise InvalidInputError(f"Invalid upload event: {fields}") from e


def pipeline_step(name: str):
    def decorator(func):
        @functools.wraps(func)
        async def wrapper(self, *args, **kwargs):
            self.logger.info("Pipeline step started", step=name)
            try:
                result = await func(self, *args, **kwargs)
            except Exception as e:
                self.logger.warning(
                    "Pipeline step failed",
                    step=name,
                    error_type=type(e).__name__,
                    error=str(e),
                )
                raise
            self.steps.append(name)
            self.logger.info("Pipeline step finished", step=name)
            return result

        wrapper.step_name = name
        return wrapper

    return decorator


class PipelineMainFile:
    """
    Process one uploaded audio file for an existing job.

    Collaborators default to the configured ones; tests and the CLI pass
    their own.
    """

    def __init__(
        self,
        event: AudioUploadedEvent,
        agent: LLMAgent,
        jobs: JobController = jobs_controller,
        storage: Storage | None = None,
        transcriber: FileTranscriptProcessor | None = None,
        selection: ProviderSelection | None = None,
        model: str | None = None,
    ):
        self.event = event
        self.agent = agent
        self.jobs = jobs
        self.storage = storage
        self.transcriber = transcriber
        self.selection = selection
        self.model = model
        self.steps: list[str] = []
        self.logger = logger.bind(job_id=event.job_id)

    @pipeline_step("load-job")
    async def load_job(self) -> Job:
        job = await self.jobs.get_by_id(self.event.job_id)
        if not job:
            raise NotFoundError(f"Job {self.event.job_id} not found")
        return job

    @pipeline_step("mark-processing")
    async def mark_processing(self):
        await self.jobs.set_status(self.event.job_id, JobStatus.PROCESSING)

    @pipeline_step("sign-file-url")
    async def sign_file_url(self) -> str:
        storage = self.storage or get_audio_storage()
        return await storage.get_file_url(
            self.event.storage_key,
            expires_in=settings.AUDIO_URL_TTL,
            bucket=self.event.bucket,
        )

    @pipeline_step("transcribe-audio")
    async def transcribe_audio(self, audio_url: str) -> str:
        transcriber = self.transcriber or FileTranscriptAutoProcessor()
        transcript = await transcriber.transcribe(audio_url)
        if not transcript or not transcript.strip():
            raise EmptyTranscriptError("Transcription returned no text")
        self.logger.info("Transcript ready", length=len(transcript))
        return transcript

    @pipeline_step("generate-summary")
    async def generate_summary(self, transcript: str, template: str) -> dict:
        return await self.agent.summarize_transcript(
            transcript,
            template=template,
            selection=self.selection,
            model=self.model,
        )

    @pipeline_step("update-db")
    async def update_db(self, transcript: str, summary: dict):
        summary = normalize_summary(summary)
        await self.jobs.update(
            self.event.job_id,
            {
                "transcript": transcript,
                "decisions": normalize_string_list(summary["decisions"]),
                "key_points": normalize_string_list(summary["keyPoints"]),
                "next_steps": normalize_string_list(summary["nextSteps"]),
                "action_items": normalize_action_items(summary["actionItems"]),
                "status": JobStatus.DONE.value,
            },
        )

    @pipeline_step("mark-error")
    async def mark_error(self):
        await self.jobs.set_status(self.event.job_id, JobStatus.ERROR)

    async def process(self) -> dict:
        """Run every step; returns `{"job_id": ...}` once the job is done."""
        self.logger.info("Starting file pipeline", storage_key=self.event.storage_key)

        try:
            job = await self.load_job()
            template = self.event.template or job.template or DEFAULT_TEMPLATE
            await self.mark_processing()
            audio_url = await self.sign_file_url()
            transcript = await self.transcribe_audio(audio_url)
            summary = await self.generate_summary(transcript, template)
            await self.update_db(transcript, summary)
        except NotFoundError:
            raise
        except Exception as e:
            self.logger.error(
                f"File pipeline failed: {type(e).__name__}: {e}",
                exc_info=True,
            )
            try:
                await self.mark_error()
            except Exception as mark_exc:
                self.logger.error(
                    "Unable to mark job as error", error=str(mark_exc), exc_info=True
                )
            raise

        self.logger.info("File pipeline done")
        return {"job_id": self.event.job_id}


@shared_task(
    autoretry_for=(TranscriptionError, ProviderError),
    max_retries=settings.PIPELINE_MAX_RETRIES,
    retry_backoff=True,
)
@asynctask
async def task_pipeline_file_process(**payload):
    """Celery task for file pipeline processing"""
    event = AudioUploadedEvent.parse(payload)
    task_logger.info("File pipeline task", job_id=event.job_id)

    async with LLMAgent.from_settings() as agent:
        pipeline = PipelineMainFile(event, agent)
        return await pipeline.process()
