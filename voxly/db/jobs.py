import enum
from datetime import datetime, timezone
from typing import Any

import sqlalchemy
from pydantic import BaseModel, Field

from voxly.db import get_database, metadata
from voxly.utils import generate_uuid4


class JobStatus(enum.StrEnum):
    UPLOADED = "uploaded"
    PROCESSING = "processing"
    DONE = "done"
    ERROR = "error"


jobs = sqlalchemy.Table(
    "job",
    metadata,
    sqlalchemy.Column("id", sqlalchemy.String, primary_key=True),
    sqlalchemy.Column("storage_key", sqlalchemy.String, nullable=False),
    sqlalchemy.Column("template", sqlalchemy.String),
    sqlalchemy.Column(
        "status",
        sqlalchemy.String,
        nullable=False,
        server_default=JobStatus.UPLOADED.value,
    ),
    sqlalchemy.Column("transcript", sqlalchemy.Text),
    # summary fields, null until summarized
    sqlalchemy.Column("decisions", sqlalchemy.JSON),
    sqlalchemy.Column("key_points", sqlalchemy.JSON),
    sqlalchemy.Column("next_steps", sqlalchemy.JSON),
    sqlalchemy.Column("action_items", sqlalchemy.JSON),
    sqlalchemy.Column("created_at", sqlalchemy.DateTime(timezone=True)),
    sqlalchemy.Column("updated_at", sqlalchemy.DateTime(timezone=True)),
    sqlalchemy.Index("idx_job_status", "status"),
)


def now() -> datetime:
    return datetime.now(timezone.utc)


class Job(BaseModel):
    id: str = Field(default_factory=generate_uuid4)
    storage_key: str
    template: str | None = None
    status: JobStatus = JobStatus.UPLOADED
    transcript: str | None = None
    decisions: list[str] | None = None
    key_points: list[str] | None = None
    next_steps: list[str] | None = None
    action_items: list[dict[str, Any]] | None = None
    created_at: datetime = Field(default_factory=now)
    updated_at: datetime = Field(default_factory=now)

    @property
    def summary(self) -> dict[str, list] | None:
        if self.status != JobStatus.DONE:
            return None
        return {
            "decisions": self.decisions or [],
            "keyPoints": self.key_points or [],
            "nextSteps": self.next_steps or [],
            "actionItems": self.action_items or [],
        }


class JobController:
    async def get_all(
        self,
        status: JobStatus | None = None,
        order_by: str | None = None,
        return_query: bool = False,
    ) -> list[Job]:
        """
        Get all jobs

        Parameters:
        - `status`: only jobs in this status
        - `order_by`: field to order by, e.g. "-created_at"
        - `return_query`: return the query instead of running it (pagination)
        """
        query = jobs.select()
        if status:
            query = query.where(jobs.c.status == status.value)

        if order_by is not None:
            field = getattr(jobs.c, order_by.lstrip("-"))
            if order_by.startswith("-"):
                field = field.desc()
            query = query.order_by(field)

        if return_query:
            return query

        results = await get_database().fetch_all(query)
        return [Job(**result) for result in results]

    async def get_by_id(self, job_id: str) -> Job | None:
        """
        Get a job by id
        """
        query = jobs.select().where(jobs.c.id == job_id)
        result = await get_database().fetch_one(query)
        if not result:
            return None
        return Job(**result)

    async def add(self, storage_key: str, template: str | None = None) -> Job:
        """
        Add a new job, in `uploaded` state
        """
        job = Job(storage_key=storage_key, template=template)
        query = jobs.insert().values(**job.model_dump())
        await get_database().execute(query)
        return job

    async def update(self, job_id: str, values: dict) -> None:
        """
        Update job fields with key/values in values. Last write wins.
        """
        values = {**values, "updated_at": now()}
        query = jobs.update().where(jobs.c.id == job_id).values(**values)
        await get_database().execute(query)

    async def set_status(self, job_id: str, status: JobStatus) -> None:
        await self.update(job_id, {"status": status.value})


jobs_controller = JobController()
