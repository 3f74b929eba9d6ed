"""
Object storage for uploaded audio.

The pipeline only needs two things from a backend: store the bytes of an
upload, and hand out a time-limited url the transcription service can fetch
the audio from. Backends register under a short name and are built from the
settings sharing their prefix (`AUDIO_STORAGE_AWS_*` for `aws`).
"""

import importlib
from typing import BinaryIO, Union

from pydantic import BaseModel

from voxly.settings import settings


class StoragePermissionError(Exception):
    """The configured credentials cannot reach the bucket."""


class FileResult(BaseModel):
    filename: str
    url: str


class Storage:
    _backends: dict[str, type["Storage"]] = {}

    @classmethod
    def register(cls, name: str, storage_class: type["Storage"]):
        cls._backends[name] = storage_class

    @classmethod
    def get_instance(cls, name: str, settings_prefix: str = "") -> "Storage":
        if name not in cls._backends:
            importlib.import_module(f"voxly.storage.storage_{name}")

        # AUDIO_STORAGE_AWS_BUCKET_NAME -> aws_bucket_name
        options = settings.backend_options(
            f"{settings_prefix}{name.upper()}_", strip=settings_prefix
        )
        return cls._backends[name](**options)

    @property
    def bucket_name(self) -> str:
        raise NotImplementedError

    async def put_file(
        self, filename: str, data: Union[bytes, BinaryIO], bucket: str | None = None
    ) -> FileResult:
        """Store an upload under `filename`, in `bucket` or the default one."""
        return await self._put_file(filename, data, bucket=bucket)

    async def get_file_url(
        self,
        filename: str,
        operation: str = "get_object",
        expires_in: int = 3600,
        bucket: str | None = None,
    ) -> str:
        """Signed url for `filename`, valid for `expires_in` seconds."""
        return await self._get_file_url(
            filename, operation, expires_in, bucket=bucket
        )

    async def _put_file(
        self, filename: str, data: Union[bytes, BinaryIO], bucket: str | None = None
    ) -> FileResult:
        raise NotImplementedError

    async def _get_file_url(
        self,
        filename: str,
        operation: str = "get_object",
        expires_in: int = 3600,
        bucket: str | None = None,
    ) -> str:
        raise NotImplementedError
