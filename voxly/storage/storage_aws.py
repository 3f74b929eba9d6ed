"""
S3 audio storage.

`AUDIO_STORAGE_AWS_BUCKET_NAME` may carry a folder (`bucket/uploads`): every
key is then stored below that folder. Without explicit keys the default AWS
credential chain is used.
"""

from functools import wraps
from typing import BinaryIO, Union

import aioboto3
from botocore.config import Config
from botocore.exceptions import ClientError

from voxly.logger import logger
from voxly.storage.base import FileResult, Storage, StoragePermissionError

# S3 answers with these when the credentials cannot use the bucket
PERMISSION_ERROR_CODES = ("AccessDenied", "NoSuchBucket")


def raise_permission_errors(action: str):
    def decorator(func):
        @wraps(func)
        async def wrapper(self, filename, *args, bucket=None, **kwargs):
            try:
                return await func(self, filename, *args, bucket=bucket, **kwargs)
            except ClientError as e:
                code = e.response.get("Error", {}).get("Code")
                if code not in PERMISSION_ERROR_CODES:
                    raise
                which = "overridden" if bucket else "default"
                raise StoragePermissionError(
                    f"Cannot {action} {filename!r} in {which} bucket "
                    f"'{bucket or self.bucket_name}': {code}. "
                    "Check the AUDIO_STORAGE_AWS_* credentials."
                ) from e

        return wrapper

    return decorator


class AwsStorage(Storage):
    def __init__(
        self,
        aws_bucket_name: str,
        aws_region: str,
        aws_access_key_id: str | None = None,
        aws_secret_access_key: str | None = None,
    ):
        if not aws_bucket_name:
            raise ValueError("AwsStorage requires `aws_bucket_name`")
        if not aws_region:
            raise ValueError("AwsStorage requires `aws_region`")
        if bool(aws_access_key_id) != bool(aws_secret_access_key):
            raise ValueError(
                "AwsStorage requires both `aws_access_key_id` and "
                "`aws_secret_access_key`, or none of them"
            )

        bucket, _, folder = aws_bucket_name.partition("/")
        self._bucket_name = bucket
        self.aws_folder = folder.strip("/")
        self.boto_config = Config(
            retries={"max_attempts": 3, "mode": "adaptive"},
            signature_version="s3v4",
        )
        self.session = aioboto3.Session(
            aws_access_key_id=aws_access_key_id,
            aws_secret_access_key=aws_secret_access_key,
            region_name=aws_region,
        )

    @property
    def bucket_name(self) -> str:
        return self._bucket_name

    def _s3_key(self, filename: str) -> str:
        if not self.aws_folder:
            return filename
        return f"{self.aws_folder}/{filename}"

    @raise_permission_errors("upload")
    async def _put_file(
        self, filename: str, data: Union[bytes, BinaryIO], *, bucket: str | None = None
    ) -> FileResult:
        target = bucket or self.bucket_name
        key = self._s3_key(filename)
        logger.info("Uploading audio", bucket=target, key=key)

        async with self.session.client("s3", config=self.boto_config) as client:
            if isinstance(data, bytes):
                await client.put_object(Bucket=target, Key=key, Body=data)
            else:
                await client.upload_fileobj(data, Bucket=target, Key=key)

        url = await self._get_file_url(filename, bucket=bucket)
        return FileResult(filename=filename, url=url)

    @raise_permission_errors("sign")
    async def _get_file_url(
        self,
        filename: str,
        operation: str = "get_object",
        expires_in: int = 3600,
        *,
        bucket: str | None = None,
    ) -> str:
        async with self.session.client("s3", config=self.boto_config) as client:
            return await client.generate_presigned_url(
                operation,
                Params={
                    "Bucket": bucket or self.bucket_name,
                    "Key": self._s3_key(filename),
                },
                ExpiresIn=expires_in,
            )


Storage.register("aws", AwsStorage)
