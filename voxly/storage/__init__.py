from .base import Storage  # noqa
from voxly.settings import settings


def get_audio_storage() -> Storage:
    """
    Get storage holding the uploaded audio files.

    A `bucket` argument on each operation overrides the configured bucket,
    e.g. for uploads that landed in another bucket:
        storage = get_audio_storage()
        url = await storage.get_file_url(key, bucket=event.bucket)
    """
    assert settings.AUDIO_STORAGE_BACKEND
    return Storage.get_instance(
        name=settings.AUDIO_STORAGE_BACKEND,
        settings_prefix="AUDIO_STORAGE_",
    )
