import celery
import structlog

from voxly.settings import settings

logger = structlog.get_logger(__name__)

app = celery.Celery(__name__)
app.conf.broker_url = settings.CELERY_BROKER_URL
app.conf.result_backend = settings.CELERY_RESULT_BACKEND
app.conf.broker_connection_retry_on_startup = True
app.conf.task_acks_late = True
app.autodiscover_tasks(
    [
        "voxly.pipelines.main_file_pipeline",
    ]
)

if settings.SENTRY_DSN:
    import sentry_sdk
    from sentry_sdk.integrations.celery import CeleryIntegration

    sentry_sdk.init(dsn=settings.SENTRY_DSN, integrations=[CeleryIntegration()])
    logger.info("Sentry enabled for worker")
