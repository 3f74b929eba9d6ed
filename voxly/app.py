from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.routing import APIRoute
from fastapi_pagination import add_pagination
from prometheus_fastapi_instrumentator import Instrumentator

import voxly.db  # noqa
from voxly.events import subscribers_shutdown, subscribers_startup
from voxly.llm import LLMAgent
from voxly.logger import logger
from voxly.settings import settings
from voxly.views.assistant import router as assistant_router
from voxly.views.jobs import router as jobs_router
from voxly.views.jobs_process import router as jobs_process_router

try:
    import sentry_sdk
except ImportError:
    sentry_sdk = None


@subscribers_startup.append
async def llm_agent_startup(app: FastAPI):
    app.state.llm_agent = LLMAgent.from_settings()


@subscribers_shutdown.append
async def llm_agent_shutdown(app: FastAPI):
    agent = getattr(app.state, "llm_agent", None)
    if agent is not None:
        await agent.aclose()


# lifespan events
@asynccontextmanager
async def lifespan(app: FastAPI):
    for func in subscribers_startup:
        await func(app)
    yield
    for func in subscribers_shutdown:
        await func(app)


# use sentry if available
if settings.SENTRY_DSN:
    if not sentry_sdk:
        logger.error("Sentry is not installed, avoided")
    else:
        logger.info("Sentry enabled")
        sentry_sdk.init(dsn=settings.SENTRY_DSN, traces_sample_rate=0.01)
else:
    logger.info("Sentry disabled")

# build app
app = FastAPI(lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_credentials=settings.CORS_ALLOW_CREDENTIALS or False,
    allow_origins=settings.CORS_ORIGIN.split(","),
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health")
async def health():
    return {"status": "healthy"}


# metrics
Instrumentator(
    excluded_handlers=["/docs", "/metrics"],
).instrument(app).expose(app)

# register views
app.include_router(jobs_router, prefix="/v1")
app.include_router(jobs_process_router, prefix="/v1")
app.include_router(assistant_router, prefix="/v1")
add_pagination(app)

# prepare celery
from voxly.worker import app as celery_app  # noqa


# simpler openapi id
def use_route_names_as_operation_ids(app: FastAPI) -> None:
    """
    Simplify operation IDs so that generated API clients have simpler function
    names. Should be called only after all routes have been added.
    """
    ensure_uniq_operation_ids = set()
    for route in app.routes:
        if isinstance(route, APIRoute):
            # /v1/jobs -> v1
            if route.path.startswith("/v"):
                version = route.path.split("/")[1]
                opid = f"{version}_{route.operation_id or route.name}"
            else:
                opid = route.name

            if opid in ensure_uniq_operation_ids:
                raise ValueError(
                    f"Operation ID '{route.name}' is not unique. "
                    "Please rename the route or the view function."
                )
            route.operation_id = opid
            ensure_uniq_operation_ids.add(opid)


use_route_names_as_operation_ids(app)


if __name__ == "__main__":
    import sys

    import uvicorn

    should_reload = "--reload" in sys.argv

    uvicorn.run("voxly.app:app", host="0.0.0.0", port=1250, reload=should_reload)
