import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from starlette.responses import Response

from app.api.change_logs import router as change_logs_router
from app.api.config_entities import router as config_entities_router
from app.api.deps import require_actor
from app.api.scopes import router as scopes_router
from app.api.subsidiaries import router as subsidiaries_router
from app.api.talents import router as talents_router
from app.api.tenants import router as tenants_router
from app.config import settings
from app.errors import register_error_handlers
from app.logging import configure_logging
from app.observability import ObservabilityMiddleware

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting %s", settings.app_title)
    yield


app = FastAPI(title=settings.app_title, lifespan=lifespan)

configure_logging()
app.add_middleware(ObservabilityMiddleware)
register_error_handlers(app)


def _include_api_router(router, dependencies=None):
    app.include_router(router, dependencies=dependencies)
    app.include_router(router, prefix="/api/v1", dependencies=dependencies)


_include_api_router(tenants_router, dependencies=[Depends(require_actor)])
_include_api_router(scopes_router, dependencies=[Depends(require_actor)])
_include_api_router(subsidiaries_router, dependencies=[Depends(require_actor)])
_include_api_router(talents_router, dependencies=[Depends(require_actor)])
_include_api_router(config_entities_router, dependencies=[Depends(require_actor)])
_include_api_router(change_logs_router, dependencies=[Depends(require_actor)])


@app.get("/health")
def health_check():
    return {"status": "ok"}


@app.get("/metrics")
def metrics():
    data = generate_latest()
    return Response(content=data, media_type=CONTENT_TYPE_LATEST)
