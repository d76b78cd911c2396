import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.clusters import get_query_service
from api.clusters import router as clusters_router
from clusters.settings import load_settings
from clusters.warmup import DEFAULT_BBOX, DEFAULT_ZOOMS, parse_bounding_box, run_warmup
from telemetry.singleton import close_query_log

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # MemoryCache is per-process: warm it here, not from a separate CLI run.
    if load_settings().warmup:
        logger.info("Warming map clusters cache on startup")
        run_warmup(
            get_query_service(),
            zooms=list(DEFAULT_ZOOMS),
            bbox=parse_bounding_box(DEFAULT_BBOX),
            force=True,
        )
    yield
    close_query_log()


app = FastAPI(title="Map clusters", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(clusters_router, prefix="/api")


@app.get("/health")
def health():
    return {"status": "ok"}
