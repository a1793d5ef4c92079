import logging
from contextlib import asynccontextmanager

from dotenv import load_dotenv

# Load environment variables before anything reads app.settings
load_dotenv()

from fastapi import FastAPI

from app import settings
from app.engine.red_flags import default_rules
from app.routes_dashboard import router as dashboard_router

# Logging setup (structured-ish JSON)
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL, logging.INFO),
    format='{"time":"%(asctime)s","level":"%(levelname)s","message":"%(message)s","module":"%(name)s"}',
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI):
    # Fail fast on a broken rule table rather than on the first request
    rules = default_rules()
    logger.info(f"Red flag rules active: {[r.rule_id for r in rules]}")
    yield


app = FastAPI(title="ESG Dashboard Metric Engine", lifespan=lifespan)
app.include_router(dashboard_router)


@app.get("/")
def read_root():
    return {"message": "ESG dashboard metric engine is running."}


@app.get("/health")
def health_check():
    try:
        rule_count = len(default_rules())
        return {"status": "ok", "red_flag_rules": rule_count, "upstream": settings.ESG_API_BASE_URL}
    except (OSError, ValueError) as e:
        return {"status": "error", "error": str(e)}
