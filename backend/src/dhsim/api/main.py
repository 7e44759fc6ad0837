import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from dhsim import settings
from dhsim.api.routers.decisions import router as decisions_router
from dhsim.api.routers.rules import router as rules_router


@asynccontextmanager
async def lifespan(app: FastAPI):
    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    yield


app = FastAPI(title="Daggerheart Campaign Decider", lifespan=lifespan)


@app.get("/health")
def health():
    return {
        "status": "ok",
        "system_id": settings.SYSTEM_ID,
        "system_version": settings.SYSTEM_VERSION,
    }


app.include_router(decisions_router)
app.include_router(rules_router)
