import logging

from fastapi import FastAPI
from app.api.routes import shift_generation, shifts
from app.core.config import settings

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(title="GuardShift API", version="0.1.0")

app.include_router(shift_generation.router, prefix="/api/v1")
app.include_router(shifts.router, prefix="/api/v1")


@app.get("/health")
def health_check():
    return {"status": "ok"}
