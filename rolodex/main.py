import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from rolodex.config import settings
from rolodex.database import init_db
from rolodex.routers import health, notifications, otp
from rolodex.services.sweeper import sweeper

logging.basicConfig(
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    level=settings.log_level,
)

app = FastAPI(title="Rolodex Backend")

app.add_middleware(
    CORSMiddleware,
    allow_origins=list(settings.cors_origins),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router)
app.include_router(health.router, prefix="/api")
app.include_router(otp.router, prefix="/api")
app.include_router(notifications.router, prefix="/api")
app.include_router(otp.router)  # Compatibility for clients calling /otp/* without /api.
app.include_router(notifications.router)


@app.on_event("startup")
def startup() -> None:
    init_db()
    if settings.sweep_interval_seconds > 0:
        sweeper.start()


@app.on_event("shutdown")
def shutdown() -> None:
    sweeper.stop()


@app.get("/")
def root():
    return {"status": "Backend running"}
