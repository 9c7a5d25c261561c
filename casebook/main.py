# casebook/main.py
import logging

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from casebook.core.config import settings
from casebook.database import engine
from casebook.migrations import run_migrations
from casebook.routers import admin, auth, case_studies, profile, quest_routes

load_dotenv()

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title=settings.APP_NAME)

# CORS with credentials (for cookie sessions)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOW_ORIGINS,
    allow_credentials=settings.ALLOW_CREDENTIALS,
    allow_methods=settings.ALLOW_METHODS,
    allow_headers=settings.ALLOW_HEADERS,
)


@app.get("/")
def read_root():
    return {"message": "Casebook backend running"}


# Routers
app.include_router(auth.router)
app.include_router(case_studies.router)
app.include_router(quest_routes.router)
app.include_router(profile.router)
app.include_router(admin.router)


@app.exception_handler(Exception)
async def _unhandled_exception_handler(request: Request, exc: Exception):
    # Details stay in the server log
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"detail": "Something went wrong. Please try again later."})


@app.on_event("startup")
def on_startup():
    applied = run_migrations(engine)
    if applied:
        logger.info("Schema migrations applied: %s", applied)
