import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from fastapi.responses import FileResponse

from backend.config import STATIC_DIR
from backend.logging_config import setup_logging
from backend.routers import clock, timetable, trains, upload

setup_logging()
logger = logging.getLogger(__name__)

app = FastAPI(title="Live Train Tracker")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

# API routers
app.include_router(timetable.router)
app.include_router(trains.router)
app.include_router(clock.router)
app.include_router(upload.router)


# Serve built SPA static files (production)
if STATIC_DIR.is_dir():
    logger.info("Serving static frontend from %s", STATIC_DIR)
    app.mount("/assets", StaticFiles(directory=str(STATIC_DIR / "assets")), name="assets")

    @app.get("/{full_path:path}")
    async def serve_spa(full_path: str) -> FileResponse:
        file_path = STATIC_DIR / full_path
        if file_path.is_file():
            return FileResponse(str(file_path))
        return FileResponse(str(STATIC_DIR / "index.html"))
