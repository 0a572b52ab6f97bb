import datetime as dt
import logging

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse, Response

from backend.config import settings
from backend.deps import get_service, get_state
from backend.models.responses import UploadResponse
from backend.models.session import SessionState
from backend.services.timetable_service import (
    InvalidTimetableError,
    TimetableNotFoundError,
    TimetableService,
    load_for_date,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["timetable"])

NOT_FOUND_DETAIL = "No timetable found for the current date"
FAILURE_DETAIL = "An error occurred while retrieving the timetable"


def load_today(
    session: SessionState,
    service: TimetableService,
    debug: bool = False,
    force: bool = False,
) -> dict:
    """Load today's timetable into the session, mapping failures to HTTP errors.

    On failure the previously loaded timetable stays in place.
    """
    try:
        return load_for_date(session, service, debug=debug, force=force)
    except TimetableNotFoundError:
        logger.warning("Timetable not found")
        raise HTTPException(status_code=404, detail=NOT_FOUND_DETAIL)
    except InvalidTimetableError:
        logger.exception("Timetable file is not valid JSON")
        raise HTTPException(status_code=500, detail=FAILURE_DETAIL)
    except ValueError as exc:
        logger.error("Timetable could not be loaded: %s", exc)
        raise HTTPException(status_code=422, detail=f"Invalid timetable: {exc}")
    except OSError:
        logger.exception("Error retrieving timetable")
        raise HTTPException(status_code=500, detail=FAILURE_DETAIL)


@router.get("/timetable")
async def get_timetable(
    debug: bool = False,
    service: TimetableService = Depends(get_service),
) -> Response:
    logger.info("Getting timetable for current date")
    today = dt.datetime.now(settings.tz).date()
    try:
        content = service.get_timetable_for_date(today, debug=debug)
    except TimetableNotFoundError:
        logger.warning("Timetable not found for %s", today)
        return JSONResponse(status_code=404, content={"error": NOT_FOUND_DETAIL})
    except (OSError, ValueError):
        logger.exception("Error retrieving timetable")
        return JSONResponse(status_code=500, content={"error": FAILURE_DETAIL})
    return Response(content=content, media_type="application/json")


@router.post("/timetable/reload", response_model=UploadResponse)
async def reload_timetable(
    debug: bool = False,
    session: SessionState = Depends(get_state),
    service: TimetableService = Depends(get_service),
) -> UploadResponse:
    # reread the files and replace the timetable even when the content is unchanged
    service.clear_cache()
    result = load_today(session, service, debug=debug, force=True)
    return UploadResponse(ok=True, changed=result["changed"], name=result.get("name"),
                          date=result.get("date"), message="OK")


@router.get("/health")
async def health(service: TimetableService = Depends(get_service)) -> JSONResponse:
    logger.info("Health check requested")
    status, healthy = service.health_status()
    return JSONResponse(status_code=200 if healthy else 503, content=status)
