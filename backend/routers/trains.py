from fastapi import APIRouter, Depends

from backend.deps import get_service, get_state
from backend.models.responses import TrackerResponse
from backend.models.session import SessionState
from backend.routers.timetable import load_today
from backend.services.plot_data import build_tracker_payload
from backend.services.timetable_service import TimetableService

router = APIRouter(prefix="/api", tags=["trains"])


@router.get("/trains", response_model=TrackerResponse)
async def get_trains(
    debug: bool = False,
    session: SessionState = Depends(get_state),
    service: TimetableService = Depends(get_service),
) -> dict:
    if not session.loaded:
        load_today(session, service, debug=debug)
    return build_tracker_payload(session)
