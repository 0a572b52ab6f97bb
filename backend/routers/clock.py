from fastapi import APIRouter, Depends

from backend.deps import get_state
from backend.models.requests import StepClockRequest
from backend.models.responses import ClockResponse
from backend.models.session import SessionState
from utils import format_time

router = APIRouter(prefix="/api/clock", tags=["clock"])


def _clock_response(session: SessionState) -> ClockResponse:
    minutes = session.clock.current_minutes()
    return ClockResponse(live=session.clock.live, minutes=minutes, time=format_time(minutes))


@router.get("", response_model=ClockResponse)
async def get_clock(session: SessionState = Depends(get_state)) -> ClockResponse:
    return _clock_response(session)


@router.post("/step", response_model=ClockResponse)
async def step_clock(
    body: StepClockRequest,
    session: SessionState = Depends(get_state),
) -> ClockResponse:
    session.clock.step(body.minutes)
    return _clock_response(session)


@router.post("/live", response_model=ClockResponse)
async def go_live(session: SessionState = Depends(get_state)) -> ClockResponse:
    session.clock.go_live()
    return _clock_response(session)
