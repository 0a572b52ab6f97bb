from backend.models.session import SessionState
from backend.services.timetable_service import TimetableService, get_timetable_service

# One tracker (timetable + clock) per API process.
_session = SessionState()


def get_state() -> SessionState:
    return _session


def get_service() -> TimetableService:
    return get_timetable_service()
