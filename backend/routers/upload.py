from fastapi import APIRouter, Depends, File, HTTPException, UploadFile

from backend.deps import get_state
from backend.models.responses import UploadResponse
from backend.models.session import SessionState
from backend.services.timetable_service import load_timetable_content

router = APIRouter(prefix="/api", tags=["upload"])


@router.post("/upload", response_model=UploadResponse)
async def upload_file(
    file: UploadFile = File(...),
    session: SessionState = Depends(get_state),
) -> UploadResponse:
    file_bytes = await file.read()
    filename = file.filename or ""

    if not filename.lower().endswith(".json"):
        raise HTTPException(status_code=400, detail="Unsupported file format. Use a .json timetable.")

    try:
        result = load_timetable_content(file_bytes, session, source=filename)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=f"Could not load timetable: {exc}")

    return UploadResponse(
        ok=True,
        changed=result["changed"],
        name=result.get("name"),
        date=result.get("date"),
        message="OK" if result["changed"] else "Timetable unchanged",
    )
