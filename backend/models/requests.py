from pydantic import BaseModel, Field


class StepClockRequest(BaseModel):
    minutes: int = Field(default=5, ge=-1439, le=1439)
