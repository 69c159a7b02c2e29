
from pydantic import BaseModel, ConfigDict
from typing import Optional
from datetime import datetime

# Request bodies are parsed leniently; handlers emit the specific error codes.
class CheckInput(BaseModel):
    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)

    phone: Optional[str] = None

class ReportInput(BaseModel):
    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)

    phone: Optional[str] = None
    reason: Optional[str] = None
    customReason: Optional[str] = None

class ReportCreated(BaseModel):
    message: str
    id: str
    timestamp: datetime

class StatsResponse(BaseModel):
    totalReports: int
    lastUpdated: Optional[datetime] = None
