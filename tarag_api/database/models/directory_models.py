from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class ItinerarySummary(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    title: str
    start_date: Optional[datetime] = Field(None, alias="startDate")
    end_date: Optional[datetime] = Field(None, alias="endDate")
