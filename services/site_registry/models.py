from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class SiteBuildRequest(BaseModel):
    html: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None


class SiteSummary(BaseModel):
    site_id: str
    metadata: Dict[str, Any] = Field(default_factory=dict)
    created_at: datetime
    updated_at: datetime


class SiteRecord(SiteSummary):
    html: str
