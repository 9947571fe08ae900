"""
Pydantic models for the HomeDash report payload
Defines the application record and the envelope POSTed to the server
"""
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ApplicationRecord(BaseModel):
    """An application discovered from a workload's labels"""
    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(..., min_length=1)
    url: str = ""
    icon: str = ""
    comment: str = ""
    # True when the workload is a replica of a swarm service
    is_clustered: bool = Field(default=False, alias="swarm_container")


class ReportEnvelope(BaseModel):
    """Wire payload sent to ``/api/v1/applications``"""
    model_config = ConfigDict(populate_by_name=True)

    uuid: str
    applications: List[ApplicationRecord] = Field(default_factory=list, alias="containers")

    def to_json(self) -> str:
        """Serialize using the server's field names."""
        return self.model_dump_json(by_alias=True)


@dataclass
class ReportResult:
    """Result of a report attempt"""
    success: bool
    endpoint: str
    application_count: int
    timestamp: datetime
    status_code: Optional[int] = None
    error: Optional[str] = None
