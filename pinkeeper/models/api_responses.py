"""
API Request/Response Models

Pydantic models for the admin endpoints.
"""

from pydantic import BaseModel, Field, model_validator
from typing import Dict, List, Optional

from pinkeeper.models.pins import PinDecision


class SweepResponse(BaseModel):
    """Result of an on-demand sweep cycle."""

    status: str = Field(..., description="Status: success or error")
    channels: Dict[str, List[PinDecision]] = Field(
        default_factory=dict, description="Decisions per channel id"
    )
    actions_taken: int = Field(0, description="Decisions other than do_nothing that were applied")


class ArchiveRequest(BaseModel):
    """Thread to archive, addressed by ids or by permalink."""

    channel_id: Optional[str] = Field(None, description="Channel holding the thread")
    root_id: Optional[str] = Field(None, description="Root message id (Slack ts)")
    permalink: Optional[str] = Field(None, description="Slack permalink of the thread")
    requested_by: Optional[str] = Field(
        None, description="User id to notify privately when done"
    )

    @model_validator(mode="after")
    def _require_target(self):
        if not self.permalink and not (self.channel_id and self.root_id):
            raise ValueError("Provide either permalink or both channel_id and root_id")
        return self
