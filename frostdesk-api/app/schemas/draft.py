from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel


class DraftSendResponse(BaseModel):
    success: bool
    draft_id: UUID
    sent_at: Optional[datetime] = None
    external_message_id: Optional[str] = None
    error_code: Optional[str] = None
    message: Optional[str] = None
