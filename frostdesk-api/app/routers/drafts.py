from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from app.config import settings
from app.database import get_db
from app.schemas.draft import DraftSendResponse
from app.services.outbound_service import send_draft
from app.services.whatsapp_service import WhatsAppCloudSender

router = APIRouter(prefix="/drafts", tags=["drafts"])


def get_sender() -> WhatsAppCloudSender:
    if not settings.meta_whatsapp_token or not settings.meta_whatsapp_phone_number_id:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="WhatsApp sender not configured")
    return WhatsAppCloudSender(
        settings.meta_whatsapp_token,
        settings.meta_whatsapp_phone_number_id,
        settings.meta_whatsapp_api_version,
    )


@router.post("/{draft_id}/send", response_model=DraftSendResponse)
def send(draft_id: UUID, request: Request, db: Session = Depends(get_db), sender=Depends(get_sender)):
    """Send an approved draft. Rate-limited sends answer 429 and can be retried."""
    result = send_draft(db, draft_id, sender, request.app.state.outbound_bucket)
    if result.ok:
        db.commit()
        draft = result.value
        return DraftSendResponse(
            success=True,
            draft_id=draft_id,
            sent_at=draft.sent_at,
            external_message_id=draft.external_message_id,
        )

    if result.error_code == "not_found":
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=result.error)
    if result.error_code in ("already_sent", "ai_send_blocked"):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=result.error)
    if result.error_code == "rate_limited":
        raise HTTPException(status_code=status.HTTP_429_TOO_MANY_REQUESTS, detail=result.error)
    return DraftSendResponse(success=False, draft_id=draft_id, error_code=result.error_code, message=result.error)
