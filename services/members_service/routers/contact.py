"""Public contact form."""

from fastapi import APIRouter, HTTPException, Request, status
from libs.common.emails.store import send_contact_form_email
from libs.common.logging import get_logger
from libs.common.rate_limit import limiter
from services.members_service.schemas import ContactRequest

router = APIRouter(tags=["contact"])
logger = get_logger(__name__)


@router.post("/contact")
@limiter.limit("5/minute")
async def submit_contact_form(request: Request, payload: ContactRequest):
    """Forward a contact form submission to the store inbox."""
    sent = await send_contact_form_email(
        name=payload.name,
        email=payload.email,
        subject=payload.subject,
        message=payload.message,
    )
    if not sent:
        logger.error(
            "Contact form message could not be delivered",
            extra={"extra_fields": {"from_email": payload.email}},
        )
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Unable to send your message right now. Please try again later.",
        )
    return {"message": "Thank you for your message. We will get back to you soon."}
