"""
Emails API Endpoints
Admin email sending and the public contact form
"""
from typing import List, Optional, Union

from fastapi import APIRouter, Depends
from pydantic import BaseModel, EmailStr, Field

from storefront.api.errors import http_error, unexpected_error
from storefront.core.auth import TokenUser, require_admin
from storefront.core.exceptions import ServiceError
from storefront.core.rate_limit import rate_limit
from storefront.services.email_service import EmailService

router = APIRouter()


class SendEmailRequest(BaseModel):
    to: Union[str, List[str]]
    subject: str
    html: str
    text: Optional[str] = None
    reply_to: Optional[str] = None
    cc: Optional[Union[str, List[str]]] = None
    bcc: Optional[Union[str, List[str]]] = None
    from_address: Optional[str] = Field(None, alias="from")
    from_name: Optional[str] = None


class CampaignEmailRequest(BaseModel):
    to: str
    from_address: str = Field(..., alias="from")
    subject: str
    html: str


class ContactFormRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    email: EmailStr
    subject: str = Field(..., min_length=1, max_length=300)
    message: str = Field(..., min_length=1, max_length=5000)


@router.post("/send")
async def send_email(request: SendEmailRequest, user: TokenUser = Depends(require_admin)):
    try:
        return await EmailService().send_email(
            to=request.to,
            subject=request.subject,
            html=request.html,
            text=request.text,
            reply_to=request.reply_to,
            cc=request.cc,
            bcc=request.bcc,
            from_address=request.from_address,
            from_name=request.from_name,
        )

    except ServiceError as e:
        raise http_error(e)
    except Exception:
        raise unexpected_error("sending email")


@router.post("/campaign")
async def send_campaign_email(request: CampaignEmailRequest, user: TokenUser = Depends(require_admin)):
    """One campaign recipient per call; the admin UI loops"""
    try:
        return await EmailService().send_campaign_email(
            to=request.to,
            from_address=request.from_address,
            subject=request.subject,
            html=request.html,
        )

    except ServiceError as e:
        raise http_error(e)
    except Exception:
        raise unexpected_error("sending campaign email")


@router.post("/contact", dependencies=[Depends(rate_limit(max_requests=5, window_seconds=60))])
async def submit_contact_form(request: ContactFormRequest):
    """
    Contact form: mail support, then auto-reply to the sender

    The auto-reply is best effort.
    """
    try:
        return await EmailService().send_contact_form(
            name=request.name,
            email=request.email,
            subject=request.subject,
            message=request.message,
        )

    except ServiceError as e:
        raise http_error(e)
    except Exception:
        raise unexpected_error("sending contact form")
