"""Email API - Outbound mail and provider settings"""
from typing import Any, Dict
from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from ..deps import get_dispatcher
from ...domain.models import EmailData, EmailProviderInfo
from ...services.message_dispatcher import MessageDispatcher
from ...utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter()


class SendEmailResponse(BaseModel):
    success: bool


class UpdateProviderRequest(BaseModel):
    """Provider switch; settings keys depend on the provider"""
    provider: str
    settings: Dict[str, Any] = Field(default_factory=dict)


@router.post("/send", response_model=SendEmailResponse)
async def send_email(
    request: EmailData,
    dispatcher: MessageDispatcher = Depends(get_dispatcher)
):
    """
    Send one email through the active provider.

    Delivery failures are reported as success=false, not as HTTP errors.
    """
    return SendEmailResponse(success=await dispatcher.send_email(request))


@router.get("/provider", response_model=EmailProviderInfo)
async def get_provider(dispatcher: MessageDispatcher = Depends(get_dispatcher)):
    return dispatcher.get_provider_info()


@router.put("/provider", response_model=EmailProviderInfo)
async def update_provider(
    request: UpdateProviderRequest,
    dispatcher: MessageDispatcher = Depends(get_dispatcher)
):
    """Switch the active provider and its credentials at runtime"""
    return dispatcher.update_config(request.provider, **request.settings)
