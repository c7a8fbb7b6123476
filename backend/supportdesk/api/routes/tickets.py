"""Ticket Automation API - Run the rule engine on ticket events"""
from typing import List
from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from ..deps import get_ticket_router
from ...domain.models import Agent, RoutingOutcome, Ticket
from ...domain.enums import Sentiment, TicketEvent
from ...services.ticket_router import TicketRouter
from ...utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter()


# =============================================================================
# Request Models
# =============================================================================

class ProcessTicketRequest(BaseModel):
    """Ticket event to automate"""
    ticket: Ticket
    agents: List[Agent] = Field(default_factory=list)
    event: TicketEvent = TicketEvent.CREATED


class SentimentRequest(BaseModel):
    text: str = ""


class SentimentResponse(BaseModel):
    sentiment: Sentiment


# =============================================================================
# Endpoints
# =============================================================================

@router.post("/process", response_model=RoutingOutcome)
async def process_ticket(
    request: ProcessTicketRequest,
    ticket_router: TicketRouter = Depends(get_ticket_router)
):
    """
    Run automation for a created or updated ticket.

    Returns the rule outcome plus the field changes the caller should commit.
    """
    if request.event == TicketEvent.UPDATED:
        return await ticket_router.on_ticket_updated(request.ticket, request.agents)
    return await ticket_router.on_ticket_created(request.ticket, request.agents)


@router.post("/sentiment", response_model=SentimentResponse)
async def analyze_sentiment(
    request: SentimentRequest,
    ticket_router: TicketRouter = Depends(get_ticket_router)
):
    """Keyword sentiment of free text"""
    return SentimentResponse(sentiment=ticket_router.engine.analyze_sentiment(request.text))
