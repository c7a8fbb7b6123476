"""Channels API - Connection tests and health"""
from typing import Any, Dict
from fastapi import APIRouter, Depends
from pydantic import BaseModel

from ..deps import get_health_monitor
from ...domain.models import ChannelConfig, ConnectionTestResult
from ...domain.enums import ChannelStatus
from ...services.channel_health import ChannelHealthMonitor
from ...utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter()


class ChannelHealthResponse(BaseModel):
    status: ChannelStatus


@router.post("/test", response_model=ConnectionTestResult)
async def test_channel(
    config: Dict[str, Any],
    monitor: ChannelHealthMonitor = Depends(get_health_monitor)
):
    """
    Test a channel configuration.

    Always answers 200: a malformed configuration is reported as a failed
    test rather than a validation error. When the body carries an id the
    outcome is persisted on that channel.
    """
    return await monitor.test_channel_connection(config)


@router.post("/health", response_model=ChannelHealthResponse)
async def channel_health(
    config: ChannelConfig,
    monitor: ChannelHealthMonitor = Depends(get_health_monitor)
):
    """Classify a channel from its stored state"""
    return ChannelHealthResponse(status=monitor.get_health_status(config))


@router.post("/{channel_id}/activate", response_model=ConnectionTestResult)
async def activate_channel(
    channel_id: str,
    monitor: ChannelHealthMonitor = Depends(get_health_monitor)
):
    """Re-test a stored channel"""
    return await monitor.activate_channel(channel_id)


@router.post("/{channel_id}/deactivate", response_model=ChannelConfig)
async def deactivate_channel(
    channel_id: str,
    monitor: ChannelHealthMonitor = Depends(get_health_monitor)
):
    return await monitor.deactivate_channel(channel_id)
