"""API Dependencies - Common dependencies for routes"""
from fastapi import Request

from ..container import ServiceContainer
from ..engine.rule_store import RuleStore
from ..services.channel_health import ChannelHealthMonitor
from ..services.message_dispatcher import MessageDispatcher
from ..services.object_storage_service import ObjectStorageService
from ..services.ticket_router import TicketRouter


def get_container(request: Request) -> ServiceContainer:
    """Service container built during application startup"""
    return request.app.state.container


def get_rule_store(request: Request) -> RuleStore:
    return get_container(request).rule_store


def get_ticket_router(request: Request) -> TicketRouter:
    return get_container(request).router


def get_health_monitor(request: Request) -> ChannelHealthMonitor:
    return get_container(request).health_monitor


def get_dispatcher(request: Request) -> MessageDispatcher:
    return get_container(request).dispatcher


def get_storage_service(request: Request) -> ObjectStorageService:
    """
    Raises:
        StorageConfigurationError: No storage backend is configured
    """
    return get_container(request).require_storage()
