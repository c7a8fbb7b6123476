"""Service modules - Channel, email and storage backends"""
from .channel_health import ChannelHealthMonitor, ChannelStateMachine, get_channel_health_status
from .message_dispatcher import MessageDispatcher
from .email_providers import build_email_providers
from .storage_providers import build_storage_provider
from .object_storage_service import ObjectStorageService
from .ticket_router import TicketRouter, ManagementNotifier

__all__ = [
    "ChannelHealthMonitor",
    "ChannelStateMachine",
    "get_channel_health_status",
    "MessageDispatcher",
    "build_email_providers",
    "build_storage_provider",
    "ObjectStorageService",
    "TicketRouter",
    "ManagementNotifier",
]
