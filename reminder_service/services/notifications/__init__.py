from .device_registry import DeviceRegistryService
from .tracker import NotificationTrackerService
from .job_queue import NotificationsQueueService
from .push_channel import FirebasePushChannel, MulticastResult, PushChannel, TokenResult
from .delivery_service import DeliveryOrchestrator
from .batch_enqueuer import BatchEnqueuer
from .broadcast_service import BroadcastService
from .concurrency_guard import ConcurrencyGuard, RedisConcurrencyGuard
from .scheduler_service import ReminderSchedulerService

__all__ = [
    "DeviceRegistryService",
    "NotificationTrackerService",
    "NotificationsQueueService",
    "FirebasePushChannel",
    "MulticastResult",
    "PushChannel",
    "TokenResult",
    "DeliveryOrchestrator",
    "BatchEnqueuer",
    "BroadcastService",
    "ConcurrencyGuard",
    "RedisConcurrencyGuard",
    "ReminderSchedulerService",
]
