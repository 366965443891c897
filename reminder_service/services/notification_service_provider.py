from typing import Optional

from sqlalchemy.orm import Session

from reminder_service.config.notification_settings import (
    NotificationSettings,
    notification_settings_provider,
)
from reminder_service.db.models import NotificationType
from reminder_service.providers.reminder_signal_provider import ReminderSignalProvider
from reminder_service.schemas.job_schemas import JobOptions
from reminder_service.services.notifications.batch_enqueuer import BatchEnqueuer
from reminder_service.services.notifications.broadcast_service import BroadcastService
from reminder_service.services.notifications.concurrency_guard import (
    ConcurrencyGuard,
    scheduler_guard,
)
from reminder_service.services.notifications.delivery_service import (
    DeliveryOrchestrator,
)
from reminder_service.services.notifications.device_registry import (
    DeviceRegistryService,
)
from reminder_service.services.notifications.job_queue import (
    NotificationsQueueService,
)
from reminder_service.services.notifications.push_channel import (
    FirebasePushChannel,
    PushChannel,
)
from reminder_service.services.notifications.reminders import (
    BaseReminderEvaluator,
    ReminderEvaluatorRegistry,
)
from reminder_service.services.notifications.scheduler_service import (
    ReminderSchedulerService,
)
from reminder_service.services.notifications.tracker import NotificationTrackerService

_push_channel: Optional[PushChannel] = None


def get_push_channel() -> PushChannel:
    """Process-wide push channel; the Firebase app is initialised on first send."""
    global _push_channel
    if _push_channel is None:
        _push_channel = FirebasePushChannel()
    return _push_channel


class NotificationServiceProvider:
    """Wires the notification services around one database session."""

    def __init__(
        self,
        db_session: Session,
        config: Optional[NotificationSettings] = None,
        queue: Optional[NotificationsQueueService] = None,
        push_channel: Optional[PushChannel] = None,
        guard: Optional[ConcurrencyGuard] = None,
        request_id: Optional[str] = None,
    ):
        self.db = db_session
        self.config = config or notification_settings_provider.get_notification_settings()
        self.queue = queue or NotificationsQueueService(
            options=JobOptions(
                attempts=self.config.job_attempts,
                backoff_seconds=self.config.job_backoff_seconds,
            ),
            request_id=request_id,
        )
        self._push_channel = push_channel
        self.guard = guard or scheduler_guard

        self.devices = DeviceRegistryService(db_session)
        self.tracker = NotificationTrackerService(db_session)
        self.signals = ReminderSignalProvider(db_session)

    @property
    def delivery(self) -> DeliveryOrchestrator:
        return DeliveryOrchestrator(
            devices=self.devices,
            tracker=self.tracker,
            queue=self.queue,
            push_channel=self._push_channel,
            resend_cooldown_hours=self.config.resend_cooldown_hours,
        )

    def delivery_worker(self) -> DeliveryOrchestrator:
        """Delivery orchestrator with a push channel, for the delivery task."""
        orchestrator = self.delivery
        if orchestrator.push_channel is None:
            orchestrator.push_channel = get_push_channel()
        return orchestrator

    @property
    def enqueuer(self) -> BatchEnqueuer:
        return BatchEnqueuer(self.devices, self.queue, self.config.pagination)

    @property
    def broadcast(self) -> BroadcastService:
        cooldown = self.config.broadcast_cooldown_hours
        return BroadcastService(
            devices=self.devices,
            queue=self.queue,
            delivery=self.delivery,
            batch_size=self.config.broadcast_batch_size,
            cooldown_hours=(
                self.config.resend_cooldown_hours if cooldown is None else cooldown
            ),
        )

    @property
    def scheduler(self) -> ReminderSchedulerService:
        return ReminderSchedulerService(self.enqueuer, self.delivery, self.guard)

    def evaluator(
        self, reminder_type: NotificationType
    ) -> Optional[BaseReminderEvaluator]:
        return ReminderEvaluatorRegistry.create_evaluator(
            reminder_type, self.signals, self.tracker, self.delivery, self.config
        )
