from .reminder_batch import process_reminder_batch_task
from .push_delivery import deliver_push_task
from .broadcast import broadcast_fanout_task, broadcast_page_task

__all__ = [
    "process_reminder_batch_task",
    "deliver_push_task",
    "broadcast_fanout_task",
    "broadcast_page_task",
]
