from .background import *
from .cron import *

__all__ = [
    "process_reminder_batch_task",
    "deliver_push_task",
    "broadcast_fanout_task",
    "broadcast_page_task",
    # Scheduled/Cron Tasks
    "schedule_reminders_task",
    "process_all_reminders_task",
]
