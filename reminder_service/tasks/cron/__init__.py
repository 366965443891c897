from .reminder_scheduler import schedule_reminders_task, process_all_reminders_task

__all__ = [
    "schedule_reminders_task",
    "process_all_reminders_task",
]
