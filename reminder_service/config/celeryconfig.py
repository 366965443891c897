from .settings import settings
from .notification_settings import (
    notification_settings_provider,
    crontab_from_expression,
)

_redis_auth = f":{settings.REDIS_PASSWORD}@" if settings.REDIS_PASSWORD else ""

# Basic Celery Configuration
broker_url = f"redis://{_redis_auth}{settings.REDIS_HOST}:{settings.REDIS_PORT}/{settings.REDIS_DB}"
result_backend = f"redis://{_redis_auth}{settings.REDIS_HOST}:{settings.REDIS_PORT}/{settings.REDIS_DB}"

# Task Discovery
include = ["reminder_service.tasks"]

# Timezone Configuration
timezone = settings.CELERY_TIMEZONE
enable_utc = True

# Task Result Configuration
result_expires = 3600

# Task Serialization
task_serializer = "json"
accept_content = ["json"]
result_serializer = "json"

# Task Execution Configuration
task_track_started = True
task_time_limit = 30 * 60  # 30 minutes
task_soft_time_limit = 25 * 60  # 25 minutes

# Worker Configuration
worker_prefetch_multiplier = 1
worker_max_tasks_per_child = 1000

# Task Retry Configuration
task_acks_late = True
task_reject_on_worker_lost = True
task_default_retry_delay = 2
task_max_retries = 3

# Exponential Backoff Settings
task_retry_backoff = True
task_retry_backoff_max = 700  # Max 700 seconds
task_retry_jitter = False

# One beat entry per reminder kind, each on its own cron expression
_cron = notification_settings_provider.get_notification_settings().cron_expressions
_schedule_task = "reminder_service.tasks.cron.reminder_scheduler.schedule_reminders_task"

beat_schedule = {
    "notifications-inactivity": {
        "task": _schedule_task,
        "schedule": crontab_from_expression(_cron.inactivity),
        "args": ("notifications_inactivity_cron", "inactivity-reminder"),
    },
    "notifications-mood": {
        "task": _schedule_task,
        "schedule": crontab_from_expression(_cron.mood),
        "args": ("notifications_mood_cron", "missing-mood"),
    },
    "notifications-surveys": {
        "task": _schedule_task,
        "schedule": crontab_from_expression(_cron.surveys),
        "args": ("notifications_surveys_cron", "pending-survey"),
    },
    "notifications-articles": {
        "task": _schedule_task,
        "schedule": crontab_from_expression(_cron.articles),
        "args": ("notifications_articles_cron", "unread-article"),
    },
    "notifications-global-activity": {
        "task": _schedule_task,
        "schedule": crontab_from_expression(_cron.global_activity),
        "args": ("notifications_global_activity_cron", "global-inactivity-reminder"),
    },
}

# Default Queue
task_default_queue = "notifications"

# Beat Scheduler Configuration
beat_schedule_filename = "tmp/celerybeat-schedule"
