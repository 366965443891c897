from celery import Celery

# Create Celery app
celery = Celery("reminder_service")

# Load configuration from reminder_service.config.celeryconfig module
celery.config_from_object("reminder_service.config.celeryconfig")
