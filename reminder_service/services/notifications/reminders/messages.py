from reminder_service.db.models import NotificationType
from reminder_service.schemas.notification_schemas import NotificationPayload


def inactivity_message(days_without_activity: int, threshold_days: int) -> NotificationPayload:
    days = max(days_without_activity, threshold_days)
    return NotificationPayload(
        title="It's been a while",
        body=f"You haven't added an activity in {days} days. Add a new one to keep your progress going!",
        data={"type": NotificationType.INACTIVITY_REMINDER.value},
    )


def mood_message() -> NotificationPayload:
    return NotificationPayload(
        title="How are you feeling today?",
        body="Time to log today's mood. It only takes a minute!",
        data={"type": NotificationType.MISSING_MOOD.value},
    )


def survey_message(days_pending: int) -> NotificationPayload:
    return NotificationPayload(
        title="You have a survey waiting",
        body=(
            f"A survey has been waiting for you for {days_pending} days. "
            "Your answers help us improve your recommendations."
        ),
        data={"type": NotificationType.PENDING_SURVEY.value},
    )


def article_message(days_pending: int) -> NotificationPayload:
    return NotificationPayload(
        title="New reading is waiting for you",
        body=f"You have unread articles. They've been waiting for you for {days_pending} days.",
        data={"type": NotificationType.UNREAD_ARTICLE.value},
    )


def global_inactivity_message(gap_days: int, tier_days: int) -> NotificationPayload:
    if tier_days >= 180:
        body = "You haven't opened the app in half a year. Drop by to refresh your goals and review your progress."
    elif tier_days >= 30:
        body = "It's been a month without activity. Come back, we have new ideas and recommendations for you."
    else:
        body = "Two weeks without activity. Now is a great time to take the next step toward your goals!"

    return NotificationPayload(
        title="Let's get back to your habits",
        body=body,
        data={
            "type": NotificationType.GLOBAL_INACTIVITY_REMINDER.value,
            "daysWithoutActivity": str(gap_days),
        },
    )


def suggested_activities_message() -> NotificationPayload:
    return NotificationPayload(
        title="New activities are ready",
        body="We've refreshed your suggested activities. Take a look and pick the ones that suit you!",
        data={"type": NotificationType.SUGGESTED_ACTIVITIES_READY.value},
    )
