import pytest
from datetime import date, datetime, timedelta
from typing import Dict, Generator, List, Optional

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from reminder_service.config.notification_settings import (
    NotificationCronConfig,
    NotificationSettings,
    PaginationSettings,
)
from reminder_service.db.models import (
    Activity,
    Base,
    DevicePlatform,
    MoodEntry,
    NotificationType,
    User,
    UserHiddenArticle,
    UserDevice,
    UserNotificationTracker,
    UserSurvey,
)
from reminder_service.schemas.notification_schemas import NotificationPayload
from reminder_service.services.notification_service_provider import (
    NotificationServiceProvider,
)
from reminder_service.services.notifications.concurrency_guard import ConcurrencyGuard
from reminder_service.services.notifications.job_queue import (
    NotificationsQueueService,
)
from reminder_service.services.notifications.push_channel import (
    MulticastResult,
    PushChannel,
    TokenResult,
)
from reminder_service.utils.errors import TransientDeliveryError


# Test database setup
TEST_DATABASE_URL = "sqlite:///:memory:"

# Fixed clock for eligibility tests
NOW = datetime(2026, 3, 10, 12, 0, 0)


@pytest.fixture
def test_engine():
    """Create test database engine."""
    engine = create_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db_session(test_engine) -> Generator[Session, None, None]:
    """Create a database session for each test."""
    session_maker = sessionmaker(bind=test_engine, class_=Session, expire_on_commit=False)
    session = session_maker()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


class FakeQueue(NotificationsQueueService):
    """Queue that records job envelopes instead of publishing them."""

    def __init__(self):
        super().__init__()
        self.jobs: List = []

    async def enqueue(self, job) -> str:
        self.jobs.append(job)
        return f"job-{len(self.jobs)}"

    def of_type(self, job_type: str) -> List:
        return [job for job in self.jobs if job.job_type == job_type]


class FakePushChannel(PushChannel):
    """
    Push channel with scripted per-token outcomes.

    Tokens listed in `rejected` fail with their error code; every other token
    succeeds. `transport_error` makes the whole call fail.
    """

    def __init__(
        self,
        rejected: Optional[Dict[str, str]] = None,
        transport_error: bool = False,
    ):
        self.rejected = rejected or {}
        self.transport_error = transport_error
        self.calls: List[List[str]] = []

    async def send_multicast(
        self, tokens: List[str], payload: NotificationPayload
    ) -> MulticastResult:
        self.calls.append(list(tokens))
        if self.transport_error:
            raise TransientDeliveryError("connection reset")

        return MulticastResult(
            responses=[
                TokenResult(success=False, error_code=self.rejected[t])
                if t in self.rejected
                else TokenResult(success=True)
                for t in tokens
            ]
        )


def make_settings(**overrides) -> NotificationSettings:
    values = dict(
        cron_expressions=NotificationCronConfig(
            inactivity="0 * * * *",
            mood="0 * * * *",
            surveys="0 * * * *",
            articles="0 * * * *",
            global_activity="0 * * * *",
        ),
        inactivity_threshold_days=3,
        mood_reminder_hour=10,
        survey_reminder_days=3,
        article_reminder_days=3,
        resend_cooldown_hours=24,
        pagination=PaginationSettings(page_size=20, delay_ms=0),
        broadcast_batch_size=50,
        broadcast_cooldown_hours=None,
        job_attempts=3,
        job_backoff_seconds=2,
        timezone="UTC",
    )
    values.update(overrides)
    return NotificationSettings(**values)


@pytest.fixture
def notification_config() -> NotificationSettings:
    return make_settings()


@pytest.fixture
def fake_queue() -> FakeQueue:
    return FakeQueue()


@pytest.fixture
def push_channel() -> FakePushChannel:
    return FakePushChannel()


@pytest.fixture
def guard() -> ConcurrencyGuard:
    return ConcurrencyGuard()


@pytest.fixture
def provider(db_session, notification_config, fake_queue, push_channel, guard):
    return NotificationServiceProvider(
        db_session,
        config=notification_config,
        queue=fake_queue,
        push_channel=push_channel,
        guard=guard,
    )


@pytest.fixture
def settings_factory():
    """Build notification settings with selected values overridden."""
    return make_settings


@pytest.fixture
def now() -> datetime:
    return NOW


# Test data factories
class DataFactory:
    def __init__(self, db: Session):
        self.db = db

    def _save(self, row):
        self.db.add(row)
        self.db.commit()
        return row

    def user(
        self,
        user_id: int,
        created_at: datetime = NOW - timedelta(days=365),
        updated_at: Optional[datetime] = None,
        roles: str = "user",
    ) -> User:
        return self._save(
            User(
                id=user_id,
                roles=roles,
                created_at=created_at,
                updated_at=updated_at or created_at,
            )
        )

    def device(
        self,
        user_id: int,
        token: str,
        is_active: bool = True,
        platform: DevicePlatform = DevicePlatform.ANDROID,
    ) -> UserDevice:
        return self._save(
            UserDevice(
                user_id=user_id, token=token, platform=platform, is_active=is_active
            )
        )

    def tracker(
        self,
        user_id: int,
        notification_type: NotificationType,
        last_sent_at: datetime,
    ) -> UserNotificationTracker:
        return self._save(
            UserNotificationTracker(
                user_id=user_id, type=notification_type, last_sent_at=last_sent_at
            )
        )

    def activity(self, user_id: int, at: datetime) -> Activity:
        return self._save(Activity(user_id=user_id, created_at=at, updated_at=at))

    def mood(self, user_id: int, mood_date: date, at: Optional[datetime] = None) -> MoodEntry:
        at = at or datetime.combine(mood_date, datetime.min.time())
        return self._save(
            MoodEntry(user_id=user_id, mood_date=mood_date, created_at=at, updated_at=at)
        )

    def survey(self, user_id: int, at: datetime) -> UserSurvey:
        return self._save(UserSurvey(user_id=user_id, created_at=at, updated_at=at))

    def hidden_article(self, user_id: int, at: datetime, article_id: int = 1) -> UserHiddenArticle:
        return self._save(
            UserHiddenArticle(user_id=user_id, article_id=article_id, created_at=at)
        )


@pytest.fixture
def factory(db_session) -> DataFactory:
    return DataFactory(db_session)
