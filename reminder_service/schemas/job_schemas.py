"""
Queue message schemas.

Every job travels as a JSON envelope tagged with `job_type`. Producers build the
concrete model and dump it with `model_dump(mode="json")`; consumers call
`decode_job` at the task boundary and get back the concrete model.
"""

from datetime import datetime
from typing import Annotated, Any, Dict, List, Literal, Type, TypeVar, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from reminder_service.db.models import NotificationType
from reminder_service.schemas.notification_schemas import NotificationPayload


class JobOptions(BaseModel):
    attempts: int = Field(default=3, ge=1)
    backoff_seconds: int = Field(default=2, ge=0)

    def countdown_for(self, retries: int) -> int:
        """Exponential backoff delay before retry number `retries + 1`."""
        return self.backoff_seconds * (2**retries)


class _Job(BaseModel):
    model_config = ConfigDict(frozen=True)

    options: JobOptions = Field(default_factory=JobOptions)


JobT = TypeVar("JobT", bound=_Job)

class ScheduleReminderJob(_Job):
    job_type: Literal["schedule-reminder"] = "schedule-reminder"
    reminder_type: NotificationType


class ReminderBatchJob(_Job):
    job_type: Literal["reminder-batch"] = "reminder-batch"
    reminder_type: NotificationType
    user_ids: List[int]
    as_of: datetime


class PushDeliveryJob(_Job):
    job_type: Literal["push-delivery"] = "push-delivery"
    user_id: int
    notification_type: NotificationType
    payload: NotificationPayload


class BroadcastFanoutJob(_Job):
    job_type: Literal["broadcast-fanout"] = "broadcast-fanout"
    payload: NotificationPayload


class BroadcastPageJob(_Job):
    job_type: Literal["broadcast-page"] = "broadcast-page"
    user_ids: List[int]
    payload: NotificationPayload


NotificationJob = Annotated[
    Union[
        ScheduleReminderJob,
        ReminderBatchJob,
        PushDeliveryJob,
        BroadcastFanoutJob,
        BroadcastPageJob,
    ],
    Field(discriminator="job_type"),
]

_job_adapter: TypeAdapter = TypeAdapter(NotificationJob)


def decode_job(data: Dict[str, Any]) -> NotificationJob:
    """Validate a raw queue message into its concrete job model."""
    return _job_adapter.validate_python(data)


def decode_job_as(data: Dict[str, Any], expected: Type[JobT]) -> JobT:
    """
    Decode a queue message and check it is the job type the consumer handles.

    Raises:
        ValueError: malformed envelope (pydantic ValidationError) or wrong job type
    """
    job = decode_job(data)
    if not isinstance(job, expected):
        raise ValueError(f"Unexpected job type: {job.job_type}")
    return job


def encode_job(job: _Job) -> Dict[str, Any]:
    return job.model_dump(mode="json")
