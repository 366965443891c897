import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import List, Optional

import firebase_admin
from firebase_admin import credentials, messaging
from firebase_admin.exceptions import FirebaseError

from reminder_service.config.settings import settings
from reminder_service.schemas.notification_schemas import NotificationPayload
from reminder_service.utils.errors import TransientDeliveryError
from reminder_service.utils.logging import get_logger

logger = get_logger()

# FCM rejects multicast messages with more tokens than this
MULTICAST_TOKEN_LIMIT = 500


@dataclass
class TokenResult:
    success: bool
    error_code: Optional[str] = None


@dataclass
class MulticastResult:
    """Per-token outcomes, aligned index for index with the tokens sent."""

    responses: List[TokenResult] = field(default_factory=list)

    @property
    def success_count(self) -> int:
        return sum(1 for r in self.responses if r.success)

    @property
    def failure_count(self) -> int:
        return len(self.responses) - self.success_count

    def failed_indexes(self) -> List[int]:
        return [i for i, r in enumerate(self.responses) if not r.success]


class PushChannel(ABC):
    @abstractmethod
    async def send_multicast(
        self, tokens: List[str], payload: NotificationPayload
    ) -> MulticastResult:
        """Send one payload to many device tokens.

        Raises:
            TransientDeliveryError: the call itself failed and nothing can be
                said about individual tokens.
        """
        pass


class FirebasePushChannel(PushChannel):
    """Push channel backed by Firebase Cloud Messaging."""

    def __init__(
        self,
        credentials_path: Optional[str] = None,
        project_id: Optional[str] = None,
        app_name: str = "reminder-service",
    ):
        self.credentials_path = credentials_path or settings.FIREBASE_CREDENTIALS_PATH
        self.project_id = project_id or settings.FIREBASE_PROJECT_ID
        self.app_name = app_name
        self._app: Optional[firebase_admin.App] = None

    def _get_app(self) -> firebase_admin.App:
        if self._app is not None:
            return self._app

        try:
            self._app = firebase_admin.get_app(self.app_name)
        except ValueError:
            options = {"projectId": self.project_id} if self.project_id else None
            self._app = firebase_admin.initialize_app(
                credentials.Certificate(self.credentials_path),
                options=options,
                name=self.app_name,
            )
            logger.info(f"Initialized Firebase app '{self.app_name}'")
        return self._app

    def _build_message(
        self, tokens: List[str], payload: NotificationPayload
    ) -> messaging.MulticastMessage:
        return messaging.MulticastMessage(
            tokens=tokens,
            notification=messaging.Notification(
                title=payload.title, body=payload.body
            ),
            data=payload.data or None,
        )

    async def send_multicast(
        self, tokens: List[str], payload: NotificationPayload
    ) -> MulticastResult:
        result = MulticastResult()
        if not tokens:
            return result

        for start in range(0, len(tokens), MULTICAST_TOKEN_LIMIT):
            chunk = tokens[start : start + MULTICAST_TOKEN_LIMIT]
            try:
                app = self._get_app()
                batch = await asyncio.to_thread(
                    messaging.send_each_for_multicast,
                    self._build_message(chunk, payload),
                    app=app,
                )
            except (FirebaseError, OSError, ValueError) as e:
                logger.error(f"FCM multicast failed for {len(chunk)} tokens: {e}")
                raise TransientDeliveryError(f"FCM multicast failed: {e}") from e

            for response in batch.responses:
                if response.success:
                    result.responses.append(TokenResult(success=True))
                else:
                    code = getattr(response.exception, "code", None) or "unknown"
                    result.responses.append(TokenResult(success=False, error_code=code))

        logger.debug(
            f"FCM multicast: {result.success_count} succeeded, "
            f"{result.failure_count} failed"
        )
        return result
