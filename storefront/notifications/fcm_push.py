"""
Firebase Cloud Messaging transport built on the Firebase Admin SDK.

The service-account credential is assembled from the environment and a
dedicated firebase app is initialized on first send. The SDK handles the
OAuth2 token exchange and refresh.
"""

import asyncio
import logging
from typing import Optional

import firebase_admin
from firebase_admin import credentials, exceptions, messaging

from storefront.core.config import (
    FIREBASE_PROJECT_ID,
    FIREBASE_CLIENT_EMAIL,
    FIREBASE_PRIVATE_KEY,
    NOTIFICATION_TIMEOUT_SECONDS,
)
from storefront.notifications.messages import PushMessage
from storefront.notifications.push_port import PushPort

logger = logging.getLogger(__name__)

TOKEN_URI = "https://oauth2.googleapis.com/token"
FIREBASE_APP_NAME = "storefront"


class FcmPushAdapter(PushPort):
    def __init__(
        self,
        project_id: str = FIREBASE_PROJECT_ID,
        client_email: str = FIREBASE_CLIENT_EMAIL,
        private_key: str = FIREBASE_PRIVATE_KEY,
        timeout: float = NOTIFICATION_TIMEOUT_SECONDS,
        app_name: str = FIREBASE_APP_NAME,
    ):
        self.project_id = project_id
        self.client_email = client_email
        self.private_key = private_key
        self.timeout = timeout
        self.app_name = app_name
        self._app: Optional[firebase_admin.App] = None

    @property
    def is_ready(self) -> bool:
        return bool(self.project_id and self.client_email and self.private_key)

    def _service_account_info(self) -> dict:
        return {
            "type": "service_account",
            "project_id": self.project_id,
            "client_email": self.client_email,
            "private_key": self.private_key,
            "token_uri": TOKEN_URI,
        }

    def _get_app(self) -> firebase_admin.App:
        if self._app is None:
            cert = credentials.Certificate(self._service_account_info())
            self._app = firebase_admin.initialize_app(
                cert,
                {"projectId": self.project_id, "httpTimeout": self.timeout},
                name=self.app_name,
            )
            logger.info("Firebase app '%s' initialized for project %s", self.app_name, self.project_id)
        return self._app

    @staticmethod
    def build_message(device_token: str, message: PushMessage) -> messaging.Message:
        return messaging.Message(
            token=device_token,
            notification=messaging.Notification(title=message.title, body=message.body),
            data=message.data,
            android=messaging.AndroidConfig(
                priority=message.priority,
                notification=messaging.AndroidNotification(
                    sound=message.sound,
                    channel_id=message.channel_id,
                ),
            ),
            apns=messaging.APNSConfig(
                payload=messaging.APNSPayload(aps=messaging.Aps(sound=message.sound)),
            ),
        )

    async def send(self, device_token: str, message: PushMessage) -> str:
        """
        Raises:
            firebase_admin.exceptions.FirebaseError: FCM rejected the message
                (unregistered token, bad payload, auth failure).
        """
        app = self._get_app()
        try:
            # the SDK call blocks on HTTP, keep it off the event loop
            return await asyncio.to_thread(
                messaging.send, self.build_message(device_token, message), app=app
            )
        except exceptions.FirebaseError as e:
            logger.warning("FCM rejected message for token %s...: %s", device_token[:12], e)
            raise

    async def aclose(self):
        if self._app is not None:
            firebase_admin.delete_app(self._app)
            self._app = None
