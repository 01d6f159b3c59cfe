"""Push notification port: the abstract interface every push transport implements."""

from abc import ABC, abstractmethod

from storefront.notifications.messages import PushMessage


class PushPort(ABC):
    """Abstract interface for push notification dispatch adapters."""

    @property
    @abstractmethod
    def is_ready(self) -> bool:
        """True once the transport has everything it needs to deliver."""
        ...

    @abstractmethod
    async def send(self, device_token: str, message: PushMessage) -> str:
        """Deliver one message to one device.

        Returns:
            the transport's message id

        Raises:
            any exception on delivery failure; the dispatcher counts it
        """
        ...

    async def aclose(self) -> None:
        """Release transport resources; nothing to do by default."""
        return None
