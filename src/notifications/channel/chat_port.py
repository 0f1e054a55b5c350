"""Chat channel port for operator alerts."""

from abc import ABC, abstractmethod


class ChatPort(ABC):
    @abstractmethod
    def send(self, room: str, message: str) -> dict:
        """Post ``message`` to ``room``.

        Returns:
            dict with keys: message_id, status ("sent" or "failed"), error (optional)
        """
        ...
