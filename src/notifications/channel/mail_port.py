"""Mail channel port."""

from abc import ABC, abstractmethod


class MailPort(ABC):
    @abstractmethod
    def send(self, to: str, subject: str, template: str, context: dict) -> dict:
        """Render ``template`` with ``context`` and send it to ``to``.

        Returns:
            dict with keys: message_id, status ("sent" or "failed"), error (optional)
        """
        ...
