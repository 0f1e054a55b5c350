"""Fake mail adapter that records sent mails for tests."""

from uuid import uuid4

from notifications.channel.mail_port import MailPort


class FakeMailAdapter(MailPort):
    def __init__(self):
        self.sent_mails: list[dict] = []
        self.should_succeed = True
        self.failure_reason = "Mail delivery failed"

    def configure(self, should_succeed: bool = True, failure_reason: str = "Mail delivery failed"):
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason

    def send(self, to: str, subject: str, template: str, context: dict) -> dict:
        if not self.should_succeed:
            return {"message_id": None, "status": "failed", "error": self.failure_reason}

        message_id = f"mail-{uuid4().hex[:12]}"
        self.sent_mails.append(
            {
                "message_id": message_id,
                "to": to,
                "subject": subject,
                "template": template,
                "context": context,
            }
        )
        return {"message_id": message_id, "status": "sent"}
