"""Order-created fan-out.

One ``order_created`` event turns into a chat alert for the operations
room and one mail per admin. Each step is independent: a failing chat
enqueue does not stop the mails, and nothing here is reported back to the
ordering service.
"""

import structlog

from notifications.mail import MailJob, enqueue_mail
from shared.queue import DEFAULT_RETRY_POLICY, JobName, JobQueue, add_job_with_retry
from shared.rpc import RpcClient, RpcPattern, ServiceName

logger = structlog.get_logger(__name__)

ORDER_CREATED_TEMPLATE = "order-created"


class OrderCreatedFanout:
    def __init__(self, chat_queue: JobQueue, mail_queue: JobQueue, rpc: RpcClient) -> None:
        self.chat_queue = chat_queue
        self.mail_queue = mail_queue
        self.rpc = rpc

    def handle(self, payload: dict) -> int:
        """Queue the chat alert and admin mails. Returns the number of mails queued."""
        order_id = payload.get("order", {}).get("id")

        try:
            add_job_with_retry(self.chat_queue, JobName.CHAT_ORDER_CREATED, payload, DEFAULT_RETRY_POLICY)
        except Exception as exc:
            logger.error("Failed to queue chat alert", order_id=order_id, error=str(exc))

        queued = 0
        try:
            for admin in self.fetch_admins():
                mail = MailJob(
                    to=admin["email"],
                    subject=f"New order #{order_id}",
                    template=ORDER_CREATED_TEMPLATE,
                    context={"name": admin.get("name"), **payload},
                )
                enqueue_mail(self.mail_queue, mail)
                queued += 1
        except Exception as exc:
            logger.error("Failed to queue admin mails", order_id=order_id, queued=queued, error=str(exc))

        return queued

    def fetch_admins(self) -> list[dict]:
        """Admins that have an email address."""
        admins = self.rpc.call(RpcPattern.GET_ALL_ADMINS, {}, ServiceName.USER_SERVICE) or []
        return [admin for admin in admins if admin and admin.get("email")]
