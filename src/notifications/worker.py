"""Job processor for the notification queues.

Routes each job to the fan-out or a channel adapter. A job failing with a
non-retryable TypedError is discarded; anything else is raised again so
the queue's retry policy applies.
"""

import structlog

from notifications.channel import ChannelType, get_channel
from notifications.fanout import OrderCreatedFanout
from notifications.mail import MailJob
from shared.queue import Job, JobName, handle_job_error

logger = structlog.get_logger(__name__)


class ChannelDeliveryError(Exception):
    """A channel adapter reported a failed delivery."""


def format_order_created(payload: dict) -> str:
    order = payload.get("order", {})
    payment = payload.get("payment", {})
    lines = [
        f"[info][title]New order #{order.get('id')}[/title]",
        f"Total: {order.get('totalPrice')}",
        f"Payment: {order.get('paymentMethod')} ({payment.get('transactionCode', '-')})",
    ]
    for item in order.get("items", []):
        lines.append(f"- {item.get('productName')} {item.get('productSize') or ''} x{item.get('quantity')}")
    lines.append("[/info]")
    return "\n".join(lines)


class NotificationWorker:
    def __init__(self, fanout: OrderCreatedFanout, chat_room: str) -> None:
        self.fanout = fanout
        self.chat_room = chat_room

    def process(self, job: Job) -> None:
        try:
            self._dispatch(job)
        except Exception as exc:
            handle_job_error(exc, job, f"Process {job.name}")

    def _dispatch(self, job: Job) -> None:
        if job.name == JobName.ORDER_CREATED.value:
            self.fanout.handle(job.data)
        elif job.name == JobName.SEND_MAIL.value:
            mail = MailJob(**job.data)
            result = get_channel(ChannelType.MAIL).send(mail.to, mail.subject, mail.template, mail.context)
            self._check(result)
        elif job.name == JobName.CHAT_ORDER_CREATED.value:
            result = get_channel(ChannelType.CHAT).send(self.chat_room, format_order_created(job.data))
            self._check(result)
        else:
            logger.warning("No processor for job", job_id=job.id, job_name=job.name)

    @staticmethod
    def _check(result: dict) -> None:
        if result.get("status") != "sent":
            raise ChannelDeliveryError(result.get("error", "Unknown dispatch error"))
