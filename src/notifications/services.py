"""Wiring for the notification worker."""

from notifications.fanout import OrderCreatedFanout
from notifications.worker import NotificationWorker
from shared.config import Settings
from shared.queue import QueueName, get_queue
from shared.rpc import HttpRpcTransport, RpcClient, RpcTransport, ServiceName


def build_rpc_client(settings: Settings, transport: RpcTransport | None = None) -> RpcClient:
    transport = transport or HttpRpcTransport({ServiceName.USER_SERVICE.value: settings.user_service_url})
    return RpcClient(
        transport,
        timeout_ms=settings.rpc_timeout_ms,
        retries=settings.rpc_retries,
        delay_ms=settings.rpc_delay_ms,
    )


def build_notification_worker(settings: Settings | None = None, rpc: RpcClient | None = None) -> NotificationWorker:
    settings = settings or Settings.from_env()
    fanout = OrderCreatedFanout(
        chat_queue=get_queue(QueueName.CHAT),
        mail_queue=get_queue(QueueName.MAIL),
        rpc=rpc or build_rpc_client(settings),
    )
    return NotificationWorker(fanout, chat_room=settings.chat_room_id)
