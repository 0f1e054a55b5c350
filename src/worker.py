"""Job queue worker for Orderflow.

Drains the side-effect queues:
- notificationQueue: order_created fan-out to chat and admin mail
- mailQueue / chatworkQueue: channel delivery
- orderQueue: expiry of unpaid bank-transfer orders

With QUEUE_BACKEND=redis this runs as its own process. With the memory
backend the API process drains its own queues (see app.py).

Usage:
    python src/worker.py                       # Drain every queue
    python src/worker.py --queue mailQueue     # Drain a single queue
    python src/worker.py --once                # One pass, then exit
"""

import argparse
import time
from collections.abc import Callable

import structlog
from notifications.services import build_notification_worker
from ordering.domain import ordering
from ordering.payment.expiry import process_order_job
from ordering.services import configure_queues
from ordering.store import ProteanOrderStore
from shared.config import Settings
from shared.queue import Job, QueueName, get_queue
from shared.rpc import RpcClient

logger = structlog.get_logger(__name__)

Processor = Callable[[Job], None]


def build_processors(settings: Settings, rpc: RpcClient | None = None) -> dict[QueueName, Processor]:
    """Map every queue to the function that processes its jobs."""
    notifications = build_notification_worker(settings, rpc=rpc)
    store = ProteanOrderStore()
    return {
        QueueName.NOTIFICATION: notifications.process,
        QueueName.MAIL: notifications.process,
        QueueName.CHAT: notifications.process,
        QueueName.ORDER: lambda job: process_order_job(store, job),
    }


def drain(processors: dict[QueueName, Processor]) -> int:
    """Run one pass over the queues, in declaration order. Returns jobs run."""
    processed = 0
    with ordering.domain_context():
        for name, processor in processors.items():
            try:
                processed += get_queue(name).process_due(processor)
            except Exception as exc:
                # Keep draining the remaining queues
                logger.error("Queue drain failed", queue=name.value, error=str(exc))
    return processed


def run(processors: dict[QueueName, Processor], poll_interval: float = 1.0) -> None:
    logger.info("Worker started", queues=[name.value for name in processors])
    while True:
        if not drain(processors):
            time.sleep(poll_interval)


def main():
    parser = argparse.ArgumentParser(description="Orderflow job worker")
    parser.add_argument(
        "--queue",
        choices=[name.value for name in QueueName],
        help="Drain a single queue (default: all)",
    )
    parser.add_argument("--once", action="store_true", help="Run one pass and exit")
    parser.add_argument("--poll-interval", type=float, default=1.0)
    args = parser.parse_args()

    from ordering.utils.logging import configure_logging

    configure_logging()
    settings = Settings.from_env()
    ordering.init()
    configure_queues(settings)

    processors = build_processors(settings)
    if args.queue:
        processors = {name: p for name, p in processors.items() if name.value == args.queue}

    if args.once:
        drain(processors)
        return
    run(processors, poll_interval=args.poll_interval)


if __name__ == "__main__":
    main()
