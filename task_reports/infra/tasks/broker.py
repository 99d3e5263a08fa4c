"""Taskiq broker configuration for background report work.

APScheduler decides when the weekly triggers fire. The triggers and every
delivery attempt run as Taskiq tasks.

With ``RABBIT_ENABLED=true`` the broker is a taskiq-aio-pika
``AioPikaBroker``. Otherwise Taskiq's ``InMemoryBroker`` is used, which
executes tasks in-process as soon as they are kicked. That mode serves
the CLI and tests; it has no durability and ignores the ``delay`` label.

Run a worker:
    taskiq worker task_reports.infra.tasks.broker:broker task_reports.workers.reports.tasks
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from taskiq import AsyncBroker, InMemoryBroker
from taskiq_aio_pika import AioPikaBroker

from task_reports.core.settings import get_rabbit_settings

if TYPE_CHECKING:
    from task_reports.core.settings.rabbit import RabbitSettings

logger = logging.getLogger(__name__)

TASK_QUEUE = "report-tasks"


def create_broker(rabbit_settings: RabbitSettings) -> AsyncBroker:
    """Create the broker described by ``rabbit_settings``."""
    if not rabbit_settings.is_configured:
        logger.info("RabbitMQ not configured, using in-memory Taskiq broker")
        return InMemoryBroker()

    queue_name = rabbit_settings.get_prefixed_queue(TASK_QUEUE)
    logger.info("Taskiq RabbitMQ broker configured", extra={"queue": queue_name})
    return AioPikaBroker(
        url=rabbit_settings.get_url(),
        queue_name=queue_name,
        declare_exchange=True,
        declare_queues=True,
    )


broker: AsyncBroker = create_broker(get_rabbit_settings())


async def start_taskiq() -> None:
    """Start the broker for enqueuing from the CLI or scheduler process.

    Raises:
        ConnectionError: If RabbitMQ cannot be reached.
    """
    if broker.is_worker_process:
        return

    logger.info("Starting Taskiq broker")
    try:
        await broker.startup()
    except Exception:
        logger.exception("Failed to start Taskiq broker")
        raise
    logger.info("Taskiq broker started")


async def stop_taskiq() -> None:
    """Stop the broker, closing RabbitMQ connections."""
    if broker.is_worker_process:
        return

    logger.info("Stopping Taskiq broker")
    try:
        await broker.shutdown()
    except Exception:
        logger.exception("Error stopping Taskiq broker")
    else:
        logger.info("Taskiq broker stopped")
