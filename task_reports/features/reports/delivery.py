"""Report delivery: typed tasks, retry policy and queues.

A ``DeliveryTask`` is plain data (recipient, subject, body and attachment
bytes), never a closure, so it can travel through RabbitMQ as JSON. The
retry policy lives in ``attempt_delivery``: each failed send increments
the attempt counter; below ``max_attempts`` the task is retried after a
fixed delay, otherwise it becomes a permanent failure.
"""

from __future__ import annotations

import asyncio
import base64
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import StrEnum
import json
import logging
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable
import uuid

from pydantic import (
    BaseModel,
    ConfigDict,
    EmailStr,
    Field,
    field_serializer,
    field_validator,
    model_validator,
)
from taskiq import InMemoryBroker

from task_reports.core.exceptions import DeliveryTransportError
from task_reports.infra.email.schemas import EmailAttachment, EmailMessage

from .schemas import ReportKind

if TYPE_CHECKING:
    from task_reports.infra.email.providers.base import EmailProvider
    from task_reports.infra.storage.protocol import StorageBackend

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_RETRY_DELAY_SECONDS = 30.0


class DeliveryStatus(StrEnum):
    """Lifecycle of a delivery task."""

    PENDING = "pending"
    RETRYING = "retrying"
    SENT = "sent"
    PERMANENT_FAILURE = "permanent_failure"

    @property
    def is_terminal(self) -> bool:
        return self in (DeliveryStatus.SENT, DeliveryStatus.PERMANENT_FAILURE)


class DeliveryAttachment(BaseModel):
    """Attachment bytes; base64-encoded when dumped to JSON."""

    model_config = ConfigDict(frozen=True)

    filename: str = Field(min_length=1, max_length=255)
    content: bytes
    content_type: str = "application/pdf"

    @field_validator("content", mode="before")
    @classmethod
    def _decode_content(cls, value: Any) -> Any:
        if isinstance(value, str):
            return base64.b64decode(value.encode("ascii"), validate=True)
        return value

    @field_serializer("content", when_used="json")
    def _encode_content(self, value: bytes) -> str:
        return base64.b64encode(value).decode("ascii")


class DeliveryTask(BaseModel):
    """A queued "send this document to this recipient" unit.

    Example:
        task = DeliveryTask(
            recipient="client@example.com",
            subject="Your Weekly Tasks Report",
            body_html="<p>...</p>",
            attachments=[DeliveryAttachment(filename="tasks.pdf", content=pdf)],
        )
        await queue.enqueue(task)
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    recipient: EmailStr
    subject: str = Field(min_length=1, max_length=500)
    body_html: str
    body_text: str | None = None
    attachments: tuple[DeliveryAttachment, ...] = ()

    attempts: int = Field(default=0, ge=0)
    max_attempts: int = Field(default=DEFAULT_MAX_ATTEMPTS, ge=1)
    retry_delay_seconds: float = Field(default=DEFAULT_RETRY_DELAY_SECONDS, ge=0)
    status: DeliveryStatus = DeliveryStatus.PENDING
    last_error: str | None = None

    run_id: str | None = None
    kind: ReportKind | None = None
    client_id: int | None = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @model_validator(mode="after")
    def _attempts_within_limit(self) -> DeliveryTask:
        if self.attempts > self.max_attempts:
            msg = f"attempts ({self.attempts}) exceeds max_attempts ({self.max_attempts})"
            raise ValueError(msg)
        return self

    @property
    def attachment_names(self) -> list[str]:
        return [a.filename for a in self.attachments]

    def to_payload(self) -> dict[str, Any]:
        """JSON-safe dict for the broker."""
        return self.model_dump(mode="json")

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> DeliveryTask:
        return cls.model_validate(payload)

    def to_email_message(self) -> EmailMessage:
        return EmailMessage(
            to=[self.recipient],
            subject=self.subject,
            body_html=self.body_html,
            body_text=self.body_text,
            attachments=[
                EmailAttachment(
                    filename=a.filename,
                    content=a.content,
                    content_type=a.content_type,
                )
                for a in self.attachments
            ],
            metadata={"delivery_id": self.id, "run_id": self.run_id},
        )


class OutcomeKind(StrEnum):
    SENT = "sent"
    RETRY = "retry"
    PERMANENT_FAILURE = "permanent_failure"


@dataclass(frozen=True, slots=True)
class DeliveryOutcome:
    """Result of one attempt, carrying the updated task."""

    kind: OutcomeKind
    task: DeliveryTask
    delay: float | None = None
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "delivery_id": self.task.id,
            "outcome": self.kind.value,
            "attempts": self.task.attempts,
            "delay": self.delay,
            "error": self.error,
        }


async def attempt_delivery(task: DeliveryTask, transport: EmailProvider) -> DeliveryOutcome:
    """Send ``task`` once and decide what happens next.

    A raised exception and a failed ``EmailDeliveryResult`` both count as a
    transport failure. A task that has already used every attempt is never
    sent again.
    """
    if task.status.is_terminal:
        msg = f"Delivery {task.id} is already {task.status.value}"
        raise ValueError(msg)

    if task.attempts >= task.max_attempts:
        return DeliveryOutcome(
            kind=OutcomeKind.PERMANENT_FAILURE,
            task=task.model_copy(update={"status": DeliveryStatus.PERMANENT_FAILURE}),
            error=task.last_error,
        )

    try:
        result = await transport.send(task.to_email_message())
    except Exception as e:
        failure = DeliveryTransportError(detail=str(e) or type(e).__name__)
    else:
        if result.success:
            return DeliveryOutcome(
                kind=OutcomeKind.SENT,
                task=task.model_copy(update={"status": DeliveryStatus.SENT}),
            )
        failure = DeliveryTransportError(
            detail=result.error or "Unknown error",
            error_code=result.error_code,
        )

    attempts = task.attempts + 1
    if attempts < task.max_attempts:
        updated = task.model_copy(
            update={
                "attempts": attempts,
                "status": DeliveryStatus.RETRYING,
                "last_error": failure.detail,
            }
        )
        logger.warning(
            "Delivery attempt failed, retrying",
            extra={
                "delivery_id": task.id,
                "recipient": task.recipient,
                "attempt": attempts,
                "max_attempts": task.max_attempts,
                "retry_in_seconds": task.retry_delay_seconds,
                "error": failure.detail,
                "error_code": failure.error_code,
            },
        )
        return DeliveryOutcome(
            kind=OutcomeKind.RETRY,
            task=updated,
            delay=task.retry_delay_seconds,
            error=failure.detail,
        )

    return DeliveryOutcome(
        kind=OutcomeKind.PERMANENT_FAILURE,
        task=task.model_copy(
            update={
                "attempts": attempts,
                "status": DeliveryStatus.PERMANENT_FAILURE,
                "last_error": failure.detail,
            }
        ),
        error=failure.detail,
    )


# =============================================================================
# Failed delivery log
# =============================================================================


class FailedDeliveryRecord(BaseModel):
    """What is kept about a delivery that exhausted its attempts."""

    task_id: str
    recipient: str
    subject: str
    attempts: int
    error: str | None
    attachment_names: list[str] = Field(default_factory=list)
    run_id: str | None = None
    kind: ReportKind | None = None
    client_id: int | None = None
    failed_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @classmethod
    def from_task(cls, task: DeliveryTask, error: str | None) -> FailedDeliveryRecord:
        return cls(
            task_id=task.id,
            recipient=task.recipient,
            subject=task.subject,
            attempts=task.attempts,
            error=error or task.last_error,
            attachment_names=task.attachment_names,
            run_id=task.run_id,
            kind=task.kind,
            client_id=task.client_id,
        )


@runtime_checkable
class FailedDeliveryLog(Protocol):
    async def record(self, task: DeliveryTask, error: str | None) -> FailedDeliveryRecord:
        ...

    async def list(self) -> list[FailedDeliveryRecord]:
        ...


class InMemoryFailedDeliveryLog:
    def __init__(self) -> None:
        self.records: list[FailedDeliveryRecord] = []

    async def record(self, task: DeliveryTask, error: str | None) -> FailedDeliveryRecord:
        entry = FailedDeliveryRecord.from_task(task, error)
        self.records.append(entry)
        return entry

    async def list(self) -> list[FailedDeliveryRecord]:
        return list(self.records)


class StorageFailedDeliveryLog:
    """Failed deliveries as JSON documents under ``<prefix>/<date>/<task id>.json``."""

    def __init__(self, storage: StorageBackend, prefix: str = "failed") -> None:
        self.storage = storage
        self.prefix = prefix.strip("/")

    async def record(self, task: DeliveryTask, error: str | None) -> FailedDeliveryRecord:
        entry = FailedDeliveryRecord.from_task(task, error)
        path = f"{self.prefix}/{entry.failed_at.strftime('%Y-%m-%d')}/{entry.task_id}.json"
        await self.storage.put(path, entry.model_dump_json(indent=2).encode("utf-8"), "application/json")
        return entry

    async def list(self) -> list[FailedDeliveryRecord]:
        records = []
        for path in await self.storage.list(self.prefix):
            if not path.endswith(".json"):
                continue
            raw = await self.storage.get(path)
            records.append(FailedDeliveryRecord.model_validate(json.loads(raw)))
        return sorted(records, key=lambda r: r.failed_at)


# =============================================================================
# Worker step shared by every queue implementation
# =============================================================================

Requeue = Callable[[DeliveryTask, float], Awaitable[None]]


async def process_delivery(
    task: DeliveryTask,
    transport: EmailProvider,
    failed_log: FailedDeliveryLog,
    requeue: Requeue,
) -> DeliveryOutcome:
    """Attempt ``task`` and act on the outcome.

    Retries are handed to ``requeue`` with the delay; permanent failures
    are written to ``failed_log`` and logged at ERROR.
    """
    outcome = await attempt_delivery(task, transport)

    if outcome.kind is OutcomeKind.SENT:
        logger.info(
            "Report delivered",
            extra={
                "delivery_id": task.id,
                "recipient": task.recipient,
                "attempts": outcome.task.attempts,
                "attachments": task.attachment_names,
            },
        )
    elif outcome.kind is OutcomeKind.RETRY:
        await requeue(outcome.task, outcome.delay or 0.0)
    else:
        logger.error(
            "Report delivery permanently failed",
            extra={
                "delivery_id": task.id,
                "recipient": task.recipient,
                "attempts": outcome.task.attempts,
                "error": outcome.error,
                "attachments": task.attachment_names,
            },
        )
        try:
            await failed_log.record(outcome.task, outcome.error)
        except Exception:
            logger.exception(
                "Could not record failed delivery",
                extra={"delivery_id": task.id, "recipient": task.recipient},
            )
    return outcome


# =============================================================================
# Queues
# =============================================================================


@runtime_checkable
class DeliveryQueue(Protocol):
    async def enqueue(self, task: DeliveryTask) -> str:
        """Queue ``task`` for asynchronous delivery and return its id."""
        ...


class InMemoryDeliveryQueue:
    """An asyncio queue drained by ``run_worker()`` or ``drain()``.

    Retries wait out their delay in a background task and are then put back
    on the queue, so at most one attempt per delivery is ever in flight.

    Example:
        queue = InMemoryDeliveryQueue(provider, InMemoryFailedDeliveryLog())
        await service.generate_client_reports(period)  # enqueues
        await queue.drain()
    """

    def __init__(
        self,
        transport: EmailProvider,
        failed_log: FailedDeliveryLog,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self.transport = transport
        self.failed_log = failed_log
        self._sleep = sleep
        self._queue: asyncio.Queue[DeliveryTask] = asyncio.Queue()
        self._pending_retries: set[asyncio.Task[None]] = set()
        self.outcomes: list[DeliveryOutcome] = []

    async def enqueue(self, task: DeliveryTask) -> str:
        await self._queue.put(task)
        logger.debug("Delivery queued", extra={"delivery_id": task.id, "recipient": task.recipient})
        return task.id

    @property
    def pending(self) -> int:
        return self._queue.qsize() + len(self._pending_retries)

    async def _requeue(self, task: DeliveryTask, delay: float) -> None:
        async def _later() -> None:
            await self._sleep(delay)
            await self._queue.put(task)

        retry = asyncio.create_task(_later(), name=f"delivery-retry-{task.id}")
        self._pending_retries.add(retry)
        retry.add_done_callback(self._pending_retries.discard)

    async def _process_next(self) -> DeliveryOutcome:
        task = await self._queue.get()
        try:
            outcome = await process_delivery(task, self.transport, self.failed_log, self._requeue)
        finally:
            self._queue.task_done()
        self.outcomes.append(outcome)
        return outcome

    async def run_worker(self) -> None:
        """Process deliveries until cancelled."""
        while True:
            await self._process_next()

    async def drain(self) -> list[DeliveryOutcome]:
        """Process until nothing is queued or waiting to be retried."""
        processed: list[DeliveryOutcome] = []
        while self.pending:
            if self._queue.empty():
                await asyncio.wait(set(self._pending_retries))
                continue
            processed.append(await self._process_next())
        return processed


class BrokerDeliveryQueue:
    """Deliveries as Taskiq messages.

    ``deliver_task`` is the registered ``reports.deliver`` task; retries
    re-kick the same payload with a ``delay`` label. Taskiq's
    ``InMemoryBroker`` ignores that label, so on it the delay is waited out
    here before the re-kick.
    """

    def __init__(
        self,
        deliver_task: Any,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self._deliver_task = deliver_task
        self._sleep = sleep

    @property
    def honours_delay_label(self) -> bool:
        return not isinstance(getattr(self._deliver_task, "broker", None), InMemoryBroker)

    async def enqueue(self, task: DeliveryTask) -> str:
        await self._deliver_task.kiq(task.to_payload())
        logger.debug("Delivery kicked", extra={"delivery_id": task.id, "recipient": task.recipient})
        return task.id

    async def requeue(self, task: DeliveryTask, delay: float) -> None:
        if delay > 0 and not self.honours_delay_label:
            await self._sleep(delay)
        await self._deliver_task.kicker().with_labels(delay=int(delay)).kiq(task.to_payload())
        logger.debug(
            "Delivery re-kicked",
            extra={"delivery_id": task.id, "delay": delay, "attempts": task.attempts},
        )
