from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Any

import structlog
from sqlalchemy import Engine, Float, case, cast, delete, func, select, update
from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.orm import Session

from deskhound.ingestion.types import (
    Message,
    MessageContext,
    MessagePriority,
    MessageStatus,
    MessageType,
    ThreadEntry,
    UserProfile,
)
from deskhound.storage.models import MessageRecord
from deskhound.util.db import get_engine

_logger = structlog.get_logger()

_UPSERTS: dict[str, Callable[..., Any]] = {
    "sqlite": sqlite_insert,
    "postgresql": postgresql_insert,
}

DEFAULT_RETENTION_DAYS = 30


@dataclass
class CategoryStats:
    category: str
    count: int
    responded_rate: float


@dataclass
class MessageAnalytics:
    total: int = 0
    responded: int = 0
    pending: int = 0
    categories: list[CategoryStats] = field(default_factory=list)


def _cutoff(days: int, now: datetime | None) -> datetime:
    return (now or datetime.now(UTC)) - timedelta(days=days)


class MessageRepository:
    """Message persistence keyed by the provider message id.

    ``save`` is an upsert: writing the same id again replaces the stored row,
    so re-ingesting a message can never produce a duplicate.
    """

    def __init__(self, engine: Engine | None = None) -> None:
        self._engine = engine

    @property
    def engine(self) -> Engine:
        return self._engine or get_engine()

    def save(self, message: Message) -> None:
        engine = self.engine
        insert = _UPSERTS.get(engine.dialect.name)
        if insert is None:
            raise ValueError(f"Unsupported database dialect: {engine.dialect.name}")

        values = _to_row(message)
        stmt = insert(MessageRecord).values(**values)
        changed = {column: stmt.excluded[column] for column in values if column != "slack_id"}
        changed["updated_at"] = func.now()
        stmt = stmt.on_conflict_do_update(index_elements=["slack_id"], set_=changed)

        with Session(engine) as session:
            session.execute(stmt)
            session.commit()
        _logger.debug("message_saved", message_id=message.id)

    def get(self, message_id: str) -> Message | None:
        with Session(self.engine) as session:
            record = session.scalars(
                select(MessageRecord).where(MessageRecord.slack_id == message_id)
            ).one_or_none()
            return _from_record(record) if record else None

    def list_messages(
        self,
        status: MessageStatus | None = None,
        priority: MessagePriority | None = None,
        category: str | None = None,
        limit: int | None = None,
    ) -> list[Message]:
        query = select(MessageRecord)
        if status is not None:
            query = query.where(MessageRecord.status == status.value)
        if priority is not None:
            query = query.where(MessageRecord.priority == priority.value)
        if category is not None:
            query = query.where(MessageRecord.category == category)
        query = query.order_by(cast(MessageRecord.timestamp, Float).desc())
        if limit is not None:
            query = query.limit(limit)

        with Session(self.engine) as session:
            return [_from_record(record) for record in session.scalars(query)]

    def update_status(self, message_id: str, status: MessageStatus) -> bool:
        with Session(self.engine) as session:
            result = session.execute(
                update(MessageRecord)
                .where(MessageRecord.slack_id == message_id)
                .values(status=status.value, updated_at=func.now())
            )
            session.commit()
        updated = bool(result.rowcount)
        _logger.info(
            "message_status_updated",
            message_id=message_id,
            status=status.value,
            updated=updated,
        )
        return updated

    def count(self) -> int:
        with Session(self.engine) as session:
            return int(session.scalar(select(func.count()).select_from(MessageRecord)) or 0)

    def clear(self) -> int:
        with Session(self.engine) as session:
            result = session.execute(delete(MessageRecord))
            session.commit()
        _logger.info("messages_cleared", count=result.rowcount)
        return int(result.rowcount or 0)

    def cleanup(
        self,
        retention_days: int = DEFAULT_RETENTION_DAYS,
        now: datetime | None = None,
    ) -> int:
        """Delete rows stored more than ``retention_days`` ago."""
        cutoff = _cutoff(retention_days, now)
        with Session(self.engine) as session:
            result = session.execute(
                delete(MessageRecord).where(MessageRecord.created_at < cutoff)
            )
            session.commit()
        removed = int(result.rowcount or 0)
        _logger.info("messages_cleaned_up", retention_days=retention_days, count=removed)
        return removed

    def analytics(self, days: int = 30, now: datetime | None = None) -> MessageAnalytics:
        """Message counts for rows stored in the last ``days`` days.

        Categories come back busiest first; ``responded_rate`` is the share of
        a category's messages whose status is ``responded``.
        """
        recent = MessageRecord.created_at >= _cutoff(days, now)
        responded = MessageRecord.status == MessageStatus.RESPONDED.value
        pending = MessageRecord.status == MessageStatus.PENDING.value
        count = func.count().label("count")

        with Session(self.engine) as session:
            total, responded_count, pending_count = session.execute(
                select(
                    func.count(),
                    func.count(case((responded, 1))),
                    func.count(case((pending, 1))),
                ).where(recent)
            ).one()
            rows = session.execute(
                select(
                    MessageRecord.category,
                    count,
                    func.avg(case((responded, 1.0), else_=0.0)),
                )
                .where(recent)
                .group_by(MessageRecord.category)
                .order_by(count.desc(), MessageRecord.category)
            ).all()

        return MessageAnalytics(
            total=int(total or 0),
            responded=int(responded_count or 0),
            pending=int(pending_count or 0),
            categories=[
                CategoryStats(category=category, count=int(n), responded_rate=float(rate or 0.0))
                for category, n, rate in rows
            ],
        )


def _to_row(message: Message) -> dict[str, Any]:
    context = message.to_dict()["context"]
    return {
        "slack_id": message.id,
        "channel": message.channel,
        "user": message.user,
        "text": message.text,
        "timestamp": message.timestamp,
        "thread_ts": message.thread_root_id,
        "reply_count": message.reply_count,
        "type": message.type.value,
        "priority": message.priority.value,
        "category": str(message.category),
        "status": message.status.value,
        "context": context,
    }


def _from_record(record: MessageRecord) -> Message:
    raw_context: dict[str, Any] = record.context or {}
    raw_user = raw_context.get("user_info")
    return Message(
        id=record.slack_id,
        channel=record.channel,
        user=record.user,
        text=record.text,
        timestamp=record.timestamp,
        type=MessageType(record.type),
        priority=MessagePriority(record.priority),
        category=record.category,
        status=MessageStatus(record.status),
        thread_root_id=record.thread_ts,
        reply_count=record.reply_count,
        context=MessageContext(
            user_info=UserProfile(**raw_user) if raw_user else None,
            thread_history=[
                ThreadEntry(**entry) for entry in raw_context.get("thread_history", [])
            ],
        ),
    )
