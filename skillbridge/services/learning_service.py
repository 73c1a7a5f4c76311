"""
skillbridge.services.learning_service — Micro-Learning Sessions
=================================================================

Lifecycle::

    requested ──confirm (teacher)──▶ confirmed ──complete (either)──▶ completed  (credits both)
        │                               │
        └──────cancel (either)──────────┴──▶ cancelled

Every transition is a compare-and-set on the current status.  Completion
credits the teacher ``teach_session`` and the learner ``complete_learning``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import or_, select, update

from skillbridge.constants import utcnow
from skillbridge.database.engine import get_session
from skillbridge.database.models import (
    ActionKind,
    LearningSession,
    NotificationType,
    Profile,
    SessionStatus,
)
from skillbridge.errors import NotAuthorized, NotFound, StaleState, ValidationError
from skillbridge.services import ledger_service
from skillbridge.services.notification_service import (
    DatabaseNotificationSink,
    NotificationRequest,
    NotificationSink,
    emit_all,
)

if TYPE_CHECKING:
    from sqlalchemy import Engine
    from sqlalchemy.orm import Session

    from skillbridge.engine.cache import ConfigCache

logger = logging.getLogger(__name__)

SESSION_TYPES: frozenset[str] = frozenset({"virtual", "in_person"})


@dataclass(frozen=True, slots=True)
class _Rule:
    allowed_from: tuple[SessionStatus, ...]
    result: SessionStatus
    teacher_only: bool = False


RULES: dict[str, _Rule] = {
    "confirm": _Rule((SessionStatus.REQUESTED,), SessionStatus.CONFIRMED, teacher_only=True),
    "cancel": _Rule((SessionStatus.REQUESTED, SessionStatus.CONFIRMED), SessionStatus.CANCELLED),
    "complete": _Rule((SessionStatus.CONFIRMED,), SessionStatus.COMPLETED),
}


def request_session(
    engine: Engine,
    learner_id: str,
    teacher_id: str,
    skill_topic: str,
    *,
    session_type: str = "virtual",
    scheduled_at: datetime | None = None,
    duration_minutes: int = 15,
    notes: str | None = None,
    sink: NotificationSink | None = None,
) -> LearningSession:
    """Ask *teacher_id* for a session.  The teacher must offer something to teach."""
    if learner_id == teacher_id:
        raise ValidationError("cannot request a session with yourself", learner_id)
    if not (skill_topic or "").strip():
        raise ValidationError("skill_topic is required", learner_id)
    if session_type not in SESSION_TYPES:
        raise ValidationError(f"unknown session type: {session_type!r}", learner_id)
    if duration_minutes <= 0:
        raise ValidationError("duration_minutes must be positive", learner_id)

    with get_session(engine) as session:
        learner = session.get(Profile, learner_id)
        if learner is None:
            raise NotFound(f"profile {learner_id} not found", learner_id)
        teacher = session.get(Profile, teacher_id)
        if teacher is None:
            raise NotFound(f"profile {teacher_id} not found", learner_id)
        if not (teacher.can_teach or "").strip():
            raise ValidationError(f"{teacher_id} is not offering to teach", learner_id)

        learning = LearningSession(
            teacher_id=teacher_id,
            learner_id=learner_id,
            skill_topic=skill_topic.strip(),
            session_type=session_type,
            scheduled_at=scheduled_at,
            duration_minutes=duration_minutes,
            status=SessionStatus.REQUESTED.value,
            notes=notes,
        )
        session.add(learning)
        session.flush()
        logger.info(
            "Learning session %d requested: %s -> %s (%s)",
            learning.id, learner_id, teacher_id, learning.skill_topic,
        )
        notification = NotificationRequest(
            recipient_id=teacher_id,
            type=NotificationType.LEARNING_REQUEST,
            title="New learning request",
            message=f"{learner.display_name} would like to learn {learning.skill_topic} from you",
            payload={"session_id": learning.id, "learner_id": learner_id},
        )

    emit_all(sink or DatabaseNotificationSink(engine), [notification])
    return learning


def _apply(
    session: Session, session_id: int, actor_id: str, action: str,
) -> LearningSession:
    rule = RULES[action]
    learning = session.get(LearningSession, session_id)
    if learning is None:
        raise NotFound(f"learning session {session_id} not found", actor_id)
    if actor_id not in (learning.teacher_id, learning.learner_id):
        raise NotAuthorized("not a participant in this session", actor_id)
    if rule.teacher_only and actor_id != learning.teacher_id:
        raise NotAuthorized(f"only the teacher can {action} a session", actor_id)

    result = session.execute(
        update(LearningSession)
        .where(
            LearningSession.id == session_id,
            LearningSession.status.in_([s.value for s in rule.allowed_from]),
        )
        .values(status=rule.result.value, updated_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        session.refresh(learning)
        raise StaleState(
            f"learning session {session_id} is already {learning.status}", actor_id,
        )
    session.refresh(learning)
    logger.info("Learning session %d %s by %s", session_id, rule.result.value, actor_id)
    return learning


def confirm_session(engine: Engine, actor_id: str, session_id: int) -> LearningSession:
    with get_session(engine) as session:
        return _apply(session, session_id, actor_id, "confirm")


def cancel_session(engine: Engine, actor_id: str, session_id: int) -> LearningSession:
    with get_session(engine) as session:
        return _apply(session, session_id, actor_id, "cancel")


def complete_session(
    engine: Engine, cache: ConfigCache, actor_id: str, session_id: int,
) -> LearningSession:
    """Mark a session completed and credit both participants."""
    with get_session(engine) as session:
        learning = _apply(session, session_id, actor_id, "complete")
        credits = (
            (learning.teacher_id, ActionKind.TEACH_SESSION),
            (learning.learner_id, ActionKind.COMPLETE_LEARNING),
        )
        for user_id, kind in credits:
            ledger_service.record_activity(session, cache, ledger_service.make_event(
                user_id,
                kind,
                cache,
                metadata={"session_id": learning.id, "topic": learning.skill_topic},
                source_key=f"learning:{learning.id}:{kind.value}",
            ))
        return learning


def list_sessions(
    engine: Engine, user_id: str, *, status: str | None = None,
) -> list[LearningSession]:
    with get_session(engine) as session:
        q = select(LearningSession).where(
            or_(LearningSession.teacher_id == user_id, LearningSession.learner_id == user_id)
        )
        if status:
            q = q.where(LearningSession.status == status)
        q = q.order_by(LearningSession.created_at.desc(), LearningSession.id.desc())
        return list(session.scalars(q).all())
