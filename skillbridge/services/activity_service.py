"""
skillbridge.services.activity_service — Meetups, Swaps, Icebreakers, Endorsements
===================================================================================

Point-earning activities outside the connection lifecycle.  Each one goes
through :func:`~skillbridge.services.ledger_service.record_activity`, so
streaks and badges stay in step with the ledger.

Meetup codes have the form ``<scheme>://meet/<user_id>/<millis>``; the
scheme comes from ``config.yaml`` (``meetup_scheme``).
"""

from __future__ import annotations

import logging
import re
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError

from skillbridge.constants import as_utc, utcnow
from skillbridge.database.engine import get_session
from skillbridge.database.models import (
    ActionKind,
    ActivityEvent,
    NotificationType,
    Profile,
    SkillEndorsement,
    SkillSwap,
)
from skillbridge.errors import NotAuthorized, NotFound, ValidationError
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

DEFAULT_SCHEME = "skillbridge"

_CODE_RE = re.compile(r"^(?P<scheme>[a-z][a-z0-9+.-]*)://meet/(?P<user>[^/\s]+)/(?P<millis>\d+)$")


def _require_profile(session: Session, user_id: str, actor_id: str | None = None) -> Profile:
    profile = session.get(Profile, user_id)
    if profile is None:
        raise NotFound(f"profile {user_id} not found", actor_id or user_id)
    return profile


# ---------------------------------------------------------------------------
# QR meetups
# ---------------------------------------------------------------------------
def meetup_code(
    user_id: str, *, scheme: str = DEFAULT_SCHEME, now: datetime | None = None,
) -> str:
    """Build the code a user shows to be scanned."""
    if not user_id:
        raise ValidationError("user_id is required")
    millis = int(as_utc(now or utcnow()).timestamp() * 1000)
    return f"{scheme}://meet/{user_id}/{millis}"


def parse_meetup_code(code: str, *, scheme: str = DEFAULT_SCHEME) -> tuple[str, datetime]:
    """Return ``(owner_id, issued_at)`` for a meetup code."""
    match = _CODE_RE.match((code or "").strip())
    if match is None or match.group("scheme") != scheme:
        raise ValidationError("invalid meetup code")
    issued_at = datetime.fromtimestamp(int(match.group("millis")) / 1000, tz=UTC)
    return match.group("user"), issued_at


def log_meetup(
    engine: Engine,
    cache: ConfigCache,
    scanner_id: str,
    code: str,
    *,
    scheme: str = DEFAULT_SCHEME,
    location: str | None = None,
) -> list[ActivityEvent]:
    """Credit both the scanner and the code owner a ``meet`` event.

    Scanning the same code twice is a no-op for the second scan.
    """
    owner_id, issued_at = parse_meetup_code(code, scheme=scheme)
    if owner_id == scanner_id:
        raise ValidationError("cannot log a meetup with yourself", scanner_id)

    token = round(issued_at.timestamp() * 1000)
    with get_session(engine) as session:
        _require_profile(session, scanner_id)
        _require_profile(session, owner_id, scanner_id)

        rows: list[ActivityEvent] = []
        for user_id, partner_id in ((scanner_id, owner_id), (owner_id, scanner_id)):
            row = ledger_service.record_activity(session, cache, ledger_service.make_event(
                user_id,
                ActionKind.MEET,
                cache,
                metadata={"partner_id": partner_id, "location": location},
                source_key=f"meet:{scanner_id}:{owner_id}:{token}:{user_id}",
            ))
            if row is not None:
                rows.append(row)

        logger.info("Meetup logged: %s scanned %s (%d credits)", scanner_id, owner_id, len(rows))
        return rows


# ---------------------------------------------------------------------------
# Skill swaps
# ---------------------------------------------------------------------------
def log_skill_swap(
    engine: Engine,
    cache: ConfigCache,
    actor_id: str,
    *,
    teacher_id: str,
    learner_id: str,
    skill_taught: str,
    skill_learned: str,
    notes: str | None = None,
    rating: int | None = None,
) -> SkillSwap:
    """Record a swap.  The teacher earns ``swap`` points."""
    if actor_id not in (teacher_id, learner_id):
        raise NotAuthorized("only a swap participant can log it", actor_id)
    if teacher_id == learner_id:
        raise ValidationError("teacher and learner must differ", actor_id)
    if not (skill_taught or "").strip() or not (skill_learned or "").strip():
        raise ValidationError("skill_taught and skill_learned are required", actor_id)
    if rating is not None and not 1 <= rating <= 5:
        raise ValidationError("rating must be between 1 and 5", actor_id)

    with get_session(engine) as session:
        _require_profile(session, teacher_id, actor_id)
        _require_profile(session, learner_id, actor_id)

        swap = SkillSwap(
            teacher_id=teacher_id,
            learner_id=learner_id,
            skill_taught=skill_taught.strip(),
            skill_learned=skill_learned.strip(),
            notes=notes,
            rating=rating,
        )
        session.add(swap)
        session.flush()

        ledger_service.record_activity(session, cache, ledger_service.make_event(
            teacher_id,
            ActionKind.SWAP,
            cache,
            metadata={"swap_id": swap.id, "learner_id": learner_id, "skill": swap.skill_taught},
            source_key=f"swap:{swap.id}",
        ))
        logger.info("Skill swap %d logged: %s taught %s", swap.id, teacher_id, learner_id)
        return swap


def list_skill_swaps(engine: Engine, user_id: str) -> list[SkillSwap]:
    with get_session(engine) as session:
        return list(session.scalars(
            select(SkillSwap)
            .where(or_(SkillSwap.teacher_id == user_id, SkillSwap.learner_id == user_id))
            .order_by(SkillSwap.created_at.desc(), SkillSwap.id.desc())
        ).all())


# ---------------------------------------------------------------------------
# Icebreakers
# ---------------------------------------------------------------------------
def complete_icebreaker(
    engine: Engine,
    cache: ConfigCache,
    user_id: str,
    prompt: str,
    *,
    partner_id: str | None = None,
) -> ActivityEvent:
    if not (prompt or "").strip():
        raise ValidationError("prompt is required", user_id)
    with get_session(engine) as session:
        _require_profile(session, user_id)
        return ledger_service.record_activity(session, cache, ledger_service.make_event(
            user_id,
            ActionKind.ICEBREAKER,
            cache,
            metadata={"prompt": prompt.strip(), "partner_id": partner_id},
        ))


# ---------------------------------------------------------------------------
# Endorsements
# ---------------------------------------------------------------------------
def endorse_skill(
    engine: Engine,
    cache: ConfigCache,
    endorser_id: str,
    endorsed_id: str,
    skill_id: str,
    message: str,
    *,
    sink: NotificationSink | None = None,
) -> SkillEndorsement:
    """Endorse a skill listed on another member's profile.

    The endorser earns ``endorse_skill`` and the endorsed member
    ``receive_endorsement``.
    """
    if endorser_id == endorsed_id:
        raise ValidationError("cannot endorse your own skills", endorser_id)
    if not (message or "").strip():
        raise ValidationError("an endorsement message is required", endorser_id)

    with get_session(engine) as session:
        endorser = _require_profile(session, endorser_id)
        endorsed = _require_profile(session, endorsed_id, endorser_id)
        if skill_id not in (endorsed.skills or []):
            raise ValidationError(f"{endorsed_id} does not list skill {skill_id!r}", endorser_id)

        endorsement = SkillEndorsement(
            endorser_id=endorser_id,
            endorsed_id=endorsed_id,
            skill_id=skill_id,
            message=message.strip(),
        )
        try:
            with session.begin_nested():   # SAVEPOINT
                session.add(endorsement)
                session.flush()
        except IntegrityError:
            raise ValidationError(
                f"skill {skill_id!r} already endorsed for {endorsed_id}", endorser_id,
            ) from None

        ledger_service.record_activity(session, cache, ledger_service.make_event(
            endorser_id,
            ActionKind.ENDORSE_SKILL,
            cache,
            metadata={"endorsement_id": endorsement.id, "skill": skill_id},
            source_key=f"endorse:{endorsement.id}:given",
        ))
        ledger_service.record_activity(session, cache, ledger_service.make_event(
            endorsed_id,
            ActionKind.RECEIVE_ENDORSEMENT,
            cache,
            metadata={"endorsement_id": endorsement.id, "skill": skill_id},
            source_key=f"endorse:{endorsement.id}:received",
        ))
        notification = NotificationRequest(
            recipient_id=endorsed_id,
            type=NotificationType.SKILL_ENDORSEMENT,
            title="New skill endorsement",
            message=f"{endorser.display_name} endorsed your {skill_id} skill",
            payload={"endorsement_id": endorsement.id, "skill_id": skill_id},
        )
        logger.info("Skill %s of %s endorsed by %s", skill_id, endorsed_id, endorser_id)

    emit_all(sink or DatabaseNotificationSink(engine), [notification])
    return endorsement


def list_endorsements(engine: Engine, user_id: str) -> list[SkillEndorsement]:
    with get_session(engine) as session:
        return list(session.scalars(
            select(SkillEndorsement)
            .where(SkillEndorsement.endorsed_id == user_id)
            .order_by(SkillEndorsement.created_at.desc(), SkillEndorsement.id.desc())
        ).all())
