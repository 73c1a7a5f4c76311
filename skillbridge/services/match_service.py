"""
skillbridge.services.match_service — Match Suggestion Generation & Actions
============================================================================

Suggestions are regenerated on demand only.  A generation:

1. Deletes the subject's *pending* suggestions
2. Excludes candidates already in an active connection with the subject
   and candidates the subject connected/dismissed this cycle
3. Scores the remaining visible profiles and keeps the top few

A cycle is the calendar month (``"YYYY-MM"``) of generation.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import delete, select, update

from skillbridge.constants import month_key
from skillbridge.database.engine import get_session
from skillbridge.database.models import (
    ConnectionRequest,
    ConnectionType,
    MatchSuggestion,
    Profile,
    SuggestionStatus,
)
from skillbridge.engine.matching import (
    DEFAULT_MAX_SUGGESTIONS,
    DEFAULT_MIN_SCORE,
    MatchProfile,
    MatchScore,
    rank_candidates,
    score,
)
from skillbridge.errors import NotAuthorized, NotFound, StaleState, ValidationError
from skillbridge.services.connection_service import active_partner_ids, open_request
from skillbridge.services.notification_service import (
    DatabaseNotificationSink,
    NotificationSink,
    emit_all,
)

if TYPE_CHECKING:
    from sqlalchemy import Engine
    from sqlalchemy.orm import Session

    from skillbridge.engine.cache import ConfigCache

logger = logging.getLogger(__name__)

TERMINAL_STATUSES = (SuggestionStatus.CONNECTED.value, SuggestionStatus.DISMISSED.value)


@dataclass(frozen=True, slots=True)
class SuggestionView:
    """A suggestion enriched with the candidate's display fields."""

    suggestion_id: int
    candidate_id: str
    display_name: str
    role: str | None
    skills: list[str]
    score: int
    reasons: list[str] = field(default_factory=list)
    status: str = SuggestionStatus.PENDING.value


def current_cycle(now: datetime | None = None) -> str:
    return month_key(now)


def _load_profile(session: Session, user_id: str) -> Profile:
    profile = session.get(Profile, user_id)
    if profile is None:
        raise NotFound(f"profile {user_id} not found", user_id)
    return profile


def generate_matches(
    engine: Engine,
    cache: ConfigCache,
    user_id: str,
    *,
    now: datetime | None = None,
) -> list[MatchSuggestion]:
    """Replace *user_id*'s pending suggestions with a fresh ranking."""
    cycle = current_cycle(now)
    with get_session(engine) as session:
        subject = MatchProfile.from_record(_load_profile(session, user_id))

        session.execute(
            delete(MatchSuggestion).where(
                MatchSuggestion.user_id == user_id,
                MatchSuggestion.status == SuggestionStatus.PENDING.value,
            )
        )

        excluded = active_partner_ids(session, user_id)
        excluded.update(session.scalars(
            select(MatchSuggestion.candidate_id).where(
                MatchSuggestion.user_id == user_id,
                MatchSuggestion.cycle == cycle,
                MatchSuggestion.status.in_(TERMINAL_STATUSES),
            )
        ).all())
        excluded.add(user_id)

        rows = session.scalars(
            select(Profile)
            .where(Profile.is_visible.is_(True))
            .order_by(Profile.created_at, Profile.user_id)
        ).all()
        candidates: list[MatchProfile] = []
        for p in rows:
            if p.user_id in excluded:
                continue
            try:
                candidates.append(MatchProfile.from_record(p))
            except ValidationError as exc:
                logger.warning("Skipping candidate %s for %s: %s", p.user_id, user_id, exc)

        ranked = rank_candidates(
            subject,
            candidates,
            min_score=cache.get_int("matching.min_score", DEFAULT_MIN_SCORE),
            limit=cache.get_int("matching.max_suggestions", DEFAULT_MAX_SUGGESTIONS),
        )

        suggestions = [
            MatchSuggestion(
                user_id=user_id,
                candidate_id=match.candidate_id,
                score=match.score.value,
                reasons=list(match.score.reasons),
                status=SuggestionStatus.PENDING.value,
                cycle=cycle,
            )
            for match in ranked
        ]
        session.add_all(suggestions)
        session.flush()

        logger.info(
            "Generated %d suggestions for %s from %d candidates (cycle %s)",
            len(suggestions), user_id, len(candidates), cycle,
        )
        return suggestions


def list_matches(
    engine: Engine, user_id: str, *, status: str = SuggestionStatus.PENDING.value,
) -> list[SuggestionView]:
    """Suggestions for *user_id*, best first, with candidate details.

    A suggestion whose candidate profile can't be resolved is skipped with
    a warning rather than failing the whole list.
    """
    with get_session(engine) as session:
        suggestions = session.scalars(
            select(MatchSuggestion)
            .where(MatchSuggestion.user_id == user_id, MatchSuggestion.status == status)
            .order_by(MatchSuggestion.score.desc(), MatchSuggestion.id)
        ).all()

        views: list[SuggestionView] = []
        for suggestion in suggestions:
            candidate = session.get(Profile, suggestion.candidate_id)
            if candidate is None:
                logger.warning(
                    "Skipping suggestion %d: candidate %s not found",
                    suggestion.id, suggestion.candidate_id,
                )
                continue
            views.append(SuggestionView(
                suggestion_id=suggestion.id,
                candidate_id=candidate.user_id,
                display_name=candidate.display_name,
                role=candidate.role,
                skills=list(candidate.skills or []),
                score=suggestion.score,
                reasons=list(suggestion.reasons or []),
                status=suggestion.status,
            ))
        return views


def _claim_suggestion(
    session: Session, user_id: str, suggestion_id: int, new_status: SuggestionStatus,
) -> MatchSuggestion:
    """Move a pending suggestion owned by *user_id* to *new_status* (CAS)."""
    suggestion = session.get(MatchSuggestion, suggestion_id)
    if suggestion is None:
        raise NotFound(f"suggestion {suggestion_id} not found", user_id)
    if suggestion.user_id != user_id:
        raise NotAuthorized("suggestion belongs to another user", user_id)

    result = session.execute(
        update(MatchSuggestion)
        .where(
            MatchSuggestion.id == suggestion_id,
            MatchSuggestion.status == SuggestionStatus.PENDING.value,
        )
        .values(status=new_status.value)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise StaleState(f"suggestion {suggestion_id} was already handled", user_id)
    session.refresh(suggestion)
    return suggestion


def connect_suggestion(
    engine: Engine,
    user_id: str,
    suggestion_id: int,
    *,
    message: str | None = None,
    sink: NotificationSink | None = None,
) -> ConnectionRequest:
    """Send a skill-match connection request for a suggestion."""
    with get_session(engine) as session:
        suggestion = _claim_suggestion(
            session, user_id, suggestion_id, SuggestionStatus.CONNECTED,
        )
        request, notification = open_request(
            session,
            user_id,
            suggestion.candidate_id,
            message=message,
            connection_type=ConnectionType.SKILL_MATCH,
        )
    emit_all(sink or DatabaseNotificationSink(engine), [notification])
    return request


def dismiss_suggestion(engine: Engine, user_id: str, suggestion_id: int) -> MatchSuggestion:
    with get_session(engine) as session:
        suggestion = _claim_suggestion(
            session, user_id, suggestion_id, SuggestionStatus.DISMISSED,
        )
        logger.info("Suggestion %d dismissed by %s", suggestion_id, user_id)
        return suggestion


def preview_score(engine: Engine, user_id: str, candidate_id: str) -> MatchScore:
    """Score two stored profiles without persisting anything."""
    if user_id == candidate_id:
        raise ValidationError("cannot score a profile against itself", user_id)
    with get_session(engine) as session:
        subject = MatchProfile.from_record(_load_profile(session, user_id))
        candidate = MatchProfile.from_record(_load_profile(session, candidate_id))
    return score(subject, candidate)
