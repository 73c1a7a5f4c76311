"""
skillbridge.engine.matching — Match Scorer
===========================================

Pure, deterministic compatibility scoring between two profiles.
No database I/O and no clock: the same inputs always give the same score.

Scoring is a weighted heuristic sum clamped to 100:

    shared skills        +20 each
    complementary skills +15 (candidate knows something the subject doesn't)
    shared work styles   +10 each
    learning match       +25 (subject's learning_now ~ candidate's can_teach)
    other department     +10

Each rule contributes at most one human-readable reason.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from skillbridge.errors import ValidationError

logger = logging.getLogger(__name__)

__all__ = [
    "MATCH_WEIGHTS",
    "MatchProfile",
    "MatchScore",
    "RankedMatch",
    "rank_candidates",
    "score",
]

# ---------------------------------------------------------------------------
# Weights and reasons
# ---------------------------------------------------------------------------
MATCH_WEIGHTS: dict[str, int] = {
    "shared_skill": 20,
    "complementary_skills": 15,
    "shared_working_style": 10,
    "learning_match": 25,
    "cross_department": 10,
}

MAX_SCORE = 100
DEFAULT_MIN_SCORE = 20
DEFAULT_MAX_SUGGESTIONS = 5

REASON_SHARED_SKILLS = "Shared {count} skills in common"
REASON_COMPLEMENTARY = "Has complementary skills you could learn"
REASON_WORKING_STYLES = "Compatible working styles"
REASON_LEARNING_MATCH = "Perfect learning match opportunity"
REASON_CROSS_DEPARTMENT = "Cross-department networking opportunity"


# ---------------------------------------------------------------------------
# Input snapshot: parsed and validated once at the store boundary
# ---------------------------------------------------------------------------
def _string_list(value: Any, field_name: str) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str | bytes) or not isinstance(value, Sequence):
        raise ValidationError(f"{field_name} must be a list of strings")
    items: list[str] = []
    for item in value:
        if not isinstance(item, str) or not item.strip():
            raise ValidationError(f"{field_name} contains an invalid entry: {item!r}")
        items.append(item)
    return tuple(items)


def _optional_text(value: Any, field_name: str) -> str:
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValidationError(f"{field_name} must be text")
    return value.strip()


@dataclass(frozen=True, slots=True)
class MatchProfile:
    """The profile fields the scorer reads."""

    user_id: str
    role: str = ""
    skills: tuple[str, ...] = ()
    working_styles: tuple[str, ...] = ()
    learning_now: str = ""
    can_teach: str = ""

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> MatchProfile:
        """Validate a loosely-typed record and build a snapshot.

        Raises
        ------
        ValidationError
            If ``user_id`` is missing or a list field is malformed.
        """
        user_id = data.get("user_id")
        if not isinstance(user_id, str) or not user_id:
            raise ValidationError("user_id is required for scoring")
        return cls(
            user_id=user_id,
            role=_optional_text(data.get("role"), "role"),
            skills=_string_list(data.get("skills"), "skills"),
            working_styles=_string_list(data.get("working_styles"), "working_styles"),
            learning_now=_optional_text(data.get("learning_now"), "learning_now"),
            can_teach=_optional_text(data.get("can_teach"), "can_teach"),
        )

    @classmethod
    def from_record(cls, record: Any) -> MatchProfile:
        """Build a snapshot from an ORM ``Profile`` (or any attribute bag)."""
        return cls.from_mapping({
            "user_id": getattr(record, "user_id", None),
            "role": getattr(record, "role", None),
            "skills": getattr(record, "skills", None),
            "working_styles": getattr(record, "working_styles", None),
            "learning_now": getattr(record, "learning_now", None),
            "can_teach": getattr(record, "can_teach", None),
        })


@dataclass(frozen=True, slots=True)
class MatchScore:
    """Scorer output.  ``raw`` is the unclamped sum used for eligibility."""

    value: int
    raw: int
    reasons: list[str] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class RankedMatch:
    candidate_id: str
    score: MatchScore


# ---------------------------------------------------------------------------
# Rules
# ---------------------------------------------------------------------------
def _learning_match(learning_now: str, can_teach: str) -> bool:
    if not learning_now or not can_teach:
        return False
    wants = learning_now.lower()
    offers = can_teach.lower()
    return wants in offers or offers in wants


def score(subject: MatchProfile, candidate: MatchProfile) -> MatchScore:
    """Score how well *candidate* fits *subject*."""
    raw = 0
    reasons: list[str] = []

    subject_skills = set(subject.skills)
    candidate_skills = set(candidate.skills)

    shared = subject_skills & candidate_skills
    if shared:
        raw += len(shared) * MATCH_WEIGHTS["shared_skill"]
        reasons.append(REASON_SHARED_SKILLS.format(count=len(shared)))

    if candidate_skills and candidate_skills - subject_skills:
        raw += MATCH_WEIGHTS["complementary_skills"]
        reasons.append(REASON_COMPLEMENTARY)

    shared_styles = set(subject.working_styles) & set(candidate.working_styles)
    if shared_styles:
        raw += len(shared_styles) * MATCH_WEIGHTS["shared_working_style"]
        reasons.append(REASON_WORKING_STYLES)

    if _learning_match(subject.learning_now, candidate.can_teach):
        raw += MATCH_WEIGHTS["learning_match"]
        reasons.append(REASON_LEARNING_MATCH)

    if subject.role and candidate.role and subject.role != candidate.role:
        raw += MATCH_WEIGHTS["cross_department"]
        reasons.append(REASON_CROSS_DEPARTMENT)

    return MatchScore(value=min(raw, MAX_SCORE), raw=raw, reasons=reasons)


def rank_candidates(
    subject: MatchProfile,
    candidates: Iterable[MatchProfile],
    *,
    min_score: int = DEFAULT_MIN_SCORE,
    limit: int = DEFAULT_MAX_SUGGESTIONS,
) -> list[RankedMatch]:
    """Score every candidate and keep the best *limit* eligible ones.

    A candidate is eligible when its raw score exceeds *min_score*.  The
    sort is stable, so equal scores keep their input order.
    """
    eligible: list[RankedMatch] = []
    for candidate in candidates:
        if candidate.user_id == subject.user_id:
            continue
        result = score(subject, candidate)
        if result.raw > min_score:
            eligible.append(RankedMatch(candidate_id=candidate.user_id, score=result))

    eligible.sort(key=lambda m: m.score.value, reverse=True)
    logger.debug(
        "Ranked %d eligible candidates for %s (keeping %d)",
        len(eligible), subject.user_id, min(limit, len(eligible)),
    )
    return eligible[:limit]
