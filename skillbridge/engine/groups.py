"""
skillbridge.engine.groups — Monthly Networking Group Planner
==============================================================

Pure planning for the monthly networking groups: shuffle the eligible
members, cut them into groups of ``GROUP_SIZE``, drop a trailing group
smaller than ``MIN_GROUP_SIZE``, then give each group a type, a name, a
meeting slot and a place.

All randomness comes from one ``random.Random`` seeded by the caller, so a
plan is reproducible from its seed and member list.
"""

from __future__ import annotations

import random
from dataclasses import dataclass

from skillbridge.database.models import GroupType
from skillbridge.errors import ValidationError

GROUP_SIZE = 5
MIN_GROUP_SIZE = 3

GROUP_NAMES: list[str] = [
    "Orion \U0001f30c",
    "Phoenix \U0001f525",
    "Nova \u2b50",
    "Cosmos \U0001f31f",
    "Stellar \u2728",
    "Galaxy \U0001f320",
    "Nebula \U0001f319",
    "Quasar \U0001f4ab",
    "Pulsar \u26a1",
    "Vortex \U0001f32a\ufe0f",
]

MEETING_TIMES: list[str] = [
    "Thursday 3:00 PM",
    "Friday 2:00 PM",
    "Wednesday 4:00 PM",
    "Tuesday 3:30 PM",
    "Thursday 2:30 PM",
]

CAFETERIA_TABLES: list[str] = [
    "Yellow Table",
    "Blue Table",
    "Green Table",
    "Red Table",
    "Purple Table",
]

FIXED_LOCATIONS: dict[GroupType, str] = {
    GroupType.VIDEO: "Virtual Meeting Room",
    GroupType.SKILL_SHARING: "Conference Room B",
}


@dataclass(frozen=True, slots=True)
class GroupPlan:
    name: str
    group_type: GroupType
    meeting_time: str
    meeting_location: str
    member_ids: tuple[str, ...]


def chunk_members(
    user_ids: list[str],
    rng: random.Random,
    *,
    size: int = GROUP_SIZE,
    min_size: int = MIN_GROUP_SIZE,
) -> list[list[str]]:
    """Shuffle *user_ids* and cut them into groups of *size*.

    A trailing chunk under *min_size* is left out; those members wait for
    next month.
    """
    if size < 1 or min_size < 1 or min_size > size:
        raise ValidationError(f"invalid group sizing: size={size}, min_size={min_size}")
    shuffled = list(dict.fromkeys(user_ids))
    rng.shuffle(shuffled)

    chunks: list[list[str]] = []
    for start in range(0, len(shuffled), size):
        chunk = shuffled[start:start + size]
        if len(chunk) < min_size:
            break
        chunks.append(chunk)
    return chunks


def meeting_location(group_type: GroupType, rng: random.Random) -> str:
    if group_type == GroupType.CAFETERIA:
        return rng.choice(CAFETERIA_TABLES)
    return FIXED_LOCATIONS.get(group_type, "TBD")


def group_names(count: int, rng: random.Random) -> list[str]:
    """*count* distinct names; past the pool, names repeat with a round suffix."""
    names: list[str] = []
    rounds = 0
    while len(names) < count:
        pool = rng.sample(GROUP_NAMES, len(GROUP_NAMES))
        if rounds:
            pool = [f"{name} {rounds + 1}" for name in pool]
        names.extend(pool)
        rounds += 1
    return names[:count]


def plan_groups(
    user_ids: list[str],
    *,
    seed: str | int,
    size: int = GROUP_SIZE,
    min_size: int = MIN_GROUP_SIZE,
) -> list[GroupPlan]:
    rng = random.Random(seed)
    chunks = chunk_members(user_ids, rng, size=size, min_size=min_size)
    names = group_names(len(chunks), rng)
    types = list(GroupType)

    plans: list[GroupPlan] = []
    for name, members in zip(names, chunks):
        group_type = rng.choice(types)
        plans.append(GroupPlan(
            name=name,
            group_type=group_type,
            meeting_time=rng.choice(MEETING_TIMES),
            meeting_location=meeting_location(group_type, rng),
            member_ids=tuple(members),
        ))
    return plans
