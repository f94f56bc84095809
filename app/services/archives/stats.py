# app/services/archives/stats.py
"""
Aggregate statistics for an archived event.

Pure functions, no I/O. Computed once from the raw snapshot and stored
forever, so the figures stay accurate after personal data is anonymized.
"""

from collections import Counter
from typing import Iterable, Optional

from app.models import PaymentMethod, PaymentStatus
from app.schemas.archives import (
    ArchiveStats,
    AttendanceStats,
    MemberSnapshot,
    PaymentEventSnapshot,
    PaymentStats,
    TeamSnapshot,
)


def total_revenue(members: Optional[Iterable[MemberSnapshot]]) -> int:
    """Sum of member payment amounts in cents, missing amounts count as 0."""
    return sum(member.payment_amount or 0 for member in members or [])


def _is_paid(member: MemberSnapshot) -> bool:
    return member.payment_status == PaymentStatus.PAID.value


def calculate_stats(
    teams: Optional[list[TeamSnapshot]],
    members: Optional[list[MemberSnapshot]],
    payment_events: Optional[list[PaymentEventSnapshot]] = None,
) -> ArchiveStats:
    """
    Compute the statistics document for a snapshot.

    Payment events are accepted for symmetry with the snapshot triple; every
    payment figure is derived from member rows, which carry the settled state.
    """
    teams = teams or []
    members = members or []

    by_bac_level: Counter = Counter(str(member.bac_level or 0) for member in members)
    food_preferences: Counter = Counter(member.food_diet for member in members if member.food_diet)
    timeline: Counter = Counter(
        member.created_at.date().isoformat() for member in members if member.created_at
    )

    checked_in = sum(1 for member in members if member.checked_in)
    paid = [member for member in members if _is_paid(member)]

    return ArchiveStats(
        total_teams=len(teams),
        total_participants=len(members),
        participants_by_bac_level=dict(by_bac_level),
        food_preferences=dict(food_preferences),
        attendance=AttendanceStats(
            checked_in=checked_in,
            no_show=len(members) - checked_in,
        ),
        payments=PaymentStats(
            total_revenue=total_revenue(members),
            paid=len(paid),
            unpaid=len(members) - len(paid),
            paid_online=sum(1 for m in paid if m.payment_method == PaymentMethod.ONLINE.value),
            paid_onsite=sum(1 for m in paid if m.payment_method == PaymentMethod.ON_SITE.value),
        ),
        registration_timeline=dict(sorted(timeline.items())),
    )
