# app/services/live_store.py
"""
Read and wipe access to the live registration store.

Only what the archive subsystem needs: full listings converted to snapshot
records, row counts, and table wipes. Day-to-day team/member CRUD lives
elsewhere.
"""

import logging
from dataclasses import asdict, dataclass

from sqlalchemy import func, inspect
from sqlalchemy.orm import Session

from app.models import Member, PaymentEvent, Team
from app.schemas.archives import MemberSnapshot, PaymentEventSnapshot, TeamSnapshot

logger = logging.getLogger(__name__)


@dataclass
class DataCounts:
    """Row counts of the live store."""
    teams: int = 0
    members: int = 0
    payments: int = 0

    @property
    def has_data(self) -> bool:
        return self.teams > 0 or self.members > 0 or self.payments > 0

    @property
    def has_registrations(self) -> bool:
        return self.teams > 0 or self.members > 0

    def to_dict(self) -> dict:
        return asdict(self)


def payment_events_table_exists(db: Session) -> bool:
    """The payment log arrived in a later migration; older databases lack it."""
    return inspect(db.connection()).has_table(PaymentEvent.__tablename__)


def fetch_teams(db: Session) -> list[TeamSnapshot]:
    """All teams ordered by name, with member counts. Never includes password_hash."""
    member_counts = dict(
        db.query(Member.team_id, func.count(Member.id)).group_by(Member.team_id).all()
    )
    teams = db.query(Team).order_by(Team.name).all()
    return [
        TeamSnapshot.model_validate(team).model_copy(
            update={"member_count": member_counts.get(team.id, 0)}
        )
        for team in teams
    ]


def fetch_members(db: Session) -> list[MemberSnapshot]:
    """All members with every field, payment fields included."""
    members = (
        db.query(Member)
        .order_by(Member.team_id, Member.last_name, Member.first_name)
        .all()
    )
    return [MemberSnapshot.model_validate(member) for member in members]


def fetch_payment_events(db: Session) -> list[PaymentEventSnapshot]:
    """Payment history in chronological order; empty when the table does not exist."""
    if not payment_events_table_exists(db):
        logger.info("payment_events table not found, archiving without payment history")
        return []

    events = db.query(PaymentEvent).order_by(PaymentEvent.created_at, PaymentEvent.id).all()
    return [
        PaymentEventSnapshot(
            id=event.id,
            member_id=event.member_id,
            checkout_id=event.checkout_id,
            event_type=event.event_type,
            amount=event.amount,
            tier=event.tier,
            metadata=event.event_metadata,
            created_at=event.created_at,
        )
        for event in events
    ]


def get_data_counts(db: Session) -> DataCounts:
    """Row counts for teams, members and payment events."""
    teams = db.query(func.count(Team.id)).scalar() or 0
    members = db.query(func.count(Member.id)).scalar() or 0
    payments = 0
    if payment_events_table_exists(db):
        payments = db.query(func.count(PaymentEvent.id)).scalar() or 0
    return DataCounts(teams=teams, members=members, payments=payments)


def delete_all_live_data(db: Session) -> DataCounts:
    """
    Delete every payment event, member and team, in foreign-key order.

    Does not commit; the caller owns the transaction.
    """
    payments = 0
    if payment_events_table_exists(db):
        payments = db.query(PaymentEvent).delete(synchronize_session=False)
    members = db.query(Member).delete(synchronize_session=False)
    teams = db.query(Team).delete(synchronize_session=False)
    return DataCounts(teams=teams, members=members, payments=payments)
