# app/services/archives/anonymizer.py
"""
GDPR anonymization of archived personal data.

Works on copies and is idempotent: anonymizing already-anonymized records
returns equal records.
"""

from typing import Optional

from app.schemas.archives import MemberSnapshot, PaymentEventSnapshot

ANONYMOUS_FIRST_NAME = "Participant"
ANONYMOUS_LAST_NAME = ""

# Direct identifiers and checkout correlators removed from members
_MEMBER_SCRUB = {
    "first_name": ANONYMOUS_FIRST_NAME,
    "last_name": ANONYMOUS_LAST_NAME,
    "email": None,
    "checkout_id": None,
    "transaction_id": None,
}

# Checkout correlator and free-form metadata (may embed personal data)
_PAYMENT_EVENT_SCRUB = {
    "checkout_id": None,
    "metadata": None,
}


def anonymize_members(members: Optional[list[MemberSnapshot]]) -> list[MemberSnapshot]:
    """Strip names, email and payment correlators; keep ids and statistical fields."""
    return [member.model_copy(update=_MEMBER_SCRUB, deep=True) for member in members or []]


def anonymize_payment_events(
    events: Optional[list[PaymentEventSnapshot]],
) -> list[PaymentEventSnapshot]:
    """Strip checkout ids and metadata; keep member_id, type, amount, tier and timestamp."""
    return [event.model_copy(update=_PAYMENT_EVENT_SCRUB, deep=True) for event in events or []]
