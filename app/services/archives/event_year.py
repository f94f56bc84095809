# app/services/archives/event_year.py
"""
Resolve which calendar year counts as "the current event".

The event runs in November/December, so registrations arriving in January
belong to the previous cycle. The result is recomputed on every call from
the admin override and the live data; nothing is cached process-wide.
"""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import extract, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.models import Member, SettingKey
from app.services.archives.errors import InvalidEventYearError
from app.services.settings_service import get_setting

logger = logging.getLogger(__name__)

MIN_EVENT_YEAR = 2000
MAX_EVENT_YEAR = 2100


def parse_event_year(value) -> int:
    """
    Parse and range-check a year supplied by a caller.

    Raises:
        InvalidEventYearError: not an integer, or outside MIN/MAX_EVENT_YEAR
    """
    if isinstance(value, bool):
        raise InvalidEventYearError("Invalid year")
    try:
        year = int(str(value).strip())
    except (TypeError, ValueError):
        raise InvalidEventYearError("Invalid year") from None
    if year < MIN_EVENT_YEAR or year > MAX_EVENT_YEAR:
        raise InvalidEventYearError(
            f"Invalid year: must be between {MIN_EVENT_YEAR} and {MAX_EVENT_YEAR}"
        )
    return year


def _override_year(db: Session) -> Optional[int]:
    value = get_setting(db, SettingKey.EVENT_YEAR.value)
    if value is None or not value.strip():
        return None
    try:
        return parse_event_year(value)
    except InvalidEventYearError:
        logger.warning(f"Ignoring invalid event_year setting: {value!r}")
        return None


def _busiest_registration_month(db: Session) -> Optional[tuple[int, int]]:
    """(year, month) with the most member registrations, most recent on ties."""
    year_col = extract("year", Member.created_at)
    month_col = extract("month", Member.created_at)
    row = (
        db.query(year_col, month_col, func.count(Member.id))
        .filter(Member.created_at.isnot(None))
        .group_by(year_col, month_col)
        .order_by(func.count(Member.id).desc(), year_col.desc(), month_col.desc())
        .first()
    )
    if not row or row[0] is None or row[1] is None:
        return None
    return int(row[0]), int(row[1])


def detect_event_year(db: Session, now: Optional[datetime] = None) -> int:
    """
    Return the current event year. Never raises.

    Order: admin 'event_year' setting, then the busiest registration month
    (January counts for the previous year), then the current calendar year.
    """
    fallback = (now or datetime.utcnow()).year

    try:
        override = _override_year(db)
        if override is not None:
            return override

        bucket = _busiest_registration_month(db)
    except SQLAlchemyError as e:
        logger.warning(f"Event year detection failed, using {fallback}: {e}")
        db.rollback()
        return fallback
    except Exception as e:
        logger.error(f"Event year detection failed, using {fallback}: {e}", exc_info=True)
        return fallback

    if bucket is None:
        return fallback

    year, month = bucket
    return year - 1 if month == 1 else year
