# app/services/settings_service.py
"""
Admin settings store.

Settings are plain strings keyed by name; callers parse what they need.
"""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from app.models import Setting

logger = logging.getLogger(__name__)


def get_setting(db: Session, key: str) -> Optional[str]:
    """Return a setting value, or None when unset or empty."""
    setting = db.query(Setting).filter(Setting.key == key).first()
    if not setting or not setting.value:
        return None
    return setting.value


def get_int_setting(db: Session, key: str) -> Optional[int]:
    """Return a setting parsed as int, or None when unset or not an integer."""
    value = get_setting(db, key)
    if value is None:
        return None
    try:
        return int(value.strip())
    except ValueError:
        logger.warning(f"Setting '{key}' is not an integer: {value!r}")
        return None


def set_setting(db: Session, key: str, value: str, description: str = "") -> Setting:
    """Create or update a setting. Keeps the existing description when none is given."""
    setting = db.query(Setting).filter(Setting.key == key).first()
    if setting is None:
        setting = Setting(key=key, value=value, description=description)
    else:
        setting.value = value
        if description:
            setting.description = description
        setting.updated_at = datetime.utcnow()

    db.add(setting)
    db.commit()
    db.refresh(setting)

    logger.info(f"Updated setting: {key}")
    return setting
