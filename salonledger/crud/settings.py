# salonledger/crud/settings.py
from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from salonledger.core.records import CommissionSettings
from salonledger.models.ledger import AppSetting

logger = logging.getLogger(__name__)

COMMISSIONS_KEY = "commissions"

# Used whenever the stored setting cannot be read.
DEFAULT_COMMISSION_SETTINGS = CommissionSettings(discounts_affect_commissions=True)


async def load_commission_settings(db: AsyncSession) -> CommissionSettings:
    """
    Reads {"discounts_affect_commissions": bool} from app_settings["commissions"].
    Never raises: a missing row, a malformed value or a DB error all fall back
    to discounts_affect_commissions=True.
    """
    try:
        stmt = select(AppSetting.value).where(AppSetting.key == COMMISSIONS_KEY)
        value = (await db.execute(stmt)).scalar_one_or_none()
    except SQLAlchemyError:
        logger.exception("could not load commission settings; using defaults")
        await db.rollback()
        return DEFAULT_COMMISSION_SETTINGS

    if value is None:
        return DEFAULT_COMMISSION_SETTINGS

    flag = value.get("discounts_affect_commissions") if isinstance(value, dict) else None
    if not isinstance(flag, bool):
        logger.warning("app_settings[%s] has no boolean discounts_affect_commissions (%r); using default", COMMISSIONS_KEY, value)
        return DEFAULT_COMMISSION_SETTINGS

    return CommissionSettings(discounts_affect_commissions=flag)
