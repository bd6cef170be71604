from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from . import models


class StoredValueCRUD:
    @staticmethod
    async def get_value(db: AsyncSession, key: str) -> Optional[str]:
        result = await db.execute(
            select(models.StoredValue.value).where(models.StoredValue.key == key)
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def set_value(db: AsyncSession, key: str, value: str) -> models.StoredValue:
        result = await db.execute(
            select(models.StoredValue).where(models.StoredValue.key == key)
        )
        existing = result.scalar_one_or_none()

        if existing:
            existing.value = value
        else:
            existing = models.StoredValue(key=key, value=value)
            db.add(existing)

        await db.commit()
        await db.refresh(existing)
        return existing
