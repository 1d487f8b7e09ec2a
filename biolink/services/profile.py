"""Read-only access to profiles and their blocks."""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from biolink.models.profile import Profile, ProfileBlock


async def get_profile(session: AsyncSession, profile_id: UUID) -> Profile | None:
    """Get a profile by its ID."""
    result = await session.execute(select(Profile).where(Profile.id == profile_id))
    return result.scalar_one_or_none()


async def get_block(session: AsyncSession, block_id: UUID) -> ProfileBlock | None:
    """Get a block by its ID."""
    result = await session.execute(select(ProfileBlock).where(ProfileBlock.id == block_id))
    return result.scalar_one_or_none()


async def get_profile_blocks(session: AsyncSession, profile_id: UUID) -> list[ProfileBlock]:
    """Get all blocks of a profile in page order."""
    result = await session.execute(
        select(ProfileBlock)
        .where(ProfileBlock.profile_id == profile_id)
        .order_by(ProfileBlock.position)
    )
    return list(result.scalars().all())
