"""Short link service: code generation, lookups and click counting."""

import secrets
import string
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from biolink.core.errors import ShortCodeGenerationError
from biolink.models.short_link import ShortLink
from biolink.schemas.link import LinkSnapshot, UtmParams
from biolink.services.link_cache import LinkCache

# Characters for random short code generation (base62)
SHORT_CODE_CHARS = string.ascii_lowercase + string.ascii_uppercase + string.digits
SHORT_CODE_LENGTH = 7
MAX_GENERATION_ATTEMPTS = 10


def generate_short_code(length: int = SHORT_CODE_LENGTH) -> str:
    """Generate a random short code using base62 characters."""
    return "".join(secrets.choice(SHORT_CODE_CHARS) for _ in range(length))


async def is_short_code_available(session: AsyncSession, short_code: str) -> bool:
    """Check if a short code is available (not already used)."""
    result = await session.execute(
        select(ShortLink.id).where(ShortLink.short_code == short_code)
    )
    return result.scalar_one_or_none() is None


async def generate_unique_short_code(
    session: AsyncSession,
    max_attempts: int = MAX_GENERATION_ATTEMPTS,
) -> str:
    """Generate a unique short code with collision detection.

    Raises:
        ShortCodeGenerationError: If every attempt collided with an
            existing code.
    """
    for _ in range(max_attempts):
        code = generate_short_code()
        if await is_short_code_available(session, code):
            return code
    raise ShortCodeGenerationError("Failed to generate unique short code after multiple attempts")


async def create_short_link(
    session: AsyncSession,
    user_id: UUID,
    profile_id: UUID,
    full_url: str,
    utm_params: UtmParams,
    with_short_code: bool = False,
) -> ShortLink:
    """Create a UTM link, optionally with a fresh short code."""
    short_code = await generate_unique_short_code(session) if with_short_code else None

    link = ShortLink(
        user_id=user_id,
        profile_id=profile_id,
        short_code=short_code,
        full_url=full_url,
        utm_params=utm_params.model_dump(exclude_none=True),
        clicks=0,
    )
    session.add(link)
    await session.flush()
    await session.refresh(link)
    return link


async def get_link_by_id(session: AsyncSession, link_id: UUID) -> ShortLink | None:
    """Get a link by its ID."""
    result = await session.execute(select(ShortLink).where(ShortLink.id == link_id))
    return result.scalar_one_or_none()


async def get_user_links(
    session: AsyncSession,
    user_id: UUID,
    profile_id: UUID | None = None,
) -> list[ShortLink]:
    """Get a user's links, newest first, optionally for one profile."""
    query = select(ShortLink).where(ShortLink.user_id == user_id)
    if profile_id:
        query = query.where(ShortLink.profile_id == profile_id)
    result = await session.execute(query.order_by(ShortLink.created_at.desc()))
    return list(result.scalars().all())


async def update_link_utm(
    session: AsyncSession,
    link: ShortLink,
    utm_params: UtmParams,
    full_url: str,
    cache: LinkCache,
) -> ShortLink:
    """Replace a link's UTM parameters and destination URL."""
    link.utm_params = utm_params.model_dump(exclude_none=True)
    link.full_url = full_url
    await session.flush()
    await session.refresh(link)

    # Invalidate cache so next redirect gets the new destination
    if link.short_code:
        await cache.delete(link.short_code)

    return link


async def delete_link(session: AsyncSession, link: ShortLink, cache: LinkCache) -> None:
    """Delete a link and its cached snapshot."""
    short_code = link.short_code  # Save before deletion

    await session.delete(link)
    await session.flush()

    if short_code:
        await cache.delete(short_code)


async def resolve(session: AsyncSession, short_code: str) -> LinkSnapshot | None:
    """Look up the snapshot for a short code in the database."""
    result = await session.execute(
        select(ShortLink.id, ShortLink.full_url, ShortLink.clicks).where(
            ShortLink.short_code == short_code
        )
    )
    row = result.one_or_none()
    if row is None:
        return None
    return LinkSnapshot(id=row.id, full_url=row.full_url, clicks=row.clicks)


async def increment_clicks(session: AsyncSession, link_id: UUID) -> int | None:
    """Atomically add one click and return the new durable count.

    Runs as a single relative ``UPDATE ... SET clicks = clicks + 1``, so
    concurrent increments never lose updates. Returns None when the link no
    longer exists.
    """
    result = await session.execute(
        update(ShortLink)
        .where(ShortLink.id == link_id)
        .values(clicks=ShortLink.clicks + 1)
        .returning(ShortLink.clicks)
        .execution_options(synchronize_session=False)
    )
    return result.scalar_one_or_none()
