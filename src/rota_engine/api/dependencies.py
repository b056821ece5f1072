"""FastAPI dependencies for dependency injection."""

from collections.abc import AsyncGenerator
from typing import Annotated
from uuid import UUID

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from rota_engine.database import init_db
from rota_engine.services.authorization import Actor


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Get database session dependency.

    One request is one transaction: commit on success, roll back on error.
    """
    _, factory = init_db()
    async with factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


def _parse_uuid(value: str, header: str) -> UUID:
    try:
        return UUID(value)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid {header} format",
        )


async def get_tenant_id(
    x_tenant_id: Annotated[str | None, Header()] = None
) -> UUID:
    """Extract tenant ID from header."""
    if not x_tenant_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="X-Tenant-ID header is required",
        )
    return _parse_uuid(x_tenant_id, "X-Tenant-ID")


async def get_actor(
    tenant_id: Annotated[UUID, Depends(get_tenant_id)],
    x_user_id: Annotated[str | None, Header()] = None,
    x_user_role: Annotated[str | None, Header()] = None,
) -> Actor:
    """Caller identity as forwarded by the authenticating gateway."""
    user_id = _parse_uuid(x_user_id, "X-User-ID") if x_user_id else None
    role = x_user_role.strip().lower() if x_user_role else None
    return Actor(tenant_id=tenant_id, user_id=user_id, role=role)


# Type aliases for cleaner dependency injection
DbSession = Annotated[AsyncSession, Depends(get_db_session)]
CurrentActor = Annotated[Actor, Depends(get_actor)]
