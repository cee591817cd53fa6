"""
Shared FastAPI dependencies for the GigBridge backend.

Provides the async database session dependency used by all route handlers,
the authenticated principal extracted from a JWT Bearer token, and the
payment gateway used to settle payments.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from gigbridge.core.config import settings
from gigbridge.core.security import AuthenticatedPrincipal, decode_access_token
from gigbridge.integrations.payments import PaymentGateway, build_gateway

# ---------------------------------------------------------------------------
# Async engine & session factory
# ---------------------------------------------------------------------------
# The engine is created once at module import time.  The session factory
# produces lightweight ``AsyncSession`` instances that are scoped to a single
# request via the ``get_db`` dependency below.
# ---------------------------------------------------------------------------

engine = create_async_engine(
    settings.database_url,
    echo=settings.sql_echo,
    pool_size=settings.db_pool_size,
    max_overflow=settings.db_max_overflow,
    pool_pre_ping=True,
)

async_session_factory = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Yield an async database session scoped to one request.

    Everything a request writes is committed together when the handler
    returns, or rolled back together if it raises. Hiring relies on this to
    make the job claim, proposal updates and contract insert one unit.
    """
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


DBSession = Annotated[AsyncSession, Depends(get_db)]


# ---------------------------------------------------------------------------
# Authentication
# ---------------------------------------------------------------------------

_bearer_scheme = HTTPBearer(auto_error=True)


async def get_current_principal(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(_bearer_scheme)],
) -> AuthenticatedPrincipal:
    """Decode the Bearer token into an ``AuthenticatedPrincipal``.

    Raises 401 if the token is expired, malformed or carries unknown claims.
    """
    try:
        return decode_access_token(credentials.credentials)
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(exc),
            headers={"WWW-Authenticate": "Bearer"},
        )


CurrentPrincipal = Annotated[AuthenticatedPrincipal, Depends(get_current_principal)]


# ---------------------------------------------------------------------------
# Payment gateway
# ---------------------------------------------------------------------------

_gateway: PaymentGateway | None = None


def get_payment_gateway() -> PaymentGateway:
    """Process-wide gateway built from settings on first use."""
    global _gateway
    if _gateway is None:
        _gateway = build_gateway(settings)
    return _gateway


Gateway = Annotated[PaymentGateway, Depends(get_payment_gateway)]
