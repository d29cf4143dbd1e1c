"""
Dependency Injection Providers for ARTI Ed

Provides FastAPI dependencies for database sessions and repositories.
Follows Dependency Inversion Principle - high-level modules depend on abstractions.
"""

from typing import Annotated, AsyncGenerator

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.infrastructure.db.database import get_session
from app.infrastructure.db.repositories import PlanRepository


# Type alias for session dependency
SessionDep = Annotated[AsyncSession, Depends(get_session)]


async def get_plan_repository(
    session: SessionDep,
) -> AsyncGenerator[PlanRepository, None]:
    """
    Dependency provider for PlanRepository.

    Usage:
        @router.get("/plans")
        async def list_plans(
            repo: PlanRepository = Depends(get_plan_repository)
        ):
            ...
    """
    yield PlanRepository(session)


# Type aliases for repository dependencies
PlanRepoDep = Annotated[PlanRepository, Depends(get_plan_repository)]
