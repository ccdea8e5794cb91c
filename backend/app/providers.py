"""
FastAPI dependency providers for the store and the graph manager.
"""

import asyncio

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_session
from app.services.dependencies import DependencyGraphManager
from app.services.store import TaskStore


async def get_task_store(session: AsyncSession = Depends(get_session)) -> TaskStore:
    return TaskStore(session)


async def get_graph_manager(
    request: Request,
    store: TaskStore = Depends(get_task_store),
) -> DependencyGraphManager:
    """Manager bound to this request's transaction and the app-wide graph lock."""
    lock = getattr(request.app.state, "graph_lock", None)
    if lock is None:
        lock = request.app.state.graph_lock = asyncio.Lock()
    return DependencyGraphManager(store, lock=lock)
