"""
Fire-and-forget background work after a request has committed (e.g. calendar invites after a poll closes).

A task is a callable taking a fresh DB session. Tasks must be idempotent: they may be lost on a
crash or, if re-triggered, run twice. Failures are logged and never reach the caller.
"""
import logging
import threading
from collections.abc import Callable
from typing import Protocol

from sqlalchemy.orm import Session, sessionmaker

logger = logging.getLogger(__name__)

Task = Callable[[Session], object]


class TaskQueue(Protocol):
    def enqueue(self, name: str, task: Task) -> None: ...


def _run(session_factory: sessionmaker, name: str, task: Task) -> None:
    db = session_factory()
    try:
        task(db)
        logger.info("Background task %s finished", name)
    except Exception as e:
        logger.exception("Background task %s failed: %s", name, e)
        db.rollback()
    finally:
        db.close()


class ThreadTaskQueue:
    """One short-lived daemon thread per task, each with its own session."""

    def __init__(self, session_factory: sessionmaker) -> None:
        self._session_factory = session_factory

    def enqueue(self, name: str, task: Task) -> None:
        threading.Thread(
            target=_run,
            args=(self._session_factory, name, task),
            name=f"task-{name}",
            daemon=True,
        ).start()


class InlineTaskQueue:
    """Runs the task immediately on the calling thread. Used by tests and CLI scripts."""

    def __init__(self, session_factory: sessionmaker) -> None:
        self._session_factory = session_factory
        self.completed: list[str] = []

    def enqueue(self, name: str, task: Task) -> None:
        _run(self._session_factory, name, task)
        self.completed.append(name)
