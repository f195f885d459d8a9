"""
Advisory side effects.

Balance checks, webhooks and alerts must never change a registration's
outcome. They run through here and come back as AdvisoryResult values the
caller may inspect and is free to ignore. Spawned ones are kept strongly
referenced until done.
"""

import asyncio
from dataclasses import dataclass
from typing import Any, Awaitable, Optional, Set

from loguru import logger

_ADVISORY_TASKS: Set[asyncio.Task] = set()
_MAX_ADVISORY_TASKS = 1000


@dataclass
class AdvisoryResult:
    name: str
    ok: bool
    value: Any = None
    error: Optional[str] = None


async def run_advisory(name: str, awaitable: Awaitable[Any]) -> AdvisoryResult:
    try:
        value = await awaitable
    except asyncio.CancelledError:
        raise
    except Exception as e:
        logger.warning(f"[Advisory] {name} failed: {e}")
        return AdvisoryResult(name=name, ok=False, error=str(e))
    return AdvisoryResult(name=name, ok=True, value=value)


def _prune_done_tasks():
    done_tasks = {t for t in _ADVISORY_TASKS if t.done()}
    if done_tasks:
        _ADVISORY_TASKS.difference_update(done_tasks)


def spawn_advisory(name: str, awaitable: Awaitable[Any]) -> asyncio.Task:
    """Run an advisory in the background; its failure is logged, never raised."""
    task = asyncio.ensure_future(run_advisory(name, awaitable))
    _ADVISORY_TASKS.add(task)
    if len(_ADVISORY_TASKS) > _MAX_ADVISORY_TASKS:
        _prune_done_tasks()
        if len(_ADVISORY_TASKS) > _MAX_ADVISORY_TASKS:
            logger.warning(f"[Advisory] Too many background tasks ({len(_ADVISORY_TASKS)}), latest={name}")

    def _on_done(done_task: asyncio.Task):
        _ADVISORY_TASKS.discard(done_task)
        if done_task.cancelled():
            logger.debug(f"[Advisory] Background task cancelled: {name}")

    task.add_done_callback(_on_done)
    return task


async def drain_advisories(timeout: Optional[float] = None):
    """Wait for outstanding advisories (shutdown, tests)."""
    pending = [t for t in _ADVISORY_TASKS if not t.done()]
    if not pending:
        return
    _, still_pending = await asyncio.wait(pending, timeout=timeout)
    if still_pending:
        logger.warning(f"[Advisory] {len(still_pending)} background task(s) still running after drain")


def reset_advisories_for_testing():
    """Test helper: cancel and forget every outstanding advisory."""
    for task in list(_ADVISORY_TASKS):
        if not task.done():
            task.cancel()
    _ADVISORY_TASKS.clear()
