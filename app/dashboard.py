# app/dashboard.py

"""State and actions behind the dashboard page.

A :class:`DashboardView` lives as long as one browser session and keeps the
last successfully fetched data, so a failed fetch leaves the page showing
what it showed before.
"""

import asyncio
import logging
import math
import time
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Dict, List, Optional
from zoneinfo import ZoneInfo

from starlette.concurrency import run_in_threadpool

from . import config
from .aggregation import WeeklySummary, day_window, week_window, weekly_totals
from .backend import BackendError, ExpenseBackend

logger = logging.getLogger(__name__)


def local_now() -> datetime:
    if config.TIMEZONE:
        return datetime.now(ZoneInfo(config.TIMEZONE))
    # naive: windows resolve each bound's own local offset
    return datetime.now()


@dataclass
class Notification:
    message: str
    level: str = "info"  # info / success / error


class DashboardView:
    def __init__(self, backend: ExpenseBackend, clock: Callable[[], datetime] = local_now):
        self.backend = backend
        self.clock = clock
        self.weekly = WeeklySummary()
        self.today_expenses: List[dict] = []
        self.title = ""
        self.amount = ""
        self.notifications: List[Notification] = []
        # set when add_expense has just refreshed the data
        self.fresh = False

    @property
    def total_expense(self):
        return self.weekly.total

    def notify(self, message: str, level: str = "info"):
        self.notifications.append(Notification(message, level))

    def pop_notifications(self) -> List[Notification]:
        pending, self.notifications = self.notifications, []
        return pending

    async def fetch_weekly(self, user) -> bool:
        now = self.clock()
        start, end = week_window(now)
        try:
            data = await run_in_threadpool(
                self.backend.select_expenses, user.id, start, end, ("amount", "created_at")
            )
        except BackendError:
            self.notify("Failed to fetch weekly expenses", "error")
            return False
        self.weekly = weekly_totals(data, now)
        return True

    async def fetch_today(self, user) -> bool:
        start, end = day_window(self.clock())
        try:
            data = await run_in_threadpool(
                self.backend.select_expenses, user.id, start, end, ("title", "amount", "created_at")
            )
        except BackendError:
            self.notify("Failed to fetch today's expenses", "error")
            return False
        self.today_expenses = data or []
        return True

    async def load(self, user):
        """Run both fetches concurrently; each updates its own state."""
        await asyncio.gather(self.fetch_weekly(user), self.fetch_today(user))

    async def show(self, user):
        """Load for a page render, unless add_expense already did."""
        if self.fresh:
            self.fresh = False
            return
        await self.load(user)

    async def add_expense(self, user, title: str, amount: str) -> bool:
        self.title, self.amount = title, amount

        if user is None:
            self.notify("User not found", "error")
            return False

        if not title or not amount:
            self.notify("Please fill all fields")
            return False

        try:
            value = float(amount)
        except ValueError:
            value = math.nan
        if not math.isfinite(value):
            self.notify("Amount must be a number", "error")
            return False

        try:
            await run_in_threadpool(
                self.backend.insert_expense, title, value, user.id, self.clock()
            )
        except BackendError:
            self.notify("Failed to add expense", "error")
            return False

        self.notify("Expense added", "success")
        self.title, self.amount = "", ""
        await self.fetch_weekly(user)
        await self.fetch_today(user)
        self.fresh = True
        return True


class DashboardStore:
    """In-process registry of dashboard views, one per browser session.

    Views idle for longer than ``max_age`` seconds are dropped, matching the
    lifetime of the session cookie that points at them.
    """

    def __init__(
        self,
        backend_factory: Callable[[], ExpenseBackend] = ExpenseBackend,
        max_age: float = config.SESSION_MAX_AGE,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._backend_factory = backend_factory
        self.max_age = max_age
        self._clock = clock
        self._views: Dict[str, DashboardView] = {}
        self._last_seen: Dict[str, float] = {}

    def get(self, session, backend: Optional[ExpenseBackend] = None) -> DashboardView:
        self.prune()
        view_id = session.get("view_id")
        view = self._views.get(view_id) if view_id else None
        if view is None:
            view_id = uuid.uuid4().hex
            session["view_id"] = view_id
            view = DashboardView(backend or self._backend_factory())
            self._views[view_id] = view
        elif backend is not None:
            view.backend = backend
        self._last_seen[view_id] = self._clock()
        return view

    def prune(self):
        cutoff = self._clock() - self.max_age
        expired = [view_id for view_id, seen in self._last_seen.items() if seen < cutoff]
        for view_id in expired:
            self._views.pop(view_id, None)
            del self._last_seen[view_id]
        if expired:
            logger.debug("Dropped %d idle dashboard views", len(expired))

    def discard(self, session):
        view_id = session.get("view_id")
        if view_id:
            self._views.pop(view_id, None)
            self._last_seen.pop(view_id, None)

    def __len__(self):
        return len(self._views)
