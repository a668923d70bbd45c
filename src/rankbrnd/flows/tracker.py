"""Linear step trackers for the setup wizard and onboarding flows.

A tracker wraps a :class:`FlowProgress` and mutates it in place; the
:class:`FlowStore` persists one row per (user, flow). Stored state whose
version differs from the flow definition's is discarded and the user
starts over.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any

from rankbrnd.core.logging import get_logger
from rankbrnd.core.protocols import Connection
from rankbrnd.core.repositories import FlowProgressRepository
from rankbrnd.core.timestamps import to_iso8601, utc_now
from rankbrnd.flows.steps import ONBOARDING, SETUP_WIZARD, FlowDefinition, get_flow

logger = get_logger(__name__)


@dataclass
class FlowProgress:
    user_id: str
    flow: str
    current_step: str
    completed_steps: list[str] = field(default_factory=list)
    skipped_steps: list[str] = field(default_factory=list)
    started_at: str | None = None
    completed_at: str | None = None
    flags: dict[str, bool] = field(default_factory=dict)
    data: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def fresh(cls, user_id: str, definition: FlowDefinition) -> FlowProgress:
        return cls(
            user_id=user_id,
            flow=definition.name,
            current_step=definition.first_step,
            flags={name: False for name in definition.flags},
        )

    @classmethod
    def from_state(cls, user_id: str, definition: FlowDefinition, state: dict[str, Any]) -> FlowProgress:
        """Rebuild from stored state, filling fields a stored row lacks."""
        progress = cls.fresh(user_id, definition)
        if state.get("current_step") in definition.step_ids:
            progress.current_step = state["current_step"]
        progress.completed_steps = [s for s in state.get("completed_steps", []) if s in definition.step_ids]
        progress.skipped_steps = [s for s in state.get("skipped_steps", []) if s in definition.step_ids]
        progress.started_at = state.get("started_at")
        progress.completed_at = state.get("completed_at")
        progress.flags.update({k: bool(v) for k, v in state.get("flags", {}).items() if k in definition.flags})
        progress.data = dict(state.get("data", {}))
        return progress

    def to_state(self) -> dict[str, Any]:
        state = asdict(self)
        del state["user_id"], state["flow"]
        return state


class FlowTracker:
    """Navigation over one user's progress through a flow."""

    definition: FlowDefinition

    def __init__(
        self,
        progress: FlowProgress,
        *,
        definition: FlowDefinition | None = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.definition = definition or get_flow(progress.flow)
        self.progress = progress
        self._clock = clock

    @classmethod
    def for_user(cls, user_id: str, *, clock: Callable[[], datetime] = utc_now) -> FlowTracker:
        return cls(FlowProgress.fresh(user_id, cls.definition), definition=cls.definition, clock=clock)

    def _now(self) -> str:
        return to_iso8601(self._clock())

    def _mark_completed(self, step_id: str) -> None:
        if step_id not in self.progress.completed_steps:
            self.progress.completed_steps.append(step_id)

    # -- navigation ----------------------------------------------------------

    def start(self) -> None:
        """Begin (or restart) the flow at its first step."""
        self.progress.current_step = self.definition.first_step
        self.progress.started_at = self._now()
        self.progress.completed_at = None
        self.progress.completed_steps = []
        self.progress.skipped_steps = []

    def go_to_step(self, step_id: str) -> None:
        """Jump to *step_id*; moving forward completes the current step."""
        target = self.definition.index_of(step_id)
        if target > self.current_step_index:
            self._mark_completed(self.progress.current_step)
        self.progress.current_step = step_id

    def next_step(self) -> None:
        index = self.current_step_index
        if index < self.total_steps - 1:
            self.go_to_step(self.definition.steps[index + 1].id)

    def previous_step(self) -> None:
        index = self.current_step_index
        if index > 0:
            self.go_to_step(self.definition.steps[index - 1].id)

    def skip_step(self) -> None:
        current = self.progress.current_step
        if current not in self.progress.skipped_steps:
            self.progress.skipped_steps.append(current)
        self.next_step()

    def complete(self) -> None:
        self.progress.completed_at = self._now()
        self.progress.current_step = self.definition.last_step
        self._mark_completed(self.definition.last_step)

    def reset(self) -> None:
        self.progress = FlowProgress.fresh(self.progress.user_id, self.definition)

    # -- queries -------------------------------------------------------------

    def is_complete(self) -> bool:
        return self.progress.completed_at is not None

    @property
    def current_step_index(self) -> int:
        return self.definition.index_of(self.progress.current_step)

    @property
    def total_steps(self) -> int:
        return len(self.definition.steps)

    def can_access_step(self, step_id: str) -> bool:
        return self.definition.index_of(step_id) <= self.current_step_index

    def is_step_completed(self, step_id: str) -> bool:
        self.definition.index_of(step_id)
        if step_id in self.progress.completed_steps:
            return True
        flag = self.definition.step_flags.get(step_id)
        return bool(flag and self.progress.flags.get(flag))

    def progress_percentage(self) -> int:
        """Completed required steps as a rounded percentage."""
        required = self.definition.required_steps
        if not required:
            return 100
        done = sum(1 for s in required if s.id in self.progress.completed_steps)
        return int(done * 100 / len(required) + 0.5)

    def snapshot(self) -> dict[str, Any]:
        return {
            "user_id": self.progress.user_id,
            "flow": self.definition.name,
            **self.progress.to_state(),
            "current_step_index": self.current_step_index,
            "total_steps": self.total_steps,
            "progress_percentage": self.progress_percentage(),
            "is_complete": self.is_complete(),
            "steps": [
                {
                    "id": step.id,
                    "title": step.title,
                    "description": step.description,
                    "optional": step.optional,
                    "estimated_minutes": step.estimated_minutes,
                    "completed": self.is_step_completed(step.id),
                    "accessible": self.can_access_step(step.id),
                }
                for step in self.definition.steps
            ],
        }


class SetupWizard(FlowTracker):
    """Setup wizard: brand, CMS, first keyword, first article."""

    definition = SETUP_WIZARD

    def _save(self, key: str, value: dict[str, Any], flag: str, flag_value: bool = True) -> None:
        self.progress.data[key] = value
        self.progress.flags[flag] = flag_value

    def save_brand_config(self, config: dict[str, Any]) -> None:
        self._save("brand_config", config, "brand_setup_complete")

    def save_cms_integration(self, integration: dict[str, Any]) -> None:
        """Store the CMS choice; the step counts as done only once connected."""
        self._save("cms_integration", integration, "cms_connected", bool(integration.get("connected")))

    def save_keyword_config(self, config: dict[str, Any]) -> None:
        self._save("keyword_config", config, "keyword_created")

    def save_article_options(self, options: dict[str, Any]) -> None:
        self._save("article_options", options, "article_generated")


class Onboarding(FlowTracker):
    """First-run onboarding."""

    definition = ONBOARDING

    def mark_achievement(self, flag: str) -> None:
        if flag not in self.definition.flags:
            raise ValueError(f"Unknown onboarding achievement: {flag!r}")
        self.progress.flags[flag] = True


TRACKERS: dict[str, type[FlowTracker]] = {
    SETUP_WIZARD.name: SetupWizard,
    ONBOARDING.name: Onboarding,
}


class FlowStore:
    """Loads and saves trackers, one row per (user, flow)."""

    def __init__(self, conn: Connection, *, clock: Callable[[], datetime] = utc_now):
        self.conn = conn
        self.repo = FlowProgressRepository(conn)
        self._clock = clock

    def load(self, user_id: str, flow: str) -> FlowTracker:
        """Saved tracker for *user_id*, or a fresh one.

        A row written by a different flow version is deleted.
        """
        get_flow(flow)
        tracker_cls = TRACKERS[flow]
        definition = tracker_cls.definition
        row = self.repo.load(user_id, flow)
        if row is not None and row["version"] != definition.version:
            logger.info(
                "flow_progress_discarded",
                user_id=user_id,
                flow=flow,
                stored_version=row["version"],
                version=definition.version,
            )
            self.repo.delete(user_id, flow)
            self.conn.commit()
            row = None
        if row is None:
            return tracker_cls.for_user(user_id, clock=self._clock)
        progress = FlowProgress.from_state(user_id, definition, row["state"])
        return tracker_cls(progress, definition=definition, clock=self._clock)

    def save(self, tracker: FlowTracker) -> None:
        self.repo.save(
            tracker.progress.user_id,
            tracker.definition.name,
            tracker.definition.version,
            tracker.progress.to_state(),
            to_iso8601(self._clock()),
        )
        self.conn.commit()

    def delete(self, user_id: str, flow: str) -> None:
        get_flow(flow)
        self.repo.delete(user_id, flow)
        self.conn.commit()
