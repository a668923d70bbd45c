"""
Setup wizard and onboarding operations.

Users may only read and change their own progress; system callers may
act for any user.
"""

from __future__ import annotations

from rankbrnd.core.logging import get_logger
from rankbrnd.flows.steps import get_flow
from rankbrnd.flows.tracker import FlowStore, FlowTracker, Onboarding, SetupWizard
from rankbrnd.ops.context import OperationContext
from rankbrnd.ops.requests import FlowActionRequest, FlowRequest
from rankbrnd.ops.result import OperationResult, start_timer

logger = get_logger(__name__)

_WIZARD_SAVES = {
    "brand_config": SetupWizard.save_brand_config,
    "cms_integration": SetupWizard.save_cms_integration,
    "keyword_config": SetupWizard.save_keyword_config,
    "article_options": SetupWizard.save_article_options,
}

ACTIONS = ("start", "next", "previous", "go_to", "skip", "complete", "reset", "save", "achievement")


def _check(ctx: OperationContext, user_id: str, flow: str) -> str | None:
    if not user_id:
        return "user_id is required"
    if ctx.user is not None and ctx.user != user_id:
        return "FORBIDDEN"
    try:
        get_flow(flow)
    except ValueError as exc:
        return str(exc)
    return None


def _fail(problem: str, timer) -> OperationResult[dict]:
    if problem == "FORBIDDEN":
        return OperationResult.fail("FORBIDDEN", "Cannot access another user's progress", elapsed_ms=timer.elapsed_ms)
    return OperationResult.fail("VALIDATION_FAILED", problem, elapsed_ms=timer.elapsed_ms)


def get_flow_progress(ctx: OperationContext, request: FlowRequest) -> OperationResult[dict]:
    """Current progress, with per-step completion and access flags."""
    timer = start_timer()
    problem = _check(ctx, request.user_id, request.flow)
    if problem:
        return _fail(problem, timer)
    try:
        tracker = FlowStore(ctx.conn, clock=ctx.clock).load(request.user_id, request.flow)
        return OperationResult.ok(tracker.snapshot(), elapsed_ms=timer.elapsed_ms)
    except Exception as exc:
        logger.exception("op_failed", error=str(exc))
        return OperationResult.fail("INTERNAL", f"Failed to load progress: {exc}", elapsed_ms=timer.elapsed_ms)


def _apply(tracker: FlowTracker, request: FlowActionRequest) -> str | None:
    """Run *request.action* on *tracker*; returns a validation message on misuse."""
    action = request.action
    if action == "start":
        tracker.start()
    elif action == "next":
        tracker.next_step()
    elif action == "previous":
        tracker.previous_step()
    elif action == "go_to":
        if not request.step_id:
            return "step_id is required for go_to"
        tracker.go_to_step(request.step_id)
    elif action == "skip":
        tracker.skip_step()
    elif action == "complete":
        tracker.complete()
    elif action == "reset":
        tracker.reset()
    elif action == "save":
        if not isinstance(tracker, SetupWizard):
            return "save is only available for the setup wizard"
        saver = _WIZARD_SAVES.get(request.key or "")
        if saver is None:
            return f"key must be one of: {', '.join(_WIZARD_SAVES)}"
        saver(tracker, request.payload)
    elif action == "achievement":
        if not isinstance(tracker, Onboarding):
            return "achievements are only available for onboarding"
        tracker.mark_achievement(request.key or "")
    else:
        return f"action must be one of: {', '.join(ACTIONS)}"
    return None


def update_flow_progress(ctx: OperationContext, request: FlowActionRequest) -> OperationResult[dict]:
    """Apply one action and persist the result."""
    timer = start_timer()
    problem = _check(ctx, request.user_id, request.flow)
    if problem:
        return _fail(problem, timer)
    try:
        store = FlowStore(ctx.conn, clock=ctx.clock)
        tracker = store.load(request.user_id, request.flow)
        try:
            problem = _apply(tracker, request)
        except ValueError as exc:
            problem = str(exc)
        if problem:
            return OperationResult.fail("VALIDATION_FAILED", problem, elapsed_ms=timer.elapsed_ms)
        if not ctx.dry_run:
            store.save(tracker)
        logger.info(
            "flow_progress_updated",
            user_id=request.user_id,
            flow=request.flow,
            action=request.action,
            current_step=tracker.progress.current_step,
        )
        return OperationResult.ok(tracker.snapshot(), elapsed_ms=timer.elapsed_ms)
    except Exception as exc:
        logger.exception("op_failed", error=str(exc))
        return OperationResult.fail("INTERNAL", f"Failed to update progress: {exc}", elapsed_ms=timer.elapsed_ms)


def delete_flow_progress(ctx: OperationContext, request: FlowRequest) -> OperationResult[dict]:
    timer = start_timer()
    problem = _check(ctx, request.user_id, request.flow)
    if problem:
        return _fail(problem, timer)
    try:
        if not ctx.dry_run:
            FlowStore(ctx.conn, clock=ctx.clock).delete(request.user_id, request.flow)
        return OperationResult.ok({"user_id": request.user_id, "flow": request.flow, "deleted": True}, elapsed_ms=timer.elapsed_ms)
    except Exception as exc:
        logger.exception("op_failed", error=str(exc))
        return OperationResult.fail("INTERNAL", f"Failed to delete progress: {exc}", elapsed_ms=timer.elapsed_ms)
