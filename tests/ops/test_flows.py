"""Tests for rankbrnd.ops.flows."""

import pytest

from rankbrnd.core.repositories import FlowProgressRepository
from rankbrnd.ops.flows import delete_flow_progress, get_flow_progress, update_flow_progress
from rankbrnd.ops.requests import FlowActionRequest, FlowRequest


def _act(ctx, action, flow="setup_wizard", user_id="user-1", **kwargs):
    return update_flow_progress(ctx, FlowActionRequest(user_id=user_id, flow=flow, action=action, **kwargs))


class TestGet:
    def test_fresh_progress(self, ctx):
        snap = get_flow_progress(ctx, FlowRequest(user_id="user-1", flow="setup_wizard")).data
        assert snap["current_step"] == "brand-setup"
        assert snap["current_step_index"] == 0
        assert snap["total_steps"] == 5
        assert snap["progress_percentage"] == 0
        assert snap["is_complete"] is False
        assert [s["accessible"] for s in snap["steps"]] == [True, False, False, False, False]

    def test_unknown_flow(self, ctx):
        result = get_flow_progress(ctx, FlowRequest(user_id="user-1", flow="tutorial"))
        assert result.error.code == "VALIDATION_FAILED"
        assert "Unknown flow" in result.error.message

    def test_user_required(self, ctx):
        result = get_flow_progress(ctx, FlowRequest(flow="onboarding"))
        assert result.error.message == "user_id is required"

    def test_other_users_progress_forbidden(self, user_ctx):
        result = get_flow_progress(user_ctx("user-2"), FlowRequest(user_id="user-1", flow="onboarding"))
        assert result.error.code == "FORBIDDEN"
        assert result.error.message == "Cannot access another user's progress"


class TestNavigation:
    def test_start_and_advance_persists(self, ctx, conn):
        assert _act(ctx, "start").data["started_at"] == "2026-03-15T12:00:00.000Z"
        snap = _act(ctx, "next").data

        assert snap["current_step"] == "cms-connection"
        assert snap["completed_steps"] == ["brand-setup"]
        assert FlowProgressRepository(conn).load("user-1", "setup_wizard") is not None
        reloaded = get_flow_progress(ctx, FlowRequest(user_id="user-1", flow="setup_wizard")).data
        assert reloaded["current_step"] == "cms-connection"

    def test_skip_and_previous(self, ctx):
        _act(ctx, "go_to", step_id="cms-connection")
        snap = _act(ctx, "skip").data
        assert snap["current_step"] == "keyword-setup"
        assert snap["skipped_steps"] == ["cms-connection"]
        assert _act(ctx, "previous").data["current_step"] == "cms-connection"

    def test_go_to_needs_step(self, ctx):
        assert _act(ctx, "go_to").error.message == "step_id is required for go_to"

    def test_go_to_unknown_step(self, ctx):
        result = _act(ctx, "go_to", step_id="nowhere")
        assert result.error.code == "VALIDATION_FAILED"
        assert "nowhere" in result.error.message

    def test_complete(self, ctx):
        snap = _act(ctx, "complete", flow="onboarding").data
        assert snap["is_complete"] is True
        assert snap["current_step"] == "success"

    def test_reset(self, ctx):
        _act(ctx, "next")
        assert _act(ctx, "reset").data["current_step"] == "brand-setup"

    def test_unknown_action(self, ctx):
        assert _act(ctx, "teleport").error.message.startswith("action must be one of: start, next")

    def test_user_drives_own_progress(self, user_ctx):
        assert _act(user_ctx("user-1"), "next").success
        assert _act(user_ctx("user-2"), "next").error.code == "FORBIDDEN"


class TestSaveAndAchievements:
    def test_save_brand_config_marks_step(self, ctx):
        snap = _act(ctx, "save", key="brand_config", payload={"name": "Acme", "tone": "friendly"}).data
        assert snap["data"]["brand_config"] == {"name": "Acme", "tone": "friendly"}
        assert snap["flags"]["brand_setup_complete"] is True
        assert snap["steps"][0]["completed"] is True

    def test_cms_counts_only_when_connected(self, ctx):
        snap = _act(ctx, "save", key="cms_integration", payload={"platform": "wordpress"}).data
        assert snap["flags"]["cms_connected"] is False

    def test_save_unknown_key(self, ctx):
        assert _act(ctx, "save", key="colors", payload={}).error.message.startswith("key must be one of")

    def test_save_on_onboarding(self, ctx):
        result = _act(ctx, "save", flow="onboarding", key="brand_config", payload={})
        assert result.error.message == "save is only available for the setup wizard"

    def test_achievement(self, ctx):
        snap = _act(ctx, "achievement", flow="onboarding", key="tour_completed").data
        assert snap["flags"]["tour_completed"] is True

    @pytest.mark.parametrize(
        ("flow", "key", "message"),
        [
            ("setup_wizard", "tour_completed", "achievements are only available for onboarding"),
            ("onboarding", "won_lottery", "Unknown onboarding achievement: 'won_lottery'"),
        ],
    )
    def test_achievement_misuse(self, ctx, flow, key, message):
        assert _act(ctx, "achievement", flow=flow, key=key).error.message == message


class TestDryRunAndDelete:
    def test_dry_run_not_persisted(self, dry_ctx, conn):
        assert _act(dry_ctx, "next").data["current_step"] == "cms-connection"
        assert FlowProgressRepository(conn).load("user-1", "setup_wizard") is None

    def test_delete(self, ctx, conn):
        _act(ctx, "next")
        result = delete_flow_progress(ctx, FlowRequest(user_id="user-1", flow="setup_wizard"))
        assert result.data == {"user_id": "user-1", "flow": "setup_wizard", "deleted": True}
        assert FlowProgressRepository(conn).load("user-1", "setup_wizard") is None
