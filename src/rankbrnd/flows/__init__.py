"""Setup wizard and onboarding step trackers."""

from rankbrnd.flows.steps import FLOWS, ONBOARDING, SETUP_WIZARD, FlowDefinition, FlowStep, get_flow
from rankbrnd.flows.tracker import FlowProgress, FlowStore, FlowTracker, Onboarding, SetupWizard

__all__ = [
    "FLOWS",
    "ONBOARDING",
    "SETUP_WIZARD",
    "FlowDefinition",
    "FlowProgress",
    "FlowStep",
    "FlowStore",
    "FlowTracker",
    "Onboarding",
    "SetupWizard",
    "get_flow",
]
