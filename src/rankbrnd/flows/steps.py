"""Step definitions for the setup wizard and onboarding flows."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True, slots=True)
class FlowStep:
    id: str
    title: str
    description: str = ""
    optional: bool = False
    estimated_minutes: int | None = None


@dataclass(frozen=True)
class FlowDefinition:
    """An ordered list of steps plus the achievement flags of a flow.

    ``step_flags`` maps a step id to the flag that also marks it complete,
    so a step done outside the flow (an integration connected from the
    settings page) still counts.
    """

    name: str
    steps: tuple[FlowStep, ...]
    flags: tuple[str, ...]
    step_flags: dict[str, str] = field(default_factory=dict)
    version: int = 1

    @property
    def step_ids(self) -> list[str]:
        return [s.id for s in self.steps]

    @property
    def first_step(self) -> str:
        return self.steps[0].id

    @property
    def last_step(self) -> str:
        return self.steps[-1].id

    @property
    def required_steps(self) -> list[FlowStep]:
        return [s for s in self.steps if not s.optional]

    def index_of(self, step_id: str) -> int:
        """Position of *step_id*; raises ``ValueError`` for unknown steps."""
        try:
            return self.step_ids.index(step_id)
        except ValueError:
            raise ValueError(f"Unknown {self.name} step: {step_id!r}") from None


SETUP_WIZARD = FlowDefinition(
    name="setup_wizard",
    steps=(
        FlowStep("brand-setup", "Brand Setup", "Configure your brand identity", estimated_minutes=3),
        FlowStep("cms-connection", "Connect CMS", "Link your content management system", optional=True, estimated_minutes=2),
        FlowStep("keyword-setup", "First Keyword", "Add a keyword to track", estimated_minutes=2),
        FlowStep("article-generation", "Generate Article", "Create your first article", estimated_minutes=3),
        FlowStep("complete", "All Set!", "You're ready to go"),
    ),
    flags=("brand_setup_complete", "cms_connected", "keyword_created", "article_generated"),
    step_flags={
        "brand-setup": "brand_setup_complete",
        "cms-connection": "cms_connected",
        "keyword-setup": "keyword_created",
        "article-generation": "article_generated",
    },
)

ONBOARDING = FlowDefinition(
    name="onboarding",
    steps=(
        FlowStep("welcome", "Welcome", "Get started with Rank.brnd", estimated_minutes=2),
        FlowStep("organization-setup", "Set Up Organization", "Create your workspace", estimated_minutes=3),
        FlowStep("product-tour", "Product Tour", "Explore the key features", optional=True, estimated_minutes=5),
        FlowStep("first-article", "Create First Article", "Generate SEO content", estimated_minutes=5),
        FlowStep("integration-setup", "Connect CMS", "Publish to your favorite platforms", optional=True, estimated_minutes=3),
        FlowStep("success", "All Set!", "You're ready to go"),
    ),
    flags=("organization_created", "first_article_created", "integration_connected", "tour_completed"),
    step_flags={
        "organization-setup": "organization_created",
        "product-tour": "tour_completed",
        "first-article": "first_article_created",
        "integration-setup": "integration_connected",
    },
)

FLOWS: dict[str, FlowDefinition] = {f.name: f for f in (SETUP_WIZARD, ONBOARDING)}


def get_flow(name: str) -> FlowDefinition:
    try:
        return FLOWS[name]
    except KeyError:
        raise ValueError(f"Unknown flow: {name!r} (expected one of {sorted(FLOWS)})") from None
