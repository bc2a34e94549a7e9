"""Company Onboarding — verify the workspace, describe the team, launch."""

import logging
import secrets
from typing import Any

from serene_bot.flows import fields as clean
from serene_bot.flows.steps import Field, FlowDefinition, StepDefinition
from serene_bot.services import auth
from serene_bot.services.api import ApiClient

logger = logging.getLogger(__name__)

TEAM_SIZES = ("1-10 Employees", "10-50 Employees", "50-250 Employees", "250+ Employees")
OBJECTIVES = ("Mental Health Support", "Productivity Boost", "Leadership Coaching", "Crisis Management")


def build_company_onboarding(api: ApiClient) -> FlowDefinition:
    # Calls that already went through; a retry resumes after them
    done: dict[str, Any] = {}

    async def launch(form_data: dict[str, Any]) -> dict[str, Any]:
        if done.get("email") != form_data["work_email"]:
            done.clear()
            done["email"] = form_data["work_email"]
        if "account" not in done:
            done["account"] = await auth.register(api, {
                "name": form_data["admin_name"],
                "email": form_data["work_email"],
                "password": secrets.token_urlsafe(12),
                "role": "company",
                "companyName": form_data["company_name"],
                "teamSize": form_data["team_size"],
                "objective": form_data["objective"],
            })
        if "reset_sent" not in done:
            await auth.forgot_password(api, form_data["work_email"])
            done["reset_sent"] = True
        logger.info("Company workspace created: %s", form_data["company_name"])
        resp = done["account"]
        return resp.get("user") or resp

    steps = (
        StepDefinition(
            index=1,
            title="Verify Workspace",
            intro="Welcome to the future of <b>Employee Wellness</b>.",
            fields=(
                Field("admin_name", "Your full name:", label="Your Name", clean=clean.clean_name),
                Field("work_email", "Your work email address (e.g. alex@company.com):",
                      label="Work Email", clean=clean.clean_email),
            ),
        ),
        StepDefinition(
            index=2,
            title="Your Team",
            intro="Tell us about your team.",
            fields=(
                Field("company_name", "Company legal name:", label="Company"),
                Field("team_size", "How big is the team?", label="Team Size", choices=TEAM_SIZES),
                Field("objective", "Primary objective:", label="Objective", choices=OBJECTIVES),
            ),
            continue_label="Continue to Dashboard ➡️",
        ),
        StepDefinition(
            index=3,
            title="All Set",
            summary=lambda d: (
                f"🏢 <b>Setting up {d.get('company_name')}...</b>\n\n"
                "📊 Organizational insights dashboard\n"
                "🪙 Centralized credit wallet (100 free credits added)\n"
                "✉️ Bulk employee invites enabled\n\n"
                f"We'll email <b>{d.get('work_email')}</b> a link to set your password."
            ),
        ),
    )

    return FlowDefinition(
        name="company_onboarding",
        title="🏢 <b>Company Onboarding</b>",
        steps=steps,
        on_finish=launch,
        finish_label="🚀 Launch B2B Dashboard",
    )
