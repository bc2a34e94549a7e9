"""Sign in to an existing account — a single step with email and password."""

from typing import Any

from serene_bot.flows import fields as clean
from serene_bot.flows.steps import Field, FlowDefinition, StepDefinition
from serene_bot.services import auth
from serene_bot.services.api import ApiClient


def build_login_flow(api: ApiClient) -> FlowDefinition:
    async def sign_in(form_data: dict[str, Any]) -> dict[str, Any]:
        resp = await auth.login(api, form_data["email"], form_data["password"])
        return resp.get("user") or resp

    step = StepDefinition(
        index=1,
        title="Sign In",
        fields=(
            Field("email", "Your email address:", label="Email", clean=clean.clean_email),
            Field("password", "Your password (the message is deleted right after):",
                  label="Password"),
        ),
        summary=lambda d: f"✅ Email: <b>{d['email']}</b>" if d.get("email") else "",
    )
    return FlowDefinition(
        name="login",
        title="🔐 <b>Sign In</b>",
        steps=(step,),
        on_finish=sign_in,
        finish_label="🔐 Sign In",
    )
