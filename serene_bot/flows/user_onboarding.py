"""
Individual onboarding — 5 steps.

  1. Focus area → 2. Assessment → 3. Preferences → 4. Account → 5. Welcome
Finish registers the account (role "user") with the collected preferences.
"""

import logging
from typing import Any

from serene_bot.flows import fields as clean
from serene_bot.flows.steps import Field, FlowDefinition, StepDefinition
from serene_bot.services import auth
from serene_bot.services.api import ApiClient

logger = logging.getLogger(__name__)

REASONS = (
    "Stress & Anxiety", "Better Sleep", "Relationships", "Career Growth",
    "Physical Wellness", "Self Discovery", "Grief & Loss", "Just Exploring",
)
FREQUENCIES = ("Rarely", "Sometimes", "Often", "Daily")
SUPPORT_TYPES = ("Talk it through", "Learn techniques", "Both")
PRIOR_HELP = ("Yes, currently", "Yes, in the past", "No, this is new")
FORMATS = ("Video Call", "Audio Call", "Chat/Text", "No preference")
LANGUAGES = ("English", "Hindi", "Tamil", "Multi-lingual")
BUDGETS = ("₹500-1000", "₹1000-2000", "₹2000+", "Show all")

PREFERENCE_KEYS = (
    "reason", "frequency", "support_type", "prior_help", "format", "language", "budget",
)


def build_user_onboarding(api: ApiClient) -> FlowDefinition:
    async def create_account(form_data: dict[str, Any]) -> dict[str, Any]:
        resp = await auth.register(api, {
            "name": form_data["name"],
            "email": form_data["email"],
            "password": form_data["password"],
            "role": "user",
            "preferences": {k: form_data.get(k) for k in PREFERENCE_KEYS},
        })
        logger.info("Individual account created: %s", form_data["email"])
        return resp.get("user") or resp

    steps = (
        StepDefinition(
            index=1,
            title="Your Journey Begins",
            intro="Select the area you'd like to focus on first.",
            fields=(Field("reason", "What brings you here?", label="Focus", choices=REASONS),),
        ),
        StepDefinition(
            index=2,
            title="Assessment",
            intro="Let's refine your needs.",
            fields=(
                Field("frequency", "How often do you feel this way?", label="Frequency",
                      choices=FREQUENCIES),
                Field("support_type", "What kind of support are you looking for?",
                      label="Support", choices=SUPPORT_TYPES),
                Field("prior_help", "Have you worked with a professional before?",
                      label="Prior Help", choices=PRIOR_HELP),
            ),
        ),
        StepDefinition(
            index=3,
            title="Preferences",
            intro="Tell us what matters to you.",
            fields=(
                Field("format", "Preferred session format:", label="Format", choices=FORMATS),
                Field("language", "Preferred language:", label="Language", choices=LANGUAGES),
                Field("budget", "Budget per session:", label="Budget", choices=BUDGETS),
            ),
        ),
        StepDefinition(
            index=4,
            title="Save Your Progress",
            intro="Create an account to book sessions and keep your matches.",
            fields=(
                Field("name", "Your name:", label="Name", clean=clean.clean_name),
                Field("email", "Your email address:", label="Email", clean=clean.clean_email),
                Field("password", "Choose a password (min 8 characters). "
                      "Your message is deleted right after.", label="Password",
                      clean=clean.clean_password),
            ),
            summary=lambda d: "\n".join(
                f"✅ {label}: <b>{'••••••••' if key == 'password' else d[key]}</b>"
                for key, label in (("name", "Name"), ("email", "Email"), ("password", "Password"))
                if d.get(key)
            ),
        ),
        StepDefinition(
            index=5,
            title="Welcome",
            summary=lambda d: (
                f"🌿 <b>Welcome, {d.get('name')}!</b>\n\n"
                f"Focus: <b>{d.get('reason')}</b>\n"
                f"Format: {d.get('format')} · Language: {d.get('language')} · Budget: {d.get('budget')}\n\n"
                "Tap below to create your account."
            ),
        ),
    )

    return FlowDefinition(
        name="user_onboarding",
        title="🌿 <b>Get Started with Serene</b>",
        steps=steps,
        on_finish=create_account,
        finish_label="✅ Create My Account",
    )
