"""
Expert Onboarding — 8-step guided application.

Flow:
  1. Basics → 2. Verification → 3. Matching Style → 4. Your Story
  → 5. Intro Video (optional) → 6. Logistics → 7. Review → 8. Approval

Finish creates the expert account, the pending expert profile, and sends a
password-setup email (accounts are created with a random password).
"""

import logging
import secrets
from typing import Any

from serene_bot.currency import COUNTRY_CURRENCY, currency_symbol
from serene_bot.flows import fields as clean
from serene_bot.flows.steps import Field, FlowDefinition, StepDefinition
from serene_bot.services import auth, experts
from serene_bot.services.api import ApiClient

logger = logging.getLogger(__name__)

CATEGORIES = (
    # Mental Health
    "Psychologist", "Psychiatrist", "Clinical Psychologist", "Therapist",
    "Marriage & Family Therapist", "Art/Music Therapist", "Psychiatric Nurse",
    # Coaching
    "Life Coach", "Career Coach", "Executive Coach", "Leadership Coach",
    "Business Coach", "Relationship Coach", "Parenting Coach", "Financial Wellness Coach",
    # Holistic Wellness
    "Yoga Instructor", "Meditation Guide", "Breathwork Coach", "Sound Healer",
    "Ayurveda Expert", "Reiki Master", "Wellness Coach",
    # Physical Wellness
    "Fitness Coach", "Personal Trainer", "Physiotherapist", "Sports Psychologist", "Sleep Specialist",
    # Nutrition
    "Nutritionist", "Dietitian", "Holistic Nutritionist", "Gut Health Expert",
    # Corporate/B2B
    "POSH Trainer", "DEI Facilitator", "EAP Counselor", "Stress Workshop Expert",
    "Team Building Facilitator",
)

COMMUNICATION_STYLES = ("Warm/Nurturing", "Direct/Solution-focused")
SESSION_STRUCTURES = ("Free-flowing", "Highly Structured")
APPROACH_FOCUSES = ("Past/Root Causes", "Present/Future Goals")

BIO_MIN_LENGTH = 200


def _profile_preview(d: dict[str, Any]) -> str:
    symbol = currency_symbol(d.get("currency") or "INR")
    return (
        f"👤 <b>{d.get('name')}</b>\n"
        f"🏷 {d.get('category')} · {d.get('experience', 0)} Years Exp.\n"
        f"📍 {d.get('city')}, {d.get('country')}\n"
        f"💰 {symbol}{d.get('rate')} / session\n\n"
        f"<i>{(d.get('bio') or '')[:300]}</i>\n\n"
        f"🎙 {d.get('communication_style')} · {d.get('session_structure')} · {d.get('approach_focus')}"
    )


def build_expert_onboarding(api: ApiClient) -> FlowDefinition:
    async def set_currency(form_data: dict[str, Any]) -> dict[str, Any]:
        return {"currency": COUNTRY_CURRENCY.get(form_data["country"], "USD")}

    # Calls that already went through; a retry resumes after them
    done: dict[str, Any] = {}

    def _expert_profile(form_data: dict[str, Any]) -> dict[str, Any]:
        return {
            "title": form_data["category"],
            "specialization": [form_data["category"]],
            "bio": form_data["bio"],
            "experience": form_data["experience"],
            "hourlyRate": form_data["rate"],
            "languages": ["English"],
            "certifications": [form_data["license"]] if form_data.get("license") else [],
            "personalStory": form_data.get("personal_story"),
            "videoUrl": form_data.get("video_url"),
            "calLink": form_data.get("cal_link"),
            "pan": form_data.get("pan"),
            "matching": {
                "communicationStyle": form_data.get("communication_style"),
                "sessionStructure": form_data.get("session_structure"),
                "approachFocus": form_data.get("approach_focus"),
            },
        }

    async def submit(form_data: dict[str, Any]) -> dict[str, Any]:
        """Create the account, then the pending expert profile."""
        if done.get("email") != form_data["email"]:
            done.clear()
            done["email"] = form_data["email"]
        if "account" not in done:
            done["account"] = await auth.register(api, {
                "name": form_data["name"],
                "email": form_data["email"],
                "password": secrets.token_urlsafe(12),
                "role": "expert",
                "phone": form_data.get("phone"),
                "country": form_data.get("country"),
                "currency": form_data.get("currency"),
            })
        if "expert" not in done:
            done["expert"] = await experts.create_profile(api, _expert_profile(form_data))
        if "reset_sent" not in done:
            await auth.forgot_password(api, form_data["email"])
            done["reset_sent"] = True
        logger.info("Expert application submitted: %s", form_data["email"])
        return {"user": done["account"].get("user"), "expert": done["expert"]}

    steps = (
        StepDefinition(
            index=1,
            title="Basics",
            intro="Let's start with who you are.",
            fields=(
                Field("name", "What's your full name?", label="Full Name", clean=clean.clean_name),
                Field("email", "Your email address:", label="Email", clean=clean.clean_email),
                Field("phone", "Phone number (WhatsApp preferred), e.g. +919876543210:",
                      label="Phone", clean=clean.clean_phone),
                Field("country", "Which country do you practise from?", label="Country",
                      choices=tuple(COUNTRY_CURRENCY)),
                Field("city", "Which city?", label="City"),
                Field("category", "Pick your primary category:", label="Category", choices=CATEGORIES),
            ),
            on_advance=set_currency,
        ),
        StepDefinition(
            index=2,
            title="Verification",
            intro="Credibility & trust: clients see these on your profile.",
            fields=(
                Field("experience", "How many years of experience do you have?",
                      label="Experience", clean=clean.whole_years),
                Field("license", "License number, if applicable (e.g. RCI-XXX-XXX):",
                      label="License", required=False),
            ),
        ),
        StepDefinition(
            index=3,
            title="Matching Style",
            intro="Your \"vibe\" helps us match you with the right clients.",
            fields=(
                Field("communication_style", "Communication style:", label="Communication",
                      choices=COMMUNICATION_STYLES),
                Field("session_structure", "Session structure:", label="Structure",
                      choices=SESSION_STRUCTURES),
                Field("approach_focus", "Approach focus:", label="Focus", choices=APPROACH_FOCUSES),
            ),
            continue_label="Next: Your Story ➡️",
        ),
        StepDefinition(
            index=4,
            title="Your Story",
            intro="Build a human connection.",
            fields=(
                Field("bio", f"Share your professional journey and approach (min {BIO_MIN_LENGTH} characters):",
                      label="Bio", clean=clean.min_length("Bio", BIO_MIN_LENGTH)),
                Field("personal_story", "\"Why I do this\": what lived experience led you to this path?",
                      label="Personal Story", required=False),
            ),
        ),
        StepDefinition(
            index=5,
            title="Intro Video",
            intro="Experts with video intros get <b>3x more bookings</b>.",
            fields=(
                Field("video_url", "Send a link to your intro video, or skip for now:",
                      label="Video", required=False, clean=clean.clean_url),
            ),
        ),
        StepDefinition(
            index=6,
            title="Logistics",
            intro="How would you like to get paid and scheduled?",
            fields=(
                Field("rate", "Session rate (per hour, in your currency):", label="Rate",
                      clean=clean.positive_number("Session rate")),
                Field("cal_link", "Cal.com / Calendly link (optional):", label="Calendar",
                      required=False),
                Field("pan", "PAN number for payouts (optional):", label="PAN",
                      required=False, clean=clean.clean_pan),
            ),
            continue_label="Review Profile ➡️",
        ),
        StepDefinition(
            index=7,
            title="Review",
            intro="Here's how your profile will appear to clients:\n",
            summary=_profile_preview,
            continue_label="Submit for Approval ✅",
        ),
        StepDefinition(
            index=8,
            title="Approval",
            summary=lambda d: (
                "🕐 <b>Application ready!</b>\n\n"
                "Our clinical team reviews every profile. Expect an update within <b>48 hours</b>.\n"
                "Questions? Reach out at experts@serene.com"
            ),
        ),
    )

    return FlowDefinition(
        name="expert_onboarding",
        title="🩺 <b>Expert Application</b>",
        steps=steps,
        on_finish=submit,
        finish_label="🚀 Go to Expert Area",
        defaults={"country": "India", "currency": "INR"},
    )
