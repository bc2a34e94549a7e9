"""
Flow Renderer — pure mapping of (definition, FlowState) to a View.

Views are transport-agnostic; keyboards/flow_kb.py turns them into Telegram
inline keyboards. Button actions use the "flow:" callback prefix.
"""

from __future__ import annotations

from dataclasses import dataclass

from serene_bot.flows.state import FlowState, Phase
from serene_bot.flows.steps import FlowDefinition

ACTION_PREFIX = "flow:"
NEXT = "flow:next"
BACK = "flow:back"
RETRY = "flow:retry"
FINISH = "flow:finish"
CANCEL = "flow:cancel"
SKIP = "flow:skip"
PICK = "flow:pick:"    # + choice index of the pending field
EDIT = "flow:edit:"    # + field index on the current step

DIVIDER = "━━━━━━━━━━━━━━━━━━━━━━"


@dataclass(frozen=True)
class Button:
    text: str
    action: str | None = None
    url: str | None = None


@dataclass(frozen=True)
class View:
    title: str
    step_title: str
    body: str
    step: int
    total: int
    error: str | None = None
    busy: bool = False
    buttons: tuple[tuple[Button, ...], ...] = ()

    @property
    def text(self) -> str:
        parts = [
            DIVIDER,
            f"{self.title}",
            DIVIDER,
            "",
            f"<b>Step {self.step}/{self.total}:</b> {self.step_title}",
        ]
        if self.body:
            parts.append("")
            parts.append(self.body)
        if self.error:
            parts.append("")
            parts.append(f"⚠️ {self.error}")
        if self.busy:
            parts.append("")
            parts.append("⏳ <i>Working on it, please wait...</i>")
        return "\n".join(parts)


def _rows(buttons: list[Button], per_row: int = 2) -> list[tuple[Button, ...]]:
    return [tuple(buttons[i:i + per_row]) for i in range(0, len(buttons), per_row)]


def render(definition: FlowDefinition, state: FlowState, busy: bool = False) -> View:
    step = definition.step(state.current_step)
    busy = busy or state.busy
    rows: list[tuple[Button, ...]] = []

    if not busy and not state.finished:
        pending = step.pending_field(state.form_data, state.focus)
        if pending is not None:
            if pending.choices:
                rows.extend(_rows([
                    Button(choice, f"{PICK}{i}") for i, choice in enumerate(pending.choices)
                ]))
            if not pending.required:
                rows.append((Button("⏩ Skip", SKIP),))
        else:
            edits = [
                Button(f"✏️ {f.title}", f"{EDIT}{i}") for i, f in enumerate(step.fields)
            ]
            rows.extend(_rows(edits))

            if state.phase is Phase.ERROR:
                rows.append((Button("🔄 Try Again", RETRY),))
            elif not state.is_last:
                rows.append((Button(step.continue_label, NEXT),))
            elif definition.on_finish is not None:
                rows.append((Button(definition.finish_label, FINISH),))

        nav = []
        if not state.is_first:
            nav.append(Button("⬅️ Back", BACK))
        nav.append(Button("❌ Cancel", CANCEL))
        rows.append(tuple(nav))

    return View(
        title=definition.title,
        step_title=step.title,
        body=step.render(state.form_data, state.focus),
        step=state.current_step,
        total=definition.total,
        error=state.last_error,
        busy=busy,
        buttons=tuple(rows),
    )
