"""Static step and flow definitions shared by every guided flow."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Mapping

from serene_bot.flows.gate import GateValidationError

Advance = Callable[[dict[str, Any]], Awaitable[Mapping[str, Any]]]
Finish = Callable[[dict[str, Any]], Awaitable[Any]]


@dataclass(frozen=True)
class Field:
    """One piece of input collected on a step (free text or a fixed choice)."""

    key: str
    prompt: str
    label: str = ""
    choices: tuple[str, ...] = ()
    required: bool = True
    clean: Callable[[str], Any] | None = None

    @property
    def title(self) -> str:
        return self.label or self.key.replace("_", " ").capitalize()

    def accept(self, raw: str) -> Any:
        text = (raw or "").strip()
        if self.choices:
            for choice in self.choices:
                if choice.lower() == text.lower():
                    return choice
            raise GateValidationError(f"Please pick one of the options for {self.title.lower()}.")
        if not text:
            raise GateValidationError(f"{self.title} cannot be empty.")
        return self.clean(text) if self.clean else text


@dataclass(frozen=True)
class StepDefinition:
    index: int
    title: str
    intro: str = ""
    fields: tuple[Field, ...] = ()
    check: Callable[[Mapping[str, Any]], None] | None = None
    on_advance: Advance | None = None
    summary: Callable[[Mapping[str, Any]], str] | None = None
    continue_label: str = "Continue ➡️"

    def field(self, key: str) -> Field | None:
        for f in self.fields:
            if f.key == key:
                return f
        return None

    def answered(self, form_data: Mapping[str, Any], f: Field) -> bool:
        if f.key not in form_data:
            return False
        if f.required:
            return form_data[f.key] not in (None, "")
        return True

    def pending_field(self, form_data: Mapping[str, Any], focus: str | None = None) -> Field | None:
        """The field the next user input goes to, if any."""
        if focus and self.field(focus):
            return self.field(focus)
        for f in self.fields:
            if not self.answered(form_data, f):
                return f
        return None

    def render(self, form_data: Mapping[str, Any], focus: str | None = None) -> str:
        lines = []
        if self.intro:
            lines.append(self.intro)
        if self.summary:
            lines.append(self.summary(form_data))
        else:
            for f in self.fields:
                if self.answered(form_data, f):
                    value = form_data.get(f.key)
                    lines.append(f"✅ {f.title}: <b>{value if value not in (None, '') else 'Skipped'}</b>")
        current = self.pending_field(form_data, focus)
        if current:
            lines.append(f"\n👉 {current.prompt}")
        return "\n".join(lines)


@dataclass(frozen=True)
class FlowDefinition:
    name: str
    title: str
    steps: tuple[StepDefinition, ...]
    on_finish: Finish | None = None
    finish_label: str = "✅ Finish"
    defaults: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        indexes = [s.index for s in self.steps]
        if indexes != list(range(1, len(self.steps) + 1)):
            raise ValueError(f"{self.name}: step indexes must run 1..N, got {indexes}")

    @property
    def total(self) -> int:
        return len(self.steps)

    def step(self, index: int) -> StepDefinition:
        return self.steps[index - 1]
