"""Companion guidance message templates.

The table is plain data: selection logic only picks a key and fills in the
companion name, the number of suggestions and pool sizes.
"""

from __future__ import annotations

from dataclasses import dataclass

REASON_TEMPLATES: dict[str, str] = {
    "morning_high_fatigue": (
        "{name} can tell you're running low this morning. "
        "Here {verb} {count} tiny win{plural} to ease in, out of {tiny} small tasks."
    ),
    "afternoon_high_joy": (
        "You're glowing this afternoon! {name} picked {count} task{plural} "
        "to ride that energy, out of {progress} ready to push forward."
    ),
    "high_cognitive_load": (
        "{name} sees a lot on your plate ({overdue} overdue). "
        "Start with the one that unlocks the most."
    ),
    "location": "You're {place}. {name} found {count} task{plural} you can handle here.",
}

DEFAULT_TEMPLATES: dict[str, str] = {
    "morning": "Good morning! {name} lined up {count} task{plural} for today.",
    "earlyAfternoon": "Midday check-in: {name} suggests {count} task{plural} to keep moving.",
    "lateAfternoon": "The afternoon is winding down. {name} picked {count} task{plural} worth finishing.",
    "evening": "Evening stretch. {name} kept it to {count} task{plural} before you rest.",
    "other": "{name} queued {count} task{plural} whenever you're ready.",
}

ALL_CLEAR_TEMPLATE = "All clear. {name} has nothing queued for you right now."


@dataclass
class MessageContext:
    reason: str
    time_of_day: str
    companion_name: str
    suggestion_count: int
    tiny_count: int = 0
    progress_count: int = 0
    overdue_count: int = 0
    location_context: str = "nearby"


def compose_message(ctx: MessageContext) -> str:
    if ctx.suggestion_count == 0:
        return ALL_CLEAR_TEMPLATE.format(name=ctx.companion_name)

    if ctx.reason.startswith("location_"):
        template = REASON_TEMPLATES["location"]
    elif ctx.reason in REASON_TEMPLATES:
        template = REASON_TEMPLATES[ctx.reason]
    else:
        template = DEFAULT_TEMPLATES.get(ctx.time_of_day, DEFAULT_TEMPLATES["other"])

    place = ctx.location_context if ctx.location_context == "nearby" else f"at {ctx.location_context}"
    return template.format(
        name=ctx.companion_name,
        count=ctx.suggestion_count,
        plural="" if ctx.suggestion_count == 1 else "s",
        verb="is" if ctx.suggestion_count == 1 else "are",
        tiny=ctx.tiny_count,
        progress=ctx.progress_count,
        overdue=ctx.overdue_count,
        place=place,
    )
