"""
Pattern grammar that turns a chat message into an optional action.

The grammar is an ordered tuple of rules. Each rule pairs a cheap trigger
check on the lowered message with an extractor that either claims the
message (returning a ParseOutcome) or declines it (returning None), in which
case the next rule is tried. When no rule claims the message a help reply is
returned. Parsing never raises.
"""
from __future__ import annotations

import random
import re
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional, Sequence, Tuple

from .actions import Action, AddEvent, AddTodo, action_to_wire
from .dates import Clock, DateResolutionFailure, format_date, resolve_date
from .schemas import ChatResponse, HistoryItem

IMAGE_INDEX_RANGE = (1, 4)

HELP_REPLIES = (
    "I can help you manage your tasks and calendar. Try saying something like "
    "'Add task: Buy groceries' or 'Schedule meeting with John on tomorrow'.",
    "I'm your personal assistant. I can add tasks to your todo list or events to your calendar. "
    "What would you like me to help with?",
    "Not sure what you mean. You can ask me to 'add task: finish report' or "
    "'create event: lunch with Amy on Friday'.",
)

DATE_CLARIFICATION = (
    "I'm not sure about that date. Could you try again with a format like "
    "\"tomorrow\" or \"May 15, 2025\"?"
)


@dataclass(frozen=True)
class ParseOutcome:
    """A reply for the user and the action it implies, if any."""

    reply: str
    action: Optional[Action] = None

    def to_response(self) -> ChatResponse:
        return ChatResponse(message=self.reply, action=action_to_wire(self.action))


@dataclass(frozen=True)
class ParseContext:
    rng: random.Random
    clock: Clock


Extractor = Callable[[str, ParseContext], Optional[ParseOutcome]]


@dataclass(frozen=True)
class GrammarRule:
    name: str
    triggers: Tuple[str, ...]
    extract: Extractor

    def matches(self, lowered: str) -> bool:
        return any(t in lowered for t in self.triggers)


def _trigger_pattern(triggers: Sequence[str]) -> str:
    # trigger, then a colon or whitespace separator
    return "(?:" + "|".join(re.escape(t) for t in triggers) + r")(?::\s*|\s+)"


TODO_TRIGGERS = ("add task", "add todo", "create task")
EVENT_TRIGGERS = ("add event", "schedule", "create event")

_TODO_RE = re.compile(_trigger_pattern(TODO_TRIGGERS) + r"(.+)", re.IGNORECASE | re.DOTALL)
_EVENT_RE = re.compile(_trigger_pattern(EVENT_TRIGGERS), re.IGNORECASE)
# First " on " / " for " in the remainder; only a whitespace run's first char may start a match
_DATE_SEPARATOR = re.compile(r"(?<!\s)\s+(?:on|for)\s+", re.IGNORECASE)


def extract_todo(message: str, ctx: ParseContext) -> Optional[ParseOutcome]:
    match = _TODO_RE.search(message)
    if not match:
        return None
    title = match.group(1).strip()
    if not title:
        return None
    return ParseOutcome(
        reply=f"I've added \"{title}\" to your todo list! Is there anything else you'd like me to do?",
        action=AddTodo(title=title),
    )


def extract_event(message: str, ctx: ParseContext) -> Optional[ParseOutcome]:
    match = _EVENT_RE.search(message)
    if not match:
        return None
    remainder = message[match.end():]
    split = _DATE_SEPARATOR.search(remainder)
    if not split:
        return None
    title = remainder[:split.start()].strip()
    token = remainder[split.end():].strip()
    if not title or not token:
        return None

    resolved = resolve_date(token, now=ctx.clock())
    if isinstance(resolved, DateResolutionFailure):
        return ParseOutcome(reply=DATE_CLARIFICATION)

    low, high = IMAGE_INDEX_RANGE
    return ParseOutcome(
        reply=(
            f"Great! I've added \"{title}\" to your calendar for {format_date(resolved)}. "
            "Anything else you'd like to add?"
        ),
        action=AddEvent(title=title, date=resolved, image_index=ctx.rng.randint(low, high)),
    )


TODO_RULE = GrammarRule(name="add_todo", triggers=TODO_TRIGGERS, extract=extract_todo)
EVENT_RULE = GrammarRule(name="add_event", triggers=EVENT_TRIGGERS, extract=extract_event)

# Evaluated in order; the first rule that claims a message wins.
GRAMMAR: Tuple[GrammarRule, ...] = (TODO_RULE, EVENT_RULE)


# PUBLIC_INTERFACE
class IntentParser:
    """
    Local, deterministic interpreter for chat messages.

    Args:
        rng: random source for the decorative image index and help replies.
            Pass a seeded ``random.Random`` to pin both.
        clock: returns the current local datetime, used for 'today'/'tomorrow'.
        grammar: ordered rules to evaluate.
    """

    def __init__(
        self,
        rng: Optional[random.Random] = None,
        clock: Clock = datetime.now,
        grammar: Sequence[GrammarRule] = GRAMMAR,
    ) -> None:
        self._ctx = ParseContext(rng=rng or random.Random(), clock=clock)
        self.grammar = tuple(grammar)

    def help_reply(self) -> ParseOutcome:
        return ParseOutcome(reply=self._ctx.rng.choice(HELP_REPLIES))

    def parse(self, message: str, history: Sequence[HistoryItem] = ()) -> ParseOutcome:
        """
        Map a message to a reply and an optional action.

        ``history`` is accepted so callers can pass the conversation through
        unchanged; the grammar only looks at the current message.
        """
        if not isinstance(message, str) or not message.strip():
            return self.help_reply()

        text = message.strip()
        lowered = text.lower()
        for rule in self.grammar:
            if not rule.matches(lowered):
                continue
            outcome = rule.extract(text, self._ctx)
            if outcome is not None:
                return outcome
        return self.help_reply()
