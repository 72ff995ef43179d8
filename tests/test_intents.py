import random
import time
from datetime import timedelta

import pytest

from src.planner.actions import AddEvent, AddTodo
from src.planner.intents import (
    DATE_CLARIFICATION,
    EVENT_RULE,
    GRAMMAR,
    HELP_REPLIES,
    TODO_RULE,
    GrammarRule,
    IntentParser,
    ParseOutcome,
)
from src.planner.schemas import HistoryItem


class TestGrammar:
    def test_todo_rule_is_evaluated_before_event_rule(self):
        assert GRAMMAR == (TODO_RULE, EVENT_RULE)

    def test_rule_trigger_check_is_on_lowered_text(self):
        assert TODO_RULE.matches("please add todo milk")
        assert not TODO_RULE.matches("schedule lunch on friday")
        assert EVENT_RULE.matches("schedule lunch on friday")

    def test_custom_grammar_is_used_in_order(self, clock):
        always = GrammarRule(
            name="always",
            triggers=("",),
            extract=lambda message, ctx: ParseOutcome(reply="caught"),
        )
        parser = IntentParser(rng=random.Random(0), clock=clock, grammar=(always, TODO_RULE))
        assert parser.parse("add task: x").reply == "caught"


class TestTodoRule:
    @pytest.mark.parametrize(
        "message, title",
        [
            ("add task: buy groceries", "buy groceries"),
            ("Add Task buy groceries", "buy groceries"),
            ("add todo:finish report  ", "finish report"),
            ("please CREATE TASK: Call Mom", "Call Mom"),
        ],
    )
    def test_title_is_the_trimmed_remainder(self, parser, message, title):
        outcome = parser.parse(message)
        assert outcome.action == AddTodo(title=title)
        assert title in outcome.reply

    @pytest.mark.parametrize("message", ["add task:", "add task:    ", "add taskbuy milk", "create task"])
    def test_malformed_remainder_gets_help(self, parser, message):
        outcome = parser.parse(message)
        assert outcome.action is None
        assert outcome.reply in HELP_REPLIES

    def test_todo_wins_over_event_triggers(self, parser):
        outcome = parser.parse("add task: schedule dentist on friday")
        assert outcome.action == AddTodo(title="schedule dentist on friday")


class TestEventRule:
    def test_schedule_tomorrow(self, parser, clock):
        outcome = parser.parse("schedule lunch with Amy on tomorrow")
        assert isinstance(outcome.action, AddEvent)
        assert outcome.action.title == "lunch with Amy"
        assert outcome.action.date == clock.now + timedelta(days=1)
        assert 1 <= outcome.action.image_index <= 4
        assert "lunch with Amy" in outcome.reply
        assert "May 2, 2025" in outcome.reply

    def test_for_separator_and_literal_date(self, parser):
        outcome = parser.parse("create event: dentist for May 15, 2025")
        assert outcome.action.title == "dentist"
        assert outcome.action.date.year == 2025
        assert (outcome.action.date.month, outcome.action.date.day) == (5, 15)

    def test_splits_on_first_separator(self, parser):
        outcome = parser.parse("add event team sync on today on the roof")
        # "today on the roof" is not a date
        assert outcome.action is None
        assert outcome.reply == DATE_CLARIFICATION

    def test_unresolvable_date_asks_for_clarification(self, parser):
        outcome = parser.parse("schedule team sync on banana")
        assert outcome.action is None
        assert outcome.reply == DATE_CLARIFICATION

    def test_missing_date_part_gets_help(self, parser):
        outcome = parser.parse("schedule team sync")
        assert outcome.action is None
        assert outcome.reply in HELP_REPLIES

    def test_seeded_rng_pins_image_index(self, clock):
        first = IntentParser(rng=random.Random(3), clock=clock).parse("schedule gym on today")
        second = IntentParser(rng=random.Random(3), clock=clock).parse("schedule gym on today")
        assert first.action.image_index == second.action.image_index

    def test_long_whitespace_runs_are_handled_quickly(self, parser):
        gap = " " * 20000
        started = time.perf_counter()
        unmatched = parser.parse("schedule" + gap + "x")
        matched = parser.parse("schedule lunch" + gap + "on" + gap + "tomorrow")
        assert time.perf_counter() - started < 1.0
        assert unmatched.reply in HELP_REPLIES
        assert matched.action.title == "lunch"


class TestFallback:
    @pytest.mark.parametrize("message", ["hello there", "", "   ", "what can you do?"])
    def test_unrecognized_input_gets_help(self, parser, message):
        outcome = parser.parse(message)
        assert outcome.action is None
        assert outcome.reply in HELP_REPLIES

    def test_non_string_input_never_raises(self, parser):
        assert parser.parse(None).action is None  # type: ignore[arg-type]

    def test_history_does_not_change_the_result(self, parser):
        history = [HistoryItem(sender="user", text="add task: earlier")]
        outcome = parser.parse("add task: now", history)
        assert outcome.action == AddTodo(title="now")


class TestResponseShape:
    def test_todo_response(self, parser):
        body = parser.parse("add task: buy groceries").to_response().model_dump()
        assert body["action"] == {"type": "ADD_TODO", "data": {"title": "buy groceries"}}
        assert "buy groceries" in body["message"]

    def test_event_response(self, parser, clock):
        body = parser.parse("schedule lunch on today").to_response().model_dump()
        assert body["action"]["type"] == "ADD_EVENT"
        assert body["action"]["data"]["title"] == "lunch"
        assert body["action"]["data"]["date"] == clock.now.isoformat()

    def test_no_action_response(self, parser):
        assert parser.parse("hi").to_response().action is None
