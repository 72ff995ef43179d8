from datetime import datetime, timedelta

import pytest

from src.planner.actions import AddEvent, AddTodo, action_from_wire, action_to_wire
from src.planner.dispatcher import dispatch
from src.planner.schemas import ActionOut


class TestDispatch:
    def test_none_is_a_noop(self, store, storage):
        assert dispatch(store, None) is None
        assert store.list_tasks() == [] and store.list_events() == []
        assert storage.raw("todos") is None

    def test_add_todo_sets_only_title(self, store):
        task = dispatch(store, AddTodo(title="buy groceries"))
        assert task["title"] == "buy groceries"
        assert task["status"] == "not-started"
        assert task["description"] is None
        assert task["due_date"] is None

    def test_add_event(self, store):
        when = datetime(2025, 5, 3, 12, 0)
        event = dispatch(store, AddEvent(title="lunch", date=when, image_index=4))
        assert (event["title"], event["date"], event["image_index"]) == ("lunch", when, 4)

    def test_unsupported_action(self, store):
        with pytest.raises(TypeError):
            dispatch(store, "ADD_TODO")  # type: ignore[arg-type]


class TestScenarios:
    def test_add_task_message(self, parser, store):
        outcome = parser.parse("add task: buy groceries")
        assert outcome.action == AddTodo(title="buy groceries")
        assert "buy groceries" in outcome.reply

        dispatch(store, outcome.action)
        tasks = store.list_tasks()
        assert len(tasks) == 1
        assert tasks[0]["title"] == "buy groceries"
        assert tasks[0]["status"] == "not-started"

    def test_schedule_tomorrow_message(self, parser, store, clock):
        outcome = parser.parse("schedule lunch with Amy on tomorrow")
        dispatch(store, outcome.action)
        events = store.list_events()
        assert len(events) == 1
        assert events[0]["title"] == "lunch with Amy"
        assert events[0]["date"] == clock.now + timedelta(days=1)

    def test_bad_date_message_leaves_store_unchanged(self, parser, store, storage):
        outcome = parser.parse("schedule team sync on banana")
        assert outcome.action is None
        dispatch(store, outcome.action)
        assert store.list_events() == []
        assert storage.raw("calendar_events") is None


class TestWireForm:
    def test_event_from_wire_accepts_camel_case_index(self):
        action = action_from_wire(
            ActionOut(type="ADD_EVENT", data={"title": " demo ", "date": "2025-05-15T00:00:00Z", "imageIndex": 2})
        )
        assert action.title == "demo"
        assert action.image_index == 2
        assert action.date.year == 2025

    def test_event_without_date_is_rejected(self):
        with pytest.raises(ValueError):
            action_from_wire(ActionOut(type="ADD_EVENT", data={"title": "x"}))

    def test_blank_title_is_rejected(self):
        with pytest.raises(ValueError):
            action_from_wire(ActionOut(type="ADD_TODO", data={"title": "  "}))

    def test_to_wire(self):
        when = datetime(2025, 5, 3, 12, 0)
        assert action_to_wire(AddEvent(title="x", date=when)).data == {"title": "x", "date": when.isoformat()}
        assert action_to_wire(None) is None
