import dataclasses

import pytest

from loadshear.actions import ActionDescriptor, ActionType


def test_action_type_order_starts_at_create():
    actions = [
        ActionDescriptor.create(0, 1, 0),
        ActionDescriptor.connect(0, 1, 0),
        ActionDescriptor.send(0, 1, 1, 0),
        ActionDescriptor.flood(0, 1, 0),
        ActionDescriptor.drain(0, 1, 1, 0),
        ActionDescriptor.disconnect(0, 1, 0),
    ]
    assert [int(a.type) for a in actions] == [0, 1, 2, 3, 4, 5]
    assert [a.type_name() for a in actions] == [
        "CREATE",
        "CONNECT",
        "SEND",
        "FLOOD",
        "DRAIN",
        "DISCONNECT",
    ]
    assert [a.type for a in actions] == list(ActionType)


def test_create_counts_sessions_in_range():
    action = ActionDescriptor.create(3, 10, 250)
    assert action.type is ActionType.CREATE
    assert (action.sessions_start, action.sessions_end) == (3, 10)
    assert action.count == 10 - 3
    assert action.offset_ms == 250


def test_send_keeps_copy_count():
    action = ActionDescriptor.send(0, 4, 17, 100)
    assert action.type is ActionType.SEND
    assert action.count == 17
    assert action.offset_ms == 100


def test_drain_stores_timeout_in_count():
    action = ActionDescriptor.drain(1, 2, 5000, 30)
    assert action.type is ActionType.DRAIN
    assert action.count == 5000


@pytest.mark.parametrize(
    "factory, expected",
    [
        (ActionDescriptor.connect, "CONNECT"),
        (ActionDescriptor.flood, "FLOOD"),
        (ActionDescriptor.disconnect, "DISCONNECT"),
    ],
)
def test_range_actions_report_their_name(factory, expected):
    action = factory(2, 8, 40)
    assert action.type_name() == expected
    assert (action.sessions_start, action.sessions_end, action.offset_ms) == (
        2,
        8,
        40,
    )


def test_type_name_for_every_factory_matches_enum():
    actions = [
        ActionDescriptor.create(0, 1, 0),
        ActionDescriptor.send(0, 1, 1, 0),
        ActionDescriptor.drain(0, 1, 1, 0),
    ]
    assert [a.type_name() for a in actions] == ["CREATE", "SEND", "DRAIN"]


def test_with_range_changes_only_the_range():
    original = ActionDescriptor.send(10, 20, 3, 500)
    moved = original.with_range(0, 5)
    assert (moved.sessions_start, moved.sessions_end) == (0, 5)
    assert (moved.type, moved.count, moved.offset_ms) == (
        original.type,
        original.count,
        original.offset_ms,
    )
    assert (original.sessions_start, original.sessions_end) == (10, 20)


def test_descriptor_is_immutable():
    action = ActionDescriptor.send(0, 1, 4, 0)
    with pytest.raises(dataclasses.FrozenInstanceError):
        action.count = 9
    assert action.count == 4