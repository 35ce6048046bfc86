import pytest

from services.errors import InvariantViolation
from services.events import EventType, event_key, from_update, parse_command


def _message(text, entities=None, chat_type="group"):
    message = {
        "message_id": 7,
        "chat": {"id": -500, "type": chat_type},
        "from": {"id": 3, "first_name": "Bob", "last_name": "Stone", "username": "bob"},
        "text": text,
    }
    if entities is not None:
        message["entities"] = entities
    return {"update_id": 12, "message": message}


def test_parse_command_with_addressee_and_argument():
    parsed = parse_command("/add@BoozyBot  rum-001 ", [{"type": "bot_command", "offset": 0, "length": 13}])
    assert parsed == {"command": "add", "argument": "rum-001", "addressee": "BoozyBot"}


def test_parse_command_requires_leading_command_entity():
    assert parse_command("hello /start", [{"type": "bot_command", "offset": 6, "length": 6}]) is None
    assert parse_command("/start", [{"type": "bold", "offset": 0, "length": 6}]) is None
    assert parse_command("/start", None) is None


def test_command_event():
    event = from_update(_message("/Search", [{"type": "bot_command", "offset": 0, "length": 7}]))

    assert event.type is EventType.COMMAND
    assert event.key == "upd-12" == event_key(12)
    assert event.payload["command"] == "search"
    assert event.payload["message_id"] == 7
    assert event.chat.id == -500 and not event.chat.is_private
    assert event.user.full_name == "Bob Stone"


def test_free_text_event():
    event = from_update(_message("  Lime  "))
    assert event.type is EventType.FREE_TEXT
    assert event.payload["text"] == "Lime"


def test_inline_query_event():
    event = from_update(
        {"update_id": 3, "inline_query": {"id": "77", "from": {"id": 3}, "query": " mint ", "offset": "10:-"}}
    )
    assert event.type is EventType.INLINE_QUERY
    assert event.chat is None
    assert event.payload == {"query_id": "77", "query": "mint", "offset": "10:-"}


def test_ignored_updates():
    assert from_update({"update_id": 1, "edited_message": {"text": "x"}}) is None
    assert from_update(_message("   ")) is None


def test_malformed_updates_raise():
    with pytest.raises(InvariantViolation):
        from_update({"message": {"text": "/start"}})
    with pytest.raises(InvariantViolation):
        from_update({"update_id": 1, "message": {"text": "hi", "chat": {}}})
