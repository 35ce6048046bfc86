from services import session_mode, storage
from services.session_mode import ChatMode, SessionState


def test_unknown_chat_is_idle():
    assert session_mode.get_mode(42) is ChatMode.IDLE
    assert session_mode.get_state(42).removal_choices == {}


def test_set_and_reset_mode():
    session_mode.set_mode(1, ChatMode.AWAITING_REMOVAL_CHOICE, {"White Rum": "rum-001"})

    state = session_mode.get_state(1)
    assert state.mode is ChatMode.AWAITING_REMOVAL_CHOICE
    assert state.removal_choices == {"White Rum": "rum-001"}

    session_mode.reset(1)
    assert session_mode.get_state(1) == SessionState()


def test_modes_are_per_chat():
    session_mode.set_mode(1, ChatMode.AWAITING_REMOVAL_CHOICE, {"Lime": "lime-002"})
    assert session_mode.get_mode(2) is ChatMode.IDLE


def test_unrecognized_stored_mode_reads_as_idle():
    with storage.transaction() as con:
        con.execute("INSERT INTO chat_modes (chat_id, mode) VALUES (?, ?)", (7, "legacy_mode"))

    assert session_mode.get_mode(7) is ChatMode.IDLE


def test_resolve_choice_by_label_or_typed_code():
    state = SessionState(
        mode=ChatMode.AWAITING_REMOVAL_CHOICE,
        removal_choices={"Lime": "lime-002", "Rum (rum-001)": "rum-001"},
    )

    assert state.resolve_choice("Lime") == "lime-002"
    assert state.resolve_choice("  Rum (rum-001) ") == "rum-001"
    assert state.resolve_choice("rum-001") == "rum-001"
    assert state.resolve_choice("gin-1") == "gin-1"
    assert state.resolve_choice("") is None
