from boozy_bot.telegram.commands import bot_commands
from services.commands_registry import (
    command_specs,
    get_root_spec,
    known_roots,
    menu_commands,
    resolve_root,
    validate_registry,
)


async def _dummy_handler(argument, context):
    _ = (argument, context)
    return None


def test_registry_validation_passes_with_every_handler_bound():
    handlers = {name: _dummy_handler for name in known_roots()}
    assert validate_registry(handlers) == []


def test_registry_reports_missing_handlers():
    handlers = {name: _dummy_handler for name in known_roots() if name != "next"}
    assert validate_registry(handlers) == ["Missing handler: next"]


def test_registry_has_unique_command_names():
    names = [spec.name for spec in command_specs()]
    assert len(names) == len(set(names))


def test_help_alias_resolves_to_start():
    assert resolve_root(" HELP ") == "start"
    assert get_root_spec("help").name == "start"
    assert resolve_root("") == ""


def test_menu_lists_user_facing_commands():
    names = [spec.name for spec in menu_commands()]
    assert names == ["list", "remove", "clear", "search", "next"]
    assert [command.command for command in bot_commands()] == names
