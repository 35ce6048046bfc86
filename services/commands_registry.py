from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, List, Mapping, Optional, Set

GROUP_ORDER: List[str] = [
    "Core",
    "Ingredients",
    "Drinks",
]


@dataclass(frozen=True)
class CommandSpec:
    name: str
    usage: str
    description: str
    group: str
    show_in_menu: bool = True


COMMAND_ALIASES: Dict[str, str] = {
    "help": "start",
}


def _c(name: str, usage: str, description: str, group: str, *, show_in_menu: bool = True) -> CommandSpec:
    return CommandSpec(
        name=name,
        usage=usage,
        description=description,
        group=group,
        show_in_menu=show_in_menu,
    )


COMMANDS: Dict[str, CommandSpec] = {
    # Core
    "start": _c("start", "/start", "introduction and how to add ingredients", "Core", show_in_menu=False),
    # Ingredients
    "add": _c("add", "/add <code>", "add an ingredient picked from inline search", "Ingredients", show_in_menu=False),
    "list": _c("list", "/list", "show chosen ingredients", "Ingredients"),
    "remove": _c("remove", "/remove", "remove one ingredient", "Ingredients"),
    "clear": _c("clear", "/clear", "remove all ingredients", "Ingredients"),
    # Drinks
    "search": _c("search", "/search", "find drinks for chosen ingredients", "Drinks"),
    "next": _c("next", "/next", "next search result", "Drinks"),
}


def resolve_root(command_name: str) -> str:
    key = str(command_name or "").strip().lower()
    if not key:
        return ""
    return COMMAND_ALIASES.get(key, key)


def command_specs() -> List[CommandSpec]:
    return list(COMMANDS.values())


def known_roots() -> Set[str]:
    return {spec.name for spec in command_specs()}


def get_root_spec(root: str) -> Optional[CommandSpec]:
    return COMMANDS.get(resolve_root(root))


def menu_commands() -> List[CommandSpec]:
    return [spec for spec in command_specs() if spec.show_in_menu]


def validate_registry(handlers: Mapping[str, Callable[..., object]]) -> List[str]:
    issues: List[str] = []
    seen_usage: Set[str] = set()

    for key, spec in COMMANDS.items():
        if key != spec.name:
            issues.append(f"Registry key {key!r} does not match command name {spec.name!r}")

        usage = str(spec.usage or "").strip().lower()
        if not usage.startswith("/"):
            issues.append(f"Command usage must start with '/': {spec.name}")
        if usage in seen_usage:
            issues.append(f"Duplicate command usage: {spec.usage}")
        seen_usage.add(usage)

        if spec.name not in handlers:
            issues.append(f"Missing handler: {spec.name}")

        if spec.group not in GROUP_ORDER:
            issues.append(f"Unknown command group '{spec.group}' on {spec.name}")

    for alias, target in COMMAND_ALIASES.items():
        if target not in COMMANDS:
            issues.append(f"Alias {alias!r} points to unknown command {target!r}")

    if not known_roots():
        issues.append("No command roots registered")

    return issues
