"""Command interpreter: classify a submitted line.

A line starting with "/" is a control directive and is never sent to the
remote service. Everything else is a chat message.
"""

from dataclasses import dataclass

DIRECTIVE_PREFIX = "/"


@dataclass(frozen=True, slots=True)
class ChatText:
    """Plain chat input to be sent."""

    text: str


@dataclass(frozen=True, slots=True)
class SetModel:
    model: str


@dataclass(frozen=True, slots=True)
class ShowModel:
    pass


@dataclass(frozen=True, slots=True)
class SetSystem:
    """Set (or clear, when text is None) the active conversation's system directive."""

    text: str | None


@dataclass(frozen=True, slots=True)
class ShowSystem:
    pass


@dataclass(frozen=True, slots=True)
class Save:
    pass


@dataclass(frozen=True, slots=True)
class Help:
    pass


@dataclass(frozen=True, slots=True)
class UnknownDirective:
    name: str


Directive = ChatText | SetModel | ShowModel | SetSystem | ShowSystem | Save | Help | UnknownDirective

# Shown in the help overlay
DIRECTIVE_HELP = [
    ("/model", "Show the model used for new replies"),
    ("/model NAME", "Use NAME for the next reply onwards"),
    ("/system", "Show this tab's system prompt"),
    ("/system TEXT", "Set this tab's system prompt"),
    ("/system clear", "Remove this tab's system prompt"),
    ("/save", "Save this conversation"),
    ("/help", "Toggle this help"),
]


def classify(line: str) -> Directive:
    """Classify one submitted line."""
    if not line.startswith(DIRECTIVE_PREFIX):
        return ChatText(line)

    parts = line.split(maxsplit=1)
    name = parts[0] if parts else line
    argument = parts[1].strip() if len(parts) > 1 else ""

    if name == "/model":
        return SetModel(argument) if argument else ShowModel()
    if name == "/system":
        if not argument:
            return ShowSystem()
        return SetSystem(None if argument == "clear" else argument)
    if name == "/save" and not argument:
        return Save()
    if name == "/help" and not argument:
        return Help()
    return UnknownDirective(name)
