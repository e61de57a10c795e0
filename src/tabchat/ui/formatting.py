"""Rendering of application state into Rich renderables.

Hides how tabs, transcripts and the status line look on screen. Every
function here is pure: it reads the state and returns a renderable,
so the widgets only decide where the result goes.
"""

from rich.console import Group, RenderableType
from rich.markdown import Markdown
from rich.text import Text

from ..chat.models import AppState, Conversation, Message, Role, SessionStatus
from .config import MESSAGE_TIMESTAMP_FORMAT, TAB_TITLE_WIDTH, spinner_frame

EMPTY_HINT = "Type a message and press Enter. /help lists commands, F1 lists keys."
IDLE_HINT = "Enter send | Ctrl+N new tab | Ctrl+W close | F1 help"


def short_title(title: str, width: int = TAB_TITLE_WIDTH) -> str:
    if len(title) > width:
        return title[:width - 1] + "…"
    return title


def format_tab_bar(state: AppState) -> Text:
    """One cell per tab: `index:title`, the active one highlighted."""
    bar = Text(no_wrap=True, overflow="ellipsis")
    for index, conversation in enumerate(state.conversations):
        if index:
            bar.append("│", style="dim")
        label = f" {index + 1}:{short_title(conversation.display_title)}"
        if conversation.is_busy:
            label += f" {spinner_frame(state.ticks)}"
        elif conversation.error:
            label += " !"
        label += " "
        if index == state.active_index:
            bar.append(label, style="bold reverse")
        elif conversation.error:
            bar.append(label, style="red")
        else:
            bar.append(label)
    return bar


def _message_header(message: Message) -> Text:
    stamp = message.timestamp.strftime(MESSAGE_TIMESTAMP_FORMAT)
    if message.role is Role.USER:
        header = Text("You", style="bold cyan")
    else:
        header = Text("Claude", style="bold magenta")
    header.append(f"  {stamp}", style="dim")
    return header


def format_transcript(conversation: Conversation, ticks: int = 0) -> RenderableType:
    """Render the visible part of a conversation.

    The trailing assistant message shows a thinking indicator while the
    reply has not started, and a cursor while it streams.
    """
    parts: list[RenderableType] = []
    if conversation.system_prompt:
        parts.append(Text(f"system: {conversation.system_prompt}", style="dim italic"))
        parts.append(Text(""))

    if conversation.is_empty:
        parts.append(Text(EMPTY_HINT, style="dim"))
        return Group(*parts)

    trailing = conversation.trailing_assistant
    for message in conversation.visible_messages():
        parts.append(_message_header(message))
        if message.role is Role.USER:
            parts.append(Text(message.content))
        elif message is trailing and conversation.status is SessionStatus.AWAITING_FIRST_TOKEN:
            parts.append(Text(f"{spinner_frame(ticks)} thinking...", style="yellow"))
        else:
            parts.append(Markdown(message.content))
            if message is trailing and conversation.status is SessionStatus.STREAMING:
                parts.append(Text("▌", style="yellow"))
        parts.append(Text(""))

    hidden = conversation.scroll_offset
    if hidden:
        noun = "message" if hidden == 1 else "messages"
        parts.append(Text(f"↓ {hidden} newer {noun} below (Ctrl+End to jump)", style="dim"))
    return Group(*parts)


def format_status(state: AppState) -> Text:
    """Status slot: the latest status message (or a key hint) plus the model."""
    if state.status is not None:
        line = Text(state.status.text, style="bold red" if state.status.is_error else "")
    else:
        line = Text(IDLE_HINT, style="dim")

    line.append("  |  ", style="dim")
    if state.current_model:
        line.append(state.current_model, style="cyan")
    else:
        line.append("offline", style="yellow")
    if state.pending_model:
        line.append(f" -> {state.pending_model} (next message)", style="yellow")
    return line


def conversation_subtitle(conversation: Conversation) -> str:
    count = len(conversation.messages)
    noun = "message" if count == 1 else "messages"
    if conversation.status is SessionStatus.AWAITING_FIRST_TOKEN:
        return f"{count} {noun} | waiting"
    if conversation.status is SessionStatus.STREAMING:
        return f"{count} {noun} | streaming"
    return f"{count} {noun}"
