"""Slash-command table for the interactive backends a session may run.

Commands are resolved per backend because the same action is spelled
differently (``/compact`` vs ``/compress``) or missing entirely (codex has
no ``/clear``).
"""

from __future__ import annotations

import asyncio
import logging

from ptyscribe.models import SessionWriter

logger = logging.getLogger(__name__)

DEFAULT_BACKEND = "claude"


def _commands(*ids: str, **overrides: str) -> dict[str, str]:
    table = {cid: f"/{cid}" for cid in ids}
    table.update({cid.replace("_", "-"): cmd for cid, cmd in overrides.items()})
    return table


BACKEND_COMMANDS: dict[str, dict[str, str]] = {
    "claude": _commands(
        "help", "clear", "compact", "cost", "status", "model", "config", "doctor",
        plugin_list="/plugin list",
    ),
    "gemini": _commands(
        "help", "clear", "stats", "model", "settings", "about", "tools",
        "auth", "theme", "memory", "mcp", "extensions", "directory", "chat",
        "resume", "restore", "copy", "privacy", "vim", "init", "bug", "editor",
        "quit", "exit",
        compact="/compress",
    ),
    "codex": _commands(
        "status", "model", "compact", "diff", "review", "approvals", "prompts",
        "mcp", "mention", "new", "feedback", "init", "logout", "exit", "quit",
    ),
    "opencode": _commands(
        "help", "clear", "stats", "model", "session", "mcp", "agent",
        "auth", "export", "import", "github", "quit",
    ),
}


def normalize_backend(backend: str | None) -> str | None:
    """Map a backend name to a table key; ``None``/``"default"`` mean claude."""
    if not backend or backend == "default":
        return DEFAULT_BACKEND
    if backend in BACKEND_COMMANDS:
        return backend
    return None


def resolve_backend_command(backend: str | None, command_id: str) -> str | None:
    """Return the command text for *command_id*, or None if unsupported.

    Args:
        backend: Backend name (``claude``, ``gemini``, ``codex``, ``opencode``).
        command_id: Action identifier such as ``"clear"`` or ``"compact"``.
    """
    normalized = normalize_backend(backend)
    if normalized is None:
        return None
    return BACKEND_COMMANDS[normalized].get(command_id)


async def submit(writer: SessionWriter, text: str, delay_s: float = 0.1) -> None:
    """Send text, pause, then press Enter.

    Interactive TUIs treat text+Enter arriving together as a paste, so the
    submit key is sent separately.
    """
    await writer(text)
    await asyncio.sleep(delay_s)
    await writer("\r")


async def send_backend_command(
    writer: SessionWriter,
    backend: str | None,
    command_id: str,
    delay_s: float = 0.1,
) -> bool:
    """Submit a backend slash command.

    Returns:
        True if the command was resolved and written, False if the backend
        has no such command (nothing is written).
    """
    command = resolve_backend_command(backend, command_id)
    if command is None:
        logger.debug("No %r command for backend %r", command_id, backend)
        return False
    logger.debug("Sending backend command %r", command)
    await submit(writer, command, delay_s)
    return True
