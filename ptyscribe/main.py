from __future__ import annotations

import argparse
import asyncio
import logging
import os
import signal

from ptyscribe.backend_commands import submit
from ptyscribe.config import AppConfig, load_config
from ptyscribe.log_setup import setup_logging
from ptyscribe.models import (
    AutoworkOptions,
    AutoworkStateChanged,
    NarrationRequest,
    SessionEvent,
    SummaryReady,
)
from ptyscribe.pty_bridge import PtyBridge
from ptyscribe.registry import SessionRegistry
from ptyscribe.surface import ScreenSurface

logger = logging.getLogger(__name__)


def build_config(
    config_path: str | None, debug: bool = False, trace: bool = False, verbose: bool = False,
) -> AppConfig:
    """Load the YAML config (defaults when no path is given) and apply CLI flags."""
    config = load_config(config_path) if config_path else AppConfig()

    if debug:
        config.debug.enabled = True
    if trace:
        config.debug.trace = True
    if verbose:
        config.debug.verbose = True
    return config


def log_event(event: SessionEvent) -> None:
    """Event sink that reports interpreted events through logging.

    Display text is rendered by the attached surface, so it is not logged.
    """
    if isinstance(event, NarrationRequest):
        logger.info("[%s] narrate: %s", event.session_id, event.text)
    elif isinstance(event, SummaryReady):
        logger.info("[%s] summary captured (%d chars)", event.session_id, len(event.text))
    elif isinstance(event, AutoworkStateChanged):
        logger.info(
            "[%s] autowork enabled=%s awaiting_review=%s",
            event.session_id, event.state.enabled, event.awaiting_user_review,
        )


async def watch(
    config: AppConfig,
    command: str,
    args: list[str],
    prompt: str | None = None,
    autowork: AutoworkOptions | None = None,
    stop_event: asyncio.Event | None = None,
) -> int | None:
    """Run *command* in a PTY and interpret its output until it exits.

    Args:
        config: Loaded configuration.
        command: Program to spawn.
        args: Its arguments.
        prompt: Text submitted as user input once the process starts.
        autowork: Start the work loop with these options.
        stop_event: Setting it terminates the process early.

    Returns:
        The process exit status.
    """
    bridge = PtyBridge.spawn(command, args, config.surface)
    session_id = f"{os.path.basename(command)}:{bridge.pid}"
    registry = SessionRegistry(config, emit=log_event)
    interpreter = registry.open(session_id, bridge.write)
    surface = ScreenSurface(config.surface)
    interpreter.attach(surface)
    interpreter.set_active(True)
    logger.info("Watching session %s", session_id)

    runner = asyncio.create_task(bridge.run(interpreter))
    try:
        if prompt:
            interpreter.user_input(prompt)
            await submit(bridge.write, prompt, config.autowork.submit_delay_s)
        if autowork is not None:
            await interpreter.autowork.start(autowork)

        stopper = asyncio.create_task(stop_event.wait()) if stop_event is not None else None
        await asyncio.wait(
            [t for t in (runner, stopper) if t is not None], return_when=asyncio.FIRST_COMPLETED,
        )
        if stopper is not None:
            stopper.cancel()
        if not runner.done():
            logger.info("Stopping session %s", session_id)
            await bridge.close()
        status = await runner
    finally:
        if not runner.done():
            await bridge.close()
            await runner
        logger.debug("Final screen of %s:\n%s", session_id, surface.get_text())
        registry.shutdown()

    logger.info("Session %s exited with status %s", session_id, status)
    return status


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Run a command in a PTY and interpret its marker output",
    )
    parser.add_argument("command", help="Program to run")
    parser.add_argument("args", nargs=argparse.REMAINDER, help="Arguments for the program")
    parser.add_argument("--config", help="Path to YAML config file (defaults apply when omitted)")
    parser.add_argument("--prompt", help="Submit this text once the program starts")
    parser.add_argument("--autowork", action="store_true",
                        help="Start the autonomous work loop")
    parser.add_argument("--with-summary", action="store_true",
                        help="With --autowork, restore a summary between tasks")
    parser.add_argument("--debug", action="store_true",
                        help="Enable debug mode (verbose logging)")
    parser.add_argument("--trace", action="store_true",
                        help="Enable trace mode (writes trace file to debug/)")
    parser.add_argument("--verbose", action="store_true",
                        help="With --trace, also send trace output to terminal")
    return parser.parse_args(argv)


async def main(argv: list[str] | None = None) -> int | None:
    """Entry point for the ptyscribe session watcher."""
    args = _parse_args(argv)
    config = build_config(args.config, debug=args.debug, trace=args.trace, verbose=args.verbose)
    setup_logging(
        debug=config.debug.enabled, trace=config.debug.trace, verbose=config.debug.verbose,
    )

    autowork = AutoworkOptions(with_summary=args.with_summary) if args.autowork else None

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop_event.set)

    return await watch(
        config, args.command, args.args,
        prompt=args.prompt, autowork=autowork, stop_event=stop_event,
    )
