"""Streaming interpretation of interactive terminal-session output."""

from ptyscribe.autowork import AutoworkController, CommandInjectionError, build_task_prompt
from ptyscribe.config import AppConfig, ConfigError, load_config
from ptyscribe.interpreter import SessionInterpreter
from ptyscribe.models import (
    AutoworkOptions,
    AutoworkState,
    AutoworkStateChanged,
    DisplayText,
    NarrationRequest,
    SummaryReady,
)
from ptyscribe.pty_bridge import PtyBridge
from ptyscribe.registry import SessionError, SessionRegistry
from ptyscribe.surface import ScreenSurface

__all__ = [
    "AppConfig",
    "AutoworkController",
    "AutoworkOptions",
    "AutoworkState",
    "AutoworkStateChanged",
    "CommandInjectionError",
    "ConfigError",
    "DisplayText",
    "NarrationRequest",
    "PtyBridge",
    "ScreenSurface",
    "SessionError",
    "SessionInterpreter",
    "SessionRegistry",
    "SummaryReady",
    "build_task_prompt",
    "load_config",
]
