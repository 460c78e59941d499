from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

import yaml

logger = logging.getLogger(__name__)


class ConfigError(Exception):
    """Raised when configuration loading or validation fails."""

    pass


@dataclass
class ReplayConfig:
    """Replay log bounds."""

    max_chunks: int = 1000


@dataclass
class NarrationConfig:
    """Narration extractor bounds and speakability thresholds."""

    carry_max_chars: int = 2000
    max_signatures: int = 1000
    retain_signatures: int = 500
    min_length: int = 5


@dataclass
class SummaryConfig:
    """Summary capture bounds."""

    max_buffer_chars: int = 200_000
    min_length: int = 100


@dataclass
class AutoworkConfig:
    """Work-loop command injection settings.

    The delays are heuristics: the session gives no acknowledgment, so each
    step waits long enough for the previous input to be consumed.
    """

    backend: str = "claude"
    clear_ack_delay_s: float = 2.0
    fallback_delay_s: float = 0.1
    summary_paste_delay_s: float = 2.0
    submit_delay_s: float = 0.1
    interrupt_sequence: str = "\x1b"


@dataclass
class SurfaceConfig:
    """Headless display surface geometry."""

    rows: int = 30
    cols: int = 120
    history: int = 5000


@dataclass
class DebugConfig:
    """Debug mode settings."""

    enabled: bool = False
    trace: bool = False
    verbose: bool = False


@dataclass
class AppConfig:
    """Top-level configuration aggregating all subsections."""

    replay: ReplayConfig = field(default_factory=ReplayConfig)
    narration: NarrationConfig = field(default_factory=NarrationConfig)
    summary: SummaryConfig = field(default_factory=SummaryConfig)
    autowork: AutoworkConfig = field(default_factory=AutoworkConfig)
    surface: SurfaceConfig = field(default_factory=SurfaceConfig)
    debug: DebugConfig = field(default_factory=DebugConfig)


def _positive(section: str, name: str, value) -> int:
    if not isinstance(value, int) or isinstance(value, bool) or value <= 0:
        raise ConfigError(f"{section}.{name} must be a positive integer")
    return value


def _non_negative(section: str, name: str, value) -> int:
    if not isinstance(value, int) or isinstance(value, bool) or value < 0:
        raise ConfigError(f"{section}.{name} must be a non-negative integer")
    return value


def _delay(name: str, value) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value < 0:
        raise ConfigError(f"autowork.{name} must be a non-negative number")
    return float(value)


def load_config(path: str) -> AppConfig:
    """Load and validate configuration from a YAML file.

    Every section is optional; missing fields take their defaults.

    Args:
        path: Filesystem path to the YAML configuration file.

    Returns:
        A fully populated AppConfig instance.

    Raises:
        ConfigError: If the file does not exist, is not a mapping, or a
            value fails validation.
    """
    config_path = Path(path)
    if not config_path.exists():
        raise ConfigError(f"Config file not found: {path}")

    with open(config_path) as f:
        raw = yaml.safe_load(f) or {}
    if not isinstance(raw, dict):
        raise ConfigError("Config root must be a mapping")

    # `or {}` fallback handles YAML null values for optional sections
    replay_raw = raw.get("replay", {}) or {}
    narration_raw = raw.get("narration", {}) or {}
    summary_raw = raw.get("summary", {}) or {}
    autowork_raw = raw.get("autowork", {}) or {}
    surface_raw = raw.get("surface", {}) or {}
    debug_raw = raw.get("debug", {}) or {}

    narration = NarrationConfig(
        carry_max_chars=_positive(
            "narration", "carry_max_chars", narration_raw.get("carry_max_chars", 2000)
        ),
        max_signatures=_positive(
            "narration", "max_signatures", narration_raw.get("max_signatures", 1000)
        ),
        retain_signatures=_positive(
            "narration", "retain_signatures", narration_raw.get("retain_signatures", 500)
        ),
        min_length=_non_negative("narration", "min_length", narration_raw.get("min_length", 5)),
    )
    if narration.retain_signatures > narration.max_signatures:
        raise ConfigError("narration.retain_signatures must not exceed max_signatures")

    config = AppConfig(
        replay=ReplayConfig(
            max_chunks=_positive("replay", "max_chunks", replay_raw.get("max_chunks", 1000)),
        ),
        narration=narration,
        summary=SummaryConfig(
            max_buffer_chars=_positive(
                "summary", "max_buffer_chars", summary_raw.get("max_buffer_chars", 200_000)
            ),
            min_length=_positive("summary", "min_length", summary_raw.get("min_length", 100)),
        ),
        autowork=AutoworkConfig(
            backend=autowork_raw.get("backend", "claude"),
            clear_ack_delay_s=_delay(
                "clear_ack_delay_s", autowork_raw.get("clear_ack_delay_s", 2.0)
            ),
            fallback_delay_s=_delay(
                "fallback_delay_s", autowork_raw.get("fallback_delay_s", 0.1)
            ),
            summary_paste_delay_s=_delay(
                "summary_paste_delay_s", autowork_raw.get("summary_paste_delay_s", 2.0)
            ),
            submit_delay_s=_delay("submit_delay_s", autowork_raw.get("submit_delay_s", 0.1)),
            interrupt_sequence=autowork_raw.get("interrupt_sequence", "\x1b"),
        ),
        surface=SurfaceConfig(
            rows=_positive("surface", "rows", surface_raw.get("rows", 30)),
            cols=_positive("surface", "cols", surface_raw.get("cols", 120)),
            history=_positive("surface", "history", surface_raw.get("history", 5000)),
        ),
        debug=DebugConfig(
            enabled=bool(debug_raw.get("enabled", False)),
            trace=bool(debug_raw.get("trace", False)),
            verbose=bool(debug_raw.get("verbose", False)),
        ),
    )

    logger.debug("Loaded config from %s", path)
    logger.debug(
        "replay.max_chunks=%d autowork.backend=%s",
        config.replay.max_chunks, config.autowork.backend,
    )
    return config
