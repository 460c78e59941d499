"""Shared data types: autowork flags and the events emitted per session."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Awaitable, Callable, Protocol, Union


@dataclass
class AutoworkOptions:
    """Options chosen by the user when starting the work loop."""

    with_summary: bool = False
    ask_questions: bool = False
    pause_for_review: bool = False
    final_evaluation: bool = False
    git_commit: bool = False


@dataclass
class AutoworkState:
    """Independent work-loop flags. All reset together on stop or cancel."""

    enabled: bool = False
    with_summary: bool = False
    ask_questions: bool = False
    pause_for_review: bool = False
    final_evaluation: bool = False
    git_commit: bool = False

    @classmethod
    def from_options(cls, options: AutoworkOptions) -> AutoworkState:
        return cls(
            enabled=True,
            with_summary=options.with_summary,
            ask_questions=options.ask_questions,
            pause_for_review=options.pause_for_review,
            final_evaluation=options.final_evaluation,
            git_commit=options.git_commit,
        )

    def snapshot(self) -> AutoworkState:
        return replace(self)


@dataclass(frozen=True)
class DisplayText:
    """Display-ready text for one chunk, markers stripped, control bytes kept."""

    session_id: str
    text: str


@dataclass(frozen=True)
class NarrationRequest:
    """A speakable narration segment seen for the first time."""

    session_id: str
    text: str


@dataclass(frozen=True)
class SummaryReady:
    """A captured session summary."""

    session_id: str
    text: str


@dataclass(frozen=True)
class AutoworkStateChanged:
    """Work-loop flags changed; carries a snapshot for UI affordances."""

    session_id: str
    state: AutoworkState
    awaiting_user_review: bool


SessionEvent = Union[DisplayText, NarrationRequest, SummaryReady, AutoworkStateChanged]

EventSink = Callable[[SessionEvent], None]

# Fire-and-forget write into the interactive session. May raise.
SessionWriter = Callable[[str], Awaitable[None]]


class DisplaySurface(Protocol):
    """Presentation-layer sink for display text."""

    def write(self, text: str) -> None: ...
