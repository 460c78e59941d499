"""CommandSequencer: step-table-driven command injection.

Multi-step injections (clear, wait, paste, wait, prompt) are declared as
data in :data:`SEQUENCES` instead of nested timer callbacks. Each step names
an action method on the target (``"send_clear"`` -> ``target._send_clear``)
and whether it still requires the work loop to be enabled when it fires.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)


class SequenceKind(Enum):
    """Named injection sequences.

    Values:
        NEXT_TASK: Clear the session, then ask for the next task.
        RESTORE_CONTEXT: Clear the session, then paste a captured summary.
        RESTORE_AND_CONTINUE: Clear, paste the summary, then ask for the
            next task.
    """

    NEXT_TASK = "next_task"
    RESTORE_CONTEXT = "restore_context"
    RESTORE_AND_CONTINUE = "restore_and_continue"


class SequenceCancelled(Exception):
    """Raised by :meth:`CommandSequencer.ensure_current` inside a stale run."""

    pass


class SequenceOutcome(Enum):
    """How a sequence run ended.

    Values:
        COMPLETED: Every step fired.
        CANCELLED: Cancelled or superseded by a newer run before a step.
        HALTED: A step required the work loop, which was no longer enabled.
    """

    COMPLETED = "completed"
    CANCELLED = "cancelled"
    HALTED = "halted"


@dataclass(frozen=True)
class Step:
    """One step of an injection sequence.

    Attributes:
        name: Phase reported while this step is in progress.
        action: Target method suffix to await.
        requires_loop: Halt instead of firing if the work loop has been
            disabled by the time this step is reached.
    """

    name: str
    action: str
    requires_loop: bool = False


_CLEAR = (
    Step("clearing", "send_clear"),
    Step("awaiting_clear_ack", "await_clear_ack"),
)
_PASTE = (
    Step("pasting_summary", "paste_summary"),
)

SEQUENCES: dict[SequenceKind, tuple[Step, ...]] = {
    SequenceKind.NEXT_TASK: (
        *_CLEAR,
        Step("sending_task_prompt", "send_task_prompt", requires_loop=True),
    ),
    SequenceKind.RESTORE_CONTEXT: (
        *_CLEAR,
        *_PASTE,
    ),
    SequenceKind.RESTORE_AND_CONTINUE: (
        *_CLEAR,
        *_PASTE,
        Step("awaiting_prompt_delivered", "await_summary_delivered", requires_loop=True),
        Step("sending_task_prompt", "send_task_prompt", requires_loop=True),
    ),
}


@dataclass
class SequenceContext:
    """Mutable scratch data shared by the steps of one run."""

    kind: SequenceKind
    generation: int = 0
    summary: str | None = None
    did_clear: bool = False


class CommandSequencer:
    """Run injection sequences against a target, one generation at a time.

    Starting a run or calling :meth:`cancel` bumps the generation. A run
    checks its generation before every step, and step actions call
    :meth:`ensure_current` before every write, so an older run sends
    nothing more once it has been cancelled or superseded.
    Preconditions are read from the target when the step fires, not when
    the run started.
    """

    def __init__(self, target: Any, label: str = "") -> None:
        self._target = target
        self._label = label
        self._generation: int = 0
        self.current_step: str | None = None

    @property
    def busy(self) -> bool:
        return self.current_step is not None

    async def run(self, kind: SequenceKind, **context: Any) -> SequenceOutcome:
        """Execute the steps declared for *kind* in order.

        Raises:
            Whatever the step action raises; remaining steps do not run.
        """
        self._generation += 1
        generation = self._generation
        ctx = SequenceContext(kind=kind, generation=generation, **context)
        logger.debug("Sequence %s start [%s]", kind.value, self._label)
        try:
            for step in SEQUENCES[kind]:
                if generation != self._generation:
                    logger.debug(
                        "Sequence %s cancelled before %s [%s]",
                        kind.value, step.name, self._label,
                    )
                    return SequenceOutcome.CANCELLED
                if step.requires_loop and not self._target.loop_enabled:
                    logger.debug(
                        "Sequence %s halted at %s: loop disabled [%s]",
                        kind.value, step.name, self._label,
                    )
                    return SequenceOutcome.HALTED
                self.current_step = step.name
                await getattr(self._target, f"_{step.action}")(ctx)
        except SequenceCancelled:
            logger.debug(
                "Sequence %s cancelled during %s [%s]", kind.value, step.name, self._label,
            )
            return SequenceOutcome.CANCELLED
        finally:
            if generation == self._generation:
                self.current_step = None
        logger.debug("Sequence %s completed [%s]", kind.value, self._label)
        return SequenceOutcome.COMPLETED

    def cancel(self) -> None:
        """Invalidate any in-flight run."""
        self._generation += 1
        self.current_step = None

    def ensure_current(self, ctx: SequenceContext) -> None:
        """Raise :class:`SequenceCancelled` if *ctx* belongs to a stale run."""
        if ctx.generation != self._generation:
            raise SequenceCancelled(ctx.kind.value)


def validate_target(cls: type) -> None:
    """Check that *cls* implements every action named in :data:`SEQUENCES`."""
    for kind, steps in SEQUENCES.items():
        for step in steps:
            if not hasattr(cls, f"_{step.action}"):
                raise AssertionError(
                    f"Sequence {kind.name} references unknown action {step.action!r}"
                )
