"""Autonomous work loop driven by the continuation marker.

The controller writes a task prompt into the session, watches the normalized
output for ``===AUTOWORK_CONTINUE===`` and, on each marker, clears the
session and asks for the next task (optionally via a summary round trip or a
review pause). Multi-step injections run through :class:`CommandSequencer`.
"""

from __future__ import annotations

import asyncio
import functools
import logging

from ptyscribe.backend_commands import send_backend_command, submit
from ptyscribe.config import AutoworkConfig
from ptyscribe.models import (
    AutoworkOptions,
    AutoworkState,
    AutoworkStateChanged,
    EventSink,
    SessionWriter,
)
from ptyscribe.parsing.markers import AUTOWORK_CONTINUE
from ptyscribe.sequencer import (
    CommandSequencer,
    SequenceContext,
    SequenceKind,
    SequenceOutcome,
    validate_target,
)
from ptyscribe.summary import SUMMARIZE_PROMPT, SummaryCapture

logger = logging.getLogger(__name__)

_MARKER_CARRY = len(AUTOWORK_CONTINUE) - 1

STOP_INSTRUCTION = (
    "When you finish the current task, do NOT output the AUTOWORK_CONTINUE marker. "
    "Just complete this task and wait for further input."
)

_NO_TASKS_ACTION = (
    'commit all changes to git with a summary message and push to remote, '
    'then say "All beads tasks complete!" and stop'
)

_FINAL_EVALUATION_ACTION = (
    "commit all changes to git with a summary message and push to remote. "
    'Then run "bd list --status=closed" to see all completed tasks from this session. '
    "For each completed task, provide: 1) A brief summary of what was implemented, "
    "2) How to test it (specific steps), 3) What to look for to verify it works. "
    "Include any potential bugs, edge cases, or issues discovered during implementation. "
    "End with a checklist the user can follow to evaluate all the work."
)

_BASE_PROMPT = (
    "Run bd ready to check for tasks. If no tasks are available, {no_tasks} "
    "Otherwise, analyze ALL available tasks and determine which one should be "
    "worked on first - consider: 1) Is this task a prerequisite for other tasks? "
    "2) Does it provide foundation/infrastructure needed by others? "
    "3) Is it simpler and unblocks more complex work? "
    "Pick the ONE task that makes the most sense to do first. "
    "IMPORTANT: If while working you discover missing prerequisites, dependencies, "
    'or required functionality that doesn\'t exist yet, use "bd create" to add new '
    "tasks for them. Complete the task fully, close it with bd close <id>"
)

_ASK_QUESTIONS_PROMPT = (
    "Run bd ready to check for tasks. If no tasks are available, {no_tasks} "
    "Otherwise, analyze ALL available tasks and determine which one should be "
    "worked on first - consider dependencies and logical order. "
    "Before starting the chosen task, ask any clarifying questions you have about "
    "the requirements. Work on the task, asking questions as needed. "
    "IMPORTANT: If you discover missing prerequisites or required functionality, "
    'use "bd create" to add new tasks for them. When complete, close it with bd close <id>'
)

_GIT_COMMIT_SUFFIX = (
    ". After closing the task, commit the changes to git with a descriptive message "
    'mentioning the task ID (e.g., "Implement feature X [beads-abc]") and push to remote'
)

_REVIEW_SUFFIX = (
    ', then say "Task complete. Review the changes and provide feedback, '
    'or use Continue to Next Task to proceed."'
)

# The marker is described, not spelled, so echoing the prompt cannot trigger it.
_MARKER_SUFFIX = (
    " Then output the marker: three equals signs, AUTOWORK_CONTINUE, three equals signs."
)


class CommandInjectionError(Exception):
    """Raised when writing a command into the session fails."""

    pass


def build_task_prompt(state: AutoworkState) -> str:
    """Compose the task prompt for the current work-loop flags."""
    no_tasks = _FINAL_EVALUATION_ACTION if state.final_evaluation else _NO_TASKS_ACTION
    template = _ASK_QUESTIONS_PROMPT if state.ask_questions else _BASE_PROMPT
    prompt = template.format(no_tasks=no_tasks)
    if state.git_commit:
        prompt += _GIT_COMMIT_SUFFIX
    if state.pause_for_review:
        prompt += _REVIEW_SUFFIX
    return prompt + _MARKER_SUFFIX


class AutoworkController:
    """Per-session work-loop state machine.

    User-invoked operations (:meth:`start`, :meth:`continue_autowork`,
    :meth:`stop`, :meth:`cancel`, :meth:`request_summary`) await their writes
    and raise :class:`CommandInjectionError` on failure. Marker-triggered
    sequences run as background tasks; a failure there is logged and the
    loop stalls until the user continues or cancels.
    """

    def __init__(
        self,
        session_id: str,
        writer: SessionWriter,
        summary: SummaryCapture,
        config: AutoworkConfig | None = None,
        emit: EventSink | None = None,
    ) -> None:
        self.session_id = session_id
        self._writer = writer
        self._summary = summary
        self._config = config or AutoworkConfig()
        self._emit = emit
        self.state = AutoworkState()
        self.awaiting_user_review: bool = False
        self.awaiting_summary: bool = False
        self._sequencer = CommandSequencer(self, label=session_id)
        self._tasks: set[asyncio.Task] = set()
        self._tail: str = ""

    @property
    def loop_enabled(self) -> bool:
        return self.state.enabled

    @property
    def busy(self) -> bool:
        """True while an injection sequence is in progress or scheduled."""
        return self._sequencer.busy or bool(self._tasks)

    def build_task_prompt(self) -> str:
        return build_task_prompt(self.state)

    # --- User-invoked operations ---

    async def start(self, options: AutoworkOptions | None = None) -> SequenceOutcome:
        """Enable the loop with *options* and send the first task prompt."""
        self.state = AutoworkState.from_options(options or AutoworkOptions())
        self.awaiting_user_review = False
        self.awaiting_summary = False
        self._tail = ""
        logger.info("Autowork started for session %s: %s", self.session_id, self.state)
        self._notify()
        return await self._sequencer.run(SequenceKind.NEXT_TASK)

    async def continue_autowork(self) -> SequenceOutcome | None:
        """Resume after a review pause, or start fresh if the loop is off.

        Returns:
            The sequence outcome, or None when the loop is waiting on a
            summary instead.
        """
        self.awaiting_user_review = False
        if not self.state.enabled:
            logger.info("Autowork continue on session %s: starting fresh", self.session_id)
            self.state.enabled = True
            self._tail = ""
            self._notify()
            return await self._sequencer.run(SequenceKind.NEXT_TASK)

        self._notify()
        if self.state.with_summary:
            await self.request_summary(for_autowork=True)
            return None
        return await self._sequencer.run(SequenceKind.NEXT_TASK)

    async def stop(self) -> None:
        """Let the current task finish, then stop the loop.

        Pending steps that require the loop halt when they fire.
        """
        logger.info("Autowork stop requested for session %s", self.session_id)
        self._reset_flags()
        self._notify()
        await self._submit(STOP_INSTRUCTION)

    async def cancel(self) -> None:
        """Stop the loop immediately and interrupt the session."""
        logger.info("Autowork cancelled for session %s", self.session_id)
        if self.awaiting_summary:
            self._summary.abandon()
        self._reset_flags()
        self._abort_pending()
        self._notify()
        await self._write(self._config.interrupt_sequence)

    async def request_summary(self, *, for_autowork: bool = False) -> None:
        """Arm summary capture and ask the session to summarize itself."""
        self._summary.begin()
        self.awaiting_summary = for_autowork
        logger.debug(
            "Summary requested for session %s (autowork=%s)", self.session_id, for_autowork,
        )
        await self._write(SUMMARIZE_PROMPT)
        await asyncio.sleep(self._config.submit_delay_s)
        if for_autowork and not self.awaiting_summary:
            logger.debug("Summary request on session %s cancelled before submit", self.session_id)
            return
        await self._write("\r")

    # --- Stream-driven entry points ---

    def on_output(self, clean: str) -> None:
        """Scan a normalized chunk for the continuation marker."""
        if not self.state.enabled:
            self._tail = ""
            return
        text = self._tail + clean
        if AUTOWORK_CONTINUE not in text:
            self._tail = text[-_MARKER_CARRY:]
            return
        self._tail = ""

        if self.busy or self.awaiting_summary or self.awaiting_user_review:
            logger.debug(
                "Autowork marker ignored on session %s (busy=%s summary=%s review=%s)",
                self.session_id, self.busy, self.awaiting_summary, self.awaiting_user_review,
            )
            return

        logger.debug("Autowork marker detected on session %s", self.session_id)
        if self.state.pause_for_review:
            self.awaiting_user_review = True
            self._notify()
        elif self.state.with_summary:
            self._spawn(self.request_summary(for_autowork=True))
        else:
            self._spawn(self._sequencer.run(SequenceKind.NEXT_TASK))

    def on_summary_ready(self, summary: str) -> None:
        """Restore a captured summary, continuing the loop if it is active."""
        if self.state.enabled and self.state.with_summary:
            kind = SequenceKind.RESTORE_AND_CONTINUE
        else:
            kind = SequenceKind.RESTORE_CONTEXT
        self.awaiting_summary = False
        logger.debug("Summary ready on session %s, running %s", self.session_id, kind.value)
        self._spawn(self._sequencer.run(kind, summary=summary))

    async def wait_idle(self) -> None:
        """Wait for all background sequences to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def close(self) -> None:
        """Abort pending work without writing to the session."""
        self._reset_flags()
        self._abort_pending()

    # --- Sequence actions (dispatched by name from SEQUENCES) ---

    async def _send_clear(self, ctx: SequenceContext) -> None:
        ctx.did_clear = await send_backend_command(
            functools.partial(self._write, ctx=ctx),
            self._config.backend, "clear", self._config.submit_delay_s,
        )

    async def _await_clear_ack(self, ctx: SequenceContext) -> None:
        if ctx.did_clear:
            await asyncio.sleep(self._config.clear_ack_delay_s)
        else:
            await asyncio.sleep(self._config.fallback_delay_s)

    async def _paste_summary(self, ctx: SequenceContext) -> None:
        await self._submit(ctx.summary or "", ctx)

    async def _await_summary_delivered(self, ctx: SequenceContext) -> None:
        await asyncio.sleep(self._config.summary_paste_delay_s)

    async def _send_task_prompt(self, ctx: SequenceContext) -> None:
        await self._submit(self.build_task_prompt(), ctx)

    # --- Internals ---

    async def _write(self, text: str, ctx: SequenceContext | None = None) -> None:
        if ctx is not None:
            self._sequencer.ensure_current(ctx)
        try:
            await self._writer(text)
        except Exception as exc:
            raise CommandInjectionError(
                f"Write to session {self.session_id} failed: {exc}"
            ) from exc

    async def _submit(self, text: str, ctx: SequenceContext | None = None) -> None:
        await submit(
            functools.partial(self._write, ctx=ctx), text, self._config.submit_delay_s,
        )

    def _reset_flags(self) -> None:
        self.state = AutoworkState()
        self.awaiting_user_review = False
        self.awaiting_summary = False
        self._tail = ""

    def _abort_pending(self) -> None:
        self._sequencer.cancel()
        for task in list(self._tasks):
            task.cancel()

    def _notify(self) -> None:
        if self._emit is None:
            return
        self._emit(AutoworkStateChanged(
            session_id=self.session_id,
            state=self.state.snapshot(),
            awaiting_user_review=self.awaiting_user_review,
        ))

    def _spawn(self, coro) -> None:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._task_done)

    def _task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.warning(
                "Autowork step failed on session %s, loop stalled: %s", self.session_id, exc,
            )


# Fail at import if the step table names an action the controller lacks.
validate_target(AutoworkController)
