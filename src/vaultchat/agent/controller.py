"""Conversation controller — runs the assistant CLI one turn at a time."""

from __future__ import annotations

import asyncio
import codecs
import contextlib
import logging
import os
from collections.abc import Coroutine
from enum import StrEnum
from pathlib import Path
from typing import Any, Literal

from vaultchat.agent.helpers import deliver, emit_notice, format_stderr_preview
from vaultchat.agent.resolver import (
    CommandResolver,
    PathCommandResolver,
    SpawnError,
)
from vaultchat.config.models import ChatSettings
from vaultchat.constants import (
    CHILD_ENV_OVERRIDES,
    RESUME_FLAG,
    STREAM_ARGS,
    EventCallback,
)
from vaultchat.session.ids import Clock, IdFactory, new_id, utc_now
from vaultchat.session.models import (
    ConversationEvent,
    Message,
    SystemEvent,
    TextBlock,
    UserEvent,
)
from vaultchat.stream.classifier import EventClassifier, FrameParseError
from vaultchat.stream.framing import FrameDecoder

logger = logging.getLogger(__name__)

#: Bytes requested per read from the subprocess pipes.
_READ_CHUNK_BYTES = 65_536

#: Characters of stderr kept per turn for the exit-code log line.
_MAX_STDERR_CHARS = 2048

TurnOutcome = Literal["completed", "exited", "cancelled", "spawn_failed", "rejected"]


class ControllerState(StrEnum):
    IDLE = "idle"
    STARTING = "starting"
    STREAMING = "streaming"
    CLOSING = "closing"
    KILLED = "killed"


class ConversationController:
    """Drives the assistant CLI as a child process, one turn at a time.

    Each turn spawns a fresh process with the prompt on stdin, feeds its
    stdout through a :class:`FrameDecoder` and :class:`EventClassifier`,
    and hands every resulting event to *on_event* in arrival order.  The
    session id announced by the first ``system/init`` event is kept and
    passed back with ``--resume`` on later turns.

    :meth:`run_turn` never raises: spawn failures, malformed frames,
    non-zero exits and cancellation are all reported to the consumer as
    ``system`` notices and reflected in the returned outcome.
    """

    def __init__(
        self,
        workspace: Path | str,
        on_event: EventCallback,
        *,
        settings: ChatSettings | None = None,
        resolver: CommandResolver | None = None,
        id_factory: IdFactory = new_id,
        clock: Clock = utc_now,
        max_line_bytes: int | None = None,
    ) -> None:
        self._workspace = Path(workspace)
        self._on_event = on_event
        self._settings = settings or ChatSettings()
        self._resolver = resolver or PathCommandResolver.from_settings(self._settings)
        self._new_id = id_factory
        self._clock = clock
        self._classifier = EventClassifier(id_factory=id_factory, clock=clock)
        self._max_line_bytes = max_line_bytes

        # The only state that survives across turns.
        self._session_id: str | None = None

        # Per-turn state, reset by _release().
        self._state = ControllerState.IDLE
        self._process: asyncio.subprocess.Process | None = None
        self._turn: asyncio.Future[TurnOutcome] | None = None

        # Pump tasks outlive cancelled turns so killed processes get reaped.
        self._tasks: set[asyncio.Task[None]] = set()

    # ------------------------------------------------------------------ #
    # Properties
    # ------------------------------------------------------------------ #

    @property
    def session_id(self) -> str | None:
        """Session id adopted from the stream, if any."""
        return self._session_id

    @property
    def state(self) -> ControllerState:
        return self._state

    @property
    def is_processing(self) -> bool:
        """True from the moment a turn starts until it resolves."""
        return self._state is not ControllerState.IDLE

    @property
    def pid(self) -> int | None:
        """PID of the live assistant process, if any."""
        return self._process.pid if self._process is not None else None

    # ------------------------------------------------------------------ #
    # Command line
    # ------------------------------------------------------------------ #

    def build_args(self) -> list[str]:
        """Assistant arguments for the next turn (without the executable)."""
        args = list(STREAM_ARGS)
        if self._session_id:
            args.extend([RESUME_FLAG, self._session_id])
        return args

    def build_command(self) -> list[str]:
        """Full argument vector for the next turn.

        Raises:
            CommandNotFoundError: If the resolver cannot locate the assistant.
        """
        resolved = self._resolver.resolve(
            self._settings.node_location,
            self._settings.claude_location,
        )
        return resolved.argv(self.build_args())

    # ------------------------------------------------------------------ #
    # Turns
    # ------------------------------------------------------------------ #

    async def submit(self, text: str, current_file: str | None = None) -> TurnOutcome:
        """Send typed user text as a new turn.

        Echoes the text to the consumer as a user-input event, then runs the
        turn.  When file context is enabled and *current_file* is given, the
        prompt sent to the assistant is prefixed with that path.
        """
        message_text = text.strip()
        if not message_text or self.is_processing:
            return await self.run_turn(message_text)

        prompt = message_text
        if self._settings.include_file_context and current_file:
            prompt = f"Current file context: {current_file}\n\n{message_text}"

        if self._settings.debug_context:
            logger.info(
                "turn context: original=%r final=%r file=%s session=%s "
                "node=%s claude=%s",
                message_text,
                prompt,
                current_file,
                self._session_id,
                self._settings.node_location or "auto-detect",
                self._settings.claude_location or "auto-detect",
            )

        deliver(
            self._on_event,
            UserEvent(
                message=Message(
                    id=self._new_id("msg"),
                    role="user",
                    content=[TextBlock(text=message_text)],
                ),
                is_user_input=True,
                session_id=self._session_or_placeholder(),
                uuid=self._new_id("user"),
                timestamp=self._clock(),
            ),
        )
        return await self.run_turn(prompt)

    async def run_turn(self, prompt: str) -> TurnOutcome:
        """Run one assistant invocation for *prompt* and wait for it to finish.

        Returns ``"rejected"`` without emitting anything when the prompt is
        blank or another turn is still live.
        """
        if not prompt.strip():
            logger.warning("ignoring blank prompt")
            return "rejected"
        if self.is_processing:
            logger.warning("turn already in progress (state=%s), ignoring", self._state)
            return "rejected"

        turn: asyncio.Future[TurnOutcome] = asyncio.get_running_loop().create_future()
        self._turn = turn
        self._set_state(ControllerState.STARTING)

        try:
            proc = await self._spawn()
        except SpawnError as exc:
            if not turn.done():
                self._release()
                self._notice("spawn_error", f"Claude command failed: {exc}")
                self._settle(turn, "spawn_failed")
            return await turn

        if turn.done():
            # Cancelled while the process was starting.
            with contextlib.suppress(ProcessLookupError):
                proc.terminate()
            self._track(self._reap(proc))
            return await turn

        self._process = proc
        self._set_state(ControllerState.STREAMING)
        logger.debug("assistant started (pid=%s)", proc.pid)

        self._track(self._pump(proc, turn))

        try:
            await self._write_prompt(proc, prompt)
            return await asyncio.shield(turn)
        except asyncio.CancelledError:
            # The caller gave up waiting; don't leave the process running.
            self.cancel()
            raise

    def cancel(self) -> bool:
        """Stop the live turn.

        Sends SIGTERM without waiting for the process to exit, releases it,
        emits one cancellation notice and resolves the turn as
        ``"cancelled"``.  Output the process writes afterwards is discarded.
        Returns ``False`` when there is nothing to cancel.
        """
        turn = self._turn
        if turn is None or turn.done():
            return False

        proc = self._process
        self._set_state(ControllerState.KILLED)
        if proc is not None and proc.returncode is None:
            with contextlib.suppress(ProcessLookupError):
                proc.terminate()
        self._release()
        self._notice("cancelled", "Message execution cancelled")
        self._settle(turn, "cancelled")
        return True

    def new_conversation(self) -> None:
        """Cancel any live turn and forget the session id."""
        if self.is_processing:
            self.cancel()
        if self._session_id is not None:
            logger.info("clearing session %s", self._session_id)
        self._session_id = None

    async def shutdown(self) -> None:
        """Terminate any live process: SIGTERM -> wait -> SIGKILL.

        Unlike :meth:`cancel`, no notice is emitted; the pending turn
        resolves as ``"cancelled"``.
        """
        proc = self._process
        turn = self._turn
        self._release()
        if turn is not None:
            self._settle(turn, "cancelled")

        if proc is not None and proc.returncode is None:
            with contextlib.suppress(ProcessLookupError):
                proc.terminate()
            try:
                await asyncio.wait_for(proc.wait(), timeout=self._settings.shutdown_timeout)
            except TimeoutError:
                with contextlib.suppress(ProcessLookupError):
                    proc.kill()
                await proc.wait()

        for task in list(self._tasks):
            task.cancel()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)

    # ------------------------------------------------------------------ #
    # Process plumbing
    # ------------------------------------------------------------------ #

    async def _spawn(self) -> asyncio.subprocess.Process:
        command = self.build_command()
        if self._settings.debug_context:
            logger.info("spawning %s in %s", command, self._workspace)

        env = {**os.environ, **CHILD_ENV_OVERRIDES}
        try:
            return await asyncio.create_subprocess_exec(
                *command,
                cwd=self._workspace,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env=env,
            )
        except FileNotFoundError as exc:
            msg = f"{exc.strerror or 'not found'}: {exc.filename or command[0]}"
            raise SpawnError(msg) from exc
        except OSError as exc:
            raise SpawnError(str(exc)) from exc

    async def _write_prompt(self, proc: asyncio.subprocess.Process, prompt: str) -> None:
        """Write the prompt once, then close stdin."""
        if proc.stdin is None:
            return
        try:
            proc.stdin.write(prompt.encode())
            await proc.stdin.drain()
        except (BrokenPipeError, ConnectionResetError, OSError) as exc:
            # The exit code tells the user what went wrong.
            logger.warning("failed to write prompt to assistant stdin: %s", exc)
        finally:
            with contextlib.suppress(OSError):
                proc.stdin.close()

    async def _pump(
        self,
        proc: asyncio.subprocess.Process,
        turn: asyncio.Future[TurnOutcome],
    ) -> None:
        """Read both pipes to EOF, then reap the process and settle the turn."""
        decoder = FrameDecoder(max_line_bytes=self._max_line_bytes)
        stderr_tail: list[str] = []

        await asyncio.gather(
            self._read_stdout(proc, decoder),
            self._read_stderr(proc, stderr_tail),
        )
        returncode = await proc.wait()

        if not self._owns(proc):
            logger.debug("released process %s exited with %s", proc.pid, returncode)
            return

        leftover = decoder.pending.strip()
        if leftover:
            logger.warning(
                "discarding %d bytes of unterminated output: %s",
                len(leftover),
                leftover[:200].decode(errors="replace"),
            )

        self._set_state(ControllerState.CLOSING)
        outcome: TurnOutcome = "completed"
        if returncode is not None and returncode > 0:
            preview = format_stderr_preview("".join(stderr_tail))
            if preview:
                logger.debug("assistant exited with code %d. Stderr:\n  %s", returncode, preview)
            self._notice("exit", f"Claude process exited with code {returncode}")
            outcome = "exited"
        elif returncode is not None and returncode < 0:
            # Killed by a signal we did not send; reported like a clean exit.
            logger.warning("assistant terminated by signal %d", -returncode)

        self._release()
        self._settle(turn, outcome)

    async def _read_stdout(
        self, proc: asyncio.subprocess.Process, decoder: FrameDecoder
    ) -> None:
        if proc.stdout is None:
            return
        try:
            while True:
                chunk = await proc.stdout.read(_READ_CHUNK_BYTES)
                if not chunk:
                    break
                # Keep draining after release so the process can exit.
                if not self._owns(proc):
                    continue
                for frame in decoder.feed(chunk):
                    if not self._owns(proc):
                        break
                    try:
                        self._handle_frame(frame)
                    except Exception as exc:
                        # One bad frame must not stop the pipe from draining.
                        logger.exception("failed to handle assistant frame")
                        self._notice("error", f"Failed to handle output: {exc}")
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            logger.error("error reading assistant stdout: %s", exc)

    async def _read_stderr(
        self, proc: asyncio.subprocess.Process, tail: list[str]
    ) -> None:
        if proc.stderr is None:
            return
        text_decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        kept = 0
        try:
            while True:
                chunk = await proc.stderr.read(_READ_CHUNK_BYTES)
                if not chunk:
                    break
                if not self._owns(proc):
                    continue
                text = text_decoder.decode(chunk)
                if not text:
                    continue
                if kept < _MAX_STDERR_CHARS:
                    tail.append(text)
                    kept += len(text)
                self._notice("stderr", f"Claude Error: {text}")
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            logger.error("error reading assistant stderr: %s", exc)

    async def _reap(self, proc: asyncio.subprocess.Process) -> None:
        """Drain and wait for a process nobody listens to any more."""
        with contextlib.suppress(Exception):
            await proc.communicate()

    def _handle_frame(self, frame: str) -> None:
        if self._settings.debug_context:
            logger.info("frame: %s", frame)

        try:
            event = self._classifier.classify(frame)
        except FrameParseError as exc:
            logger.debug("malformed frame from assistant: %s", exc.preview)
            self._notice("parse_error", f"Parse error: {exc}")
            return

        if event is None:
            return
        self._adopt_session(event)
        deliver(self._on_event, event)

    def _adopt_session(self, event: ConversationEvent) -> None:
        if (
            isinstance(event, SystemEvent)
            and event.subtype == "init"
            and event.has_wire_session
            and self._session_id is None
        ):
            self._session_id = event.session_id
            logger.info("adopted session %s", event.session_id)

    # ------------------------------------------------------------------ #
    # State bookkeeping
    # ------------------------------------------------------------------ #

    def _owns(self, proc: asyncio.subprocess.Process) -> bool:
        return self._process is proc

    def _set_state(self, state: ControllerState) -> None:
        if state is not self._state:
            logger.debug("state %s -> %s", self._state, state)
            self._state = state

    def _release(self) -> None:
        """Drop the process handle and return to idle."""
        self._process = None
        self._turn = None
        self._set_state(ControllerState.IDLE)

    @staticmethod
    def _settle(turn: asyncio.Future[TurnOutcome], outcome: TurnOutcome) -> None:
        if not turn.done():
            turn.set_result(outcome)

    def _track(self, coro: Coroutine[Any, Any, None]) -> None:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def _session_or_placeholder(self) -> str:
        return self._session_id or self._new_id("session")

    def _notice(self, subtype: str, text: str) -> None:
        """Deliver a synthetic notice; the consumer shows it, the log copy is DEBUG."""
        prefix = "cancel" if subtype == "cancelled" else "error"
        emit_notice(
            self._on_event,
            SystemEvent(
                subtype=subtype,
                result=text,
                session_id=self._session_or_placeholder(),
                uuid=self._new_id(prefix),
                timestamp=self._clock(),
            ),
            level=logging.DEBUG,
            logger=logger,
        )
