from __future__ import annotations

import logging
import queue
import subprocess
import threading
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Callable, Iterator, Union

from utils.errors import EditorError, EngineExecutionError, EngineInvocationError
from utils.ffmpeg_binaries import ffmpeg_binary
from utils.ffmpeg_builder import RenderPlan

logger = logging.getLogger(__name__)

# At most ~3 progress events per second
PROGRESS_INTERVAL_SECONDS = 1 / 3
MAX_RUNNING_PERCENT = 99
# Keep only the last N diagnostic lines
DIAGNOSTIC_TAIL_LINES = 200

ENGINE_STATUS_ARGS = [
    "-hide_banner",
    "-nostats",
    "-loglevel",
    "error",
    "-progress",
    "pipe:1",
]

# ffmpeg reports out_time_ms in microseconds as well
_ELAPSED_KEYS = ("out_time_us", "out_time_ms")
_STATUS_KEYS = {
    "frame",
    "fps",
    "bitrate",
    "total_size",
    "out_time_us",
    "out_time_ms",
    "out_time",
    "dup_frames",
    "drop_frames",
    "speed",
    "progress",
}


@dataclass(frozen=True)
class ProgressEvent:
    percent: int


@dataclass(frozen=True)
class RenderSucceeded:
    output_path: str


@dataclass(frozen=True)
class RenderFailed:
    error: EditorError

    @property
    def reason(self) -> str:
        return str(self.error)


RenderEvent = Union[ProgressEvent, RenderSucceeded, RenderFailed]

_EOF = object()


def compute_progress(elapsed_seconds: float, expected_duration: float) -> int:
    if expected_duration <= 0 or elapsed_seconds <= 0:
        return 0
    return min(MAX_RUNNING_PERCENT, int(100 * elapsed_seconds / expected_duration))


def parse_status_line(line: str) -> float | None:
    """Elapsed output time in seconds for an out_time line, else None."""
    key, sep, value = line.partition("=")
    if not sep or key not in _ELAPSED_KEYS:
        return None
    try:
        return int(value) / 1_000_000
    except ValueError:
        return None


def is_status_line(line: str) -> bool:
    key, sep, _ = line.partition("=")
    if not sep:
        return False
    return key in _STATUS_KEYS or (key.startswith("stream_") and key.endswith("_q"))


@dataclass
class RenderJob:
    """
    One running export.

    Shared by the background reader thread, which feeds status samples into
    the queue, and the consumer iterating the job's events.
    """

    plan: RenderPlan
    process: subprocess.Popen
    clock: Callable[[], float] = time.monotonic
    progress_interval: float = PROGRESS_INTERVAL_SECONDS
    diagnostics: deque = field(default_factory=lambda: deque(maxlen=DIAGNOSTIC_TAIL_LINES))
    last_percent: int = -1
    _samples: queue.Queue = field(default_factory=queue.Queue)
    _reader: threading.Thread | None = None
    _consumed: bool = False
    _finished: bool = False

    @property
    def expected_duration(self) -> float:
        return self.plan.expected_duration

    @property
    def output_path(self) -> str:
        return self.plan.output_path

    def start_reader(self) -> None:
        self._reader = threading.Thread(
            target=self._read_status,
            name=f"ffmpeg-status-{self.process.pid}",
            daemon=True,
        )
        self._reader.start()

    def _read_status(self) -> None:
        stream = self.process.stdout
        try:
            if stream is None:
                return
            for raw_line in stream:
                try:
                    self._handle_status_line(raw_line)
                except Exception:
                    logger.exception("Unreadable ffmpeg status line: %r", raw_line)
        except (OSError, ValueError) as exc:
            # ffmpeg blocks once the pipe fills, so keep draining to EOF
            logger.error("FFmpeg status stream failed for %s: %s", self.output_path, exc)
            self.diagnostics.append(f"status stream error: {exc}")
            self._drain(stream)
        finally:
            self._samples.put(_EOF)

    def _handle_status_line(self, raw_line: str) -> None:
        line = raw_line.strip()
        if not line:
            return
        elapsed = parse_status_line(line)
        if elapsed is not None:
            self._samples.put(elapsed)
        elif not is_status_line(line):
            self.diagnostics.append(line)

    def _drain(self, stream) -> None:
        buffer = getattr(stream, "buffer", None)
        try:
            if buffer is not None:
                while buffer.read(65536):
                    pass
            else:
                for _ in stream:
                    pass
        except (OSError, ValueError) as exc:
            logger.warning("Stopped draining ffmpeg output for %s: %s", self.output_path, exc)

    def close(self) -> None:
        """Reap the engine in the background when the events are abandoned early."""
        if self._finished:
            return
        self._finished = True
        threading.Thread(
            target=self._reap,
            name=f"ffmpeg-reap-{self.process.pid}",
            daemon=True,
        ).start()

    def _reap(self) -> None:
        returncode = self.process.wait()
        if self._reader is not None:
            self._reader.join()
        logger.info("FFmpeg for abandoned export %s exited with code %s", self.output_path, returncode)

    def __iter__(self) -> Iterator[RenderEvent]:
        return self.events()

    def events(self) -> Iterator[RenderEvent]:
        if self._consumed:
            raise RuntimeError("Render job events can only be consumed once")
        self._consumed = True
        return self._generate_events()

    def _generate_events(self) -> Iterator[RenderEvent]:
        yield self._progress(0)
        last_emit = self.clock()

        while True:
            sample = self._samples.get()
            if sample is _EOF:
                break
            percent = compute_progress(sample, self.expected_duration)
            if percent <= self.last_percent:
                continue
            now = self.clock()
            if now - last_emit < self.progress_interval:
                continue
            last_emit = now
            yield self._progress(percent)

        returncode = self.process.wait()
        if self._reader is not None:
            self._reader.join()
        self._finished = True

        if returncode != 0:
            stderr = "\n".join(self.diagnostics)
            logger.error("FFmpeg failed (code %s) for %s: %s", returncode, self.output_path, stderr)
            yield RenderFailed(EngineExecutionError(returncode, stderr))
            return

        logger.info("Render complete: %s", self.output_path)
        yield self._progress(100)
        yield RenderSucceeded(self.output_path)

    def _progress(self, percent: int) -> ProgressEvent:
        self.last_percent = percent
        return ProgressEvent(percent=percent)


class FFmpegRenderer:
    def __init__(
        self,
        ffmpeg_bin: str | None = None,
        clock: Callable[[], float] = time.monotonic,
        progress_interval: float = PROGRESS_INTERVAL_SECONDS,
    ):
        self._ffmpeg_bin = ffmpeg_bin
        self._clock = clock
        self._progress_interval = progress_interval

    def execute(self, plan: RenderPlan) -> RenderJob:
        """
        Launch the engine for a plan.

        Raises EngineNotFoundError / EngineInvocationError before any event
        exists; everything after the spawn is reported through the job's
        event sequence.
        """
        binary = self._ffmpeg_bin or ffmpeg_binary()
        cmd = [binary, *ENGINE_STATUS_ARGS, *plan.to_args()]

        logger.info(
            "Executing FFmpeg: %d inputs, %.3fs expected -> %s",
            len(plan.inputs),
            plan.expected_duration,
            plan.output_path,
        )
        logger.debug("Command: %s", self._format_command(cmd))

        try:
            process = subprocess.Popen(
                cmd,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                encoding="utf-8",
                errors="replace",
                bufsize=1,
            )
        except OSError as exc:
            raise EngineInvocationError(binary, str(exc)) from exc

        job = RenderJob(
            plan=plan,
            process=process,
            clock=self._clock,
            progress_interval=self._progress_interval,
        )
        job.start_reader()
        return job

    def _format_command(self, cmd: list[str]) -> str:
        text = " ".join(cmd)
        if len(text) > 4000:
            return f"{text[:4000]}... [truncated]"
        return text
