"""Process delegate — run the tool copy installed in a module's root.

A module may ship its own copy of the tool (``<root>/modforge`` by
default).  :class:`ProcessDelegate` invokes it through one of two
strategies:

``InProcessStrategy``
    Re-enters this process's own entry point with the working directory
    switched to the module root.  Only used for non-capturing calls when
    in-process mode is enabled.

``SubprocessStrategy``
    Spawns the module's executable, streams its output line by line and
    retries starts that fail because the executable bit has not become
    visible yet.

A missing executable is not an exception: the result carries exit code 1
and empty output so callers can check for it.
"""

from __future__ import annotations

import errno
import logging
import os
import re
import stat
import subprocess
import sys
import threading
import time
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import IO

from pydantic import BaseModel, ConfigDict, Field

from modforge.config import settings
from modforge.errors import DelegateStartRace
from modforge.models import Module

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

QUERY_FEATURES_FLAG: str = "--query-features"
MISSING_EXIT_CODE: int = 1

# Start failures that mean "the file is there but not yet runnable".
_START_RACE_ERRNOS: frozenset[int] = frozenset({
    errno.ENOENT, errno.ETXTBSY, errno.EACCES,
})

_USAGE_BANNER = re.compile(r"^\s*usage:|\[options\]", re.IGNORECASE | re.MULTILINE)

EntryPoint = Callable[[list[str]], int]


# ---------------------------------------------------------------------------
# Model
# ---------------------------------------------------------------------------


class InvokeResult(BaseModel):
    """Structured result of a delegate invocation."""

    model_config = ConfigDict(frozen=True)

    exit_code: int = Field(..., description="Exit code of the delegate")
    stdout: str = Field(default="", description="Captured stdout (empty unless capturing)")
    stderr: str = Field(default="", description="Captured stderr (empty unless capturing)")
    attempts: int = Field(default=0, ge=0, description="Start attempts made")
    duration_ms: int = Field(default=0, ge=0, description="Wall-clock duration in ms")
    in_process: bool = Field(default=False, description="True if run in this process")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


@contextmanager
def working_directory(path: str | Path) -> Iterator[Path]:
    """Switch the process working directory to *path* for the block.

    The previous directory is restored however the block exits.
    """
    previous = os.getcwd()
    os.chdir(path)
    try:
        yield Path(path)
    finally:
        os.chdir(previous)


def _mark_executable(path: Path) -> None:
    """Best-effort ``chmod a+x``; a no-op where it fails or is unneeded."""
    try:
        mode = path.stat().st_mode
        path.chmod(mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    except OSError as exc:
        logger.debug("Could not mark %s executable: %s", path, exc)


class _LineBuffer:
    """Append-only text buffer shared by one reader thread and the caller."""

    __slots__ = ("_lines", "_lock")

    def __init__(self) -> None:
        self._lines: list[str] = []
        self._lock = threading.Lock()

    def append(self, line: str) -> None:
        with self._lock:
            self._lines.append(line + "\n")

    def getvalue(self) -> str:
        with self._lock:
            return "".join(self._lines)


def _pump(stream: IO[str], buffer: _LineBuffer | None, echo: IO[str]) -> None:
    """Forward each non-empty line of *stream* to *buffer* or *echo*."""
    try:
        for raw in stream:
            line = raw.rstrip("\r\n")
            if not line:
                continue
            if buffer is not None:
                buffer.append(line)
            else:
                print(line, file=echo, flush=True)
    finally:
        stream.close()


def _elapsed_ms(start: float) -> int:
    return int((time.perf_counter() - start) * 1000)


def looks_like_usage_banner(output: str) -> bool:
    """Heuristic: does *output* read like a generic help/usage screen?"""
    return bool(_USAGE_BANNER.search(output))


# ---------------------------------------------------------------------------
# Strategies
# ---------------------------------------------------------------------------


class InvocationStrategy(ABC):
    """How a delegate invocation is carried out."""

    @abstractmethod
    def invoke(self, module: Module, args: str, capture: bool = False) -> InvokeResult:
        """Run the tool for *module* with the space-separated *args*."""
        ...


class InProcessStrategy(InvocationStrategy):
    """Re-enter *entry_point* with the working directory set to the module root.

    Output is never captured on this path.
    """

    def __init__(self, entry_point: EntryPoint) -> None:
        self.entry_point = entry_point

    def invoke(self, module: Module, args: str, capture: bool = False) -> InvokeResult:
        if capture:
            raise ValueError("In-process invocation cannot capture output")

        root = module.require_root()
        start = time.perf_counter()
        logger.debug("Invoking in-process in %s: %s", root, args)

        with working_directory(root):
            try:
                exit_code = self.entry_point(args.split())
            except SystemExit as exc:
                exit_code = _system_exit_code(exc)

        return InvokeResult(
            exit_code=exit_code or 0,
            attempts=1,
            duration_ms=_elapsed_ms(start),
            in_process=True,
        )


def _system_exit_code(exc: SystemExit) -> int:
    if exc.code is None:
        return 0
    if isinstance(exc.code, int):
        return exc.code
    return 1


class SubprocessStrategy(InvocationStrategy):
    """Spawn ``<module root>/<executable>`` and stream its output.

    Parameters
    ----------
    executable:
        File name of the tool inside a module root
        (default ``settings.DELEGATE_EXECUTABLE``).
    max_attempts:
        Start attempts before giving up (default
        ``settings.DELEGATE_MAX_ATTEMPTS``).
    retry_delay_s:
        Pause between attempts after a start race (default
        ``settings.DELEGATE_RETRY_DELAY_S``).
    """

    def __init__(
        self,
        *,
        executable: str | None = None,
        max_attempts: int | None = None,
        retry_delay_s: float | None = None,
    ) -> None:
        self.executable = executable or settings.DELEGATE_EXECUTABLE
        self.max_attempts = max_attempts or settings.DELEGATE_MAX_ATTEMPTS
        self.retry_delay_s = (
            settings.DELEGATE_RETRY_DELAY_S if retry_delay_s is None else retry_delay_s
        )

    def executable_path(self, module: Module) -> Path:
        return module.require_root() / self.executable

    def invoke(self, module: Module, args: str, capture: bool = False) -> InvokeResult:
        root = module.require_root()
        executable = self.executable_path(module)
        argv = [str(executable), *args.split()]
        start = time.perf_counter()

        _mark_executable(executable)

        attempts = 0
        for attempt in range(1, self.max_attempts + 1):
            if not executable.is_file():
                continue
            attempts = attempt

            try:
                proc = subprocess.Popen(
                    argv,
                    cwd=str(root),
                    stdin=subprocess.DEVNULL,
                    stdout=subprocess.PIPE,
                    stderr=subprocess.PIPE,
                    text=True,
                    encoding="utf-8",
                    errors="replace",
                )
            except OSError as exc:
                if exc.errno not in _START_RACE_ERRNOS:
                    raise
                if attempt == self.max_attempts:
                    logger.error("Still unable to execute %s", executable)
                    raise DelegateStartRace(
                        str(executable), attempt, exc.strerror or str(exc)
                    ) from exc
                logger.warning(
                    "Unable to execute %s (%s), will retry in %.1fs...",
                    executable, exc.strerror or exc, self.retry_delay_s,
                )
                time.sleep(self.retry_delay_s)
                continue

            return self._collect(proc, capture, attempts, start)

        logger.info("No delegate executable at %s", executable)
        return InvokeResult(
            exit_code=MISSING_EXIT_CODE,
            attempts=attempts,
            duration_ms=_elapsed_ms(start),
        )

    def _collect(
        self, proc: subprocess.Popen, capture: bool, attempts: int, start: float
    ) -> InvokeResult:
        out_buffer = _LineBuffer() if capture else None
        err_buffer = _LineBuffer() if capture else None

        readers = [
            threading.Thread(
                target=_pump, args=(proc.stdout, out_buffer, sys.stdout), daemon=True
            ),
            threading.Thread(
                target=_pump, args=(proc.stderr, err_buffer, sys.stderr), daemon=True
            ),
        ]
        for reader in readers:
            reader.start()

        exit_code = proc.wait()
        for reader in readers:
            reader.join()

        return InvokeResult(
            exit_code=exit_code,
            stdout=out_buffer.getvalue() if out_buffer else "",
            stderr=err_buffer.getvalue() if err_buffer else "",
            attempts=attempts,
            duration_ms=_elapsed_ms(start),
        )


# ---------------------------------------------------------------------------
# Delegate
# ---------------------------------------------------------------------------


class ProcessDelegate:
    """Query and invoke the tool copies installed in modules.

    Parameters
    ----------
    in_process:
        Allow the in-process fast path for non-capturing calls.
        ``None`` → ``settings.RUN_IN_PROCESS``.
    entry_point:
        Callable re-entered on the fast path.  Defaults to
        :func:`modforge.cli.main`.
    subprocess_strategy:
        Override the subprocess strategy (executable name, retry policy).
    """

    def __init__(
        self,
        *,
        in_process: bool | None = None,
        entry_point: EntryPoint | None = None,
        subprocess_strategy: SubprocessStrategy | None = None,
    ) -> None:
        self.in_process = settings.RUN_IN_PROCESS if in_process is None else in_process
        self._entry_point = entry_point
        self.subprocess = subprocess_strategy or SubprocessStrategy()

    def strategy_for(self, capture: bool) -> InvocationStrategy:
        if self.in_process and not capture:
            entry_point = self._entry_point
            if entry_point is None:
                from modforge.cli import main as entry_point
            return InProcessStrategy(entry_point)
        return self.subprocess

    def invoke(self, module: Module, args: str, capture: bool = False) -> InvokeResult:
        """Run the tool for *module*; see the module docstring for the paths."""
        return self.strategy_for(capture).invoke(module, args, capture)

    def query_features(self, module: Module) -> tuple[str, ...]:
        """Features reported by *module*'s tool copy, cached on the module.

        A failing delegate, or one that answers with a usage banner because
        it does not know ``--query-features``, reports no features.
        """
        cache = module.feature_cache
        if cache.populated:
            return cache.features

        result = self.invoke(module, QUERY_FEATURES_FLAG, capture=True)
        if result.exit_code != 0 or looks_like_usage_banner(result.stdout):
            logger.debug(
                "Module %r reports no features (exit code %d)",
                module.name, result.exit_code,
            )
            cache.store(())
        else:
            cache.store(
                [line.strip() for line in result.stdout.splitlines() if line.strip()]
            )
        return cache.features

    def has_feature(self, module: Module, feature: str) -> bool:
        """True if *module*'s tool copy reports *feature*."""
        self.query_features(module)
        return module.feature_cache.contains(feature)
