"""Thin glue around the ``cargo check`` subprocess."""

from __future__ import annotations

import subprocess
from pathlib import Path
from typing import Callable, List, Sequence

from .logging import get_logger
from .pipeline import CheckSession

MESSAGE_FORMAT_FLAG = "--message-format=json"

ProcessFactory = Callable[..., "subprocess.Popen[str]"]


class CargoInvocationError(RuntimeError):
    """Raised when the cargo subprocess cannot be started."""


class CargoRunner:
    """Spawns ``cargo check`` and feeds its stdout, line by line, to a session."""

    def __init__(self, cargo: str = "cargo", popen: ProcessFactory | None = None) -> None:
        self.cargo = cargo
        self._popen = popen or subprocess.Popen
        self.logger = get_logger("runner")

    def command(self, args: Sequence[str] = ()) -> List[str]:
        return [self.cargo, "check", MESSAGE_FORMAT_FLAG, *args]

    def run(self, session: CheckSession, args: Sequence[str] = (), *, cwd: Path | None = None) -> int:
        """Run cargo to completion and return its exit status.

        Rendering happens only after stdout is exhausted and the exit status
        is known. On interruption the child is terminated and nothing more is
        written.
        """
        command = self.command(args)
        self.logger.debug("Running %s", " ".join(command))
        try:
            process = self._popen(
                command,
                stdout=subprocess.PIPE,
                stderr=None,
                text=True,
                encoding="utf-8",
                errors="replace",
                cwd=str(cwd) if cwd is not None else None,
            )
        except OSError as exc:
            raise CargoInvocationError(f"failed to run {self.cargo}: {exc}") from exc

        if process.stdout is None:
            raise CargoInvocationError("cargo was started without a stdout pipe")
        try:
            for line in process.stdout:
                session.feed(line)
            returncode = process.wait()
        except KeyboardInterrupt:
            self.logger.debug("Interrupted; terminating cargo")
            process.terminate()
            process.wait()
            raise
        finally:
            process.stdout.close()

        session.finish()
        self.logger.debug("cargo exited with status %d", returncode)
        return returncode


__all__ = ["CargoInvocationError", "CargoRunner", "MESSAGE_FORMAT_FLAG"]
