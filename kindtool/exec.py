"""Running commands with captured output."""

from __future__ import annotations

import io
import logging
import os
import shlex
import subprocess
import sys
import threading
from functools import partial
from typing import IO, Any, BinaryIO, Callable

from kindtool.errors import KindError

__all__ = [
    "RunError",
    "LocalCmd",
    "LocalCmder",
    "DEFAULT_CMDER",
    "command",
    "pretty_command",
    "run_error_for_error",
    "combined_output_lines",
    "output_lines",
    "inherit_output",
    "run_with_stdout_reader",
    "run_with_stdin_writer",
]

logger = logging.getLogger(__name__)

_CHUNK = 65536


def pretty_command(name: str, *args: str) -> str:
    """Return the command as a line that could be pasted into a shell."""
    return " ".join(shlex.quote(part) for part in (name, *args))


class RunError(KindError):
    """A command failed to start or exited unsuccessfully."""

    def __init__(self, command: list[str], output: bytes, inner: BaseException | None) -> None:
        self.command = list(command)
        self.output = bytes(output)
        self.inner = inner
        super().__init__(
            f'command "{pretty_command(*self.command)}" failed with error: {inner}',
            inner,
        )

    def pretty_command(self) -> str:
        """Return the failed command as a shell-pasteable line."""
        return pretty_command(*self.command)


def _write(writer: Any, chunk: bytes) -> None:
    buffer = getattr(writer, "buffer", None)
    if buffer is not None:
        writer.flush()
        buffer.write(chunk)
        buffer.flush()
        return
    if isinstance(writer, io.TextIOBase):
        writer.write(chunk.decode("utf-8", errors="replace"))
    else:
        writer.write(chunk)
    flush = getattr(writer, "flush", None)
    if flush is not None:
        flush()


def _feed(source: Any, sink: BinaryIO) -> None:
    try:
        while True:
            chunk = source.read(_CHUNK)
            if not chunk:
                break
            if isinstance(chunk, str):
                chunk = chunk.encode("utf-8")
            sink.write(chunk)
    except BrokenPipeError:
        pass
    finally:
        try:
            sink.close()
        except BrokenPipeError:
            pass


class LocalCmd:
    """A command run on the local host."""

    def __init__(self, name: str, *args: str) -> None:
        self.args = [name, *args]
        self.env: dict[str, str] | None = None
        self.stdin: Any = None
        self.stdout: Any = None
        self.stderr: Any = None

    def set_env(self, *args: str) -> "LocalCmd":
        """Replace the environment with entries of the form key=value."""
        if not args:
            self.env = None
        else:
            self.env = dict(entry.partition("=")[::2] for entry in args)
        return self

    def set_stdin(self, reader: Any) -> "LocalCmd":
        """Read the command's standard input from reader (a file, bytes or str)."""
        self.stdin = reader
        return self

    def set_stdout(self, writer: Any) -> "LocalCmd":
        """Copy the command's standard output to writer."""
        self.stdout = writer
        return self

    def set_stderr(self, writer: Any) -> "LocalCmd":
        """Copy the command's standard error to writer."""
        self.stderr = writer
        return self

    def _stdin_target(self) -> tuple[Any, Any]:
        source = self.stdin
        if source is None:
            return subprocess.DEVNULL, None
        if isinstance(source, str):
            source = source.encode("utf-8")
        if isinstance(source, (bytes, bytearray, memoryview)):
            return subprocess.PIPE, io.BytesIO(bytes(source))
        try:
            source.fileno()
        except (AttributeError, OSError, ValueError):
            return subprocess.PIPE, source
        return source, None

    def run(self) -> None:
        """Run the command, raising RunError if it fails."""
        logger.debug('Running: "%s"', pretty_command(*self.args))
        combined = bytearray()
        lock = threading.Lock()
        write_errors: list[BaseException] = []
        merged = self.stdout is self.stderr
        stdin_arg, stdin_source = self._stdin_target()
        try:
            proc = subprocess.Popen(
                self.args,
                stdin=stdin_arg,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT if merged else subprocess.PIPE,
                env=self.env,
            )
        except OSError as exc:
            raise RunError(self.args, b"", exc) from exc

        def pump(stream: IO[bytes], writer: Any) -> None:
            with stream:
                for chunk in iter(partial(stream.read1, _CHUNK), b""):
                    with lock:
                        combined.extend(chunk)
                        if writer is None:
                            continue
                        try:
                            _write(writer, chunk)
                        except (OSError, ValueError) as exc:
                            write_errors.append(exc)
                            writer = None

        threads = [threading.Thread(target=pump, args=(proc.stdout, self.stdout), daemon=True)]
        if not merged:
            threads.append(
                threading.Thread(target=pump, args=(proc.stderr, self.stderr), daemon=True)
            )
        if stdin_source is not None:
            threads.append(
                threading.Thread(target=_feed, args=(stdin_source, proc.stdin), daemon=True)
            )
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
        returncode = proc.wait()
        if returncode != 0:
            inner = subprocess.CalledProcessError(returncode, self.args, output=bytes(combined))
            raise RunError(self.args, combined, inner)
        if write_errors:
            raise RunError(self.args, combined, write_errors[0])


class LocalCmder:
    """Creates commands that run on the local host."""

    def command(self, name: str, *args: str) -> LocalCmd:
        """Return a new local command."""
        return LocalCmd(name, *args)


DEFAULT_CMDER = LocalCmder()


def command(name: str, *args: str) -> LocalCmd:
    """Return a command created by the default local cmder."""
    return DEFAULT_CMDER.command(name, *args)


def run_error_for_error(err: BaseException | None) -> RunError | None:
    """Return the deepest RunError in the cause chain of err, if any."""
    found: RunError | None = None
    seen: set[int] = set()
    while err is not None and id(err) not in seen:
        seen.add(id(err))
        if isinstance(err, RunError):
            found = err
        err = err.__cause__
    return found


def _scan_lines(data: bytes) -> list[str]:
    text = data.decode("utf-8", errors="replace")
    lines = text.split("\n")
    if lines and lines[-1] == "":
        lines.pop()
    return [line[:-1] if line.endswith("\r") else line for line in lines]


def combined_output_lines(cmd: Any) -> list[str]:
    """Run cmd and return its standard output and error as lines."""
    buffer = io.BytesIO()
    cmd.set_stdout(buffer)
    cmd.set_stderr(buffer)
    cmd.run()
    return _scan_lines(buffer.getvalue())


def output_lines(cmd: Any) -> list[str]:
    """Run cmd and return its standard output as lines."""
    buffer = io.BytesIO()
    cmd.set_stdout(buffer)
    cmd.run()
    return _scan_lines(buffer.getvalue())


def inherit_output(cmd: Any) -> Any:
    """Send cmd's output to this process's standard output and error."""
    cmd.set_stderr(sys.stderr)
    cmd.set_stdout(sys.stdout)
    return cmd


def run_with_stdout_reader(cmd: Any, reader_func: Callable[[BinaryIO], object]) -> None:
    """Run cmd with its standard output piped to reader_func.

    An error from the command takes precedence over one from reader_func.
    """
    read_fd, write_fd = os.pipe()
    with os.fdopen(read_fd, "rb") as reader, os.fdopen(write_fd, "wb", buffering=0) as writer:
        cmd.set_stdout(writer)
        reader_errors: list[Exception] = []

        def consume() -> None:
            try:
                reader_func(reader)
            except Exception as exc:  # noqa: BLE001 - reported after the command
                reader_errors.append(exc)
            finally:
                reader.close()

        thread = threading.Thread(target=consume, daemon=True)
        thread.start()
        try:
            cmd.run()
        finally:
            writer.close()
            thread.join()
        if reader_errors:
            raise reader_errors[0]


def run_with_stdin_writer(cmd: Any, writer_func: Callable[[BinaryIO], object]) -> None:
    """Run cmd with its standard input fed by writer_func.

    An error from the command takes precedence over one from writer_func.
    """
    read_fd, write_fd = os.pipe()
    with os.fdopen(read_fd, "rb", buffering=0) as reader, os.fdopen(write_fd, "wb") as writer:
        cmd.set_stdin(reader)
        writer_errors: list[Exception] = []

        def produce() -> None:
            try:
                writer_func(writer)
            except Exception as exc:  # noqa: BLE001 - reported after the command
                writer_errors.append(exc)
            finally:
                try:
                    writer.close()
                except OSError as exc:
                    if not writer_errors:
                        writer_errors.append(exc)

        thread = threading.Thread(target=produce, daemon=True)
        thread.start()
        try:
            cmd.run()
        finally:
            reader.close()
            thread.join()
        if writer_errors:
            raise writer_errors[0]