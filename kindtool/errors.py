"""Error values that carry a stack trace, error aggregates and concurrent runners."""

from __future__ import annotations

import queue
import threading
import traceback
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Iterable, Iterator, Sequence

__all__ = [
    "KindError",
    "Aggregate",
    "new",
    "wrap",
    "with_stack",
    "new_aggregate",
    "aggregate_errors",
    "stack_trace",
    "until_error_concurrent",
    "aggregate_concurrent",
]


def _capture_stack() -> traceback.StackSummary:
    """Return the caller's stack, without the frames of this module."""
    frames = list(traceback.extract_stack())
    while frames and frames[-1].filename == __file__:
        frames.pop()
    return traceback.StackSummary.from_list(frames)


class KindError(Exception):
    """An error that records the stack at the point it was created."""

    def __init__(self, message: str, cause: BaseException | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.cause = cause
        self.__cause__ = cause
        self.stack = _capture_stack()

    def __str__(self) -> str:
        return self.message


class Aggregate(Exception):
    """A collection of errors reported together."""

    def __init__(self, errors: Iterable[BaseException | None]) -> None:
        self._errors = [err for err in errors if err is not None]
        super().__init__(self._message())

    def _message(self) -> str:
        if not self._errors:
            return ""
        if len(self._errors) == 1:
            return str(self._errors[0])
        seen: list[str] = []
        for err in self._errors:
            text = str(err)
            if text not in seen:
                seen.append(text)
        if len(seen) == 1:
            return seen[0]
        return "[" + ", ".join(seen) + "]"

    def errors(self) -> list[BaseException]:
        """Return the errors held by this aggregate."""
        return list(self._errors)

    def __str__(self) -> str:
        return self._message()


def new(message: str) -> KindError:
    """Return an error with the given message and the current stack."""
    return KindError(message)


def wrap(err: BaseException | None, message: str) -> KindError | None:
    """Annotate err with message and a stack trace; None stays None."""
    if err is None:
        return None
    return KindError(f"{message}: {err}", err)


def with_stack(err: BaseException | None) -> KindError | None:
    """Annotate err with a stack trace, keeping its message; None stays None."""
    if err is None:
        return None
    return KindError(str(err), err)


def _flatten(errors: Sequence[BaseException]) -> list[BaseException]:
    flat: list[BaseException] = []
    for err in errors:
        if isinstance(err, Aggregate):
            flat.extend(_flatten(err.errors()))
        else:
            flat.append(err)
    return flat


def new_aggregate(errors: Iterable[BaseException | None]) -> KindError | None:
    """Build a flattened, reduced aggregate of errors wrapped with a stack.

    Returns None when no errors remain, and the single error (with a stack)
    when exactly one remains.
    """
    flat = _flatten([err for err in errors if err is not None])
    if not flat:
        return None
    if len(flat) == 1:
        return with_stack(flat[0])
    return with_stack(Aggregate(flat))


def _cause_chain(err: BaseException | None) -> Iterator[BaseException]:
    seen: set[int] = set()
    while err is not None and id(err) not in seen:
        seen.add(id(err))
        yield err
        err = err.__cause__


def aggregate_errors(err: BaseException | None) -> list[BaseException] | None:
    """Return the errors of the deepest Aggregate in the cause chain of err."""
    found: Aggregate | None = None
    for link in _cause_chain(err):
        if isinstance(link, Aggregate):
            found = link
    return found.errors() if found is not None else None


def stack_trace(err: BaseException | None) -> traceback.StackSummary | None:
    """Return the deepest recorded stack trace in the cause chain of err."""
    found: KindError | None = None
    for link in _cause_chain(err):
        if isinstance(link, KindError):
            found = link
    return found.stack if found is not None else None


def _run_into(func: Callable[[], object], results: "queue.Queue[Exception | None]") -> None:
    try:
        func()
    except Exception as exc:  # noqa: BLE001 - every failure is reported
        results.put(exc)
    else:
        results.put(None)


def until_error_concurrent(funcs: Iterable[Callable[[], object]]) -> None:
    """Run funcs concurrently and raise the first error any of them raises.

    Returns as soon as an error is seen, without waiting for the others.
    """
    funcs = list(funcs)
    results: "queue.Queue[Exception | None]" = queue.Queue()
    for func in funcs:
        threading.Thread(target=_run_into, args=(func, results), daemon=True).start()
    for _ in funcs:
        err = results.get()
        if err is not None:
            raise err
    return None


def aggregate_concurrent(funcs: Iterable[Callable[[], object]]) -> None:
    """Run funcs concurrently and wait for all of them.

    A single error is raised as is; several are raised as an aggregate.
    """
    funcs = list(funcs)
    if not funcs:
        return None
    with ThreadPoolExecutor(max_workers=len(funcs)) as pool:
        futures = [pool.submit(func) for func in funcs]
    errs = [exc for exc in (future.exception() for future in futures) if exc is not None]
    if len(errs) > 1:
        raise new_aggregate(errs)
    if errs:
        raise errs[0]
    return None