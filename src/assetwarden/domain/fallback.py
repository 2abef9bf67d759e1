"""Ordered candidate attempts consumed by a small state machine.

A run walks its candidates in order. Each attempt reports one verdict:

- ``SUCCEEDED``: stop, the run succeeded
- ``ADVANCE``: ambiguous per-candidate failure, try the next candidate
- ``STOP``: definitive failure, do not try further candidates

When the candidates run out the run is ``EXHAUSTED`` and carries the failure
from the last attempt.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from enum import StrEnum
from logging import getLogger

log = getLogger(__name__)


class FallbackState(StrEnum):
    TRYING = "trying-candidate"
    SUCCEEDED = "succeeded"
    STOPPED = "stopped"
    EXHAUSTED = "exhausted"


class Verdict(StrEnum):
    SUCCEEDED = "succeeded"
    ADVANCE = "advance"
    STOP = "stop"


@dataclass(frozen=True, slots=True)
class Candidate:
    method: str
    url: str


@dataclass(frozen=True)
class Attempt[TValue, TFailure]:
    verdict: Verdict
    value: TValue | None = None
    failure: TFailure | None = None

    @classmethod
    def succeeded(cls, value: TValue) -> Attempt[TValue, TFailure]:
        return cls(verdict=Verdict.SUCCEEDED, value=value)

    @classmethod
    def advance(cls, failure: TFailure) -> Attempt[TValue, TFailure]:
        return cls(verdict=Verdict.ADVANCE, failure=failure)

    @classmethod
    def stop(cls, failure: TFailure) -> Attempt[TValue, TFailure]:
        return cls(verdict=Verdict.STOP, failure=failure)


@dataclass
class FallbackRun[TValue, TFailure]:
    candidates: tuple[Candidate, ...]
    state: FallbackState = FallbackState.TRYING
    index: int = 0
    value: TValue | None = None
    failure: TFailure | None = None
    history: list[tuple[Candidate, Verdict]] = field(
        default_factory=list[tuple[Candidate, Verdict]]
    )

    def __post_init__(self) -> None:
        if not self.candidates:
            self.state = FallbackState.EXHAUSTED

    @property
    def current(self) -> Candidate:
        if self.state is not FallbackState.TRYING:
            raise RuntimeError(f"No current candidate in state {self.state}")
        return self.candidates[self.index]

    @property
    def attempted(self) -> int:
        return len(self.history)

    def record(self, attempt: Attempt[TValue, TFailure]) -> None:
        candidate = self.current
        self.history.append((candidate, attempt.verdict))
        if attempt.verdict is Verdict.SUCCEEDED:
            self.value = attempt.value
            self.state = FallbackState.SUCCEEDED
            return
        self.failure = attempt.failure
        if attempt.verdict is Verdict.STOP:
            self.state = FallbackState.STOPPED
            return
        self.index += 1
        if self.index >= len(self.candidates):
            self.state = FallbackState.EXHAUSTED


async def run_candidates[TValue, TFailure](
    candidates: Sequence[Candidate],
    attempt: Callable[[Candidate], Awaitable[Attempt[TValue, TFailure]]],
) -> FallbackRun[TValue, TFailure]:
    run: FallbackRun[TValue, TFailure] = FallbackRun(candidates=tuple(candidates))
    while run.state is FallbackState.TRYING:
        candidate = run.current
        result = await attempt(candidate)
        log.debug("%s %s -> %s", candidate.method, candidate.url, result.verdict)
        run.record(result)
    return run
