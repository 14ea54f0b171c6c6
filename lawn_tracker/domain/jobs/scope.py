"""
Scope resolution for actions on one occurrence of a possibly-recurring series.

    idle -> scope_choice_pending -> {single_target, future_target, series_target} -> applied

A non-recurring job skips the choice and goes straight to single_target.
Requests, resolutions and outcomes are immutable values; nothing is kept
between calls.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Optional

from .exceptions import ScopeRequiredError
from .repository import JobFilter
from .schemas import Job


class Scope(str, Enum):
    SINGLE = "single"
    FUTURE = "future"
    SERIES = "series"


class ScopeState(str, Enum):
    IDLE = "idle"
    SCOPE_CHOICE_PENDING = "scope_choice_pending"
    SINGLE_TARGET = "single_target"
    FUTURE_TARGET = "future_target"
    SERIES_TARGET = "series_target"
    APPLIED = "applied"


class ScopedAction(str, Enum):
    EDIT = "edit"
    CANCEL = "cancel"
    DELETE = "delete"


TARGET_STATES = {
    Scope.SINGLE: ScopeState.SINGLE_TARGET,
    Scope.FUTURE: ScopeState.FUTURE_TARGET,
    Scope.SERIES: ScopeState.SERIES_TARGET,
}


@dataclass(frozen=True)
class ScopeRequest:
    action: ScopedAction
    job: Job
    state: ScopeState = ScopeState.IDLE

    @property
    def scopes(self) -> list[Scope]:
        return available_scopes(self.job)


@dataclass(frozen=True)
class ScopeResolution:
    request: ScopeRequest
    scope: Scope
    state: ScopeState
    target: JobFilter


@dataclass(frozen=True)
class ScopeOutcome:
    resolution: ScopeResolution
    affected: int
    state: ScopeState = ScopeState.APPLIED


def is_series_member(job: Job) -> bool:
    return bool(job.is_recurring and job.recurring_id)


def available_scopes(job: Job) -> list[Scope]:
    if not is_series_member(job):
        return [Scope.SINGLE]
    return [Scope.SINGLE, Scope.FUTURE, Scope.SERIES]


def begin(action: ScopedAction, job: Job) -> ScopeRequest:
    """Start a scoped action; recurring jobs wait for a scope choice"""
    state = ScopeState.SCOPE_CHOICE_PENDING if is_series_member(job) else ScopeState.SINGLE_TARGET
    return ScopeRequest(action=ScopedAction(action), job=job, state=state)


def target_filter(job: Job, scope: Scope) -> JobFilter:
    scope = Scope(scope)
    if scope is Scope.SINGLE:
        return JobFilter.by_id(job.id)
    if scope is Scope.FUTURE:
        return JobFilter.from_date(job.recurring_id, job.start_time)
    return JobFilter.by_series(job.recurring_id)


def choose(request: ScopeRequest, scope: Optional[Scope] = None) -> ScopeResolution:
    """
    Resolve the target set for the chosen scope.

    Non-recurring jobs are always resolved to the single occurrence,
    whatever scope was asked for.

    Raises:
        ScopeRequiredError: a recurring job was given no scope
    """
    if request.state is ScopeState.SINGLE_TARGET:
        scope = Scope.SINGLE
    elif scope is None:
        raise ScopeRequiredError("Choose whether to change this job, future jobs, or the whole series")
    scope = Scope(scope)
    return ScopeResolution(
        request=request,
        scope=scope,
        state=TARGET_STATES[scope],
        target=target_filter(request.job, scope),
    )


def resolve(action: ScopedAction, job: Job, scope: Optional[Scope] = None) -> ScopeResolution:
    return choose(begin(action, job), scope)


async def apply(
    resolution: ScopeResolution, mutation: Callable[[JobFilter], Awaitable[int]]
) -> ScopeOutcome:
    """Hand the target predicate to the mutation; an empty target set affects 0 rows"""
    affected = await mutation(resolution.target)
    return ScopeOutcome(resolution=resolution, affected=affected or 0)
