from datetime import datetime

import pytest

from lawn_tracker.domain.jobs import scope as scopes
from lawn_tracker.domain.jobs.exceptions import ScopeRequiredError
from lawn_tracker.domain.jobs.repository import JobFilter
from lawn_tracker.domain.jobs.schemas import JobStatus

from .fakes import make_job

SERIES = "series-abc"


def series_jobs():
    return [
        make_job(id=1, start_time=datetime(2024, 6, 3, 9), recurring_id=SERIES, is_recurring=True, occurrence_number=1),
        make_job(id=2, start_time=datetime(2024, 6, 10, 9), recurring_id=SERIES, is_recurring=True, occurrence_number=2),
        make_job(id=3, start_time=datetime(2024, 6, 17, 9), recurring_id=SERIES, is_recurring=True, occurrence_number=3),
    ]


def test_non_recurring_job_goes_straight_to_single_target():
    job = make_job(id=7)
    request = scopes.begin(scopes.ScopedAction.CANCEL, job)

    assert request.state is scopes.ScopeState.SINGLE_TARGET
    assert request.scopes == [scopes.Scope.SINGLE]


@pytest.mark.parametrize("asked", [None, scopes.Scope.FUTURE, scopes.Scope.SERIES])
def test_non_recurring_job_is_forced_to_single(asked):
    job = make_job(id=7)
    resolution = scopes.resolve(scopes.ScopedAction.EDIT, job, asked)

    assert resolution.scope is scopes.Scope.SINGLE
    assert resolution.state is scopes.ScopeState.SINGLE_TARGET
    assert resolution.target == JobFilter(id=7)


def test_recurring_job_waits_for_scope_choice():
    job = series_jobs()[1]
    request = scopes.begin(scopes.ScopedAction.CANCEL, job)

    assert request.state is scopes.ScopeState.SCOPE_CHOICE_PENDING
    assert request.scopes == [scopes.Scope.SINGLE, scopes.Scope.FUTURE, scopes.Scope.SERIES]


def test_recurring_job_without_scope_is_rejected():
    request = scopes.begin(scopes.ScopedAction.CANCEL, series_jobs()[1])
    with pytest.raises(ScopeRequiredError):
        scopes.choose(request, None)


def test_future_target_includes_selected_and_later_only():
    jobs = series_jobs()
    resolution = scopes.resolve(scopes.ScopedAction.CANCEL, jobs[1], scopes.Scope.FUTURE)

    assert resolution.state is scopes.ScopeState.FUTURE_TARGET
    assert [j.id for j in resolution.target.apply(jobs)] == [2, 3]


def test_single_target_on_series_member():
    jobs = series_jobs()
    resolution = scopes.resolve(scopes.ScopedAction.CANCEL, jobs[1], "single")

    assert [j.id for j in resolution.target.apply(jobs)] == [2]


def test_series_target_ignores_status_and_date():
    jobs = series_jobs()
    jobs[0] = jobs[0].model_copy(update={"status": JobStatus.DONE})
    jobs[2] = jobs[2].model_copy(update={"status": JobStatus.CANCELLED})
    other = make_job(id=9, recurring_id="other-series", is_recurring=True)

    resolution = scopes.resolve(scopes.ScopedAction.DELETE, jobs[2], scopes.Scope.SERIES)

    assert resolution.state is scopes.ScopeState.SERIES_TARGET
    assert [j.id for j in resolution.target.apply(jobs + [other])] == [1, 2, 3]


@pytest.mark.anyio
async def test_apply_reports_affected_count_and_ends_applied():
    jobs = series_jobs()
    resolution = scopes.resolve(scopes.ScopedAction.DELETE, jobs[0], scopes.Scope.SERIES)

    async def mutation(target):
        return len(target.apply(jobs))

    outcome = await scopes.apply(resolution, mutation)
    assert outcome.state is scopes.ScopeState.APPLIED
    assert outcome.affected == 3


@pytest.mark.anyio
async def test_apply_on_empty_target_is_a_noop():
    resolution = scopes.resolve(scopes.ScopedAction.DELETE, series_jobs()[0], scopes.Scope.SERIES)

    async def mutation(target):
        return 0

    outcome = await scopes.apply(resolution, mutation)
    assert outcome.state is scopes.ScopeState.APPLIED
    assert outcome.affected == 0
