import pytest
from fastapi.testclient import TestClient

from lawn_tracker.domain.jobs.exceptions import LocalStoreError
from lawn_tracker.domain.jobs.router import get_calendar, get_job_store
from lawn_tracker.main import app

SERIES_FORM = {
    "clientName": "Smith",
    "jobType": "mowing",
    "startTime": "2024-06-03T09:00:00",
    "phone": "555-123-4567",
    "address": "12 Elm St",
    "price": "45",
    "isRecurring": True,
    "frequency": "weekly",
    "occurrenceCount": 3,
}


@pytest.fixture
def client(local_store):
    app.dependency_overrides[get_job_store] = lambda: local_store
    app.dependency_overrides[get_calendar] = lambda: None
    yield TestClient(app)
    app.dependency_overrides.clear()


def create_series(client):
    response = client.post("/jobs", json=SERIES_FORM)
    assert response.status_code == 201
    return response.json()


def test_create_series_and_list(client):
    created = create_series(client)

    assert [job["start_time"] for job in created] == [
        "2024-06-03T09:00:00",
        "2024-06-10T09:00:00",
        "2024-06-17T09:00:00",
    ]
    assert created[0]["client_phone"] == "+15551234567"
    assert created[0]["recurrence_pattern"] == {"frequency": "weekly", "interval_days": 7}

    listed = client.get("/jobs").json()
    assert [job["id"] for job in listed] == [job["id"] for job in created]

    series = client.get(f"/jobs/series/{created[0]['recurring_id']}").json()
    assert [job["occurrence_number"] for job in series] == [1, 2, 3]


def test_create_validation_errors(client):
    short = {**SERIES_FORM, "occurrenceCount": 1}
    assert client.post("/jobs", json=short).status_code == 422

    missing_name = {**SERIES_FORM, "clientName": "  "}
    assert client.post("/jobs", json=missing_name).status_code == 422

    bad_phone = {**SERIES_FORM, "phone": "12345"}
    assert client.post("/jobs", json=bad_phone).status_code == 422

    no_frequency = {**SERIES_FORM, "frequency": None}
    assert client.post("/jobs", json=no_frequency).status_code == 422

    assert client.get("/jobs").json() == []


def test_scope_choices(client):
    created = create_series(client)
    response = client.get(f"/jobs/{created[1]['id']}/scopes", params={"action": "cancel"})

    assert response.json() == {
        "jobId": created[1]["id"],
        "state": "scope_choice_pending",
        "scopes": ["single", "future", "series"],
        "recurringId": created[1]["recurring_id"],
    }


def test_scope_choices_for_one_off(client):
    [job] = client.post("/jobs", json={**SERIES_FORM, "isRecurring": False}).json()
    response = client.get(f"/jobs/{job['id']}/scopes")

    assert response.json()["state"] == "single_target"
    assert response.json()["scopes"] == ["single"]


def test_cancel_future(client):
    created = create_series(client)

    response = client.post(f"/jobs/{created[1]['id']}/cancel", params={"scope": "future"})

    assert response.json() == {"cancelled": 2}
    statuses = [job["status"] for job in client.get("/jobs").json()]
    assert statuses == ["pending", "cancelled", "cancelled"]


def test_cancel_recurring_without_scope(client):
    created = create_series(client)
    response = client.post(f"/jobs/{created[0]['id']}/cancel")
    assert response.status_code == 400


def test_mark_done_twice_conflicts(client):
    created = create_series(client)
    job_id = created[0]["id"]

    assert client.post(f"/jobs/{job_id}/done").json() == {"updated": 1}
    assert client.post(f"/jobs/{job_id}/done").status_code == 409


def test_unknown_job(client):
    assert client.get("/jobs/999").status_code == 404
    assert client.post("/jobs/999/done").status_code == 404
    assert client.delete("/jobs/999").json() == {"deleted": 0}


def test_edit_series(client):
    created = create_series(client)

    response = client.patch(
        f"/jobs/{created[0]['id']}",
        params={"scope": "series"},
        json={"notes": "dog in yard", "startTime": "2024-09-01T09:00:00"},
    )

    assert response.json() == {"updated": 3}
    jobs = client.get("/jobs").json()
    assert all(job["notes"] == "dog in yard" for job in jobs)
    assert jobs[0]["start_time"] == "2024-06-03T09:00:00"


def test_delete_scopes(client):
    created = create_series(client)

    assert client.delete(f"/jobs/{created[2]['id']}", params={"scope": "single"}).json() == {"deleted": 1}
    rid = created[0]["recurring_id"]
    assert client.delete(f"/jobs/series/{rid}").json() == {"deleted": 2}
    assert client.delete(f"/jobs/series/{rid}").json() == {"deleted": 0}


def test_stats_endpoint(client):
    created = create_series(client)
    client.post(f"/jobs/{created[0]['id']}/done")

    stats = client.get("/stats").json()

    assert stats["totalJobs"] == 3
    assert stats["completedJobs"] == 1
    assert stats["activeJobs"] == 2
    assert stats["source"] == "local"


def test_local_save_failure_is_generic(client, local_store, monkeypatch):
    def broken_save(jobs):
        raise LocalStoreError("disk full")

    monkeypatch.setattr(local_store.mirror, "save", broken_save)
    response = client.post("/jobs", json=SERIES_FORM)

    assert response.status_code == 503
    assert response.json() == {"detail": "Could not save. Please try again."}


@pytest.mark.parametrize("price", ["NaN", "Infinity", "1e30", "-3"])
def test_unusable_price_is_a_validation_error(client, price):
    response = client.post("/jobs", json={**SERIES_FORM, "price": price})

    assert response.status_code == 422
    assert client.get("/jobs").json() == []
