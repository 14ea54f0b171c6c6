"""In-memory stand-in for the Supabase REST API, served through httpx.MockTransport."""

import json
from datetime import datetime, timezone

import httpx

from lawn_tracker.domain.jobs.schemas import Job, JobStatus, JobType

CONTROL_PARAMS = {"select", "order", "limit", "on_conflict"}


class FakePostgrest:
    def __init__(self):
        self.tables = {"jobs": [], "job_archives": []}
        self.requests = []
        self.fail_with = None  # status code returned for every request when set
        self.fail_methods = None  # restrict failures to these HTTP methods
        self.raise_exc = None  # exception raised instead of responding
        self._next_id = 1

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def _should_fail(self, request: httpx.Request) -> bool:
        return self.fail_methods is None or request.method in self.fail_methods

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.raise_exc is not None and self._should_fail(request):
            raise self.raise_exc
        if self.fail_with is not None and self._should_fail(request):
            return httpx.Response(self.fail_with, text="internal error")

        table = request.url.path.rsplit("/", 1)[-1]
        rows = self.tables.setdefault(table, [])
        params = dict(request.url.params)
        filters = {k: v for k, v in params.items() if k not in CONTROL_PARAMS}
        minimal = "return=minimal" in request.headers.get("prefer", "")
        now = datetime.now(timezone.utc).isoformat()

        if request.method == "GET":
            matched = [r for r in rows if self._matches(r, filters)]
            if params.get("order") == "start_time.asc":
                matched.sort(key=lambda r: r["start_time"])
            if "limit" in params:
                matched = matched[: int(params["limit"])]
            return httpx.Response(200, json=matched)

        if request.method == "POST":
            created = []
            for row in json.loads(request.content):
                row = dict(row)
                if "id" not in row:
                    row["id"] = self._next_id
                    self._next_id += 1
                row.setdefault("created_at", now)
                row.setdefault("updated_at", now)
                rows.append(row)
                created.append(row)
            if minimal:
                return httpx.Response(201)
            return httpx.Response(201, json=created)

        matched = [r for r in rows if self._matches(r, filters)]

        if request.method == "PATCH":
            body = json.loads(request.content)
            for row in matched:
                row.update(body)
            return httpx.Response(204) if minimal else httpx.Response(200, json=matched)

        if request.method == "DELETE":
            self.tables[table] = [r for r in rows if r not in matched]
            return httpx.Response(204) if minimal else httpx.Response(200, json=matched)

        return httpx.Response(405)

    @staticmethod
    def _matches(row: dict, filters: dict) -> bool:
        for column, expr in filters.items():
            op, _, value = expr.partition(".")
            current = row.get(column)
            if op == "eq" and str(current) != value:
                return False
            if op == "gte" and (current is None or str(current) < value):
                return False
        return True


def make_job(**overrides) -> Job:
    data = {
        "title": "Smith - Mowing",
        "start_time": datetime(2024, 6, 3, 9, 0),
        "job_type": JobType.MOWING,
        "status": JobStatus.PENDING,
    }
    data.update(overrides)
    return Job(**data)
