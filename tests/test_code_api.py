from __future__ import annotations

import sys
from pathlib import Path
from typing import Any, Dict, Iterable, List

import pytest
from fastapi.testclient import TestClient

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))
TESTS_ROOT = ROOT / "tests"
if str(TESTS_ROOT) not in sys.path:
    sys.path.insert(0, str(TESTS_ROOT))

import server.app as app_module
import server.api.code as code_module
from server.core.errors import ExternalServiceError
from server.services.judge import JudgeOutcome
from fake_db import FakeConnection, FakeDatabase


class StubJudge:
    def __init__(self, payloads: List[Dict[str, Any]] | None = None, error: Exception | None = None) -> None:
        self.payloads = payloads or []
        self.error = error
        self.batches: List[int] = []

    def submit_batch(self, source_code: str, language_id: int, test_cases) -> List[str]:
        if self.error is not None:
            raise self.error
        self.batches.append(len(test_cases))
        return [str(index) for index in range(len(test_cases))]

    def poll_once(self, token: str) -> JudgeOutcome:
        return JudgeOutcome.from_payload(token, self.payloads[int(token)])


@pytest.fixture
def fake_db(monkeypatch: pytest.MonkeyPatch) -> FakeDatabase:
    database = FakeDatabase()

    def _db_conn() -> FakeConnection:
        return FakeConnection(database)

    monkeypatch.setattr(code_module, "db_conn", _db_conn)
    monkeypatch.setenv("JUDGE_POLL_DELAY_MS", "0")
    monkeypatch.setenv("MAX_SUBMISSIONS_PER_DAY", "1")
    return database


@pytest.fixture
def judge(monkeypatch: pytest.MonkeyPatch) -> StubJudge:
    stub = StubJudge(
        [
            {"status": {"id": 3, "description": "Accepted"}, "stdout": "4\n", "time": "0.002", "memory": 100},
            {"status": {"id": 4, "description": "Wrong Answer"}, "stdout": "5\n", "time": "0.002", "memory": 100},
        ]
    )
    monkeypatch.setattr(code_module, "build_judge_client", lambda: stub)
    return stub


@pytest.fixture
def client(fake_db: FakeDatabase) -> Iterable[TestClient]:
    with TestClient(app_module.app) as client:
        yield client


@pytest.fixture
def problem(fake_db: FakeDatabase) -> int:
    question_id = fake_db.add_question("Programming", points_possible=8)
    fake_db.add_test_case(question_id, "2 2", "4")
    fake_db.add_test_case(question_id, "3 3", "6")
    return question_id


def _body(problem_id: int, **overrides: Any) -> Dict[str, Any]:
    body = {"problemId": problem_id, "code": "print(4)", "languageId": 71, "isTestRun": False}
    body.update(overrides)
    return body


def test_submit_code_grades_and_persists(
    client: TestClient, fake_db: FakeDatabase, judge: StubJudge, problem: int
) -> None:
    response = client.post("/code/submit", json=_body(problem), headers={"X-User-Id": "3"})

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["isTestRun"] is False
    assert body["passedTests"] == 1
    assert body["totalTests"] == 2
    assert body["pointsEarned"] == pytest.approx(4.0)
    assert body["pointsPossible"] == 8.0
    assert len(body["testResults"]) == 2
    assert len(fake_db.tables["response"]) == 1


def test_submit_code_rate_limited(
    client: TestClient, fake_db: FakeDatabase, judge: StubJudge, problem: int
) -> None:
    first = client.post("/code/submit", json=_body(problem), headers={"X-User-Id": "3"})
    assert first.status_code == 200

    second = client.post("/code/submit", json=_body(problem), headers={"X-User-Id": "3"})
    assert second.status_code == 429
    assert second.json() == {"message": "Daily submission limit exceeded."}


def test_submit_code_test_run(
    client: TestClient, fake_db: FakeDatabase, judge: StubJudge, problem: int
) -> None:
    response = client.post("/code/submit", json=_body(problem, isTestRun=True), headers={"X-User-Id": "3"})

    assert response.status_code == 200
    body = response.json()
    assert body["isTestRun"] is True
    assert body["stdout"] == "4"
    assert "pointsEarned" not in body
    assert judge.batches == [1]
    assert fake_db.tables["response"] == []
    assert len(fake_db.tables["test_run"]) == 1


@pytest.mark.parametrize("missing", ["problemId", "code", "languageId", "isTestRun"])
def test_submit_code_missing_field(
    client: TestClient, judge: StubJudge, problem: int, missing: str
) -> None:
    body = _body(problem)
    body.pop(missing)
    response = client.post("/code/submit", json=body, headers={"X-User-Id": "3"})
    assert response.status_code == 400
    assert response.json() == {"message": "Missing required fields."}


def test_submit_code_unsupported_language(client: TestClient, judge: StubJudge, problem: int) -> None:
    response = client.post("/code/submit", json=_body(problem, languageId=1), headers={"X-User-Id": "3"})
    assert response.status_code == 400
    assert response.json() == {"message": "Unsupported programming language."}


def test_submit_code_unknown_problem(client: TestClient, judge: StubJudge) -> None:
    response = client.post("/code/submit", json=_body(77), headers={"X-User-Id": "3"})
    assert response.status_code == 404
    assert response.json() == {"message": "Programming question not found."}


def test_submit_code_judge_failure(
    client: TestClient, fake_db: FakeDatabase, monkeypatch: pytest.MonkeyPatch, problem: int
) -> None:
    stub = StubJudge(error=ExternalServiceError("connection refused"))
    monkeypatch.setattr(code_module, "build_judge_client", lambda: stub)

    response = client.post("/code/submit", json=_body(problem), headers={"X-User-Id": "3"})

    assert response.status_code == 502
    assert response.json() == {"message": "Code submission failed."}
    assert fake_db.tables["response"] == []
    assert fake_db.held_locks == []


def test_submit_code_judge_timeout(
    client: TestClient, fake_db: FakeDatabase, monkeypatch: pytest.MonkeyPatch, problem: int
) -> None:
    pending = {"status": {"id": 2, "description": "Processing"}}
    stub = StubJudge([pending, pending])
    monkeypatch.setattr(code_module, "build_judge_client", lambda: stub)

    response = client.post("/code/submit", json=_body(problem), headers={"X-User-Id": "3"})

    assert response.status_code == 408
    assert response.json() == {"message": "Code execution timed out."}
    assert fake_db.tables["response"] == []
    assert fake_db.held_locks == []
