from datetime import datetime, timedelta

import httpx
import pytest
from bson import ObjectId

from codex.contests.judge import JudgeClient
from codex.dependencies import get_judge
from codex.main import app
from conftest import auth_headers, make_user


def _judge_returning(status_ids, stderr=None):
    def handler(request: httpx.Request) -> httpx.Response:
        if request.method == "POST":
            return httpx.Response(201, json=[{"token": f"t{i}"} for i in range(len(status_ids))])
        return httpx.Response(200, json={"submissions": [
            {"token": f"t{i}", "status_id": s, "time": "0.050", "memory": 512,
             "stderr": stderr if s != 3 else None}
            for i, s in enumerate(status_ids)
        ]})

    return JudgeClient(base_url="https://judge.test", poll_interval=0, transport=httpx.MockTransport(handler))


async def _problem(db, difficulty="medium", cases=2):
    result = await db.problems.insert_one({
        "title": f"Problem {difficulty}",
        "difficulty": difficulty,
        "visibleTestCases": [],
        "hiddenTestCases": [{"input": str(i), "output": str(i)} for i in range(cases)],
    })
    return result.inserted_id


async def _live_contest(client, admin, problem_ids, starts=-1, ends=1):
    now = datetime.utcnow()
    response = await client.post("/contest/create", headers=auth_headers(admin), json={
        "title": "Weekly Round",
        "startDate": (now + timedelta(hours=starts)).isoformat(),
        "endDate": (now + timedelta(hours=ends)).isoformat(),
        "problems": [str(pid) for pid in problem_ids],
    })
    assert response.status_code == 201, response.text
    return response.json()["data"]["contest"]["_id"]


@pytest.fixture
def judge():
    return _judge_returning([3, 3])


async def test_create_requires_admin(client, db, user):
    problem_id = await _problem(db)
    response = await client.post("/contest/create", headers=auth_headers(user), json={
        "title": "Nope",
        "startDate": "2024-01-01T00:00:00",
        "endDate": "2024-01-02T00:00:00",
        "problems": [str(problem_id)],
    })
    assert response.status_code == 403
    assert response.json()["success"] is False


async def test_create_rejects_inverted_window(client, db, admin):
    problem_id = await _problem(db)
    response = await client.post("/contest/create", headers=auth_headers(admin), json={
        "title": "Backwards",
        "startDate": "2024-01-02T00:00:00",
        "endDate": "2024-01-01T00:00:00",
        "problems": [str(problem_id)],
    })
    assert response.status_code == 400


async def test_submit_start_end_and_results(client, db, admin, user):
    problem_id = await _problem(db, "hard")
    contest_id = await _live_contest(client, admin, [problem_id])

    response = await client.post(f"/contest/{contest_id}/start", headers=auth_headers(user))
    assert response.json()["data"]["started"] is True

    response = await client.post(f"/contest/submit/{problem_id}", headers=auth_headers(user), json={
        "code": "print(input())",
        "language": "python",
        "contestId": contest_id,
    })
    assert response.status_code == 201, response.text
    data = response.json()["data"]
    assert data["accepted"] is True
    assert data["passedTestCases"] == 2
    assert data["totalTestCases"] == 2

    stored_user = await db.users.find_one({"_id": user["_id"]})
    assert stored_user["problemSolved"] == [problem_id]

    response = await client.post(f"/contest/{contest_id}/end", headers=auth_headers(user))
    assert response.json()["data"]["showResults"] is True
    response = await client.post(f"/contest/{contest_id}/end", headers=auth_headers(user))
    assert response.json()["data"]["showResults"] is False

    response = await client.get(f"/contest/{contest_id}/results", headers=auth_headers(user))
    results = response.json()["data"]["results"]
    assert len(results) == 1
    assert results[0]["user"]["firstName"] == "Alice"
    assert results[0]["totalScore"] == 3
    assert results[0]["solved"] == 1
    assert results[0]["rank"] == 1


async def test_end_for_non_participant(client, db, admin, user):
    problem_id = await _problem(db)
    contest_id = await _live_contest(client, admin, [problem_id])
    response = await client.post(f"/contest/{contest_id}/end", headers=auth_headers(user))
    assert response.status_code == 404


async def test_submit_outside_window(client, db, admin, user):
    problem_id = await _problem(db)
    contest_id = await _live_contest(client, admin, [problem_id], starts=1, ends=2)
    response = await client.post(f"/contest/submit/{problem_id}", headers=auth_headers(user), json={
        "code": "x", "language": "python", "contestId": contest_id,
    })
    assert response.status_code == 400
    assert response.json()["error"] == "Contest has not started yet"
    assert await db.submissions.count_documents({}) == 0


async def test_unsupported_language(client, db, user):
    problem_id = await _problem(db)
    response = await client.post(f"/contest/submit/{problem_id}", headers=auth_headers(user), json={
        "code": "x", "language": "cobol",
    })
    assert response.status_code == 400


async def test_wrong_answer_is_not_solved(client, db, user):
    problem_id = await _problem(db)
    wrong_judge = _judge_returning([3, 4])
    app.dependency_overrides[get_judge] = lambda: wrong_judge

    response = await client.post(f"/contest/submit/{problem_id}", headers=auth_headers(user), json={
        "code": "x", "language": "python",
    })
    data = response.json()["data"]
    assert data["accepted"] is False
    assert data["status"] == "wrong"
    assert data["passedTestCases"] == 1
    stored_user = await db.users.find_one({"_id": user["_id"]})
    assert stored_user["problemSolved"] == []


async def test_fetch_by_id_includes_own_participation(client, db, admin, user):
    problem_id = await _problem(db)
    contest_id = await _live_contest(client, admin, [problem_id])
    other = await make_user(db, first_name="Bob")
    await client.post(f"/contest/{contest_id}/start", headers=auth_headers(other))

    response = await client.get(f"/contest/fetchById/{contest_id}", headers=auth_headers(user))
    data = response.json()["data"]
    assert data["participantData"] is None
    assert data["contest"]["problems"] == [{"_id": str(problem_id), "title": "Problem medium"}]
    assert data["contest"]["participants"][0]["user"]["firstName"] == "Bob"

    response = await client.get(f"/contest/fetchById/{ObjectId()}", headers=auth_headers(user))
    assert response.status_code == 404


async def test_judge_outage_leaves_submission_pending(client, db, admin, user):
    problem_id = await _problem(db)
    contest_id = await _live_contest(client, admin, [problem_id])
    down = JudgeClient(base_url="https://judge.test", poll_interval=0,
                       transport=httpx.MockTransport(lambda request: httpx.Response(503)))
    app.dependency_overrides[get_judge] = lambda: down

    response = await client.post(f"/contest/submit/{problem_id}", headers=auth_headers(user), json={
        "code": "print(1)", "language": "python", "contestId": contest_id,
    })
    assert response.status_code == 500
    assert response.json() == {"success": False, "error": "Judge system unavailable"}

    submission = await db.submissions.find_one({"userId": user["_id"]})
    assert submission["status"] == "pending"
    assert submission["testCasesPassed"] == 0
    stored_user = await db.users.find_one({"_id": user["_id"]})
    assert stored_user["problemSolved"] == []


async def test_runtime_error_is_reported(client, db, user):
    problem_id = await _problem(db)
    crashing = _judge_returning([3, 11], stderr="ZeroDivisionError: division by zero")
    app.dependency_overrides[get_judge] = lambda: crashing

    response = await client.post(f"/contest/submit/{problem_id}", headers=auth_headers(user), json={
        "code": "print(1 / 0)", "language": "python",
    })
    data = response.json()["data"]
    assert data["accepted"] is False
    assert data["status"] == "error"
    assert data["passedTestCases"] == 1
    assert data["errorMessage"] == "ZeroDivisionError: division by zero"

    submission = await db.submissions.find_one({"_id": ObjectId(data["submissionId"])})
    assert submission["status"] == "error"
    assert submission["errorMessage"] == "ZeroDivisionError: division by zero"
