import logging
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException
from motor.motor_asyncio import AsyncIOMotorDatabase

from codex.contests.database import (
    ConcurrentUpdateError,
    create_contest,
    create_submission,
    end_participation,
    get_contest,
    list_contests,
    mark_problem_solved,
    record_contest_attempt,
    start_participation,
    submission_statuses,
    update_submission_result,
)
from codex.contests.judge import JudgeClient, language_id, normalize_language
from codex.contests.models import ContestCreate, ContestSubmission
from codex.contests.scoring import (
    ALREADY_ENDED,
    NOT_PARTICIPANT,
    classify_results,
    find_participant,
    rank_results,
    score_participant,
)
from codex.db import public_users, serialize_mongo, to_object_id
from codex.dependencies import get_current_user, get_db, get_judge, require_admin
from codex.errors import JudgeUnavailableError
from codex.problems.database import get_problem, problems_by_ids

router = APIRouter(tags=["Contests"])
logger = logging.getLogger(__name__)


def _public_name(user: dict) -> dict:
    return {
        "_id": user.get("_id"),
        "firstName": user.get("firstName"),
        "lastName": user.get("lastName"),
    }


async def _load_contest(db: AsyncIOMotorDatabase, contest_id: str) -> dict:
    contest = await get_contest(db, to_object_id(contest_id, "contest id"))
    if not contest:
        raise HTTPException(status_code=404, detail="Contest not found")
    return contest


# ==================== CONTEST CRUD ====================

@router.post("/create", status_code=201)
async def create_contest_endpoint(
    body: ContestCreate,
    db: AsyncIOMotorDatabase = Depends(get_db),
    admin: dict = Depends(require_admin),
):
    problem_ids = [to_object_id(pid, "problem id") for pid in body.problems]
    known = await problems_by_ids(db, problem_ids, {"_id": 1})
    missing = [str(pid) for pid in problem_ids if pid not in known]
    if missing:
        raise HTTPException(status_code=400, detail=f"Unknown problems: {', '.join(missing)}")

    contest = await create_contest(db, {**body.model_dump(), "problems": problem_ids}, admin["_id"])
    logger.info("Contest created", extra={"contest_id": str(contest["_id"]), "user_id": str(admin["_id"])})
    return {"success": True, "data": {"message": "Contest created", "contest": serialize_mongo(contest)}}


@router.get("/fetchAll")
async def fetch_all_contests(
    db: AsyncIOMotorDatabase = Depends(get_db),
    user: dict = Depends(get_current_user),
):
    contests = await list_contests(db)
    all_problem_ids = [pid for c in contests for pid in c.get("problems", [])]
    problems = await problems_by_ids(db, all_problem_ids, {"title": 1})

    for contest in contests:
        contest["problems"] = [
            {"_id": pid, "title": problems[pid].get("title")}
            for pid in contest.get("problems", [])
            if pid in problems
        ]

    return {"success": True, "data": serialize_mongo(contests)}


@router.get("/fetchById/{contest_id}")
async def fetch_contest_by_id(
    contest_id: str,
    db: AsyncIOMotorDatabase = Depends(get_db),
    user: dict = Depends(get_current_user),
):
    contest = await _load_contest(db, contest_id)

    problems = await problems_by_ids(db, contest.get("problems", []), {"title": 1})
    contest["problems"] = [
        {"_id": pid, "title": problems[pid].get("title")}
        for pid in contest.get("problems", [])
        if pid in problems
    ]

    participants = contest.get("participants", [])
    names = await public_users(db, [p.get("user") for p in participants])
    own = find_participant(participants, user["_id"])
    for participant in participants:
        member = names.get(participant.get("user"))
        if member:
            participant["user"] = _public_name(member)

    return {
        "success": True,
        "data": {
            "contest": serialize_mongo(contest),
            "participantData": serialize_mongo(own) if own else None,
        },
    }


# ==================== TIMING ====================

@router.post("/{contest_id}/start")
async def start_contest(
    contest_id: str,
    db: AsyncIOMotorDatabase = Depends(get_db),
    user: dict = Depends(get_current_user),
):
    try:
        contest, changed = await start_participation(db, to_object_id(contest_id, "contest id"), user["_id"])
    except ConcurrentUpdateError as e:
        raise HTTPException(status_code=409, detail=str(e))
    if contest is None:
        raise HTTPException(status_code=404, detail="Contest not found")

    participant = find_participant(contest["participants"], user["_id"])
    return {
        "success": True,
        "data": {"started": bool(changed), "startTime": participant.get("startTime")},
    }


@router.post("/{contest_id}/end")
async def end_contest(
    contest_id: str,
    db: AsyncIOMotorDatabase = Depends(get_db),
    user: dict = Depends(get_current_user),
):
    try:
        contest, outcome = await end_participation(db, to_object_id(contest_id, "contest id"), user["_id"])
    except ConcurrentUpdateError as e:
        raise HTTPException(status_code=409, detail=str(e))
    if contest is None:
        raise HTTPException(status_code=404, detail="Contest not found")
    if outcome == NOT_PARTICIPANT:
        raise HTTPException(status_code=404, detail="You are not a participant in this contest")

    participant = find_participant(contest["participants"], user["_id"])
    if outcome == ALREADY_ENDED:
        return {
            "success": True,
            "data": {"showResults": False, "message": "Contest already ended", "timeTaken": participant.get("timeTaken")},
        }

    logger.info("Participant finished contest", extra={"contest_id": contest_id, "user_id": str(user["_id"])})
    return {"success": True, "data": {"showResults": True, "timeTaken": participant.get("timeTaken")}}


# ==================== SUBMISSION ====================

@router.post("/submit/{problem_id}", status_code=201)
async def submit_contest_solution(
    problem_id: str,
    body: ContestSubmission,
    db: AsyncIOMotorDatabase = Depends(get_db),
    judge: JudgeClient = Depends(get_judge),
    user: dict = Depends(get_current_user),
):
    """
    Judge a solution against the hidden test cases.
    With a contestId the submission must fall inside the contest window and is
    recorded as the caller's latest attempt for the problem.
    """
    user_id = user["_id"]
    problem_oid = to_object_id(problem_id, "problem id")

    try:
        language_id(body.language)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    problem = await get_problem(db, problem_oid, with_hidden=True)
    if not problem:
        raise HTTPException(status_code=404, detail="Problem not found")

    contest = None
    if body.contestId:
        contest = await _load_contest(db, body.contestId)
        now = datetime.utcnow()
        if now < contest["startDate"]:
            raise HTTPException(status_code=400, detail="Contest has not started yet")
        if now > contest["endDate"]:
            raise HTTPException(status_code=400, detail="Contest has ended")

    hidden_cases = problem.get("hiddenTestCases", [])
    language = normalize_language(body.language)
    submission_id = await create_submission(db, {
        "userId": user_id,
        "problemId": problem_oid,
        "contestId": contest["_id"] if contest else None,
        "code": body.code,
        "language": language,
        "testCasesTotal": len(hidden_cases),
    })
    log_ctx = {"submission_id": str(submission_id), "user_id": str(user_id), "problem_id": problem_id}

    try:
        results = await judge.run(body.code, language, hidden_cases)
    except JudgeUnavailableError as e:
        logger.error("Judging failed: %s", e, extra=log_ctx)
        raise HTTPException(status_code=500, detail="Judge system unavailable")

    outcome = classify_results(results)
    await update_submission_result(db, submission_id, outcome)

    if outcome.accepted:
        await mark_problem_solved(db, user_id, problem_oid)

    if contest:
        try:
            await record_contest_attempt(db, contest["_id"], user_id, problem_oid, submission_id)
        except ConcurrentUpdateError as e:
            raise HTTPException(status_code=409, detail=str(e))

    logger.info("Submission judged: %s", outcome.status, extra=log_ctx)
    return {
        "success": True,
        "data": {
            "accepted": outcome.accepted,
            "status": outcome.status,
            "totalTestCases": outcome.total,
            "passedTestCases": outcome.passed,
            "runtime": outcome.runtime,
            "memory": outcome.memory,
            "errorMessage": outcome.error_message,
            "submissionId": str(submission_id),
        },
    }


# ==================== RESULTS ====================

@router.get("/{contest_id}/results")
async def get_contest_results(
    contest_id: str,
    db: AsyncIOMotorDatabase = Depends(get_db),
    user: dict = Depends(get_current_user),
):
    contest = await _load_contest(db, contest_id)

    # Only participants who finished are ranked
    finished = [p for p in contest.get("participants", []) if p.get("endTime")]
    attempts = [a for p in finished for a in p.get("attemptedProblems", [])]

    problems = await problems_by_ids(db, [a.get("problem") for a in attempts], {"title": 1, "difficulty": 1})
    statuses = await submission_statuses(db, [a.get("submission") for a in attempts])
    names = await public_users(db, [p.get("user") for p in finished])

    rows = []
    for participant in finished:
        score = score_participant(participant.get("attemptedProblems", []), problems, statuses)
        member = names.get(participant.get("user")) or {"_id": participant.get("user")}
        rows.append({
            "user": _public_name(member),
            "solved": score.solved,
            "totalScore": score.total_score,
            "totalTime": participant.get("timeTaken") or 0,
            "attempts": score.attempts,
        })

    return {
        "success": True,
        "data": serialize_mongo({
            "contest": {
                "_id": contest["_id"],
                "title": contest.get("title"),
                "startDate": contest.get("startDate"),
                "endDate": contest.get("endDate"),
            },
            "results": rank_results(rows),
        }),
    }
