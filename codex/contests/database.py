import copy
import logging
from datetime import datetime
from typing import Callable, List, Optional, Tuple

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase

from codex.contests.scoring import STATUS_PENDING, JudgeOutcome, join_participant, end_participant, record_attempt

logger = logging.getLogger(__name__)

MAX_VERSION_RETRIES = 5


class ConcurrentUpdateError(Exception):
    """The contest kept changing under us; give up instead of clobbering it"""


# ==================== CONTEST CRUD ====================

async def create_contest(db: AsyncIOMotorDatabase, contest_data: dict, created_by: ObjectId) -> dict:
    contest = {
        "title": contest_data["title"],
        "description": contest_data.get("description"),
        "startDate": contest_data["startDate"],
        "endDate": contest_data["endDate"],
        "problems": contest_data["problems"],
        "createdBy": created_by,
        "participants": [],
        "version": 0,
        "createdAt": datetime.utcnow(),
        "updatedAt": datetime.utcnow(),
    }
    result = await db.contests.insert_one(contest)
    contest["_id"] = result.inserted_id
    return contest


async def get_contest(db: AsyncIOMotorDatabase, contest_id: ObjectId) -> Optional[dict]:
    return await db.contests.find_one({"_id": contest_id})


async def list_contests(db: AsyncIOMotorDatabase) -> List[dict]:
    cursor = db.contests.find({}, {"title": 1, "startDate": 1, "endDate": 1, "problems": 1}).sort("startDate", -1)
    return await cursor.to_list(length=None)


# ==================== PARTICIPANT UPDATES ====================

async def update_participants(
    db: AsyncIOMotorDatabase,
    contest_id: ObjectId,
    mutate: Callable[[dict, List[dict]], object],
) -> Tuple[Optional[dict], object]:
    """
    Read-modify-write of the participants array guarded by the contest version.

    `mutate(contest, participants)` edits the copied list in place and returns
    an outcome. The write only lands if nobody bumped the version meanwhile;
    otherwise the whole cycle is retried on a fresh read.
    Returns (contest after the update or None if missing, outcome).
    """
    for _ in range(MAX_VERSION_RETRIES):
        contest = await get_contest(db, contest_id)
        if contest is None:
            return None, None

        original = contest.get("participants", [])
        participants = copy.deepcopy(original)
        outcome = mutate(contest, participants)
        if participants == original:
            return contest, outcome

        version = contest.get("version")
        version_filter = version if version is not None else {"$exists": False}
        result = await db.contests.update_one(
            {"_id": contest_id, "version": version_filter},
            {
                "$set": {"participants": participants, "updatedAt": datetime.utcnow()},
                "$inc": {"version": 1},
            },
        )
        if result.modified_count == 1:
            contest["participants"] = participants
            contest["version"] = (version or 0) + 1
            return contest, outcome

        logger.info("Contest version conflict, retrying", extra={"contest_id": str(contest_id)})

    raise ConcurrentUpdateError(f"Contest {contest_id} is being updated concurrently")


async def start_participation(db: AsyncIOMotorDatabase, contest_id: ObjectId, user_id: ObjectId,
                              now: Optional[datetime] = None):
    now = now or datetime.utcnow()
    return await update_participants(
        db, contest_id, lambda contest, participants: join_participant(participants, user_id, now)
    )


async def end_participation(db: AsyncIOMotorDatabase, contest_id: ObjectId, user_id: ObjectId,
                            now: Optional[datetime] = None):
    now = now or datetime.utcnow()
    return await update_participants(
        db,
        contest_id,
        lambda contest, participants: end_participant(participants, user_id, now, contest.get("startDate")),
    )


async def record_contest_attempt(db: AsyncIOMotorDatabase, contest_id: ObjectId, user_id: ObjectId,
                                 problem_id: ObjectId, submission_id: ObjectId):
    return await update_participants(
        db,
        contest_id,
        lambda contest, participants: record_attempt(participants, user_id, problem_id, submission_id),
    )


# ==================== SUBMISSIONS ====================

async def create_submission(db: AsyncIOMotorDatabase, submission_data: dict) -> ObjectId:
    submission = {
        "userId": submission_data["userId"],
        "problemId": submission_data["problemId"],
        "contestId": submission_data.get("contestId"),
        "code": submission_data["code"],
        "language": submission_data["language"],
        "status": STATUS_PENDING,
        "testCasesPassed": 0,
        "testCasesTotal": submission_data["testCasesTotal"],
        "runtime": 0,
        "memory": 0,
        "errorMessage": None,
        "createdAt": datetime.utcnow(),
        "updatedAt": datetime.utcnow(),
    }
    result = await db.submissions.insert_one(submission)
    return result.inserted_id


async def update_submission_result(db: AsyncIOMotorDatabase, submission_id: ObjectId, outcome: JudgeOutcome) -> bool:
    """Write the scoring fields; only a pending submission can be scored"""
    result = await db.submissions.update_one(
        {"_id": submission_id, "status": STATUS_PENDING},
        {"$set": {
            "status": outcome.status,
            "testCasesPassed": outcome.passed,
            "runtime": outcome.runtime,
            "memory": outcome.memory,
            "errorMessage": outcome.error_message,
            "updatedAt": datetime.utcnow(),
        }},
    )
    return result.modified_count > 0


async def mark_problem_solved(db: AsyncIOMotorDatabase, user_id: ObjectId, problem_id: ObjectId) -> bool:
    """Add the problem to the user's solved list (no duplicates)"""
    result = await db.users.update_one(
        {"_id": user_id},
        {"$addToSet": {"problemSolved": problem_id}},
    )
    return result.modified_count > 0


async def submission_statuses(db: AsyncIOMotorDatabase, submission_ids: List[ObjectId]) -> dict:
    if not submission_ids:
        return {}
    cursor = db.submissions.find({"_id": {"$in": list(set(submission_ids))}}, {"status": 1})
    return {s["_id"]: s.get("status") for s in await cursor.to_list(length=None)}
