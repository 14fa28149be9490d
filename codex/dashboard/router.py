import logging

from fastapi import APIRouter, Depends
from motor.motor_asyncio import AsyncIOMotorDatabase

from codex.dashboard.streaks import compute_streaks
from codex.db import serialize_mongo
from codex.dependencies import get_current_user, get_db
from codex.problems.database import problems_by_ids

router = APIRouter(tags=["Dashboard"])
logger = logging.getLogger(__name__)

RECENT_SUBMISSIONS = 5


async def _active_days(db: AsyncIOMotorDatabase, user_id) -> list:
    # createdAt is stored as naive UTC, which $dateToString reads as UTC
    pipeline = [
        {"$match": {"userId": user_id}},
        {"$group": {"_id": {"$dateToString": {"format": "%Y-%m-%d", "date": "$createdAt"}}}},
        {"$sort": {"_id": 1}},
    ]
    rows = await db.submissions.aggregate(pipeline).to_list(length=None)
    return [row["_id"] for row in rows]


@router.get("/info")
async def get_dashboard_info(
    db: AsyncIOMotorDatabase = Depends(get_db),
    user: dict = Depends(get_current_user),
):
    user_id = user["_id"]
    solved_ids = user.get("problemSolved", [])

    days = await _active_days(db, user_id)

    total_contests = await db.contests.count_documents({
        "participants": {"$elemMatch": {"user": user_id, "startTime": {"$exists": True}}}
    })

    solved = await problems_by_ids(db, solved_ids, {"difficulty": 1})
    solved_by_difficulty = {"easy": 0, "medium": 0, "hard": 0}
    for problem in solved.values():
        level = problem.get("difficulty")
        if level in solved_by_difficulty:
            solved_by_difficulty[level] += 1

    cursor = db.submissions.find(
        {"userId": user_id},
        {"problemId": 1, "status": 1, "createdAt": 1},
    ).sort("createdAt", -1).limit(RECENT_SUBMISSIONS)
    recent = await cursor.to_list(length=RECENT_SUBMISSIONS)
    recent_problems = await problems_by_ids(db, [s.get("problemId") for s in recent], {"title": 1, "difficulty": 1})

    recent_submissions = []
    for sub in recent:
        problem = recent_problems.get(sub.get("problemId")) or {}
        recent_submissions.append({
            "_id": sub["_id"],
            "problem": {"title": problem.get("title"), "difficulty": problem.get("difficulty")},
            "status": sub.get("status"),
            "createdAt": sub.get("createdAt"),
        })

    return {
        "success": True,
        "data": serialize_mongo({
            "user": {
                "firstName": user.get("firstName"),
                "lastName": user.get("lastName"),
                "emailId": user.get("emailId"),
                "role": user.get("role"),
                "createdAt": user.get("createdAt"),
            },
            "totalSolved": len(solved_ids),
            "totalActiveDays": len(days),
            "totalContests": total_contests,
            "solvedByDifficulty": solved_by_difficulty,
            "recentSubmissions": recent_submissions,
            "streak": compute_streaks(days).to_dict(),
        }),
    }
