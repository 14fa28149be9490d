from fastapi import APIRouter, Depends, HTTPException
from motor.motor_asyncio import AsyncIOMotorDatabase

from codex.db import serialize_many, serialize_mongo, to_object_id
from codex.dependencies import get_current_user, get_db, require_admin
from codex.problems.database import create_problem, get_problem, list_problems
from codex.problems.models import ProblemCreate

router = APIRouter(tags=["Problems"])


@router.post("/create", status_code=201)
async def create_problem_endpoint(
    problem: ProblemCreate,
    db: AsyncIOMotorDatabase = Depends(get_db),
    admin: dict = Depends(require_admin),
):
    problem_id = await create_problem(db, problem.model_dump(mode="json"), admin["_id"])
    return {"success": True, "data": {"_id": str(problem_id), "message": "Problem created"}}


@router.get("/getAll")
async def get_all_problems(
    db: AsyncIOMotorDatabase = Depends(get_db),
    user: dict = Depends(get_current_user),
):
    problems = await list_problems(db)
    return {"success": True, "data": serialize_many(problems)}


@router.get("/{problem_id}")
async def get_problem_by_id(
    problem_id: str,
    db: AsyncIOMotorDatabase = Depends(get_db),
    user: dict = Depends(get_current_user),
):
    problem = await get_problem(db, to_object_id(problem_id, "problem id"))
    if not problem:
        raise HTTPException(status_code=404, detail="Problem not found")
    return {"success": True, "data": serialize_mongo(problem)}
