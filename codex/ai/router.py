import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from codex.ai.gemini_core import run_gemini
from codex.ai.prompts import (
    COMPLEXITY_FALLBACK,
    COMPLEXITY_INSTRUCTION,
    INTERVIEW_FALLBACK,
    INTERVIEWER_INSTRUCTION,
    PROMPTS,
)
from codex.dependencies import get_current_user
from codex.errors import AIServiceError

logger = logging.getLogger(__name__)

interview_router = APIRouter(tags=["AI"])
analysis_router = APIRouter(tags=["AI"])


class InterviewRequest(BaseModel):
    prompt: Optional[str] = None
    interviewType: Optional[str] = None
    difficulty: Optional[str] = None


class ComplexityRequest(BaseModel):
    code: Optional[str] = None
    language: Optional[str] = None


@interview_router.post("/virtual")
async def virtual_interview(body: InterviewRequest, user: dict = Depends(get_current_user)):
    if not body.prompt:
        raise HTTPException(status_code=400, detail="No prompt provided.")

    prompt = PROMPTS["interview"].format(
        interview_type=body.interviewType,
        difficulty=body.difficulty,
        input=body.prompt,
    )
    try:
        text = await run_gemini(prompt, INTERVIEWER_INSTRUCTION)
    except AIServiceError:
        raise HTTPException(
            status_code=500,
            detail="Something went wrong while generating interview response.",
        )

    return {"success": True, "data": {"analysis": text or INTERVIEW_FALLBACK}}


@analysis_router.post("/ai")
async def analyze_complexity(body: ComplexityRequest, user: dict = Depends(get_current_user)):
    if not body.code or not body.language:
        raise HTTPException(status_code=400, detail="Missing required parameters: code or language")

    prompt = PROMPTS["complexity"].format(language=body.language, input=body.code)
    try:
        text = await run_gemini(prompt, COMPLEXITY_INSTRUCTION)
    except AIServiceError as e:
        raise HTTPException(
            status_code=500,
            detail={
                "analysis": COMPLEXITY_FALLBACK,
                "error": "Error analyzing complexity",
                "details": str(e),
            },
        )

    return {"success": True, "data": {"analysis": text or COMPLEXITY_FALLBACK}}
