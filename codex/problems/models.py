from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


class DifficultyLevel(str, Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class VisibleTestCase(BaseModel):
    input: str
    output: str
    explanation: Optional[str] = None


class HiddenTestCase(BaseModel):
    input: str
    output: str


class ProblemCreate(BaseModel):
    title: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    difficulty: DifficultyLevel
    tags: List[str] = []
    visibleTestCases: List[VisibleTestCase] = []
    hiddenTestCases: List[HiddenTestCase] = Field(..., min_length=1)
