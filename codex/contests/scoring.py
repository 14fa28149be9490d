"""
Contest scoring rules.

Pure functions over plain documents so the router and the store can share
them: verdict classification of judge results, participant timing and
attempt bookkeeping, weighted scores and the final ranking.
"""

import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional

from bson import ObjectId

# ==================== VERDICTS ====================

SUCCESS_STATUS_ID = 3
# 6 = compilation error, 7..12 = runtime errors (SIGSEGV, SIGFPE, NZEC, ...)
ERROR_STATUS_IDS = {6, 7, 8, 9, 10, 11, 12}

STATUS_PENDING = "pending"
STATUS_ACCEPTED = "accepted"
STATUS_WRONG = "wrong"
STATUS_ERROR = "error"

DIFFICULTY_WEIGHTS = {"hard": 3, "medium": 2, "easy": 1}


@dataclass
class JudgeOutcome:
    status: str
    passed: int
    total: int
    runtime: float = 0.0
    memory: int = 0
    error_message: Optional[str] = None

    @property
    def accepted(self) -> bool:
        return self.status == STATUS_ACCEPTED


def _as_float(value) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def classify_results(results: List[dict]) -> JudgeOutcome:
    """
    Fold per-case judge results into one verdict.

    accepted only when every case succeeded; any compile/runtime error code
    makes the whole submission an error, otherwise a failure is "wrong".
    Runtime is summed and memory maxed over the successful cases only.
    """
    passed = 0
    runtime = 0.0
    memory = 0
    saw_error = False
    saw_failure = False
    failure_message = None
    error_message = None

    for case in results:
        status_id = case.get("status_id")
        if status_id == SUCCESS_STATUS_ID:
            passed += 1
            runtime += _as_float(case.get("time"))
            memory = max(memory, int(case.get("memory") or 0))
            continue

        saw_failure = True
        message = case.get("stderr") or case.get("compile_output")
        if status_id in ERROR_STATUS_IDS:
            saw_error = True
            if error_message is None:
                error_message = message
        if failure_message is None:
            failure_message = message

    if not results:
        status = STATUS_WRONG
    elif saw_error:
        status = STATUS_ERROR
    elif saw_failure:
        status = STATUS_WRONG
    else:
        status = STATUS_ACCEPTED

    return JudgeOutcome(
        status=status,
        passed=passed,
        total=len(results),
        runtime=round(runtime, 3),
        memory=memory,
        error_message=error_message if saw_error else failure_message,
    )


# ==================== PARTICIPANTS ====================

def find_participant(participants: List[dict], user_id: ObjectId) -> Optional[dict]:
    for participant in participants:
        if participant.get("user") == user_id:
            return participant
    return None


def join_participant(participants: List[dict], user_id: ObjectId, now: datetime) -> bool:
    """Record the start time once; returns True when something changed"""
    participant = find_participant(participants, user_id)
    if participant is None:
        participants.append({"user": user_id, "startTime": now, "attemptedProblems": []})
        return True
    if not participant.get("startTime"):
        participant["startTime"] = now
        return True
    return False


ENDED = "ended"
ALREADY_ENDED = "already_ended"
NOT_PARTICIPANT = "not_participant"


def end_participant(participants: List[dict], user_id: ObjectId, now: datetime,
                    fallback_start: Optional[datetime] = None) -> str:
    participant = find_participant(participants, user_id)
    if participant is None:
        return NOT_PARTICIPANT
    if participant.get("endTime"):
        return ALREADY_ENDED

    # A participant created by a submission may never have called start
    start = participant.get("startTime") or fallback_start or now
    if not participant.get("startTime"):
        participant["startTime"] = start
    participant["endTime"] = now
    participant["timeTaken"] = max(0, math.floor((now - start).total_seconds()))
    return ENDED


def record_attempt(participants: List[dict], user_id: ObjectId, problem_id: ObjectId,
                   submission_id: ObjectId) -> None:
    """One attempt per problem; the latest submission replaces the previous one"""
    participant = find_participant(participants, user_id)
    if participant is None:
        participant = {"user": user_id, "attemptedProblems": []}
        participants.append(participant)

    attempts = participant.setdefault("attemptedProblems", [])
    for attempt in attempts:
        if attempt.get("problem") == problem_id:
            attempt["submission"] = submission_id
            return
    attempts.append({"problem": problem_id, "submission": submission_id})


# ==================== SCORING & RANKING ====================

def difficulty_weight(difficulty: Optional[str]) -> int:
    return DIFFICULTY_WEIGHTS.get((difficulty or "").lower(), 1)


@dataclass
class ParticipantScore:
    solved: int = 0
    total_score: int = 0
    attempts: int = 0
    solved_problems: List[ObjectId] = field(default_factory=list)


def score_participant(attempts: List[dict], problems_by_id: Dict[ObjectId, dict],
                      status_by_submission: Dict[ObjectId, str]) -> ParticipantScore:
    score = ParticipantScore(attempts=len(attempts))
    for attempt in attempts:
        if status_by_submission.get(attempt.get("submission")) != STATUS_ACCEPTED:
            continue
        problem = problems_by_id.get(attempt.get("problem")) or {}
        score.solved += 1
        score.total_score += difficulty_weight(problem.get("difficulty"))
        score.solved_problems.append(attempt.get("problem"))
    return score


def rank_results(rows: List[dict]) -> List[dict]:
    """Sort by score (descending), then by time (ascending) and add 1-based ranks"""
    ordered = sorted(rows, key=lambda r: (-r["totalScore"], r["totalTime"]))
    return [{**row, "rank": idx + 1} for idx, row in enumerate(ordered)]
