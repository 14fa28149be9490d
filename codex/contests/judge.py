"""
Judge0 batch client.

Hidden test cases go out as one batch; the returned tokens are polled until
every case has left the queue.
"""

import asyncio
import logging
from typing import Dict, List, Optional

import httpx

from codex.config import (
    JUDGE_API_HOST,
    JUDGE_API_KEY,
    JUDGE_API_URL,
    JUDGE_MAX_POLL_ATTEMPTS,
    JUDGE_POLL_INTERVAL_SECONDS,
    JUDGE_TIMEOUT_SECONDS,
)
from codex.errors import JudgeUnavailableError

logger = logging.getLogger(__name__)

LANGUAGE_IDS: Dict[str, int] = {
    "c": 50,
    "c++": 54,
    "java": 62,
    "javascript": 63,
    "python": 71,
}

LANGUAGE_ALIASES = {"cpp": "c++", "js": "javascript", "py": "python"}

# Judge0 status ids 1 and 2 mean the case has not finished yet
PENDING_STATUS_IDS = {1, 2}

RESULT_FIELDS = "token,status_id,time,memory,stderr,compile_output"


def normalize_language(language: str) -> str:
    lang = language.strip().lower()
    return LANGUAGE_ALIASES.get(lang, lang)


def language_id(language: str) -> int:
    lang = normalize_language(language)
    if lang not in LANGUAGE_IDS:
        raise ValueError(f"Unsupported language: {language}")
    return LANGUAGE_IDS[lang]


def _status_id(case: dict) -> Optional[int]:
    if case.get("status_id") is not None:
        return case["status_id"]
    status = case.get("status") or {}
    return status.get("id")


class JudgeClient:
    def __init__(
        self,
        base_url: str = JUDGE_API_URL,
        api_key: str = JUDGE_API_KEY,
        host: str = JUDGE_API_HOST,
        timeout: float = JUDGE_TIMEOUT_SECONDS,
        poll_interval: float = JUDGE_POLL_INTERVAL_SECONDS,
        max_polls: int = JUDGE_MAX_POLL_ATTEMPTS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        headers = {"Content-Type": "application/json"}
        if api_key:
            headers["x-rapidapi-key"] = api_key
            headers["x-rapidapi-host"] = host
        self._client = httpx.AsyncClient(
            base_url=base_url,
            headers=headers,
            timeout=timeout,
            transport=transport,
        )
        self.poll_interval = poll_interval
        self.max_polls = max_polls

    async def aclose(self):
        await self._client.aclose()

    async def submit_batch(self, submissions: List[dict]) -> List[str]:
        try:
            response = await self._client.post(
                "/submissions/batch",
                params={"base64_encoded": "false"},
                json={"submissions": submissions},
            )
            response.raise_for_status()
            tokens = [item["token"] for item in response.json()]
        except (httpx.HTTPError, KeyError, TypeError, ValueError) as e:
            logger.exception("Judge batch submission failed")
            raise JudgeUnavailableError("Judge system unavailable") from e

        if len(tokens) != len(submissions):
            raise JudgeUnavailableError("Invalid response from judge system")
        return tokens

    async def fetch_batch(self, tokens: List[str]) -> List[dict]:
        """Poll until no case is queued or processing"""
        for _ in range(self.max_polls):
            try:
                response = await self._client.get(
                    "/submissions/batch",
                    params={
                        "tokens": ",".join(tokens),
                        "base64_encoded": "false",
                        "fields": RESULT_FIELDS,
                    },
                )
                response.raise_for_status()
                results = response.json()["submissions"]
            except (httpx.HTTPError, KeyError, TypeError, ValueError) as e:
                logger.exception("Judge result fetch failed")
                raise JudgeUnavailableError("Judge system unavailable") from e

            if not isinstance(results, list) or len(results) != len(tokens):
                raise JudgeUnavailableError("Invalid response from judge system")

            if all(_status_id(case) not in PENDING_STATUS_IDS for case in results):
                return [{**case, "status_id": _status_id(case)} for case in results]

            await asyncio.sleep(self.poll_interval)

        raise JudgeUnavailableError("Judge system timed out")

    async def run(self, code: str, language: str, test_cases: List[dict]) -> List[dict]:
        lang_id = language_id(language)
        submissions = [
            {
                "source_code": code,
                "language_id": lang_id,
                "stdin": tc.get("input", ""),
                "expected_output": tc.get("output", ""),
            }
            for tc in test_cases
        ]
        tokens = await self.submit_batch(submissions)
        return await self.fetch_batch(tokens)
