"""
Thin async wrapper around google.generativeai.

One request per call with a request-level timeout; failures surface as
AIServiceError and are not retried.
"""

import logging
from typing import Optional

import google.generativeai as genai

from codex.config import AI_TIMEOUT_SECONDS, GEMINI_API_KEY, GEMINI_MODEL
from codex.errors import AIServiceError

logger = logging.getLogger(__name__)


def configure_gemini(api_key: str = GEMINI_API_KEY):
    if api_key:
        genai.configure(api_key=api_key)
    else:
        logger.warning("GEMINI_KEY is not set; AI endpoints will fail")


async def run_gemini(prompt: str, system_instruction: Optional[str] = None,
                     model_name: str = GEMINI_MODEL, timeout: float = AI_TIMEOUT_SECONDS) -> str:
    """Returns the stripped response text ("" when the model produced none)"""
    model = genai.GenerativeModel(model_name, system_instruction=system_instruction)
    try:
        response = await model.generate_content_async(prompt, request_options={"timeout": timeout})
    except Exception as e:
        logger.exception("Gemini request failed")
        raise AIServiceError(str(e)) from e

    try:
        text = response.text
    except ValueError:
        # blocked or empty candidates
        return ""
    return (text or "").strip()
