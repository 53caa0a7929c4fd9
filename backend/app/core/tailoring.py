
# backend/app/core/tailoring.py
import logging
from typing import Any, Dict, List, Optional

import litellm

from backend.app.config import settings
from backend.app.core.errors import TailoringFailed

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = """You are an expert resume tailoring assistant. Your task is to optimize resumes for ATS (Applicant Tracking Systems) compliance and job matching.

Create a professional, well-structured resume with these sections:
1. Career Profile (3-4 sentence professional summary)
2. Key Skills (bullet points)
3. Professional Experience (with achievements)
4. Education
5. Certifications (if any)

Focus on:
- ATS keyword optimization
- Clear, measurable achievements
- Professional formatting
- Industry-standard language"""


def build_user_prompt(
    resume_text: str,
    job_title: Optional[str] = None,
    company_name: Optional[str] = None,
    job_description: Optional[str] = None,
) -> str:
    target = ""
    if job_title:
        target += f" for the {job_title} position"
    if company_name:
        target += f" at {company_name}"
    prompt = f"Tailor this resume{target}.\n\nOriginal Resume:\n{resume_text}\n"
    if job_description and job_description.strip():
        prompt += f"\nJob Description:\n{job_description.strip()}\n"
    prompt += "\nProvide a complete, tailored resume with all sections properly formatted."
    return prompt


class TailoringEngine:
    """Single chat-completion call that rewrites a resume for a target job.

    No retries here; the job processor owns retry accounting.
    """

    def __init__(self):
        self.model_id = settings.full_model_id()

    def _messages(self, user_prompt: str) -> List[Dict[str, str]]:
        return [
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": user_prompt},
        ]

    def tailor(
        self,
        resume_text: str,
        job_title: Optional[str] = None,
        company_name: Optional[str] = None,
        job_description: Optional[str] = None,
    ) -> str:
        user_prompt = build_user_prompt(resume_text, job_title, company_name, job_description)
        logger.info("Tailoring resume model_id=%s chars=%d", self.model_id, len(resume_text))
        try:
            resp = litellm.completion(
                model=self.model_id,
                api_base=settings.LLM_BASE_URL,
                api_key=settings.LLM_API_KEY,
                timeout=settings.LLM_REQUEST_TIMEOUT,
                messages=self._messages(user_prompt),
                temperature=settings.LLM_TEMPERATURE,
                max_tokens=settings.LLM_MAX_TOKENS,
            )
        except Exception as e:
            logger.error("AI tailoring error: %s", e)
            raise TailoringFailed(f"AI API error: {e}", cause=e) from e

        text = _completion_text(resp)
        if not text.strip():
            raise TailoringFailed("AI API returned an empty completion")
        return text.strip()

    def warmup(self) -> str:
        """Pre-load the model via a tiny completion; returns the reply."""
        resp = litellm.completion(
            model=self.model_id,
            api_base=settings.LLM_BASE_URL,
            api_key=settings.LLM_API_KEY,
            timeout=settings.LLM_REQUEST_TIMEOUT,
            messages=[{"role": "user", "content": settings.WARMUP_PROMPT}],
            temperature=0.0,
            max_tokens=16,
        )
        return _completion_text(resp)


def _completion_text(resp: Any) -> str:
    try:
        content = resp["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError, AttributeError) as e:
        raise TailoringFailed(f"Malformed AI API response: {e}", cause=e) from e
    if content is not None and not isinstance(content, str):
        raise TailoringFailed(f"Malformed AI API response: content is {type(content).__name__}")
    return content or ""
