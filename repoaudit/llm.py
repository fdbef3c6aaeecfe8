"""
LLM judgments for Repoaudit using LiteLLM.

Provides optional qualitative scoring:
- Per-criterion judgments from a code sample or the README
- Score extraction from free text ("8/10", "Score: 7", sentiment words)
- Hackathon feasibility check (can this team build this in time?)

Every call is time-boxed. A failure or timeout never propagates: the
criterion falls back to a default score with an explanation.

LiteLLM supports 100+ providers:
- Together AI (together_ai/deepseek-ai/DeepSeek-V3)
- OpenAI (gpt-4o), Anthropic (claude-3-5-sonnet), Google (gemini-pro)
- Ollama and other local servers

See: https://docs.litellm.ai/docs/providers
"""

from __future__ import annotations

import logging
import math
import os
import re
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import dataclass
from typing import Any, Callable

from .config import LLMConfig, ProjectTemplate
from .crawler import RepositoryInventory

logger = logging.getLogger(__name__)

# Suppress LiteLLM's verbose logging
logging.getLogger("LiteLLM").setLevel(logging.WARNING)

DEFAULT_SCORE = 5
MISSING_README_SCORE = 0
MAX_SAMPLE_CHARS = 12000

_SCORE_PATTERN = re.compile(r"(\d+(?:\.\d+)?)/10|score[:\s]*(\d+(?:\.\d+)?)", re.IGNORECASE)
_SPACED_PATTERN = re.compile(r"(\d+(?:\.\d+)?)\s*/\s*10")

# Longer phrases first so "very good" is not read as "good"
SENTIMENT_SCORES: tuple[tuple[str, int], ...] = (
    ("excellent", 9),
    ("outstanding", 9),
    ("very good", 8),
    ("above average", 6),
    ("below average", 4),
    ("very bad", 2),
    ("inadequate", 3),
    ("unacceptable", 1),
    ("great", 8),
    ("good", 7),
    ("solid", 7),
    ("decent", 6),
    ("average", 5),
    ("adequate", 5),
    ("poor", 4),
    ("terrible", 2),
    ("awful", 1),
    ("bad", 3),
)

CODE_REVIEW_PROMPT = (
    "You are an expert code reviewer. Evaluate the following code based on its "
    "structure, readability, and best practices. Give a short feedback and a score from 1 to 10."
)
DOCUMENTATION_PROMPT = (
    "You are an expert in documentation evaluation. Assess the following README "
    "documentation for clarity, completeness, and usefulness. Give a short feedback "
    "and a score from 1 to 10."
)
FUNCTIONALITY_PROMPT = (
    "You are an expert software tester. Evaluate the following code for its "
    "functionality, completeness, and reliability. Give a short feedback and a score from 1 to 10."
)
INNOVATION_PROMPT = (
    "You are an expert in software innovation. Assess the following project for its "
    "originality and innovative features based on its documentation. Give a short "
    "feedback and a score from 1 to 10."
)
USER_EXPERIENCE_PROMPT = (
    "You are an expert in user experience. Evaluate the following project for its "
    "usability and user-friendliness based on its documentation. Give a short feedback "
    "and a score from 1 to 10."
)
FEASIBILITY_SYSTEM_PROMPT = "You are an expert hackathon judge."

# criterion -> (input kind, system prompt)
CRITERION_PROMPTS: dict[str, tuple[str, str]] = {
    "code_quality": ("code", CODE_REVIEW_PROMPT),
    "documentation": ("readme", DOCUMENTATION_PROMPT),
    "functionality": ("code", FUNCTIONALITY_PROMPT),
    "innovation": ("readme", INNOVATION_PROMPT),
    "user_experience": ("readme", USER_EXPERIENCE_PROMPT),
}


@dataclass(frozen=True)
class Judgment:
    """One criterion's LLM verdict."""
    criterion: str
    score: float
    feedback: str
    fallback: bool = False  # True when no model output was used

    @classmethod
    def default(cls, criterion: str, score: float, reason: str) -> "Judgment":
        return cls(criterion=criterion, score=score, feedback=reason, fallback=True)

    def to_dict(self) -> dict[str, Any]:
        return {"score": self.score, "feedback": self.feedback, "fallback": self.fallback}


class LLMTimeoutError(Exception):
    """An LLM call did not finish within its time box."""


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def extract_score(text: str | None) -> int:
    """
    Pull a 0-10 score out of free text.

    Explicit "N/10" or "Score: N" wins; then "N / 10"; then the sentiment
    keyword table; otherwise the default of 5.
    """
    if not text:
        return DEFAULT_SCORE
    content = text.lower()

    match = _SCORE_PATTERN.search(content)
    if match:
        value = float(match.group(1) or match.group(2))
        if 0 <= value <= 10:
            return _round_half_up(value)

    match = _SPACED_PATTERN.search(content)
    if match:
        value = float(match.group(1))
        if 0 <= value <= 10:
            return _round_half_up(value)

    for keyword, score in SENTIMENT_SCORES:
        if keyword in content:
            return score

    return DEFAULT_SCORE


def pick_code_sample(inventory: RepositoryInventory, template: ProjectTemplate) -> str | None:
    """First fetched file named by the template, in template order."""
    for expected in template.files:
        if "*" in expected:
            prefix = expected.replace("*", "")
            for path in inventory.files:
                if path.startswith(prefix) and path in inventory.file_contents:
                    return inventory.file_contents[path]
        else:
            content = inventory.content(expected)
            if content:
                return content
    return None


def build_feasibility_prompt(
    contributors: int,
    commits: int,
    start_date: str,
    deadline: str,
    days: int,
    project_type: str,
    features: list[str],
    total_lines: int,
    total_files: int,
) -> str:
    return (
        f"You are a hackathon judge. The following project was completed by {contributors} "
        f"contributors in {commits} commits, between {start_date} and {deadline} ({days} days). "
        "Here is a summary of the project:\n\n"
        f"Project type: {project_type}\n"
        f"Main features: {', '.join(features) if features else 'N/A'}\n"
        f"Codebase size: {total_lines} lines, {total_files} files.\n"
        f"Please answer: Is it realistic for a team of {contributors} to build this project "
        f"in {days} days? Answer YES or NO and explain why. If it looks suspiciously large "
        "or complex, say so."
    )


def call_with_timeout(func: Callable[[], Any], timeout: float) -> Any:
    """Run func, giving up after timeout seconds."""
    executor = ThreadPoolExecutor(max_workers=1)
    future = executor.submit(func)
    try:
        return future.result(timeout=timeout)
    except FutureTimeoutError:
        future.cancel()
        raise LLMTimeoutError(f"No response within {timeout:.0f}s")
    finally:
        executor.shutdown(wait=False, cancel_futures=True)


class LLMClient:
    """LiteLLM-based client for qualitative repository judgments."""

    def __init__(
        self,
        model: str = "together_ai/deepseek-ai/DeepSeek-V3",
        temperature: float = 0.3,
        max_tokens: int = 1000,
        timeout: float = 30.0,
    ):
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.timeout = timeout
        self._litellm = None

    def _get_litellm(self):
        """Lazy import LiteLLM."""
        if self._litellm is None:
            import litellm
            self._litellm = litellm
        return self._litellm

    @property
    def enabled(self) -> bool:
        """Check if LLM is available (has required API key)."""
        model_lower = self.model.lower()
        if model_lower.startswith("together_ai/"):
            return bool(os.environ.get("TOGETHER_API_KEY") or os.environ.get("TOGETHERAI_API_KEY"))
        if model_lower.startswith(("gpt-", "o1", "o3", "openai/")):
            return bool(os.environ.get("OPENAI_API_KEY"))
        if model_lower.startswith(("claude-", "anthropic/")):
            return bool(os.environ.get("ANTHROPIC_API_KEY"))
        if model_lower.startswith(("gemini-", "gemini/")):
            return bool(os.environ.get("GOOGLE_API_KEY") or os.environ.get("GEMINI_API_KEY"))
        return True

    def complete(self, system_prompt: str, user_prompt: str) -> str:
        """One time-boxed completion. Raises on failure or timeout."""
        litellm = self._get_litellm()

        def call() -> Any:
            return litellm.completion(
                model=self.model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
                temperature=self.temperature,
                max_tokens=self.max_tokens,
                timeout=self.timeout,
            )

        response = call_with_timeout(call, self.timeout)
        return response.choices[0].message.content or ""

    def judge_criterion(
        self,
        criterion: str,
        code_sample: str | None,
        readme: str | None,
    ) -> Judgment:
        """Ask for a 1-10 judgment on one criterion."""
        source, system_prompt = CRITERION_PROMPTS[criterion]
        label = criterion.replace("_", " ")

        if source == "code":
            if not code_sample:
                return Judgment.default(criterion, DEFAULT_SCORE, "No code sample available.")
            user_prompt = f"Here is a code sample: {code_sample[:MAX_SAMPLE_CHARS]}"
        else:
            if not readme:
                return Judgment.default(criterion, MISSING_README_SCORE, "No README available.")
            user_prompt = f"Here is the README documentation: {readme[:MAX_SAMPLE_CHARS]}"

        try:
            evaluation = self.complete(system_prompt, user_prompt)
        except Exception as e:
            logger.warning(f"LLM {label} evaluation failed: {e}")
            return Judgment.default(
                criterion, DEFAULT_SCORE, f"Error or timeout during {label} evaluation."
            )

        return Judgment(criterion=criterion, score=extract_score(evaluation), feedback=evaluation)

    def judge_all(self, code_sample: str | None, readme: str | None) -> dict[str, Judgment]:
        if not self.enabled:
            return {}
        return {
            criterion: self.judge_criterion(criterion, code_sample, readme)
            for criterion in CRITERION_PROMPTS
        }

    def assess_feasibility(self, prompt: str) -> str | None:
        """Free-text feasibility verdict, or None if the call failed."""
        if not self.enabled:
            return None
        try:
            return self.complete(FEASIBILITY_SYSTEM_PROMPT, prompt)
        except Exception as e:
            logger.warning(f"LLM feasibility check failed: {e}")
            return None


class NoOpLLM:
    """No-op LLM for when LLM is disabled."""

    @property
    def enabled(self) -> bool:
        return False

    def judge_all(self, code_sample: str | None, readme: str | None) -> dict[str, Judgment]:
        return {}

    def assess_feasibility(self, prompt: str) -> str | None:
        return None


def get_llm_client(config: LLMConfig | None = None) -> LLMClient | NoOpLLM:
    """Get the configured LLM client."""
    if config is None or not config.enabled:
        return NoOpLLM()

    return LLMClient(
        model=config.model,
        temperature=config.temperature,
        max_tokens=config.max_tokens,
        timeout=config.timeout,
    )
