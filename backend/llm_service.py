"""
Claude API key must be defined in a .env file in the backend root:

ANTHROPIC_API_KEY=your_real_key_here

The app loads environment variables automatically using python-dotenv.
Without a key the LLM strategy is disabled and recommendations fall back
to the deterministic and template generators.
"""

from dotenv import load_dotenv
import logging
import os
from pathlib import Path
import random
import time
from typing import Any, Callable, Protocol

load_dotenv(dotenv_path=Path(__file__).resolve().parent / ".env")

from anthropic import Anthropic

from evidence import Evidence
from issue_detector import identify_missing_schemas
from models import Issue, Recommendation, SiteFacts, Skip
from rec_templates import build_recommendation, escape_text, score_breakdown
from rubric import CATEGORY_NAMES, TierLimits, display_name
from section_parser import extract_action_steps, extract_section, parse_quick_wins, strip_code_fences

logger = logging.getLogger(__name__)

MODEL_CANDIDATES = [
    os.getenv("CLAUDE_MODEL", "").strip(),
    "claude-3-5-sonnet-latest",
    "claude-3-haiku-20240307",
]
MODEL_CANDIDATES = [m for m in MODEL_CANDIDATES if m]
TEMPERATURE = float(os.getenv("CLAUDE_TEMPERATURE", "0.3"))
MAX_TOKENS = int(os.getenv("CLAUDE_MAX_TOKENS", "1800"))
MAX_RETRIES = int(os.getenv("CLAUDE_MAX_RETRIES", "2"))
RETRY_BASE_SECONDS = float(os.getenv("CLAUDE_RETRY_BASE_SECONDS", "0.8"))
LLM_CALL_DELAY_SECONDS = float(os.getenv("LLM_CALL_DELAY_SECONDS", "1.0"))

MAX_FACTS = 8
MAX_FACT_CHARS = 150
MAX_STATE_ITEMS = 10

SYSTEM_MESSAGE = """You are a senior answer-engine optimization consultant.
You write one recommendation at a time for a single web page.
Every statement must be grounded in the page facts you are given.
Never invent URLs, names, logos, phone numbers or addresses.
Return ONLY the labeled sections requested, in order, with no preamble."""

USER_TEMPLATE = """Page URL: {url}
Industry: {industry}

Issue:
Category: {category}
Subfactor: {subfactor}
Current Score: {current_score}/100
Target Score: {threshold}/100
Gap: {gap} points
Projected Gain: {gain_min}-{gain_max} points

Site Facts:
{facts}

Current State:
{current_state}
{schema_context}
Tasks:
1. Explain what the page does today and why it holds back AI visibility.
2. Give concrete steps a site owner can follow on this exact page.
3. Steps must be a flat numbered list (1. 2. 3.) with no sub-bullets.
4. {code_instruction}

Return exactly these sections:

[TITLE]
<one line, at most 12 words>

[FINDING]
<what the page does today, citing the facts above>

[IMPACT]
<why fixing it matters for AI assistants and search>

[APPLY INSTRUCTIONS]
1. <step>
2. <step>

[CODE]
<code or leave empty>

[QUICK WINS]
- <small change that takes under 15 minutes>

[END]"""


class LLMTransport(Protocol):
    def complete(self, system: str, prompt: str) -> str: ...


def _extract_response_text(response: object) -> str:
    content = ""
    for block in getattr(response, "content", []) or []:
        text = getattr(block, "text", None)
        if text:
            content += text
    return content.strip()


def _is_retryable_error(exc: Exception) -> bool:
    msg = str(exc).lower()
    retry_tokens = (
        "overloaded",
        "529",
        "rate limit",
        "rate_limit",
        "429",
        "500",
        "502",
        "503",
        "504",
        "timeout",
        "connection",
    )
    return any(token in msg for token in retry_tokens)


class ClaudeTransport:
    """Anthropic Messages client with retries and model fallback."""

    def __init__(
        self,
        client: Anthropic,
        models: list[str] | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.client = client
        self.models = models or MODEL_CANDIDATES
        self.sleep = sleep

    def _backoff(self, attempt: int) -> float:
        return RETRY_BASE_SECONDS * (2 ** attempt) + random.uniform(0, 0.35)

    def complete(self, system: str, prompt: str) -> str:
        last_error: Exception | None = None

        for model in self.models:
            for attempt in range(MAX_RETRIES):
                try:
                    response = self.client.messages.create(
                        model=model,
                        max_tokens=MAX_TOKENS,
                        system=system,
                        messages=[{"role": "user", "content": prompt}],
                        temperature=TEMPERATURE,
                    )
                    content = _extract_response_text(response)
                    if getattr(response, "stop_reason", None) == "max_tokens":
                        logger.warning("CLAUDE WARNING: output hit max_tokens for model=%s.", model)
                    if content:
                        return content

                    last_error = RuntimeError("Empty Claude response content.")
                    if attempt < MAX_RETRIES - 1:
                        delay = self._backoff(attempt)
                        logger.info("CLAUDE RETRY: model=%s empty-content wait=%.2fs", model, delay)
                        self.sleep(delay)
                        continue
                except Exception as e:
                    last_error = e
                    if _is_retryable_error(e) and attempt < MAX_RETRIES - 1:
                        delay = self._backoff(attempt)
                        logger.info("CLAUDE RETRY: model=%s attempt=%d wait=%.2fs", model, attempt + 1, delay)
                        self.sleep(delay)
                        continue
                break

        if last_error is not None:
            raise last_error
        return ""


def get_default_transport() -> ClaudeTransport | None:
    api_key = os.getenv("ANTHROPIC_API_KEY")
    if not api_key:
        logger.info("CLAUDE DISABLED: ANTHROPIC_API_KEY not found in environment.")
        return None
    return ClaudeTransport(Anthropic(api_key=api_key))


def _truncate(value: Any, limit: int = MAX_FACT_CHARS) -> str:
    text = " ".join(str(value).split())
    return text if len(text) <= limit else text[: limit - 3] + "..."


def format_facts(facts: SiteFacts) -> str:
    entries = [
        ("Brand", facts.brand),
        ("Description", facts.description),
        ("Logo", facts.logo),
        ("Social Profiles", ", ".join(facts.social_links)),
        ("Email", facts.email),
        ("Phone", facts.phone),
        ("Language", facts.language),
        ("Page Title", facts.page_title),
    ]
    lines = [f"- {label}: {_truncate(value)}" for label, value in entries if value][:MAX_FACTS]
    return "\n".join(lines) if lines else "- None detected"


def format_current_state(issue: Issue) -> str:
    lines = []
    for key, value in list(issue.evidence_slice.items())[:MAX_STATE_ITEMS]:
        if isinstance(value, (list, tuple)):
            value = ", ".join(str(v) for v in value) if value else "none"
        elif isinstance(value, dict):
            value = ", ".join(f"{k}={v}" for k, v in value.items()) or "none"
        lines.append(f"- {display_name(key)}: {_truncate(value)}")
    return "\n".join(lines) if lines else "- No details captured"


def build_prompt(
    issue: Issue,
    evidence: Evidence,
    facts: SiteFacts,
    industry: str,
    limits: TierLimits,
) -> str:
    breakdown = score_breakdown(issue)

    schema_context = ""
    if issue.subfactor == "structuredDataScore" or issue.category == "technicalSetup":
        present = sorted(evidence.schema_types())
        schema_context = "\nSchemas Already Present (do NOT recommend these again):\n"
        schema_context += "\n".join(f"- {s}" for s in present) if present else "- None"
        schema_context += "\n"
        if limits.show_code_snippets:
            missing = identify_missing_schemas(evidence)
            if missing:
                schema_context += "\nMissing Schemas To Pre-fill With The Site Facts:\n"
                schema_context += "\n".join(f"- {s}" for s in missing) + "\n"

    if limits.show_code_snippets:
        code_instruction = "Put ready-to-paste code in [CODE], filled only with the site facts above."
    else:
        code_instruction = "Leave [CODE] empty."

    return USER_TEMPLATE.format(
        url=evidence.url or "Not provided",
        industry=industry or "General",
        category=CATEGORY_NAMES.get(issue.category, issue.category),
        subfactor=display_name(issue.subfactor),
        current_score=f"{issue.current_score:g}",
        threshold=issue.threshold,
        gap=f"{issue.gap:g}",
        gain_min=breakdown["min"],
        gain_max=breakdown["max"],
        facts=format_facts(facts),
        current_state=format_current_state(issue),
        schema_context=schema_context,
        code_instruction=code_instruction,
    )


def parse_llm_recommendation(text: str, issue: Issue) -> Recommendation | Skip:
    """Turn a labeled-section response into a Recommendation.

    A missing finding or a missing/nested step list makes the response
    unusable and yields Skip.
    """
    finding = extract_section(text, "FINDING")
    if not finding:
        return Skip("response has no [FINDING] section")
    steps = extract_action_steps(extract_section(text, "APPLY INSTRUCTIONS"))
    if steps is None:
        return Skip("response has no flat numbered action steps")

    title = extract_section(text, "TITLE")
    impact = extract_section(text, "IMPACT")
    code = strip_code_fences(extract_section(text, "CODE"))
    quick_wins = parse_quick_wins(extract_section(text, "QUICK WINS"))

    return build_recommendation(
        issue,
        "llm",
        title=escape_text(title.splitlines()[0]) if title else None,
        finding=escape_text(finding),
        impact=escape_text(impact) if impact else None,
        action_steps=[escape_text(s) for s in steps],
        code_snippet=code,
        quick_wins=[escape_text(q) for q in quick_wins],
    )


def generate_llm_recommendation(
    issue: Issue,
    evidence: Evidence,
    facts: SiteFacts,
    industry: str,
    limits: TierLimits,
    transport: LLMTransport,
) -> Recommendation | Skip:
    prompt = build_prompt(issue, evidence, facts, industry, limits)
    try:
        content = transport.complete(SYSTEM_MESSAGE, prompt)
    except Exception as e:
        logger.warning("CLAUDE ERROR: %s.%s: %s", issue.category, issue.subfactor, e)
        return Skip(f"llm call failed: {e}")

    if not content:
        return Skip("empty llm response")

    result = parse_llm_recommendation(content, issue)
    if isinstance(result, Skip):
        logger.warning("CLAUDE PARSE: %s.%s: %s", issue.category, issue.subfactor, result.reason)
    return result
