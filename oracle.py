"""
oracle.py

Question answering on top of an AstroProfile.

Two modes, picked by the caller (stored in the user's session):
- "Rule-based": offline keyword routing (astrology.qa_fallback)
- "OpenAI": one chat completion with the profile in the system prompt

Note:
- The API key normally comes from the user's settings; OPENAI_API_KEY in
  the environment is only used when the user hasn't supplied one.
- Errors from the API are not hidden behind the rule-based answer: the
  caller shows them so the user can fix the key or switch modes.
"""

import os
import traceback
from datetime import date, datetime
from typing import Dict, List, Optional

from openai import OpenAI, OpenAIError

from astrology import AstroProfile, qa_fallback

# Local configuration (override via environment)
OPENAI_MODEL = os.environ.get("OPENAI_MODEL", "gpt-4o-mini")
OPENAI_TIMEOUT = float(os.environ.get("OPENAI_TIMEOUT", "30"))
DEFAULT_API_KEY = os.environ.get("OPENAI_API_KEY", "")
TEMPERATURE = 0.7
MAX_TOKENS = 400
DEBUG_MODE = os.environ.get("ASTRO_DEBUG", "false").lower() in ("1", "true", "yes")

MODE_RULE_BASED = "Rule-based"
MODE_OPENAI = "OpenAI"
MODES = (MODE_RULE_BASED, MODE_OPENAI)
DEFAULT_MODE = MODE_RULE_BASED

EMPTY_ANSWER = "Sorry, I couldn't generate a response."


class OracleError(Exception):
    """Base class for question-answering failures the user should see."""


class MissingApiKeyError(OracleError):
    def __init__(self):
        super().__init__("Add your OpenAI API key in Settings or switch to Rule-based.")


class OracleUnavailableError(OracleError):
    """The chat completion request failed."""


# ================================
# Utility / Logging
# ================================

def debug_log(*args, **kwargs):
    """Conditional debug printing; set ASTRO_DEBUG=1 for verbosity."""
    if DEBUG_MODE:
        print(f"[oracle DEBUG {datetime.now().isoformat()}]", *args, **kwargs)


# ================================
# Prompts
# ================================

def build_system_prompt(profile: AstroProfile) -> str:
    return (
        'You are "AI Astrologer": blend Vedic-style wisdom with gentle, actionable, uplifting guidance.\n'
        "Use ONLY the provided profile. DO NOT invent precise astronomical claims.\n"
        "Profile:\n"
        f"Name: {profile.name}\n"
        f"Sun Sign: {profile.sun_sign}\n"
        f"Element: {profile.element}\n"
        f"Modality: {profile.modality}\n"
        f"Life Path: {profile.life_path}\n"
        f"Chinese Zodiac: {profile.chinese_animal}\n"
        f"Lucky Color: {profile.lucky_color}\n"
        f"Lucky Number: {profile.lucky_number}\n"
        "\n"
        "Tone: empathetic, practical, non-deterministic. Avoid medical/legal/financial absolutes. "
        "Provide 3-5 bullet point suggestions."
    )


def build_user_prompt(question: str, today: Optional[date] = None) -> str:
    today = today or date.today()
    return f"Question: {question}\nDate today: {today.isoformat()}"


def build_messages(question: str, profile: AstroProfile, today: Optional[date] = None) -> List[Dict[str, str]]:
    return [
        {"role": "system", "content": build_system_prompt(profile)},
        {"role": "user", "content": build_user_prompt(question, today)},
    ]


# ================================
# LLM call
# ================================

def ask_llm(question: str, profile: AstroProfile, api_key: str,
            model: str = OPENAI_MODEL, today: Optional[date] = None) -> str:
    """
    One chat completion for `question`.
    Raises OracleUnavailableError if the request fails.
    """
    client = OpenAI(api_key=api_key, timeout=OPENAI_TIMEOUT)
    messages = build_messages(question, profile, today)
    debug_log(f"ask_llm: model={model}, system prompt chars={len(messages[0]['content'])}")
    try:
        resp = client.chat.completions.create(
            model=model,
            messages=messages,
            temperature=TEMPERATURE,
            max_tokens=MAX_TOKENS,
        )
    except OpenAIError as e:
        debug_log("ask_llm: failure:", traceback.format_exc())
        raise OracleUnavailableError(str(e)) from e

    content = resp.choices[0].message.content if resp.choices else None
    text = (content or "").strip()
    return text or EMPTY_ANSWER


# ================================
# Public main entry
# ================================

def resolve_api_key(api_key: Optional[str]) -> str:
    return (api_key or "").strip() or DEFAULT_API_KEY


def answer_question(question: str, profile: AstroProfile, mode: str = DEFAULT_MODE,
                    api_key: Optional[str] = None) -> str:
    """
    Primary function called by the application.
    Rule-based mode never fails. OpenAI mode raises MissingApiKeyError or
    OracleUnavailableError.
    """
    if mode != MODE_OPENAI:
        debug_log("answer_question: rule-based")
        return qa_fallback(question, profile)

    key = resolve_api_key(api_key)
    if not key:
        raise MissingApiKeyError()
    return ask_llm(question, profile, key)


__all__ = [
    "MODES",
    "DEFAULT_MODE",
    "OracleError",
    "MissingApiKeyError",
    "OracleUnavailableError",
    "build_system_prompt",
    "build_user_prompt",
    "ask_llm",
    "answer_question",
]
