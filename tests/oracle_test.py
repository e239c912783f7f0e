from datetime import date
from types import SimpleNamespace

import pytest
from openai import OpenAIError

import oracle
from astrology import BirthInput, profile_from_birth, qa_fallback


PROFILE = profile_from_birth(BirthInput("Asha", "1990-04-02", "08:15", "Pune", "+05:30"))


class FakeCompletions:
    def __init__(self, content="- Be bold\n- Rest well", error=None):
        self.content = content
        self.error = error
        self.calls = []

    def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.error:
            raise self.error
        message = SimpleNamespace(content=self.content)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def install_fake_client(monkeypatch, completions):
    created = []

    class FakeOpenAI:
        def __init__(self, api_key=None, timeout=None):
            created.append(api_key)
            self.chat = SimpleNamespace(completions=completions)

    monkeypatch.setattr(oracle, "OpenAI", FakeOpenAI)
    return created


@pytest.fixture(autouse=True)
def no_env_key(monkeypatch):
    monkeypatch.setattr(oracle, "DEFAULT_API_KEY", "")


def test_system_prompt_lists_profile():
    prompt = oracle.build_system_prompt(PROFILE)
    assert "Sun Sign: Aries" in prompt
    assert f"Life Path: {PROFILE.life_path}" in prompt
    assert f"Lucky Color: {PROFILE.lucky_color}" in prompt
    assert "3-5 bullet point" in prompt


def test_user_prompt_has_question_and_date():
    assert oracle.build_user_prompt("Career?", date(2024, 6, 1)) == "Question: Career?\nDate today: 2024-06-01"


def test_rule_based_mode_uses_fallback():
    answer = oracle.answer_question("How is my career?", PROFILE, "Rule-based")
    assert answer == qa_fallback("How is my career?", PROFILE)


def test_openai_mode_without_key_raises():
    with pytest.raises(oracle.MissingApiKeyError) as exc:
        oracle.answer_question("Career?", PROFILE, "OpenAI", api_key="  ")
    assert "switch to Rule-based" in str(exc.value)


def test_openai_mode_calls_chat_completions(monkeypatch):
    completions = FakeCompletions(content="  - Pitch one idea  ")
    keys = install_fake_client(monkeypatch, completions)

    answer = oracle.answer_question("Career?", PROFILE, "OpenAI", api_key="sk-test")

    assert answer == "- Pitch one idea"
    assert keys == ["sk-test"]
    call = completions.calls[0]
    assert call["model"] == oracle.OPENAI_MODEL
    assert call["temperature"] == 0.7
    assert call["max_tokens"] == 400
    assert [m["role"] for m in call["messages"]] == ["system", "user"]
    assert call["messages"][1]["content"].startswith("Question: Career?")


def test_env_key_used_when_user_has_none(monkeypatch):
    monkeypatch.setattr(oracle, "DEFAULT_API_KEY", "sk-env")
    keys = install_fake_client(monkeypatch, FakeCompletions())
    oracle.answer_question("Career?", PROFILE, "OpenAI")
    assert keys == ["sk-env"]


def test_empty_completion_gets_placeholder(monkeypatch):
    install_fake_client(monkeypatch, FakeCompletions(content=None))
    assert oracle.ask_llm("Career?", PROFILE, "sk-test") == oracle.EMPTY_ANSWER


def test_api_failure_raises_unavailable(monkeypatch):
    install_fake_client(monkeypatch, FakeCompletions(error=OpenAIError("quota exceeded")))
    with pytest.raises(oracle.OracleUnavailableError, match="quota exceeded"):
        oracle.answer_question("Career?", PROFILE, "OpenAI", api_key="sk-test")
