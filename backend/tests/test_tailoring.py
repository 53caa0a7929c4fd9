import pytest

from backend.app.core import tailoring
from backend.app.core.errors import TailoringFailed
from backend.app.core.tailoring import SYSTEM_PROMPT, TailoringEngine, build_user_prompt


def _completion(content):
    return {"choices": [{"message": {"role": "assistant", "content": content}}]}


def test_user_prompt_embeds_job_context():
    prompt = build_user_prompt(
        "Jane Doe resume",
        job_title="Data Engineer",
        company_name="Acme",
        job_description="Build pipelines with Airflow.",
    )
    assert prompt.startswith("Tailor this resume for the Data Engineer position at Acme.")
    assert "Original Resume:\nJane Doe resume" in prompt
    assert "Job Description:\nBuild pipelines with Airflow." in prompt


def test_user_prompt_without_context():
    prompt = build_user_prompt("Jane Doe resume")
    assert prompt.startswith("Tailor this resume.")
    assert "Job Description" not in prompt


def test_tailor_sends_one_completion(monkeypatch):
    calls = []

    def fake_completion(**kwargs):
        calls.append(kwargs)
        return _completion("  ## Career Profile\nJane Doe, data engineer.  ")

    monkeypatch.setattr(tailoring.litellm, "completion", fake_completion)

    text = TailoringEngine().tailor("Jane Doe resume", job_title="Data Engineer")

    assert text == "## Career Profile\nJane Doe, data engineer."
    assert len(calls) == 1
    messages = calls[0]["messages"]
    assert messages[0] == {"role": "system", "content": SYSTEM_PROMPT}
    assert messages[1]["role"] == "user"
    assert "Data Engineer" in messages[1]["content"]
    assert calls[0]["max_tokens"] == tailoring.settings.LLM_MAX_TOKENS


def test_endpoint_error_is_tailoring_failure(monkeypatch):
    def fake_completion(**kwargs):
        raise ConnectionError("rate limited")

    monkeypatch.setattr(tailoring.litellm, "completion", fake_completion)
    with pytest.raises(TailoringFailed, match="rate limited"):
        TailoringEngine().tailor("Jane Doe resume")


@pytest.mark.parametrize("response", [
    _completion(""),
    _completion(None),
    {"choices": []},
    {"unexpected": True},
])
def test_empty_or_malformed_completion_is_tailoring_failure(monkeypatch, response):
    monkeypatch.setattr(tailoring.litellm, "completion", lambda **kwargs: response)
    with pytest.raises(TailoringFailed):
        TailoringEngine().tailor("Jane Doe resume")
