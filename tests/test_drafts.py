"""
Tests for thank-you drafting (template path and AI fallback).
"""
from datetime import date

import pytest

from conftest import make_application, make_interview
from jobtrail.drafts import ThankYouDrafter, fill_template, thank_you_variables


def test_fill_template_keeps_unknown_placeholders():
    assert fill_template("Hi {name}, re {role}", {"name": "Jo"}) == "Hi Jo, re {role}"


def test_variables_prefer_event_details_then_application():
    app = make_application(company="Globex", position_title="ML Engineer")
    event = make_interview(app.id, company="", contact_name="Dana")

    variables = thank_you_variables(event, app, your_name="Sam")

    assert variables["company"] == "Globex"
    assert variables["position"] == "ML Engineer"
    assert variables["interviewerName"] == "Dana"
    assert variables["date"] == "March 12, 2026"
    assert variables["yourName"] == "Sam"


def test_variables_fall_back_without_application():
    event = make_interview(company="", day=date(2026, 4, 1))

    variables = thank_you_variables(event, None)

    assert variables["company"] == "your company"
    assert variables["interviewerName"] == "Hiring Team"
    assert variables["appliedDate"] == ""


class TestThankYouDrafter:

    @pytest.mark.asyncio
    async def test_without_key_returns_filled_template(self):
        drafter = ThankYouDrafter(api_key="", your_name="Sam")
        event = make_interview(job_title="Data Engineer", contact_name="Dana")

        draft = await drafter.draft(event, None, tone="friendly")

        assert not draft.used_ai
        assert draft.subject == "Thank You - Data Engineer Position at Acme"
        assert draft.body.startswith("Dear Dana,")
        assert draft.body.rstrip().endswith("Sam")
        await drafter.close()

    @pytest.mark.asyncio
    async def test_rewrite_failure_falls_back_to_template(self, monkeypatch):
        drafter = ThankYouDrafter(api_key="sk-test")

        async def broken(text, tone):
            raise RuntimeError("api down")

        monkeypatch.setattr(drafter, "rewrite", broken)
        draft = await drafter.draft(make_interview(), None)

        assert not draft.used_ai
        assert "[specific detail from the interview]" in draft.body
        await drafter.close()

    @pytest.mark.asyncio
    async def test_successful_rewrite_is_used(self, monkeypatch):
        drafter = ThankYouDrafter(api_key="sk-test")

        async def rewritten(text, tone):
            return f"[{tone}] {text}"

        monkeypatch.setattr(drafter, "rewrite", rewritten)
        draft = await drafter.draft(make_interview(), None, tone="concise")

        assert draft.used_ai
        assert draft.body.startswith("[concise] Dear")
        await drafter.close()
