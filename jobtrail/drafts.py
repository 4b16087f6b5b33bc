"""Thank-you note drafting.

Fills the default thank-you template from an interview event and its
application, then optionally asks Claude to rewrite it in the configured
tone. Without an API key, or if the API fails, the filled template is
returned unchanged.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass

from anthropic import AsyncAnthropic

from jobtrail.models import Event, JobApplication
from jobtrail.utils import retry_async

logger = logging.getLogger("jobtrail")

TONE_DESCRIPTIONS = {
    "professional": "Polite, respectful, and business-appropriate",
    "friendly": "Warm and approachable while maintaining professionalism",
    "casual": "Relaxed and conversational tone",
    "formal": "Very formal and traditional business communication",
    "enthusiastic": "Energetic and excited, showing high interest",
    "concise": "Brief and to the point, no unnecessary words",
}

THANK_YOU_SUBJECT = "Thank You - {position} Position at {company}"

THANK_YOU_BODY = """\
Dear {interviewerName},

Thank you for taking the time to meet with me on {date} to discuss the {position} role at {company}. \
I truly enjoyed our conversation and learning more about the position and your team.

I was particularly interested to hear about [specific detail from the interview]. \
Your insights have only strengthened my interest in this opportunity.

Please feel free to reach out if you need any additional information. I look forward to hearing from you.

Best regards,
{yourName}"""

SYSTEM_PROMPT = """You are a professional email writing assistant. Rewrite the following email \
text to match the specified tone exactly. Only change the wording to match the tone - do not \
change the meaning, structure, or key information. Keep any text in [square brackets] as-is, \
since the sender fills those in. Return only the rewritten text without any explanation or \
additional text."""


@dataclass
class Draft:
    subject: str
    body: str
    used_ai: bool = False


def fill_template(template: str, variables: dict[str, str]) -> str:
    """Replace ``{name}`` placeholders; unknown placeholders are left alone."""
    def _sub(match: re.Match) -> str:
        key = match.group(1)
        return variables[key] if key in variables else match.group(0)

    return re.sub(r"\{(\w+)\}", _sub, template)


def thank_you_variables(
    event: Event,
    application: JobApplication | None,
    your_name: str = "",
) -> dict[str, str]:
    company = event.company or (application.company if application else "")
    position = event.job_title or (application.position_title if application else "")
    return {
        "company": company or "your company",
        "position": position or "open",
        "interviewerName": event.contact_name or "Hiring Team",
        "date": event.date_key.strftime("%B %d, %Y"),
        "yourName": your_name,
        "appliedDate": application.applied_date.strftime("%B %d, %Y") if application else "",
    }


class ThankYouDrafter:
    """Builds thank-you drafts, using Claude for tone when a key is configured."""

    def __init__(self, api_key: str = "", model: str = "claude-sonnet-4-20250514", your_name: str = ""):
        self._client = AsyncAnthropic(api_key=api_key) if api_key else None
        self._model = model
        self._your_name = your_name

    def template_draft(self, event: Event, application: JobApplication | None) -> Draft:
        variables = thank_you_variables(event, application, self._your_name)
        return Draft(
            subject=fill_template(THANK_YOU_SUBJECT, variables),
            body=fill_template(THANK_YOU_BODY, variables),
        )

    async def draft(
        self,
        event: Event,
        application: JobApplication | None,
        tone: str = "professional",
    ) -> Draft:
        """Return a thank-you draft, rewritten in ``tone`` when possible."""
        draft = self.template_draft(event, application)
        if self._client is None:
            return draft
        try:
            draft.body = await self.rewrite(draft.body, tone)
            draft.used_ai = True
        except Exception as e:
            logger.warning("AI tone rewrite failed: %s. Using template.", e)
        return draft

    @retry_async(max_retries=3, backoff_base=2.0)
    async def rewrite(self, text: str, tone: str) -> str:
        if self._client is None:
            raise RuntimeError("No Anthropic API key configured")
        description = TONE_DESCRIPTIONS.get(tone, tone)
        response = await self._client.messages.create(
            model=self._model,
            max_tokens=1000,
            system=SYSTEM_PROMPT,
            messages=[{
                "role": "user",
                "content": f"Tone: {description}\n\nEmail text:\n{text}\n\nRewritten email:",
            }],
        )
        rewritten = response.content[0].text.strip()
        if not rewritten:
            raise RuntimeError("Claude returned an empty rewrite")
        logger.info("Rewrote thank-you note in %s tone (%d chars)", tone, len(rewritten))
        return rewritten

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        if self._client is not None:
            await self._client.close()
