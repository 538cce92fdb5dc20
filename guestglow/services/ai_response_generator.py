"""
AI Response Generator

Forwards a review to the OpenAI chat completions API and returns the model's
text verbatim. Without an API key, or when the call fails, the template
generator is used instead.
"""
from typing import Optional, Tuple

from openai import AsyncOpenAI

from guestglow.config import get_settings
from guestglow.services.response_generator import generate_template_response
from guestglow.utils.logger import get_logger

settings = get_settings()
logger = get_logger(__name__)


class AIResponseGenerator:
    """
    Model-backed alternative to the template generator
    """

    def __init__(self, client: Optional[AsyncOpenAI] = None):
        self.model = settings.openai_model
        if client is not None:
            self.client = client
        elif settings.openai_api_key:
            self.client = AsyncOpenAI(api_key=settings.openai_api_key)
        else:
            self.client = None
            logger.warning("OPENAI_API_KEY not configured, AI responses fall back to templates")

    def _create_prompt(
        self,
        review_text: str,
        rating: int,
        guest_name: str,
        hotel_name: str,
        is_external: bool,
        platform: Optional[str]
    ) -> str:
        if is_external:
            follow_up = (
                "Acknowledge concerns and show commitment to improvement"
                if rating <= 3 else "Express gratitude and invite them back"
            )
            return f"""Generate a professional response to this {platform or 'online'} review:

Guest: {guest_name}
Rating: {rating}/5 stars
Review: "{review_text}"
Hotel: {hotel_name}

Requirements:
- Professional and friendly tone
- Address specific points mentioned in the review
- Thank the guest for their feedback
- {follow_up}
- Keep under 200 words, 3 short paragraphs max
- Sign as "{hotel_name} Management Team\""""

        return f"""Generate a concise, personalized thank-you email for a hotel guest.

Guest: {guest_name}
Rating: {rating}/5 stars
Feedback: "{review_text}"
Hotel: {hotel_name}

Strict format and style:
- 130-170 words, exactly 4 short paragraphs
- First line must be: "Dear {guest_name},"
- Reference the {rating}-star rating
- End with "Warm regards," then "{hotel_name} Team"
- Do not mention AI or automation

Output: plain text only."""

    async def generate(
        self,
        review_text: str,
        rating: int,
        guest_name: Optional[str] = None,
        hotel_name: Optional[str] = None,
        is_external: bool = True,
        platform: Optional[str] = None
    ) -> Tuple[str, str]:
        """
        Generate a reply with the model.

        Returns:
            (response text, source) where source is "ai" or "template"
        """
        guest = guest_name or "Valued Guest"
        hotel = hotel_name or settings.default_hotel_name

        if self.client is None:
            text, _ = generate_template_response(review_text, rating, guest, hotel)
            return text, "template"

        prompt = self._create_prompt(review_text, rating, guest, hotel, is_external, platform)
        kind = "public review responses" if is_external else "personalized guest thank-you emails"

        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {
                        "role": "system",
                        "content": (
                            "You are a professional hotel guest relations specialist. "
                            f"Generate {kind} that are warm, genuine and concise."
                        )
                    },
                    {
                        "role": "user",
                        "content": prompt
                    }
                ],
                max_tokens=250 if is_external else 320,
                temperature=0.7
            )
            content = response.choices[0].message.content
            if content and content.strip():
                return content.strip(), "ai"

            logger.warning("OpenAI returned an empty completion, using template")

        except Exception as e:
            logger.error(f"OpenAI response generation failed: {e}")

        text, _ = generate_template_response(review_text, rating, guest, hotel)
        return text, "template"
