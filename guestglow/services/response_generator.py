"""
Template Response Generator

Drafts a reply to a guest review without calling a model:
- Detects issue topics by keyword
- Picks the negative (<=2), neutral (3) or positive (>=4) template
- Fills in guest name, hotel name and the detected issues
"""
import re
from enum import Enum
from typing import List, Optional, Tuple

from guestglow.config import get_settings
from guestglow.utils.logger import get_logger

settings = get_settings()
logger = get_logger(__name__)

DEFAULT_GUEST_NAME = "Valued Guest"


class ResponseTone(str, Enum):
    """Template branch chosen by rating"""
    NEGATIVE = "negative"
    NEUTRAL = "neutral"
    POSITIVE = "positive"


# (label, patterns); a label matches when any pattern is found in the
# lower-cased text
ISSUE_KEYWORDS: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    ("WiFi connectivity", ("wifi", "wi-fi", "internet")),
    ("breakfast service", ("breakfast",)),
    ("room service timing", ("room service",)),
    ("room cleanliness", ("clean", "dirty")),
    ("air conditioning", ("air condition", "a/c", "aircon")),
    ("staff service", ("staff", "service")),
    ("water pressure", ("shower", "water pressure", "plumbing")),
    ("noise levels", ("noise", "loud")),
    ("check-in process", ("check-in", "check in", "checkin")),
    ("parking facilities", ("parking",)),
    ("pool facilities", ("pool",)),
    ("restaurant service", ("restaurant", "food")),
)

# "ac" is too short for a plain substring match ("place", "back")
_AC_PATTERN = re.compile(r"\bac\b")


def tone_for_rating(rating: int) -> ResponseTone:
    if rating <= 2:
        return ResponseTone.NEGATIVE
    if rating == 3:
        return ResponseTone.NEUTRAL
    return ResponseTone.POSITIVE


def detect_issues(review_text: str) -> List[str]:
    """Return issue labels mentioned in the review, in table order"""
    text = (review_text or "").lower()
    issues = []
    for label, patterns in ISSUE_KEYWORDS:
        if any(pattern in text for pattern in patterns):
            issues.append(label)
        elif label == "air conditioning" and _AC_PATTERN.search(text):
            issues.append(label)
    return issues


def issue_fragment(issues: List[str]) -> str:
    if issues:
        return f"the specific issues you raised regarding {', '.join(issues)}"
    return "the concerns you experienced during your stay"


def _negative_template(guest: str, hotel: str, issue_text: str) -> str:
    return f"""Dear {guest},

Thank you for taking the time to share your valuable feedback with us. We deeply appreciate your candid review as it helps us identify areas where we can enhance our service delivery.

I sincerely apologize for {issue_text}. This does not reflect the exceptional standards we strive to maintain, and we take full responsibility for not meeting your expectations. We have immediately addressed these concerns with our team and have implemented enhanced protocols to ensure better service delivery for all our guests.

Your feedback is instrumental in our continuous improvement efforts, and we would be honored to welcome you back to demonstrate the improvements we've made. Please feel free to contact our Guest Relations team directly for your next visit, and we will personally ensure your experience exceeds expectations.

Warm regards,
The {hotel} Guest Relations Team"""


def _neutral_template(guest: str, hotel: str, issue_text: str) -> str:
    return f"""Dear {guest},

Thank you for sharing your feedback about your recent stay with us. We genuinely appreciate you taking the time to provide your honest review.

We acknowledge {issue_text} and want you to know that we take all guest feedback seriously. We are actively working to enhance these areas and have shared your comments with our management team to ensure continuous improvement in our service standards.

We hope to have the opportunity to welcome you back soon so we can demonstrate the positive changes we've implemented based on valuable feedback like yours.

Warm regards,
The {hotel} Guest Relations Team"""


def _positive_template(guest: str, hotel: str, issues: List[str]) -> str:
    highlights = f"{', '.join(issues)} and overall" if issues else "overall"
    return f"""Dear {guest},

Thank you so much for your outstanding review! We are absolutely thrilled to hear about your wonderful experience at {hotel}. Your kind words about our {highlights} service truly warm our hearts and reaffirm our commitment to providing exceptional hospitality.

Our team takes immense pride in creating memorable experiences, and knowing that we succeeded in making your stay special means the world to us.

We look forward to welcoming you back for another exceptional stay at {hotel}. Your recommendation means everything to us, and we can't wait to create more wonderful memories together!

Warm regards,
The {hotel} Guest Relations Team"""


def generate_template_response(
    review_text: str,
    rating: int,
    guest_name: Optional[str] = None,
    hotel_name: Optional[str] = None
) -> Tuple[str, ResponseTone]:
    """
    Build a complete reply from the template matching the rating.

    Args:
        review_text: Review or feedback text
        rating: Star rating (1-5)
        guest_name: Guest display name (defaults to "Valued Guest")
        hotel_name: Hotel display name (defaults to the configured hotel)

    Returns:
        (response text, tone of the template used)
    """
    guest = guest_name or DEFAULT_GUEST_NAME
    hotel = hotel_name or settings.default_hotel_name
    issues = detect_issues(review_text)
    tone = tone_for_rating(rating)

    if tone == ResponseTone.NEGATIVE:
        text = _negative_template(guest, hotel, issue_fragment(issues))
    elif tone == ResponseTone.NEUTRAL:
        text = _neutral_template(guest, hotel, issue_fragment(issues))
    else:
        text = _positive_template(guest, hotel, issues)

    logger.debug("Generated %s template response (issues=%s)", tone.value, issues)
    return text, tone
