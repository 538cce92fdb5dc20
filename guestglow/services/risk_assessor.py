"""
Response Risk Assessor

Scans guest feedback for keyword categories that make an automated reply
risky, scores the result and, when a human must sign off, stores a pending
response approval.

Scoring:
- Legal threat: 30
- Health & safety critical: 25
- Serious staff misconduct: 20
- Media / reputation threat: 15
- System bypass attempt: 50
- Security incident: 25
"""
import asyncio
from dataclasses import dataclass
from typing import Optional, Tuple

from guestglow.models.schemas import RiskAssessment, SeverityLevel
from guestglow.utils.logger import get_logger

logger = get_logger(__name__)

MAX_RISK_SCORE = 100
HIGH_SEVERITY_THRESHOLD = 30
MEDIUM_SEVERITY_THRESHOLD = 15
MIN_FACTORS_FOR_APPROVAL = 2

ROUTINE_EXPLANATION = "Routine service complaint - low risk for automated response."


@dataclass(frozen=True)
class RiskCategory:
    """One keyword category and what it contributes when it fires"""
    name: str
    points: int
    factor: str
    explanation: str
    keywords: Tuple[str, ...]

    def matches(self, text: str) -> bool:
        return any(keyword in text for keyword in self.keywords)


RISK_CATEGORIES: Tuple[RiskCategory, ...] = (
    RiskCategory(
        name="legal_threat",
        points=30,
        factor="Legal threat detected",
        explanation="Guest has made explicit legal threats.",
        keywords=(
            "lawsuit", "sue", "suing", "lawyer", "attorney", "legal action",
            "discrimination", "harassment", "civil rights", "ada violation",
            "health department", "regulatory", "compliance violation",
        ),
    ),
    RiskCategory(
        name="health_safety",
        points=25,
        factor="Health/safety critical issue",
        explanation="Serious health or safety issue requiring medical attention.",
        keywords=(
            "food poisoning", "hospital", "emergency room", "medical treatment",
            "ambulance", "injury", "hurt", "fire hazard", "gas leak",
            "electrical", "structural damage", "ceiling fell", "balcony collapse",
        ),
    ),
    RiskCategory(
        name="staff_misconduct",
        points=20,
        factor="Serious staff misconduct",
        explanation="Serious staff misconduct allegations detected.",
        keywords=(
            "theft", "stealing", "stole", "drunk", "intoxicated", "drugs",
            "fight", "assault", "hit me", "pushed me", "threatened",
            "shared my information", "privacy breach", "bribery", "corruption",
        ),
    ),
    RiskCategory(
        name="media_threat",
        points=15,
        factor="Media/reputation threat",
        explanation="Media involvement or viral threat mentioned.",
        keywords=(
            "viral", "social media", "facebook", "twitter", "instagram",
            "tiktok", "news", "reporter", "journalist", "boycott", "influencer",
            "followers", "expose", "blast", "shame",
        ),
    ),
    RiskCategory(
        name="bypass_attempt",
        points=50,
        factor="System bypass attempt",
        explanation="Potential AI manipulation or system bypass detected.",
        keywords=(
            "ignore previous", "system prompt", "admin", "root", "sudo",
            "execute", "command", "script", "function", "override", "bypass",
            "hack", "inject",
        ),
    ),
    RiskCategory(
        name="security_incident",
        points=25,
        factor="Security incident",
        explanation="Security incident involving theft, assault, or unauthorized access.",
        keywords=(
            "assault", "attacked", "robbed", "stolen", "theft",
            "unauthorized access", "broke into", "violence", "weapon", "gun",
            "knife", "threatened", "stalked",
        ),
    ),
)


def severity_for_score(score: int) -> SeverityLevel:
    if score >= HIGH_SEVERITY_THRESHOLD:
        return SeverityLevel.HIGH
    if score >= MEDIUM_SEVERITY_THRESHOLD:
        return SeverityLevel.MEDIUM
    return SeverityLevel.LOW


def confidence_for_score(score: int) -> float:
    """Synthetic confidence, clamped to [0.7, 1.0]"""
    return max(0.7, min(1.0, score / 100 + 0.3))


def assess_response_risk(
    feedback_text: str,
    rating: int,
    response_text: str = ""
) -> RiskAssessment:
    """
    Score how risky it is to send an automated reply to this feedback.

    Only the feedback text is scanned; rating and response text are accepted
    so the signature matches the stored assessment.

    Args:
        feedback_text: Guest feedback
        rating: Star rating (1-5)
        response_text: Proposed reply

    Returns:
        RiskAssessment with score, severity and approval requirement
    """
    text = (feedback_text or "").lower()

    fired = [category for category in RISK_CATEGORIES if category.matches(text)]

    score = min(MAX_RISK_SCORE, sum(category.points for category in fired))
    factors = [category.factor for category in fired]
    explanation = " ".join(category.explanation for category in fired) or ROUTINE_EXPLANATION

    requires_approval = (
        score >= HIGH_SEVERITY_THRESHOLD or len(factors) >= MIN_FACTORS_FOR_APPROVAL
    )

    return RiskAssessment(
        risk_score=score,
        severity_level=severity_for_score(score),
        requires_approval=requires_approval,
        risk_factors=factors,
        risk_explanation=explanation,
        ai_confidence_score=confidence_for_score(score),
    )


class RiskAssessorService:
    """Assess feedback and persist approvals that need human sign-off"""

    def __init__(self, approval_repository):
        self.approval_repo = approval_repository

    async def assess(
        self,
        feedback_text: str,
        rating: int,
        response_text: str,
        tenant_id: Optional[str] = None,
        feedback_id: Optional[str] = None
    ) -> Tuple[RiskAssessment, Optional[str]]:
        """
        Assess risk and store a pending approval when required.

        Returns:
            (assessment, approval_id); approval_id is None when no approval
            is needed
        """
        assessment = assess_response_risk(feedback_text, rating, response_text)

        logger.info(
            "Risk assessment for feedback %s: score=%s severity=%s approval=%s",
            feedback_id,
            assessment.risk_score,
            assessment.severity_level.value,
            assessment.requires_approval,
        )

        if not assessment.requires_approval:
            return assessment, None

        existing = await asyncio.to_thread(
            self.approval_repo.find_pending,
            feedback_id,
            response_text,
        )
        if existing:
            logger.info("Reusing pending approval %s for feedback %s", existing.id, feedback_id)
            return assessment, existing.id

        approval = await asyncio.to_thread(
            self.approval_repo.create_approval,
            tenant_id=tenant_id,
            feedback_id=feedback_id,
            generated_response=response_text,
            assessment=assessment,
        )
        return assessment, approval.id
