"""Content analysis - assigns an approval tier to message content."""
from typing import Any, Dict, List

import structlog

from app.models.enums import ApprovalTier

logger = structlog.get_logger()


# Keywords that require full review
HIGH_RISK_KEYWORDS = [
    "crisis", "scandal", "opponent", "attack", "lawsuit",
    "investigation", "controversial", "allegation",
]

# Keywords that need a quick review
MEDIUM_RISK_KEYWORDS = [
    "donate", "contribution", "fundraising", "money",
    "poll", "survey", "endorsement", "debate",
]

FEC_KEYWORDS = ["donate", "contribution"]


class ContentAnalyzer:
    """
    Routes messages to an approval tier:
    - RED: sensitive political content (full review)
    - YELLOW: fundraising or polling language (quick review)
    - GREEN: everything else

    Keyword matching only; swap in a model-backed analyzer by passing a
    different object with the same ``analyze`` signature to MessageService.
    """

    def analyze(self, content: str) -> Dict[str, Any]:
        text = content.lower()

        high = [k for k in HIGH_RISK_KEYWORDS if k in text]
        medium = [k for k in MEDIUM_RISK_KEYWORDS if k in text]

        risk_factors: List[str] = []
        tier = ApprovalTier.GREEN
        if high:
            tier = ApprovalTier.RED
            risk_factors.append("Contains sensitive political content")
        elif medium:
            tier = ApprovalTier.YELLOW
            risk_factors.append("Contains fundraising or political messaging")

        if any(k in text for k in FEC_KEYWORDS):
            risk_factors.append("Requires FEC compliance review")

        analysis = {
            "risk_factors": risk_factors,
            "matched_keywords": high + medium,
            "word_count": len(content.split()),
            "has_links": "http" in text,
        }

        logger.debug("Content analyzed", tier=tier.value, matched=analysis["matched_keywords"])
        return {"tier": tier, "analysis": analysis}
