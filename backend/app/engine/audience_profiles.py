"""Audience profile registry - the fixed catalog of audience segments."""
import json
from functools import lru_cache
from pathlib import Path
from typing import Dict, Iterable, List, Tuple

import structlog
from pydantic import BaseModel, ConfigDict

from app.config import settings
from app.exceptions import UnknownProfileError

logger = structlog.get_logger()

SLIDER_MIN = 1
SLIDER_MAX = 10


class AudienceTraits(BaseModel):
    model_config = ConfigDict(frozen=True)

    values: Tuple[str, ...]
    concerns: Tuple[str, ...]
    language: Tuple[str, ...]


class MessagingAdjustments(BaseModel):
    """Formality, technicality and emotion on a 1-10 scale (not enforced)."""

    model_config = ConfigDict(frozen=True)

    formality: int
    technicality: int
    emotion: int


class AudienceProfile(BaseModel):
    """A named audience segment used to adapt message content."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    description: str
    tone: str
    emphasis: Tuple[str, ...]
    avoid: Tuple[str, ...]
    audience_traits: AudienceTraits
    messaging_adjustments: MessagingAdjustments


DEFAULT_PROFILES: Tuple[AudienceProfile, ...] = (
    AudienceProfile(
        id="union",
        name="Union",
        description="Labor-focused messaging for union members and supporters",
        tone="solidarity",
        emphasis=("workers rights", "fair wages", "benefits", "job security", "collective bargaining"),
        avoid=("anti-union", "right-to-work", "deregulation", "corporate tax cuts"),
        audience_traits=AudienceTraits(
            values=("fairness", "solidarity", "hard work", "family security"),
            concerns=("job loss", "wage stagnation", "healthcare costs", "retirement security"),
            language=("brothers and sisters", "working families", "fair share", "dignity of work"),
        ),
        messaging_adjustments=MessagingAdjustments(formality=5, technicality=4, emotion=7),
    ),
    AudienceProfile(
        id="chamber",
        name="Chamber",
        description="Business-focused messaging for chamber of commerce members",
        tone="professional",
        emphasis=("economic growth", "business development", "innovation", "regulatory reform"),
        avoid=("excessive regulation", "tax increases", "anti-business rhetoric"),
        audience_traits=AudienceTraits(
            values=("entrepreneurship", "free market", "innovation", "efficiency"),
            concerns=("overregulation", "tax burden", "workforce readiness", "economic stability"),
            language=("business community", "economic opportunity", "competitive advantage", "growth"),
        ),
        messaging_adjustments=MessagingAdjustments(formality=8, technicality=7, emotion=3),
    ),
    AudienceProfile(
        id="youth",
        name="Youth",
        description="Energy and change-focused messaging for younger voters",
        tone="energetic",
        emphasis=("future", "change", "climate action", "social justice", "technology"),
        avoid=("outdated references", "patronizing language", "status quo defense"),
        audience_traits=AudienceTraits(
            values=("authenticity", "inclusivity", "sustainability", "innovation"),
            concerns=("climate change", "student debt", "housing costs", "job opportunities"),
            language=("transform", "disrupt", "sustainable", "inclusive", "authentic"),
        ),
        messaging_adjustments=MessagingAdjustments(formality=3, technicality=5, emotion=8),
    ),
    AudienceProfile(
        id="senior",
        name="Senior",
        description="Experience and stability-focused messaging for older voters",
        tone="respectful",
        emphasis=("social security", "medicare", "experience", "stability", "tradition"),
        avoid=("ageist language", "rapid change rhetoric", "technology jargon"),
        audience_traits=AudienceTraits(
            values=("respect", "tradition", "security", "family", "community"),
            concerns=("healthcare costs", "retirement security", "social security", "safety"),
            language=("protect", "preserve", "strengthen", "honor", "secure"),
        ),
        messaging_adjustments=MessagingAdjustments(formality=7, technicality=3, emotion=5),
    ),
    AudienceProfile(
        id="rural",
        name="Rural",
        description="Traditional values messaging for rural communities",
        tone="down-to-earth",
        emphasis=("agriculture", "small business", "community values", "self-reliance"),
        avoid=("urban-centric language", "elitist tone", "dismissive of traditions"),
        audience_traits=AudienceTraits(
            values=("community", "faith", "hard work", "self-reliance", "tradition"),
            concerns=("rural healthcare", "farm economy", "small town vitality", "broadband access"),
            language=("neighbor", "community", "heartland", "main street", "common sense"),
        ),
        messaging_adjustments=MessagingAdjustments(formality=4, technicality=3, emotion=6),
    ),
    AudienceProfile(
        id="urban",
        name="Urban",
        description="Progressive values messaging for urban voters",
        tone="progressive",
        emphasis=("diversity", "innovation", "public transit", "cultural richness", "equality"),
        avoid=("suburban sprawl support", "car-centric planning", "homogeneous messaging"),
        audience_traits=AudienceTraits(
            values=("diversity", "innovation", "sustainability", "cultural vibrancy"),
            concerns=("housing affordability", "transit", "inequality", "climate change"),
            language=("inclusive", "sustainable", "equitable", "vibrant", "progressive"),
        ),
        messaging_adjustments=MessagingAdjustments(formality=5, technicality=6, emotion=6),
    ),
)


class ProfileRegistry:
    """
    Immutable catalog of audience profiles, looked up by id.

    Built once at startup and injected wherever profiles are needed.
    """

    def __init__(self, profiles: Iterable[AudienceProfile] = DEFAULT_PROFILES):
        self._profiles: Tuple[AudienceProfile, ...] = tuple(profiles)
        self._by_id: Dict[str, AudienceProfile] = {p.id: p for p in self._profiles}

    @classmethod
    def from_file(cls, path: Path) -> "ProfileRegistry":
        """Load a catalog from a JSON file containing a list of profiles."""
        raw = json.loads(Path(path).read_text(encoding="utf-8"))
        profiles = [AudienceProfile.model_validate(item) for item in raw]
        logger.info("Loaded audience profiles", path=str(path), count=len(profiles))
        return cls(profiles)

    def list_profiles(self) -> Tuple[AudienceProfile, ...]:
        """Return every profile in catalog order."""
        return self._profiles

    def get(self, profile_id: str) -> AudienceProfile:
        profile = self._by_id.get(profile_id)
        if profile is None:
            raise UnknownProfileError(f"Unknown audience profile: {profile_id}", profile_id=profile_id)
        return profile

    def __contains__(self, profile_id: object) -> bool:
        return profile_id in self._by_id

    def __len__(self) -> int:
        return len(self._profiles)

    def validate(self) -> List[str]:
        """Report integrity problems: duplicate ids and sliders outside 1-10."""
        problems: List[str] = []
        if len(self._by_id) != len(self._profiles):
            problems.append("duplicate profile ids in catalog")
        for profile in self._profiles:
            for slider, value in profile.messaging_adjustments.model_dump().items():
                if not SLIDER_MIN <= value <= SLIDER_MAX:
                    problems.append(f"{profile.id}.{slider}={value} outside {SLIDER_MIN}-{SLIDER_MAX}")
        return problems


@lru_cache
def get_profile_registry() -> ProfileRegistry:
    """Build the process-wide registry once (FastAPI dependency)."""
    if settings.audience_profiles_file:
        registry = ProfileRegistry.from_file(Path(settings.audience_profiles_file))
    else:
        registry = ProfileRegistry()

    problems = registry.validate()
    if problems:
        logger.warning("Audience profile catalog has integrity problems", problems=problems)
    return registry
