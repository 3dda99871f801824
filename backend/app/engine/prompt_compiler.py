"""Prompt compiler - renders campaign + audience profile into LLM instructions.

Pure templating: no network or storage access. Missing candidate-profile
fields fall back to generic filler text so the generation call always gets a
complete instruction block.
"""
import json
import re
from typing import Dict, Iterable, List

from app.engine.audience_profiles import AudienceProfile
from app.models.enums import Platform
from app.schemas.campaign import CampaignContext

SYSTEM_PREAMBLE = (
    "You are an expert political communications assistant with deep understanding "
    "of audience psychology and messaging strategy."
)

DEFAULT_RESIDENCE = "Local resident"
DEFAULT_THEME = "Building a better future"
DEFAULT_SLOGAN = "Leadership for Tomorrow"
DEFAULT_SPEAKING_STYLE = "conversational"
DEFAULT_KEY_MESSAGES = "Community, Progress, Unity"
DEFAULT_TONE_ATTRIBUTES = "authentic, caring, experienced"

INSTRUCTIONS = (
    "Match the specified tone and formality level precisely",
    "Emphasize topics that resonate with this audience",
    "Avoid topics that might alienate this audience",
    "Use language and phrases familiar to this audience",
    "Adjust technical complexity based on the audience profile",
    "Calibrate emotional appeal appropriately",
    "Ensure all content aligns with the candidate's established positions",
    "Maintain authenticity while adapting to audience preferences",
    "Reflect the candidate's actual background and values as provided in their profile",
)

PLATFORM_INSTRUCTIONS: Dict[Platform, str] = {
    Platform.EMAIL: """Email Requirements:
- Include a compelling subject line (first line)
- Personal greeting
- Clear call-to-action
- Professional sign-off
- Keep under 500 words for optimal engagement""",
    Platform.TWITTER: """Twitter Requirements:
- Maximum 280 characters
- Include relevant hashtags
- Engaging and shareable
- Consider thread potential for complex topics""",
    Platform.FACEBOOK: """Facebook Requirements:
- Engaging opening line
- 1-3 paragraphs optimal
- Conversational tone
- Include call for engagement (likes, shares, comments)""",
    Platform.INSTAGRAM: """Instagram Requirements:
- Caption should be visual-first
- Use line breaks for readability
- Include relevant hashtags at end
- Call-to-action for profile link""",
    Platform.PRESS_RELEASE: """Press Release Requirements:
- FOR IMMEDIATE RELEASE header
- Compelling headline
- Location and date dateline
- Inverted pyramid structure
- Boilerplate paragraph at end
- Contact information""",
    Platform.WEBSITE: """Website Content Requirements:
- SEO-friendly headline
- Clear structure with subheadings
- Scannable paragraphs
- Include relevant keywords naturally""",
    Platform.SMS: """SMS Requirements:
- Maximum 160 characters
- Direct and urgent tone
- Clear call-to-action
- Include opt-out instructions""",
}

MAX_TOKENS_BY_PLATFORM: Dict[Platform, int] = {
    Platform.TWITTER: 100,
    Platform.SMS: 80,
    Platform.EMAIL: 800,
    Platform.PRESS_RELEASE: 1000,
    Platform.WEBSITE: 1200,
}
DEFAULT_MAX_TOKENS = 600

_TAG_RE = re.compile(r"<[^>]*>")


def _bullets(items: Iterable[str], quoted: bool = False) -> List[str]:
    if quoted:
        return [f'- "{item}"' for item in items]
    return [f"- {item}" for item in items]


def compile_prompt(campaign: CampaignContext, profile: AudienceProfile) -> str:
    """Render the system prompt for adapting content to one audience profile."""
    candidate = campaign.profile
    personal = candidate.personal
    political = candidate.political
    details = candidate.campaign
    communication = candidate.communication
    priorities = candidate.policy_positions.top_priorities

    speaking_style = communication.speaking_style or DEFAULT_SPEAKING_STYLE
    sliders = profile.messaging_adjustments
    traits = profile.audience_traits

    lines: List[str] = [SYSTEM_PREAMBLE, ""]

    lines += [
        "CANDIDATE PROFILE:",
        f"- Name: {personal.preferred_name or campaign.candidate_name}",
        f"- Background: {personal.current_residence or DEFAULT_RESIDENCE}, "
        f"{political.years_in_politics or 0} years in politics",
        f"- Campaign Theme: {details.campaign_theme or DEFAULT_THEME}",
        f'- Campaign Slogan: "{details.campaign_slogan or DEFAULT_SLOGAN}"',
        f"- Speaking Style: {speaking_style}",
        f"- Key Messages: {', '.join(communication.key_messages) or DEFAULT_KEY_MESSAGES}",
        "",
    ]

    lines += [
        f"AUDIENCE PROFILE: {profile.name}",
        f"Description: {profile.description}",
        "",
        f"TONE: {profile.tone}",
        f"- Formality Level: {sliders.formality}/10",
        f"- Technical Complexity: {sliders.technicality}/10",
        f"- Emotional Appeal: {sliders.emotion}/10",
        f"- Incorporate candidate's {speaking_style} speaking style",
        f"- Emphasize: {', '.join(communication.tone_attributes) or DEFAULT_TONE_ATTRIBUTES}",
        "",
    ]

    lines += ["KEY TOPICS TO EMPHASIZE:", *_bullets(profile.emphasis)]
    if priorities:
        lines += ["", "CANDIDATE'S TOP PRIORITIES:"]
        lines += [f"- {p.issue}: {p.position}" for p in priorities]
    lines.append("")

    lines += ["TOPICS TO AVOID:", *_bullets(profile.avoid)]
    if communication.avoid_topics:
        lines += ["", "CANDIDATE SPECIFICALLY AVOIDS:", *communication.avoid_topics]
    lines.append("")

    lines += ["AUDIENCE VALUES:", *_bullets(traits.values), ""]
    lines += ["AUDIENCE CONCERNS:", *_bullets(traits.concerns), ""]
    lines += ["PREFERRED LANGUAGE/PHRASES:", *_bullets(traits.language, quoted=True), ""]

    lines += [
        "CAMPAIGN CONTEXT:",
        f"- Candidate: {campaign.candidate_name}",
        f"- Office: {campaign.office}",
        f"- Key Positions: {json.dumps(campaign.key_positions, sort_keys=True)}",
        "",
    ]

    if len(personal.languages) > 1:
        lines += [
            f"Note: Candidate speaks {', '.join(personal.languages)}. "
            "Consider multilingual outreach when appropriate.",
            "",
        ]

    lines.append("INSTRUCTIONS:")
    lines += [f"{i}. {directive}" for i, directive in enumerate(INSTRUCTIONS, start=1)]

    return "\n".join(lines)


def strip_html(content: str) -> str:
    return _TAG_RE.sub("", content)


def build_adaptation_prompt(content: str, profile: AudienceProfile, platform: Platform) -> str:
    """User prompt asking the model to adapt existing content to a profile."""
    return f"""Please adapt the following message for the {profile.name} audience profile.

Original message:
{strip_html(content)}

Make sure to:
1. Adjust the tone to be {profile.tone}
2. Emphasize topics that resonate with this audience: {', '.join(profile.emphasis)}
3. Use language familiar to this audience: {', '.join(profile.audience_traits.language)}
4. Avoid topics that might alienate: {', '.join(profile.avoid)}
5. Keep the core message and call-to-action intact
6. Maintain appropriate length for {platform.value} platform

Please provide only the adapted message content without any explanation or meta-commentary."""


def build_user_prompt(prompt: str, platform: Platform) -> str:
    """Wrap a free-form request with the platform's formatting requirements."""
    instructions = PLATFORM_INSTRUCTIONS.get(platform, "Generate appropriate content for this platform.")
    return f"""{prompt}

Platform: {platform.value}
{instructions}

Please generate content that follows these platform requirements while maintaining the audience profile guidelines."""


def max_tokens_for_platform(platform: Platform) -> int:
    return MAX_TOKENS_BY_PLATFORM.get(platform, DEFAULT_MAX_TOKENS)
