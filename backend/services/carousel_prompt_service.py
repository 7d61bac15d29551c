"""
Carousel Prompt Service
=======================

Builds the structured prompt sent to the text model and the background
prompts sent to the image service.
"""

import re
from typing import Dict, List, Optional

from ..models.canvas_models import BackgroundStrategy


# Content templates (5 types)
# detect_content_type() picks one from keywords in the user's prompt
CAROUSEL_TEMPLATES = {
    "educational": {
        "name": "Educational Tips",
        "structure": [
            "Hook slide with compelling question or statistic",
            "Problem identification slide",
            "Solution steps (3-5 slides)",
            "Implementation slide",
            "Call-to-action slide",
        ],
        "tone_guidelines": "Clear, authoritative, helpful, encouraging",
        "content_patterns": [
            "Use numbered lists for steps",
            "Include actionable takeaways",
            'Start with "How to" or "Why" questions',
            "End with clear next steps",
        ],
        "keywords": ["how to", "guide", "learn", "tutorial", "steps", "process"],
        "ctas": [
            "Try this today!",
            "Which tip will you implement first?",
            "Save this for later!",
            "Share your results in comments",
            "What's your experience?",
        ],
    },
    "tips": {
        "name": "Quick Tips & Hacks",
        "structure": [
            "Introduction to topic/problem",
            "Quick tip #1 with explanation",
            "Quick tip #2 with explanation",
            "Quick tip #3 with explanation",
            "Summary and encouragement to implement",
        ],
        "tone_guidelines": "Practical, concise, actionable, friendly",
        "content_patterns": [
            "Keep each tip simple and actionable",
            "Use specific examples or scenarios",
            "Include why each tip works",
            "Focus on immediate implementation",
        ],
        "keywords": ["tips", "hacks", "tricks", "secrets", "ways to"],
        "ctas": [
            "Try tip #1 first!",
            "Which tip surprised you?",
            "Bookmark for later",
            "Share your favorite tip",
            "More tips in bio!",
        ],
    },
    "promotional": {
        "name": "Product/Service Promotion",
        "structure": [
            "Problem statement or pain point",
            "Solution introduction",
            "Key benefits (2-3 slides)",
            "Social proof or testimonial",
            "Strong call-to-action",
        ],
        "tone_guidelines": "Persuasive, benefit-focused, urgent but not pushy",
        "content_patterns": [
            "Lead with customer pain points",
            "Focus on transformation outcomes",
            "Use power words and emotional triggers",
            "Include specific benefits, not just features",
        ],
        "keywords": ["product", "service", "buy", "offer", "sale", "discount"],
        "ctas": [
            "Get started today!",
            "Claim your discount now",
            "Link in bio for more info",
            "Don't miss out!",
            "Ready to transform?",
        ],
    },
    "inspirational": {
        "name": "Motivational Content",
        "structure": [
            "Relatable struggle or challenge",
            "Mindset shift or reframe",
            "Actionable inspiration (2-3 slides)",
            "Success story or example",
            "Empowering call-to-action",
        ],
        "tone_guidelines": "Uplifting, empathetic, empowering, authentic",
        "content_patterns": [
            "Use personal stories or relatable scenarios",
            "Include motivational quotes or mantras",
            "Focus on possibility and growth",
            "End with encouragement to take action",
        ],
        "keywords": ["motivat", "inspir", "success", "achieve", "goals", "dream"],
        "ctas": [
            "You've got this!",
            "Start your journey today",
            "Believe in yourself",
            "Take the first step",
            "Your time is now",
        ],
    },
    "storytelling": {
        "name": "Story-Based Content",
        "structure": [
            "Setting the scene",
            "Character introduction or challenge",
            "Conflict or turning point",
            "Resolution or lesson learned",
            "Takeaway or moral",
        ],
        "tone_guidelines": "Narrative, engaging, authentic, conversational",
        "content_patterns": [
            "Use storytelling arc structure",
            "Include sensory details",
            "Create emotional connection",
            "Extract clear lessons or insights",
        ],
        "keywords": ["story", "journey", "experience", "once"],
        "ctas": [
            "What's your story?",
            "Share your experience",
            "Can you relate?",
            "How does this resonate?",
            "What would you do?",
        ],
    },
}

# Checked in this order; educational is also the fallback
DETECTION_ORDER = ["educational", "tips", "promotional", "inspirational", "storytelling"]
DEFAULT_CONTENT_TYPE = "educational"

IMAGE_PROMPT_OPTIMIZATIONS = [
    "high resolution",
    "professional quality",
    "Instagram optimized",
    "clean composition",
    "vibrant colors",
    "modern aesthetic",
]


def detect_content_type(prompt: str) -> str:
    """Pick a content template from keywords in the prompt."""
    prompt_lower = prompt.lower()
    for content_type in DETECTION_ORDER:
        keywords = CAROUSEL_TEMPLATES[content_type]["keywords"]
        if any(keyword in prompt_lower for keyword in keywords):
            return content_type
    return DEFAULT_CONTENT_TYPE


def build_structured_prompt(
    topic: str,
    slide_count: int,
    background_strategy: BackgroundStrategy = BackgroundStrategy.UNIQUE,
    content_type: Optional[str] = None,
    tone: Optional[str] = None,
    target_audience: Optional[str] = None,
    style: Optional[str] = None
) -> str:
    """
    Build the prompt asking the text model for exactly `slide_count` slides
    as strict JSON.
    """
    content_type = content_type if content_type in CAROUSEL_TEMPLATES else detect_content_type(topic)
    template = CAROUSEL_TEMPLATES[content_type]
    strategy = BackgroundStrategy(background_strategy)

    structure = "\n".join(f"{i}. {item}" for i, item in enumerate(template["structure"], 1))
    patterns = "\n".join(f"- {pattern}" for pattern in template["content_patterns"])

    if strategy == BackgroundStrategy.THEMATIC:
        strategy_notes = (
            "- Create a cohesive visual theme with a consistent color palette, style and mood\n"
            "- Background prompts should complement each other visually"
        )
    else:
        strategy_notes = (
            "- Create unique, varied backgrounds that match each slide's specific content\n"
            "- Ensure visual diversity while maintaining professional quality"
        )

    return f"""You are an expert Instagram carousel creator. Create a {slide_count}-slide Instagram carousel on the topic: "{topic}"

CONTENT TYPE: {template["name"]}
TARGET: {target_audience or "Instagram users"}
TONE: {tone or "friendly"} ({template["tone_guidelines"]})
STYLE: {style or "engaging and modern"}

STRUCTURAL GUIDELINES:
{structure}

CONTENT PATTERNS TO FOLLOW:
{patterns}

SLIDE SPECIFICATIONS:
- Each slide must have a clear, specific purpose
- Titles: attention-grabbing, max 60 characters
- Body: concise but valuable, max 150 characters per slide
- Maintain a consistent voice and a logical flow between slides

BACKGROUND STRATEGY: {strategy.value}
{strategy_notes}

RESPONSE FORMAT (STRICT JSON):
{{
    "slides": [
        {{
            "title": "Attention-grabbing title",
            "body": "Main slide content with clear value",
            "cta": "Action-oriented text (optional)",
            "backgroundPrompt": "Detailed visual description for the background image"
        }}
    ]
}}

Create exactly {slide_count} slides."""


def harmonize_background_prompts(
    prompts: List[str],
    strategy: BackgroundStrategy,
    base_style: str = "modern and professional"
) -> List[str]:
    """
    Decorate per-slide background prompts for the chosen strategy.

    Empty prompts stay empty so the caller can skip those slides.
    """
    strategy = BackgroundStrategy(strategy)
    total = len(prompts)
    result = []
    for index, prompt in enumerate(prompts, 1):
        if not prompt or not prompt.strip():
            result.append("")
        elif strategy == BackgroundStrategy.THEMATIC:
            result.append(
                f"{prompt}, {base_style}, consistent color palette, cohesive visual style, "
                f"professional lighting, slide {index} of {total} in a cohesive series"
            )
        else:
            result.append(f"{prompt}, {base_style}, high quality, Instagram-optimized composition")
    return result


def optimize_image_prompt(prompt: str, slide_context: Optional[str] = None) -> str:
    """Append image-quality hints to a background prompt."""
    parts = [prompt]
    if slide_context:
        parts.append(slide_context)
    parts.extend(IMAGE_PROMPT_OPTIMIZATIONS)
    return ", ".join(parts)


def cta_recommendations(content_type: str) -> List[str]:
    template = CAROUSEL_TEMPLATES.get(content_type, CAROUSEL_TEMPLATES[DEFAULT_CONTENT_TYPE])
    return list(template["ctas"])


def summarize_templates() -> Dict[str, str]:
    """Content type -> display name, for the API info endpoint."""
    return {key: value["name"] for key, value in CAROUSEL_TEMPLATES.items()}


def truncate_name(prompt: str, limit: int = 50) -> str:
    """Project name derived from the prompt."""
    clean = re.sub(r"\s+", " ", prompt).strip()
    if len(clean) <= limit:
        return f"Carousel: {clean}"
    return f"Carousel: {clean[:limit]}..."
