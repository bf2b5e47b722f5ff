# services/travel_advisor.py
"""
Free-text travel advice on top of the completion client: travel plans,
day-by-day outlines, destination briefs, image analysis, local
recommendations and budget estimates. Nothing here is parsed or persisted;
callers get the model's text back in a CompletionResult.
"""
from __future__ import annotations

import logging
from enum import Enum
from typing import List, Optional

from errors import ValidationError
from models import CompletionResult, TripType
from services.completion_client import CompletionClient

log = logging.getLogger("llm")

# Lower for factual briefs, higher for open-ended plans
PLAN_TEMPERATURE = 0.7
OUTLINE_TEMPERATURE = 0.6
RECOMMENDATION_TEMPERATURE = 0.5
FACTUAL_TEMPERATURE = 0.3


class RecommendationCategory(str, Enum):
    RESTAURANTS = "restaurants"
    ACTIVITIES = "activities"
    SHOPPING = "shopping"
    NIGHTLIFE = "nightlife"
    ALL = "all"


_CATEGORY_PHRASES = {
    RecommendationCategory.RESTAURANTS: "restaurants and local dining experiences",
    RecommendationCategory.ACTIVITIES: "activities and attractions",
    RecommendationCategory.SHOPPING: "shopping areas and local markets",
    RecommendationCategory.NIGHTLIFE: "nightlife and entertainment venues",
    RecommendationCategory.ALL: "restaurants, activities, shopping, and nightlife",
}

IMAGE_QUESTION = "\n".join([
    "Analyze this travel destination image and provide:",
    "",
    "1. **Location Identification**: Try to identify the specific location or type of destination",
    "2. **Key Features**: Describe the main attractions or features visible",
    "3. **Travel Appeal**: What makes this place attractive to tourists",
    "4. **Best Activities**: Suggest activities that would be suitable here",
    "5. **Travel Tips**: Any specific advice for visiting this type of location",
    "6. **Similar Destinations**: Recommend similar places travelers might enjoy",
    "",
    "Please provide detailed insights that would be helpful for travel planning.",
])


def _coerce(enum_cls, value):
    try:
        return enum_cls(value)
    except ValueError as e:
        allowed = ", ".join(m.value for m in enum_cls)
        raise ValidationError(f"Unsupported value {value!r}; expected one of: {allowed}") from e


def _numbered(items: List[str]) -> List[str]:
    return [f"{i}. {item}" for i, item in enumerate(items, start=1)]


# ---------- prompt renderers ----------

def travel_plan_prompt(
    destination: str,
    duration: str | None = None,
    budget: str | None = None,
    interests: str | None = None,
    travel_style: str | None = None,
) -> str:
    head = f"Create a comprehensive travel plan for {destination}"
    if duration:
        head += f" for {duration}"
    if budget:
        head += f" with a budget of {budget}"
    if travel_style:
        head += f" in {travel_style} style"

    lines = [
        head + ".",
        "",
        "Please include:",
        "",
        *_numbered([
            "**Trip Overview**: Summary of the planned experience",
            "**Suggested Itinerary**: Day-by-day breakdown",
            "**Accommodation Recommendations**: Where to stay",
            "**Transportation**: How to get there and around",
            "**Must-See Attractions**: Top places to visit",
            "**Local Experiences**: Authentic cultural activities",
            "**Food & Dining**: Restaurant and local cuisine recommendations",
            "**Budget Breakdown**: Estimated costs",
            "**Packing List**: What to bring",
            "**Travel Tips**: Important advice and considerations",
        ]),
    ]
    if interests:
        lines += ["", f"Special focus on: {interests}"]
    lines += [
        "",
        "Provide a detailed, practical, and personalized travel plan that maximizes "
        "the travel experience within the given parameters.",
    ]
    return "\n".join(lines)


def outline_prompt(destination: str, days: int, interests: Optional[List[str]] = None) -> str:
    head = f"Create a detailed {days}-day itinerary for {destination}."
    if interests:
        head += f" Focus on these interests: {', '.join(interests)}."
    return "\n".join([
        head,
        "",
        "For each day, provide:",
        "- **Morning**: Activities and attractions (with timing)",
        "- **Afternoon**: Continued activities and lunch recommendations",
        "- **Evening**: Dinner and evening activities",
        "- **Transportation**: How to get between locations",
        "- **Tips**: Practical advice for each day",
        "",
        "Make sure the itinerary is realistic, well-paced, and includes a good mix of "
        "must-see attractions, local experiences, and relaxation time.",
    ])


def destination_info_prompt(destination: str) -> str:
    return "\n".join([
        f"Provide comprehensive information about {destination} as a travel destination. Include:",
        "",
        *_numbered([
            "**Overview**: Brief description and what makes it special",
            "**Best Time to Visit**: Seasonal information and weather",
            "**Top Attractions**: Must-see places and activities",
            "**Local Culture**: Customs, traditions, and etiquette",
            "**Food & Cuisine**: Local specialties and dining recommendations",
            "**Transportation**: How to get around",
            "**Budget Tips**: Cost estimates and money-saving advice",
            "**Safety & Health**: Important considerations for travelers",
            "**Accommodation**: Types of lodging available",
            "**Practical Tips**: Useful information for first-time visitors",
        ]),
        "",
        "Please provide detailed, accurate, and up-to-date information formatted in a clear, organized manner.",
    ])


def recommendations_prompt(destination: str, category: RecommendationCategory) -> str:
    return "\n".join([
        f"Recommend the best {_CATEGORY_PHRASES[category]} in {destination}.",
        "",
        "For each recommendation, provide:",
        "- **Name and Location**: Specific details",
        "- **Description**: What makes it special",
        "- **Price Range**: Budget expectations",
        "- **Best Time to Visit**: Timing recommendations",
        "- **Tips**: Insider advice",
        "",
        "Focus on a mix of popular tourist spots and hidden local gems. "
        "Provide at least 5-10 quality recommendations with practical details.",
    ])


def budget_estimate_prompt(destination: str, duration: str, travel_style: TripType, group_size: int = 1) -> str:
    style = travel_style.value
    who = "person" if group_size == 1 else "people"
    return "\n".join([
        f"Provide a detailed budget estimate for a {duration} trip to {destination} "
        f"for {group_size} {who} with a {style} travel style.",
        "",
        "Break down the costs for:",
        *_numbered([
            "**Flights**: Round-trip airfare estimates",
            f"**Accommodation**: Per night costs for {style} options",
            "**Food & Dining**: Daily meal costs",
            "**Transportation**: Local transport and transfers",
            "**Activities & Attractions**: Entry fees and tours",
            "**Shopping & Souvenirs**: Typical spending",
            "**Miscellaneous**: Tips, insurance, emergency fund",
        ]),
        "",
        "Provide:",
        "- Daily budget breakdown",
        "- Total estimated cost",
        "- Money-saving tips",
        "- Cost comparison with similar destinations",
        "- Seasonal price variations",
        "",
        "Use current market prices and provide estimates in USD.",
    ])


# ---------- service ----------

class TravelAdvisor:
    def __init__(self, client: CompletionClient) -> None:
        self.client = client

    async def travel_plan(
        self,
        destination: str,
        duration: str | None = None,
        budget: str | None = None,
        interests: str | None = None,
        travel_style: str | None = None,
        model: str | None = None,
    ) -> CompletionResult:
        log.info("Generating travel plan", extra={"destination": destination})
        prompt = travel_plan_prompt(destination, duration, budget, interests, travel_style)
        return await self.client.complete(prompt, model=model, temperature=PLAN_TEMPERATURE)

    async def day_by_day_outline(
        self,
        destination: str,
        days: int,
        interests: Optional[List[str]] = None,
        model: str | None = None,
    ) -> CompletionResult:
        if days < 1:
            raise ValidationError("days must be at least 1")
        log.info("Generating itinerary outline", extra={"destination": destination, "days": days})
        return await self.client.complete(
            outline_prompt(destination, days, interests), model=model, temperature=OUTLINE_TEMPERATURE,
        )

    async def destination_info(self, destination: str, model: str | None = None) -> CompletionResult:
        log.info("Getting destination info", extra={"destination": destination})
        return await self.client.complete(
            destination_info_prompt(destination), model=model, temperature=FACTUAL_TEMPERATURE,
        )

    async def analyze_destination_image(self, image_url: str, model: str | None = None) -> CompletionResult:
        log.info("Analyzing destination image")
        return await self.client.analyze_image(image_url, IMAGE_QUESTION, model=model)

    async def local_recommendations(
        self,
        destination: str,
        category: RecommendationCategory | str = RecommendationCategory.ALL,
        model: str | None = None,
    ) -> CompletionResult:
        category = _coerce(RecommendationCategory, category)
        log.info("Getting local recommendations", extra={"destination": destination, "category": category.value})
        return await self.client.complete(
            recommendations_prompt(destination, category), model=model, temperature=RECOMMENDATION_TEMPERATURE,
        )

    async def budget_estimate(
        self,
        destination: str,
        duration: str,
        travel_style: TripType | str = TripType.MID_RANGE,
        group_size: int = 1,
        model: str | None = None,
    ) -> CompletionResult:
        travel_style = _coerce(TripType, travel_style)
        if group_size < 1:
            raise ValidationError("group_size must be at least 1")
        log.info("Generating budget estimate", extra={"destination": destination, "trip_type": travel_style.value})
        return await self.client.complete(
            budget_estimate_prompt(destination, duration, travel_style, group_size),
            model=model,
            temperature=FACTUAL_TEMPERATURE,
        )
