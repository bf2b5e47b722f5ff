# services/prompt_builder.py
from __future__ import annotations

import json
from typing import List

from models import ActivityCategory, GenerationRequest

NOT_SPECIFIED = "Not specified"

ACTIVITIES_PER_DAY = (4, 8)
CURRENCY = "USD"

PRIORITY_SCALE = {
    1: "must-do",
    2: "recommended",
    3: "optional",
    4: "if-time-permits",
    5: "backup",
}

# Shape shown to the model verbatim; keys are the contract the parser enforces.
EXAMPLE_PLAN = {
    "summary": "Brief 2-3 sentence overview of the trip",
    "suggestions": ["suggestion1", "suggestion2", "suggestion3"],
    "weatherInfo": {
        "summary": "General weather description for the period",
        "chanceOfRain": 30,
        "temperatureMin": 20,
        "temperatureMax": 28,
    },
    "days": [
        {
            "dayNumber": 1,
            "date": "2024-01-01",
            "weatherSummary": "Sunny with light clouds",
            "temperatureMin": 22,
            "temperatureMax": 28,
            "chanceOfRain": 10,
            "activities": [
                {
                    "title": "Activity Name",
                    "description": "Detailed description of the activity",
                    "location": "Specific address or area",
                    "startTime": "09:00",
                    "endTime": "11:00",
                    "category": "sightseeing",
                    "estimatedCost": 25,
                    "priority": 1,
                    "tags": ["cultural", "historic"],
                    "notes": "Optional tips or notes",
                    "bookingUrl": "https://example.com/booking",
                    "contactInfo": "+1234567890",
                }
            ],
        }
    ],
    "totalEstimatedCost": 500,
}


def _or_not_specified(value: str | None) -> str:
    if value is None or not str(value).strip():
        return NOT_SPECIFIED
    return str(value)


def _input_block(req: GenerationRequest, day_count: int) -> List[str]:
    return [
        "**Input Details:**",
        f"- Destination: {req.destination}",
        f"- Start Date: {req.start_date.isoformat()}",
        f"- End Date: {req.end_date.isoformat()}",
        f"- Number of Days: {day_count}",
        f"- Number of Travelers: {req.number_of_travelers}",
        f"- Trip Type: {req.trip_type.value}",
        f"- Budget: {_or_not_specified(req.budget)}",
        f"- Preferences: {', '.join(req.preferences) if req.preferences else NOT_SPECIFIED}",
        f"- Special Requests: {_or_not_specified(req.special_requests)}",
    ]


def _guidelines(day_count: int) -> List[str]:
    lo, hi = ACTIVITIES_PER_DAY
    priorities = ", ".join(f"{k}={v}" for k, v in PRIORITY_SCALE.items())
    return [
        "**Guidelines:**",
        f"1. Return exactly {day_count} entries in \"days\", with dayNumber running from 1 to {day_count} without gaps",
        f"2. Include {lo}-{hi} activities per day",
        "3. Consider realistic timing and travel between locations; use 24h \"HH:MM\" local times",
        "4. Include meals (breakfast, lunch, dinner) as dining activities",
        "5. Add transport activities for longer distances",
        f"6. Provide realistic cost estimates in {CURRENCY} for the whole group",
        f"7. Priority: {priorities}",
        "8. Include practical information like booking URLs and contact info when relevant",
        "9. Consider the trip type (budget/mid-range/luxury) for activity selection and costs",
        "10. chanceOfRain is a percentage from 0 to 100; temperatures are in Celsius",
        "11. Weather should be realistic for the destination and season",
        "12. Each day should have a logical flow and realistic schedule",
    ]


def build_itinerary_prompt(req: GenerationRequest, day_count: int) -> str:
    """
    Render the generation prompt. Pure function of its inputs.

    Optional inputs that were not given are written out as "Not specified"
    rather than dropped, so the model always sees the full field list.
    """
    categories = "\n".join(f'- "{c.value}"' for c in ActivityCategory)
    blocks = [
        f"You are a professional travel planner AI. Generate a detailed {day_count}-day itinerary for {req.destination}.",
        "",
        "**IMPORTANT: You must respond with ONLY a valid JSON object in the exact format specified below. "
        "Do not include any other text, explanations, or markdown formatting.**",
        "",
        *_input_block(req, day_count),
        "",
        "**Required JSON Response Format:**",
        json.dumps(EXAMPLE_PLAN, indent=2),
        "",
        "**Activity Categories (use only these):**",
        categories,
        "",
        *_guidelines(day_count),
        "",
        "Generate the JSON response now:",
    ]
    return "\n".join(blocks)
