import asyncio

import httpx
import pytest

from conftest import ScriptedProvider, chat_body
from errors import ValidationError
from models import TripType
from services.travel_advisor import (
    IMAGE_QUESTION,
    RecommendationCategory,
    TravelAdvisor,
    budget_estimate_prompt,
    destination_info_prompt,
    outline_prompt,
    recommendations_prompt,
    travel_plan_prompt,
)


def run(coro):
    return asyncio.run(coro)


@pytest.fixture
def provider():
    return ScriptedProvider(httpx.Response(200, json=chat_body("Some advice")))


@pytest.fixture
def advisor(make_client, provider):
    return TravelAdvisor(make_client(provider))


def sent(provider):
    payload = provider.payloads[-1]
    return payload, payload["messages"][0]["content"]


class TestPrompts:
    def test_travel_plan_only_mentions_given_fields(self):
        bare = travel_plan_prompt("Lisbon")
        assert bare.startswith("Create a comprehensive travel plan for Lisbon.")
        assert "Special focus on" not in bare

        full = travel_plan_prompt("Lisbon", "5 days", "1500 USD", "fado, seafood", "slow")
        assert "for Lisbon for 5 days with a budget of 1500 USD in slow style." in full
        assert "Special focus on: fado, seafood" in full
        assert "10. **Travel Tips**" in full

    def test_outline_lists_interests(self):
        prompt = outline_prompt("Rome", 4, ["history", "gelato"])
        assert prompt.startswith("Create a detailed 4-day itinerary for Rome.")
        assert "Focus on these interests: history, gelato." in prompt
        assert "- **Evening**" in prompt

    def test_destination_info_sections(self):
        prompt = destination_info_prompt("Hanoi")
        assert "information about Hanoi as a travel destination" in prompt
        assert "2. **Best Time to Visit**" in prompt
        assert "10. **Practical Tips**" in prompt

    @pytest.mark.parametrize("category,phrase", [
        (RecommendationCategory.RESTAURANTS, "restaurants and local dining experiences"),
        (RecommendationCategory.NIGHTLIFE, "nightlife and entertainment venues"),
        (RecommendationCategory.ALL, "restaurants, activities, shopping, and nightlife"),
    ])
    def test_recommendation_phrases(self, category, phrase):
        assert f"Recommend the best {phrase} in Seoul." in recommendations_prompt("Seoul", category)

    def test_budget_estimate_group_wording(self):
        solo = budget_estimate_prompt("Oslo", "1 week", TripType.LUXURY)
        assert "for 1 person with a luxury travel style" in solo
        assert "Per night costs for luxury options" in solo
        assert "estimates in USD" in solo
        group = budget_estimate_prompt("Oslo", "1 week", TripType.BUDGET, group_size=4)
        assert "for 4 people with a budget travel style" in group


class TestTravelAdvisor:
    @pytest.mark.parametrize("call,temperature", [
        (lambda a: a.travel_plan("Lisbon"), 0.7),
        (lambda a: a.day_by_day_outline("Lisbon", 3), 0.6),
        (lambda a: a.destination_info("Lisbon"), 0.3),
        (lambda a: a.local_recommendations("Lisbon", "shopping"), 0.5),
        (lambda a: a.budget_estimate("Lisbon", "4 days", "mid-range", 2), 0.3),
    ])
    def test_temperatures(self, advisor, provider, call, temperature):
        result = run(call(advisor))
        payload, _ = sent(provider)
        assert payload["temperature"] == temperature
        assert result.content == "Some advice"

    def test_model_override_is_forwarded(self, advisor, provider):
        run(advisor.destination_info("Lisbon", model="openai/gpt-4o-mini"))
        payload, _ = sent(provider)
        assert payload["model"] == "openai/gpt-4o-mini"

    def test_image_analysis_sends_travel_question(self, advisor, provider):
        run(advisor.analyze_destination_image("https://img.example/beach.jpg"))
        _, parts = sent(provider)
        assert parts[0] == {"type": "text", "text": IMAGE_QUESTION}
        assert parts[1]["image_url"] == {"url": "https://img.example/beach.jpg"}

    def test_unknown_category_is_rejected_before_calling(self, advisor, provider):
        with pytest.raises(ValidationError, match="restaurants"):
            run(advisor.local_recommendations("Lisbon", "museums"))
        assert provider.requests == []

    def test_bad_group_size_is_rejected(self, advisor, provider):
        with pytest.raises(ValidationError):
            run(advisor.budget_estimate("Lisbon", "4 days", TripType.BUDGET, group_size=0))
        assert provider.requests == []
