# services/itinerary_generator.py
from __future__ import annotations

import logging
from collections import defaultdict
from datetime import date, timedelta
from enum import Enum
from typing import Callable, Dict, List, Optional

from config import Settings, settings as default_settings
from errors import ItineraryServiceError, MalformedResponseError, NotFoundOrForbiddenError, ValidationError
from models import (
    ActivityRecord,
    ActivityView,
    GeneratedPlan,
    GenerationRequest,
    ItineraryDayView,
    ItineraryRecord,
    ItineraryView,
    QuickGenerateRequest,
    RegenerateOptions,
)
from request_context import ensure_request_id
from services.completion_client import CompletionClient
from services.itinerary_store import ItineraryStore
from services.prompt_builder import build_itinerary_prompt
from services.response_parser import try_parse

log = logging.getLogger("itinerary")

Progress = Callable[[str], None]

QUICK_TRIP_LEAD_DAYS = 7
QUICK_TRIP_TRAVELERS = 2


class GenerationStage(str, Enum):
    BUILDING = "building"
    CALLING = "calling"
    PARSING = "parsing"
    PERSISTING = "persisting"
    DONE = "done"
    FAILED = "failed"


def _activity_view(a: ActivityRecord) -> ActivityView:
    return ActivityView(
        title=a.title,
        description=a.description,
        location=a.location,
        start_time=a.start_time,
        end_time=a.end_time,
        category=a.category,
        estimated_cost=a.estimated_cost,
        priority=a.priority,
        tags=a.tags,
        notes=a.notes,
        booking_url=a.booking_url,
        contact_info=a.contact_info,
    )


class ItineraryGenerator:
    """
    prompt -> completion -> parse -> persist, plus the read/delete operations
    on persisted itineraries.

    Holds no per-request state; concurrent generate() calls share only the
    client and store.
    """

    def __init__(
        self,
        client: CompletionClient,
        store: ItineraryStore,
        cfg: Settings | None = None,
        *,
        today: Callable[[], date] = date.today,
    ) -> None:
        cfg = cfg or default_settings
        self.client = client
        self.store = store
        self.default_model = cfg.OPENROUTER_MODEL
        self.temperature = cfg.ITINERARY_TEMPERATURE
        self.max_trip_days = cfg.MAX_TRIP_DAYS
        self._today = today

    # ---------- generation ----------

    def day_count(self, req: GenerationRequest) -> int:
        n = (req.end_date - req.start_date).days + 1
        if n <= 1 or n > self.max_trip_days:
            raise ValidationError(f"Invalid date range. Trips must cover 2 to {self.max_trip_days} days.")
        return n

    async def generate(
        self,
        owner_id: str,
        req: GenerationRequest,
        progress: Optional[Progress] = None,
    ) -> ItineraryView:
        rid = ensure_request_id()
        stage = GenerationStage.BUILDING

        def advance(next_stage: GenerationStage, msg: str) -> None:
            nonlocal stage
            stage = next_stage
            log.info("Generation stage: %s", next_stage.value, extra={"request_id": rid, "destination": req.destination})
            self._notify(progress, msg)

        try:
            advance(GenerationStage.BUILDING, "Building prompt")
            day_count = self.day_count(req)
            prompt = build_itinerary_prompt(req, day_count)

            advance(GenerationStage.CALLING, "Calling model")
            completion = await self.client.complete(
                prompt,
                model=req.model or self.default_model,
                temperature=self.temperature,
            )

            advance(GenerationStage.PARSING, "Parsing response")
            plan = try_parse(completion.content, start_date=req.start_date).unwrap()
            if len(plan.days) != day_count:
                raise MalformedResponseError(f"Expected {day_count} days in model response, got {len(plan.days)}")

            advance(GenerationStage.PERSISTING, "Persisting itinerary")
            record = await self._persist(owner_id, req, plan)
            view = await self._load_view(record)
        except ItineraryServiceError as e:
            log.warning(
                "Itinerary generation failed at stage %s: %s", stage.value, e.kind,
                extra={"request_id": rid, "stage": GenerationStage.FAILED.value, "detail": e.detail},
            )
            self._notify(progress, f"Failed: {e.kind}")
            raise

        advance(GenerationStage.DONE, "Done")
        log.info("Itinerary generated", extra={
            "request_id": rid,
            "itinerary_id": view.itinerary_id,
            "days": len(view.days),
            "activities_total": sum(len(d.activities) for d in view.days),
        })
        return view

    async def regenerate(
        self,
        itinerary_id: str,
        owner_id: str,
        options: Optional[RegenerateOptions] = None,
        progress: Optional[Progress] = None,
    ) -> ItineraryView:
        """Generate a new itinerary from an existing one's inputs; the old one is left as is."""
        existing = await self._owned(itinerary_id, owner_id)
        options = options or RegenerateOptions()
        req = GenerationRequest.from_payload({
            "destination": existing.destination,
            "start_date": existing.start_date,
            "end_date": existing.end_date,
            "number_of_travelers": existing.number_of_travelers,
            "trip_type": options.change_trip_type or existing.trip_type,
            "preferences": options.change_preferences
            if options.change_preferences is not None else existing.preferences,
            "special_requests": options.special_requests,
        })
        return await self.generate(owner_id, req, progress=progress)

    async def quick_generate(
        self,
        owner_id: str,
        quick: QuickGenerateRequest,
        progress: Optional[Progress] = None,
    ) -> ItineraryView:
        start = self._today() + timedelta(days=QUICK_TRIP_LEAD_DAYS)
        req = GenerationRequest.from_payload({
            "destination": quick.destination,
            "start_date": start,
            "end_date": start + timedelta(days=quick.days - 1),
            "number_of_travelers": QUICK_TRIP_TRAVELERS,
            "trip_type": quick.trip_type,
            "preferences": quick.preferences,
        })
        return await self.generate(owner_id, req, progress=progress)

    # ---------- reads / delete ----------

    async def list_by_owner(self, owner_id: str) -> List[ItineraryView]:
        """Summary list: no nested days, aggregate cost left at 0."""
        records = await self.store.find_itineraries_by_owner(owner_id)
        return [self._view(r, days=[], total_cost=0.0) for r in records]

    async def get_by_id(self, itinerary_id: str, owner_id: str) -> ItineraryView:
        record = await self._owned(itinerary_id, owner_id)
        return await self._load_view(record)

    async def delete(self, itinerary_id: str, owner_id: str) -> bool:
        record = await self._owned(itinerary_id, owner_id)
        days = await self.store.find_days(record.id)
        removed_acts = await self.store.delete_activities([d.id for d in days]) if days else 0
        removed_days = await self.store.delete_days(record.id)
        await self.store.delete_itinerary(record.id)
        log.info("Itinerary deleted", extra={
            "itinerary_id": record.id,
            "days": removed_days,
            "activities_total": removed_acts,
        })
        return True

    # ---------- internals ----------

    @staticmethod
    def _notify(progress: Optional[Progress], msg: str) -> None:
        if progress is None:
            return
        try:
            progress(msg)
        except Exception:
            log.debug("Progress callback raised", exc_info=True)

    async def _owned(self, itinerary_id: str, owner_id: str) -> ItineraryRecord:
        record = await self.store.find_itinerary(itinerary_id)
        if record is None or record.owner_id != owner_id:
            log.info("Itinerary lookup rejected", extra={"itinerary_id": itinerary_id})
            raise NotFoundOrForbiddenError()
        return record

    async def _persist(self, owner_id: str, req: GenerationRequest, plan: GeneratedPlan) -> ItineraryRecord:
        # Parent first, then each day, then that day's activities
        record = await self.store.insert_itinerary({
            "owner_id": owner_id,
            "destination": req.destination,
            "start_date": req.start_date,
            "end_date": req.end_date,
            "number_of_travelers": req.number_of_travelers,
            "preferences": list(req.preferences),
            "trip_type": req.trip_type.value,
            "ai_summary": plan.summary,
            "ai_suggestions": list(plan.suggestions),
            "weather_summary": plan.weather_info.summary,
            "chance_of_rain": plan.weather_info.chance_of_rain,
            "temperature_min": plan.weather_info.temperature_min,
            "temperature_max": plan.weather_info.temperature_max,
        })
        activities_total = 0
        for day in plan.days:
            day_record = await self.store.insert_day({
                "itinerary_id": record.id,
                "day_number": day.day_number,
                "date": day.date or req.start_date + timedelta(days=day.day_number - 1),
                "weather_summary": day.weather_summary,
                "temperature_min": day.temperature_min,
                "temperature_max": day.temperature_max,
                "chance_of_rain": day.chance_of_rain,
            })
            for act in day.activities:
                await self.store.insert_activity({"day_id": day_record.id, **act.model_dump(mode="json")})
                activities_total += 1
        log.info("Itinerary persisted", extra={
            "itinerary_id": record.id,
            "days": len(plan.days),
            "activities_total": activities_total,
        })
        return record

    async def _load_view(self, record: ItineraryRecord) -> ItineraryView:
        days = await self.store.find_days(record.id)
        activities = await self.store.find_activities([d.id for d in days]) if days else []

        by_day: Dict[str, List[ActivityRecord]] = defaultdict(list)
        for a in activities:
            by_day[a.day_id].append(a)

        day_views = [
            ItineraryDayView(
                day_number=d.day_number,
                date=d.date,
                weather_summary=d.weather_summary,
                temperature_min=d.temperature_min,
                temperature_max=d.temperature_max,
                chance_of_rain=d.chance_of_rain,
                activities=[_activity_view(a) for a in by_day[d.id]],
            )
            for d in days
        ]
        total = sum(a.estimated_cost for a in activities)
        return self._view(record, days=day_views, total_cost=total)

    @staticmethod
    def _view(record: ItineraryRecord, days: List[ItineraryDayView], total_cost: float) -> ItineraryView:
        return ItineraryView(
            itinerary_id=record.id,
            destination=record.destination,
            start_date=record.start_date,
            end_date=record.end_date,
            number_of_travelers=record.number_of_travelers,
            preferences=record.preferences,
            trip_type=record.trip_type,
            ai_summary=record.ai_summary,
            ai_suggestions=record.ai_suggestions,
            weather_summary=record.weather_summary,
            chance_of_rain=record.chance_of_rain,
            temperature_min=record.temperature_min,
            temperature_max=record.temperature_max,
            days=days,
            total_estimated_cost=total_cost,
            created_at=record.created_at,
            updated_at=record.updated_at,
        )
