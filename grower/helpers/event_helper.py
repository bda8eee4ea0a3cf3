import random
from typing import List, Optional

from ..models import EventPreset, GameEvent, GamePolicy, Settings
from .logging_helper import LoggingHelper


class EventHelper:
    """Picks timed global modifiers from the preset list and expires them."""

    def __init__(self, presets: List[EventPreset], policy: GamePolicy, logger: LoggingHelper):
        self.presets = list(presets)
        self.policy = policy
        self.logger = logger

    def trigger(self, settings: Settings, now: int, rng: random.Random,
                current: Optional[GameEvent] = None) -> Optional[GameEvent]:
        """
        Returns a freshly started event, or None when random events are switched off.
        An active event is replaced; the newest trigger always wins.
        """

        if not settings.random_events_enabled or not self.presets:
            return None

        preset = rng.choice(self.presets)

        if current is not None:
            self.logger.log(f"Event '{current.name}' overwritten by '{preset.name}' before it ended.", "DEBUG")

        return GameEvent(
            id=preset.id,
            name=preset.name,
            description=preset.description,
            ends_at=now + self.policy.event_duration_ms,
            price_multiplier=preset.price_multiplier,
            quantity_multiplier=preset.quantity_multiplier,
            growth_multiplier=preset.growth_multiplier,
        )

    @staticmethod
    def expire(event: Optional[GameEvent], now: int) -> Optional[GameEvent]:
        if event is None or now >= event.ends_at:
            return None
        return event

    def roll_trigger(self, rng: random.Random) -> bool:
        """Whether the polling loop should fire an event on this cycle."""
        return rng.random() < self.policy.event_trigger_chance
