import math
from dataclasses import replace
from typing import Optional

from ..errors import InvalidState
from ..models import ActionCheck, GameEvent, HarvestResult, Plant, PlantModifiers
from .catalog_helper import CatalogHelper
from .logging_helper import LoggingHelper


class PlantHelper:
    """
    The plant growth engine. Advances phase timers and answers care and harvest questions.
    Every method returns a new Plant; quests and stats are left to the caller.
    """

    def __init__(self, catalog: CatalogHelper, logger: LoggingHelper):
        self.catalog = catalog
        self.policy = catalog.policy
        self.logger = logger

    def create_plant(self, strain_id: str, soil_type: str, now: int, slot_index: int) -> Plant:
        return Plant(
            id=f"plant-{now}-{slot_index}",
            strain_id=strain_id,
            phase_index=0,
            elapsed_in_phase=0.0,
            planted_at=now,
            modifiers=PlantModifiers(soil_type=soil_type),
        )

    def phase_duration(self, plant: Plant, event: Optional[GameEvent] = None) -> Optional[float]:
        """Seconds the plant must spend in its current phase. None if the plant references unknown catalog data."""

        phase_def = self.catalog.get_phase(plant.phase_index)
        strain_def = self.catalog.get_strain(plant.strain_id)
        soil_multiplier = self.catalog.soil_multiplier(plant.modifiers.soil_type)

        if phase_def is None or strain_def is None or soil_multiplier is None:
            return None

        growth_multiplier = 1.0
        if event is not None and event.growth_multiplier is not None:
            growth_multiplier = event.growth_multiplier

        return phase_def.duration * strain_def.growth_multiplier * soil_multiplier * growth_multiplier

    def advance(self, plant: Plant, event: Optional[GameEvent], delta_seconds: float) -> Plant:
        """
        Moves the phase timer forward. A plant that reached 100% of its last phase is marked
        harvest ready and stays that way until harvested, whatever events start or end afterwards.
        """

        if plant.harvest_ready:
            return plant

        duration = self.phase_duration(plant, event)
        if duration is None:
            self.logger.report_invariant(
                f"Plant {plant.id} references unknown catalog data "
                f"(strain '{plant.strain_id}', soil '{plant.modifiers.soil_type}', phase {plant.phase_index}).")
            return plant

        delta = max(0.0, delta_seconds)

        if plant.phase_index >= self.catalog.last_phase_index:
            clamped = min(duration, plant.elapsed_in_phase + delta)
            if clamped == plant.elapsed_in_phase and clamped < duration:
                return plant
            return replace(plant, elapsed_in_phase=clamped, harvest_ready=clamped >= duration)

        elapsed = plant.elapsed_in_phase + delta
        if elapsed >= duration:
            return replace(plant, phase_index=plant.phase_index + 1, elapsed_in_phase=0.0)

        return replace(plant, elapsed_in_phase=elapsed)

    def progress(self, plant: Plant, event: Optional[GameEvent] = None) -> float:
        """Percent of the current phase completed, 0-100."""

        if plant.harvest_ready:
            return 100.0

        duration = self.phase_duration(plant, event)
        if not duration:
            return 0.0
        return min(100.0, plant.elapsed_in_phase / duration * 100.0)

    def is_harvest_ready(self, plant: Plant, event: Optional[GameEvent] = None) -> bool:
        if plant.phase_index != self.catalog.last_phase_index:
            return False
        return plant.harvest_ready or self.progress(plant, event) >= 100.0

    def water_cooldown_ms(self, plant: Plant) -> int:
        phase_def = self.catalog.get_phase(plant.phase_index)
        if phase_def is not None and phase_def.water_cooldown_ms is not None:
            return phase_def.water_cooldown_ms
        return self.policy.water_cooldown_ms

    @staticmethod
    def _cooldown_remaining(last_action_time: int, cooldown_ms: int, now: int) -> int:
        if last_action_time <= 0:
            return 0
        return max(0, last_action_time + cooldown_ms - now)

    def can_water(self, plant: Plant, nugs: int, now: int, event: Optional[GameEvent] = None) -> ActionCheck:
        cost = self.policy.water_cost
        total = self.water_cooldown_ms(plant)
        remaining = self._cooldown_remaining(plant.modifiers.last_water_time, total, now)

        reason = None
        if self.is_harvest_ready(plant, event):
            reason = "harvest ready"
        elif remaining > 0:
            reason = "cooling down"
        elif nugs < cost:
            reason = "insufficient funds"

        return ActionCheck(can_perform=reason is None, cost=cost, cooldown_remaining_ms=remaining,
                           cooldown_total_ms=total, reason=reason)

    def can_fertilize(self, plant: Plant, nugs: int, now: int, event: Optional[GameEvent] = None) -> ActionCheck:
        cost = self.policy.fertilizer_cost
        total = self.policy.fertilizer_cooldown_ms
        remaining = self._cooldown_remaining(plant.modifiers.last_fertilizer_time, total, now)

        reason = None
        if self.is_harvest_ready(plant, event):
            reason = "harvest ready"
        elif plant.modifiers.quality_multiplier >= self.policy.max_quality:
            reason = "quality maxed"
        elif remaining > 0:
            reason = "cooling down"
        elif nugs < cost:
            reason = "insufficient funds"

        return ActionCheck(can_perform=reason is None, cost=cost, cooldown_remaining_ms=remaining,
                           cooldown_total_ms=total, reason=reason)

    def _raise_quality(self, quality: float, bonus: float) -> float:
        return min(self.policy.max_quality, round(quality + bonus, 4))

    def water(self, plant: Plant, now: int) -> Plant:
        phase_def = self.catalog.get_phase(plant.phase_index)
        quality = plant.modifiers.quality_multiplier
        if phase_def is not None and phase_def.water_recommended:
            quality = self._raise_quality(quality, self.policy.water_quality_bonus)

        modifiers = replace(
            plant.modifiers,
            water_stacks=plant.modifiers.water_stacks + 1,
            last_water_time=now,
            quality_multiplier=quality,
        )
        return replace(plant, modifiers=modifiers)

    def fertilize(self, plant: Plant, now: int) -> Plant:
        phase_def = self.catalog.get_phase(plant.phase_index)
        bonus = self.policy.fertilizer_quality_bonus
        if phase_def is not None and phase_def.fertilizer_recommended:
            bonus = self.policy.fertilizer_recommended_bonus

        modifiers = replace(
            plant.modifiers,
            fertilizer_applied=True,
            last_fertilizer_time=now,
            quality_multiplier=self._raise_quality(plant.modifiers.quality_multiplier, bonus),
        )
        return replace(plant, modifiers=modifiers)

    def harvest(self, plant: Plant, event: Optional[GameEvent] = None,
                yield_multiplier: float = 1.0) -> HarvestResult:
        """Raises InvalidState unless the plant sits in the last phase at 100%."""

        if not self.is_harvest_ready(plant, event):
            raise InvalidState(
                f"Plant {plant.id} is not ready for harvest (phase {plant.phase_index + 1}/"
                f"{self.catalog.phase_count}, {self.progress(plant, event):.1f}%).")

        strain_def = self.catalog.get_strain(plant.strain_id)
        quality = plant.modifiers.quality_multiplier
        buds = max(1, int(math.floor(strain_def.base_yield * quality * yield_multiplier)))
        return HarvestResult(buds_yielded=buds, quality_multiplier=quality)
