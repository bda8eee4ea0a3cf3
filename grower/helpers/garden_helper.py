import random
from dataclasses import replace
from typing import Optional, Tuple

from ..errors import InvalidState
from ..models import ActionCheck, GameState, HarvestResult, SlotItem
from .catalog_helper import CatalogHelper
from .event_helper import EventHelper
from .logging_helper import LoggingHelper
from .plant_helper import PlantHelper
from .quest_helper import QuestHelper
from .trade_helper import TradeHelper


class GardenHelper:
    """
    The operations the driver may invoke on a GameState. Each takes the current snapshot and returns
    a new one (plus an outcome where the caller needs one), composing the growth, trade, quest and
    event engines. Declined operations return the snapshot they were given.
    """

    def __init__(
        self,
        catalog: CatalogHelper,
        plant_helper: PlantHelper,
        trade_helper: TradeHelper,
        quest_helper: QuestHelper,
        event_helper: EventHelper,
        logger: LoggingHelper,
    ):
        self.catalog = catalog
        self.policy = catalog.policy
        self.plant_helper = plant_helper
        self.trade_helper = trade_helper
        self.quest_helper = quest_helper
        self.event_helper = event_helper
        self.logger = logger

    @staticmethod
    def _with_slot(state: GameState, slot_index: int, item: SlotItem) -> GameState:
        slots = list(state.slots)
        slots[slot_index] = item
        return replace(state, slots=tuple(slots))

    def _valid_slot(self, state: GameState, slot_index: int) -> bool:
        if 0 <= slot_index < len(state.slots):
            return True
        self.logger.report_invariant(f"Slot {slot_index} does not exist (garden has {len(state.slots)} slots).")
        return False

    # --- Planting ---

    def seed_cost(self, strain_id: str, soil_type: str) -> Optional[int]:
        strain_def = self.catalog.get_strain(strain_id)
        soil_def = self.catalog.get_soil(soil_type)
        if strain_def is None or soil_def is None:
            return None
        return strain_def.seed_cost + soil_def.cost

    def plant_seed(self, state: GameState, slot_index: int, strain_id: str, soil_type: str,
                   now: int) -> Tuple[GameState, bool]:
        """Plants into an empty slot, paying for the seed and the soil."""

        if not self._valid_slot(state, slot_index):
            return state, False

        cost = self.seed_cost(strain_id, soil_type)
        if cost is None:
            self.logger.report_invariant(f"Cannot plant unknown strain '{strain_id}' or soil '{soil_type}'.")
            return state, False

        if state.slots[slot_index] is not None or state.nugs < cost:
            return state, False

        plant = self.plant_helper.create_plant(strain_id, soil_type, now, slot_index)
        state = replace(state, nugs=state.nugs - cost)
        return self._with_slot(state, slot_index, plant), True

    def remove_plant(self, state: GameState, slot_index: int) -> GameState:
        if not self._valid_slot(state, slot_index):
            return state
        return self._with_slot(state, slot_index, None)

    def update_plant(self, state: GameState, slot_index: int, elapsed: float, phase_index: int) -> GameState:
        """Direct timer override. Phases may only move forward."""

        if not self._valid_slot(state, slot_index):
            return state

        plant = state.slots[slot_index]
        if plant is None:
            return state

        if phase_index < plant.phase_index or phase_index > self.catalog.last_phase_index:
            self.logger.report_invariant(
                f"Refusing to move plant {plant.id} from phase {plant.phase_index} to {phase_index}.")
            return state

        updated = replace(plant, phase_index=phase_index, elapsed_in_phase=max(0.0, elapsed))
        duration = self.plant_helper.phase_duration(updated, state.event)
        if duration is not None and updated.elapsed_in_phase >= duration:
            updated = replace(updated, elapsed_in_phase=duration,
                              harvest_ready=phase_index == self.catalog.last_phase_index)

        return self._with_slot(state, slot_index, updated)

    def tick_growth(self, state: GameState, delta_seconds: float) -> GameState:
        """Advances every planted slot by `delta_seconds` under the active event."""

        slots = tuple(
            self.plant_helper.advance(p, state.event, delta_seconds) if p is not None else None
            for p in state.slots
        )
        if slots == state.slots:
            return state
        return replace(state, slots=slots)

    # --- Care ---

    def water(self, state: GameState, slot_index: int, now: int) -> Tuple[GameState, Optional[ActionCheck]]:
        if not self._valid_slot(state, slot_index) or state.slots[slot_index] is None:
            return state, None

        plant = state.slots[slot_index]
        check = self.plant_helper.can_water(plant, state.nugs, now, state.event)
        if not check.can_perform:
            return state, check

        state = replace(
            state,
            nugs=state.nugs - check.cost,
            quests=QuestHelper.record_action(state.quests, "water", 1),
        )
        return self._with_slot(state, slot_index, self.plant_helper.water(plant, now)), check

    def fertilize(self, state: GameState, slot_index: int, now: int) -> Tuple[GameState, Optional[ActionCheck]]:
        if not self._valid_slot(state, slot_index) or state.slots[slot_index] is None:
            return state, None

        plant = state.slots[slot_index]
        check = self.plant_helper.can_fertilize(plant, state.nugs, now, state.event)
        if not check.can_perform:
            return state, check

        state = replace(state, nugs=state.nugs - check.cost)
        return self._with_slot(state, slot_index, self.plant_helper.fertilize(plant, now)), check

    def harvest(self, state: GameState, slot_index: int) -> Tuple[GameState, Optional[HarvestResult]]:
        if not self._valid_slot(state, slot_index):
            return state, None

        plant = state.slots[slot_index]
        if plant is None:
            self.logger.report_invariant(f"Tried to harvest empty slot {slot_index}.")
            return state, None

        try:
            result = self.plant_helper.harvest(plant, state.event, self.catalog.yield_multiplier(state.upgrades))
        except InvalidState as e:
            self.logger.report_invariant(str(e))
            return state, None

        stats = replace(
            state.stats,
            total_harvests=state.stats.total_harvests + 1,
            best_harvest=max(state.stats.best_harvest, result.buds_yielded),
            total_buds_harvested=state.stats.total_buds_harvested + result.buds_yielded,
        )
        state = replace(
            state,
            buds=state.buds + result.buds_yielded,
            stats=stats,
            quests=QuestHelper.record_action(state.quests, "harvest", 1),
        )
        return self._with_slot(state, slot_index, None), result

    # --- Trade, quests, events ---

    def generate_offers(self, state: GameState, now: int, rng: random.Random) -> Tuple[GameState, bool]:
        return self.trade_helper.refresh_offers(state, now, rng)

    def accept_offer(self, state: GameState, offer_id: str) -> Tuple[GameState, bool]:
        return self.trade_helper.accept_offer(state, offer_id)

    def haggle_offer(self, state: GameState, offer_id: str, rng: random.Random) -> Tuple[GameState, bool]:
        return self.trade_helper.haggle(state, offer_id, rng)

    def claim_quest(self, state: GameState, quest_id: str) -> Tuple[GameState, bool]:
        return self.quest_helper.claim(state, quest_id)

    def trigger_event(self, state: GameState, now: int, rng: random.Random) -> GameState:
        event = self.event_helper.trigger(state.settings, now, rng, current=state.event)
        if event is None:
            return state
        return replace(state, event=event)

    def tick_event(self, state: GameState, now: int) -> GameState:
        event = self.event_helper.expire(state.event, now)
        if event is state.event:
            return state
        return replace(state, event=event)

    def set_random_events(self, state: GameState, enabled: bool) -> GameState:
        return replace(state, settings=replace(state.settings, random_events_enabled=enabled))

    # --- Currencies ---

    def add_nugs(self, state: GameState, amount: int) -> GameState:
        if amount < 0:
            self.logger.report_invariant(f"add_nugs called with negative amount {amount}; use spend_nugs.")
            return state
        stats = replace(state.stats, total_nugs_earned=state.stats.total_nugs_earned + amount)
        return replace(state, nugs=state.nugs + amount, stats=stats)

    @staticmethod
    def spend_nugs(state: GameState, amount: int) -> Tuple[GameState, bool]:
        if amount < 0 or state.nugs < amount:
            return state, False
        return replace(state, nugs=state.nugs - amount), True

    @staticmethod
    def add_buds(state: GameState, amount: int) -> GameState:
        return replace(state, buds=max(0, state.buds + amount))

    @staticmethod
    def spend_buds(state: GameState, amount: int) -> Tuple[GameState, bool]:
        if amount < 0 or state.buds < amount:
            return state, False
        return replace(state, buds=state.buds - amount), True

    # --- Progression ---

    @staticmethod
    def upgrade_level(state: GameState, upgrade_id: str) -> GameState:
        upgrades = dict(state.upgrades)
        upgrades[upgrade_id] = upgrades.get(upgrade_id, 0) + 1
        return replace(state, upgrades=upgrades)

    @staticmethod
    def add_slot(state: GameState) -> GameState:
        return replace(state, slots=state.slots + (None,))

    def buy_upgrade(self, state: GameState, upgrade_id: str) -> Tuple[GameState, Optional[str]]:
        """Returns the new state and None on success, or the unchanged state and a reason code."""

        if self.catalog.get_upgrade(upgrade_id) is None:
            return state, "unknown upgrade"

        cost = self.catalog.upgrade_cost(upgrade_id, state.upgrades.get(upgrade_id, 0))
        if cost is None:
            return state, "max level"

        state, paid = self.spend_nugs(state, cost)
        if not paid:
            return state, "insufficient funds"

        return self.upgrade_level(state, upgrade_id), None

    def buy_slot(self, state: GameState) -> Tuple[GameState, Optional[str]]:
        if len(state.slots) >= self.policy.max_slots:
            return state, "max slots"

        state, paid = self.spend_nugs(state, self.catalog.slot_cost(len(state.slots)))
        if not paid:
            return state, "insufficient funds"

        return self.add_slot(state), None
