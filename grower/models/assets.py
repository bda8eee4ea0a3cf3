from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class PhaseDefinition:
    """Represents a single growth phase from phases.json."""
    id: str
    name: str
    duration: float
    water_recommended: bool = False
    fertilizer_recommended: bool = False
    water_cooldown_ms: Optional[int] = None


@dataclass(frozen=True)
class StrainDefinition:
    """Represents a strain definition from strains.json."""
    id: str
    name: str
    growth_multiplier: float = 1.0
    base_yield: int = 10
    seed_cost: int = 0


@dataclass(frozen=True)
class SoilDefinition:
    """Represents a soil type from soils.json."""
    id: str
    name: str
    growth_multiplier: float = 1.0
    cost: int = 0


@dataclass(frozen=True)
class EventPreset:
    """A random event template from events.json. The end time is set when it fires."""
    id: str
    name: str
    description: str
    price_multiplier: Optional[float] = None
    quantity_multiplier: Optional[float] = None
    growth_multiplier: Optional[float] = None


@dataclass(frozen=True)
class QuestDefinition:
    """A quest from quests.json, seeded into every new game."""
    id: str
    type: str
    description: str
    goal: int
    reward_nugs: Optional[int] = None
    reward_buds: Optional[int] = None


@dataclass(frozen=True)
class UpgradeDefinition:
    """A purchasable upgrade from upgrades.json."""
    id: str
    name: str
    cost: int
    description: str = ""
    cost_multiplier: float = 1.5
    max_level: int = 5
    yield_bonus: float = 0.0


@dataclass(frozen=True)
class GamePolicy:
    """Tunable rule constants from policy.json. Defaults match the shipped file."""
    starting_nugs: int = 100
    starting_buds: int = 0
    starting_slots: int = 2
    max_slots: int = 12
    slot_base_cost: int = 250
    slot_cost_multiplier: float = 1.5

    water_cost: int = 5
    water_cooldown_ms: int = 15000
    water_quality_bonus: float = 0.02

    fertilizer_cost: int = 20
    fertilizer_cooldown_ms: int = 60000
    fertilizer_quality_bonus: float = 0.1
    fertilizer_recommended_bonus: float = 0.2
    max_quality: float = 2.0

    harvests_per_stage: int = 5
    offer_count: int = 3
    offer_refresh_ms: int = 30000
    haggle_success_chance: float = 0.4
    haggle_multiplier: float = 1.2
    max_haggle_price: float = 5.0

    event_duration_ms: int = 60000
    event_trigger_chance: float = 0.005

    autosave_interval_ms: int = 5000
    growth_tick_ms: int = 1000
