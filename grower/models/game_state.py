from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple, Union


@dataclass(frozen=True)
class PlantModifiers:
    """Care applied to a plant over its life."""
    water_stacks: int = 0
    fertilizer_applied: bool = False
    soil_type: str = "basic"
    last_water_time: int = 0
    last_fertilizer_time: int = 0
    quality_multiplier: float = 1.0


@dataclass(frozen=True)
class Plant:
    """Represents the occupant of one growth slot."""
    id: str
    strain_id: str
    phase_index: int = 0
    elapsed_in_phase: float = 0.0
    planted_at: int = 0
    modifiers: PlantModifiers = field(default_factory=PlantModifiers)
    harvest_ready: bool = False


SlotItem = Union[Plant, None]


@dataclass(frozen=True)
class TradeOffer:
    id: str
    quantity: int
    price_per_bud: float


@dataclass(frozen=True)
class TradeState:
    offers: Tuple[TradeOffer, ...] = ()
    next_refresh_at: int = 0


@dataclass(frozen=True)
class GameEvent:
    """An active timed modifier. Missing multipliers act as 1."""
    id: str
    name: str
    description: str
    ends_at: int
    price_multiplier: Optional[float] = None
    quantity_multiplier: Optional[float] = None
    growth_multiplier: Optional[float] = None


@dataclass(frozen=True)
class QuestReward:
    nugs: Optional[int] = None
    buds: Optional[int] = None


@dataclass(frozen=True)
class Quest:
    id: str
    type: str
    description: str
    goal: int
    progress: int = 0
    reward: QuestReward = field(default_factory=QuestReward)
    claimed: bool = False


@dataclass(frozen=True)
class Stats:
    total_harvests: int = 0
    best_harvest: int = 0
    total_nugs_earned: int = 0
    total_buds_harvested: int = 0
    total_buds_sold: int = 0
    total_trades: int = 0


@dataclass(frozen=True)
class Settings:
    sfx_enabled: bool = True
    random_events_enabled: bool = True


@dataclass(frozen=True)
class GameState:
    """The root snapshot. Engine operations return a new instance instead of mutating this one."""
    nugs: int = 0
    buds: int = 0
    slots: Tuple[SlotItem, ...] = ()
    upgrades: Dict[str, int] = field(default_factory=dict)
    trade: TradeState = field(default_factory=TradeState)
    event: Optional[GameEvent] = None
    quests: Tuple[Quest, ...] = ()
    stats: Stats = field(default_factory=Stats)
    settings: Settings = field(default_factory=Settings)


# --- Query results ---

@dataclass(frozen=True)
class ActionCheck:
    """Eligibility of a care action. `reason` is a stable code, set only when `can_perform` is False."""
    can_perform: bool
    cost: int
    cooldown_remaining_ms: int
    cooldown_total_ms: int
    reason: Optional[str] = None


@dataclass(frozen=True)
class HarvestResult:
    buds_yielded: int
    quality_multiplier: float
