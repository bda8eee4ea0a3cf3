from .assets import (
    PhaseDefinition,
    StrainDefinition,
    SoilDefinition,
    EventPreset,
    QuestDefinition,
    UpgradeDefinition,
    GamePolicy,
)
from .game_state import (
    PlantModifiers,
    Plant,
    SlotItem,
    TradeOffer,
    TradeState,
    GameEvent,
    QuestReward,
    Quest,
    Stats,
    Settings,
    GameState,
    ActionCheck,
    HarvestResult,
)

__all__ = [
    "PhaseDefinition",
    "StrainDefinition",
    "SoilDefinition",
    "EventPreset",
    "QuestDefinition",
    "UpgradeDefinition",
    "GamePolicy",
    "PlantModifiers",
    "Plant",
    "SlotItem",
    "TradeOffer",
    "TradeState",
    "GameEvent",
    "QuestReward",
    "Quest",
    "Stats",
    "Settings",
    "GameState",
    "ActionCheck",
    "HarvestResult",
]
