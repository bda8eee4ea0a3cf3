import math
from typing import Dict, List, Mapping, Optional

from ..models import (
    PhaseDefinition,
    StrainDefinition,
    SoilDefinition,
    EventPreset,
    QuestDefinition,
    UpgradeDefinition,
    GamePolicy,
)


class CatalogHelper:
    """
    Read-only lookups over the static game catalog: phases, strains, soils, events, quests and upgrades.
    Engine helpers go through this class instead of hardcoding per-strain or per-soil rules.
    """

    def __init__(
        self,
        phases: List[PhaseDefinition],
        strains: List[StrainDefinition],
        soils: List[SoilDefinition],
        event_presets: List[EventPreset],
        quests: List[QuestDefinition],
        upgrades: Dict[str, UpgradeDefinition],
        policy: GamePolicy,
    ):
        self.phases: List[PhaseDefinition] = list(phases)
        self.strains_by_id: Dict[str, StrainDefinition] = {s.id: s for s in strains}
        self.soils_by_id: Dict[str, SoilDefinition] = {s.id: s for s in soils}
        self.event_presets: List[EventPreset] = list(event_presets)
        self.quests: List[QuestDefinition] = list(quests)
        self.upgrades_by_id: Dict[str, UpgradeDefinition] = dict(upgrades)
        self.policy = policy

        if not self.phases:
            print("CRITICAL WARNING: No growth phases were loaded. Plants will NOT grow!")

        for strain_id, strain_def in self.strains_by_id.items():
            if strain_def.growth_multiplier <= 0:
                print(f"CRITICAL WARNING: Strain '{strain_id}' has a non-positive growth multiplier.")

    @classmethod
    def from_data_helper(cls, data_helper) -> "CatalogHelper":
        return cls(
            data_helper.phases,
            data_helper.strains,
            data_helper.soils,
            data_helper.event_presets,
            data_helper.quests,
            data_helper.upgrades,
            data_helper.policy,
        )

    @property
    def phase_count(self) -> int:
        return len(self.phases)

    @property
    def last_phase_index(self) -> int:
        return len(self.phases) - 1

    def get_phase(self, phase_index: int) -> Optional[PhaseDefinition]:
        if 0 <= phase_index < len(self.phases):
            return self.phases[phase_index]
        return None

    def get_strain(self, strain_id: str) -> Optional[StrainDefinition]:
        return self.strains_by_id.get(strain_id)

    def get_all_strains(self) -> List[StrainDefinition]:
        return list(self.strains_by_id.values())

    def get_soil(self, soil_type: str) -> Optional[SoilDefinition]:
        return self.soils_by_id.get(soil_type)

    def get_all_soils(self) -> List[SoilDefinition]:
        return list(self.soils_by_id.values())

    def soil_multiplier(self, soil_type: str) -> Optional[float]:
        """None for an unknown soil. Callers must treat that as an error, not as 1.0."""
        soil_def = self.soils_by_id.get(soil_type)
        return soil_def.growth_multiplier if soil_def else None

    def get_upgrade(self, upgrade_id: str) -> Optional[UpgradeDefinition]:
        return self.upgrades_by_id.get(upgrade_id)

    def get_all_upgrades(self) -> List[UpgradeDefinition]:
        return list(self.upgrades_by_id.values())

    def upgrade_cost(self, upgrade_id: str, current_level: int) -> Optional[int]:
        """Price of the next level, or None if the upgrade is unknown or maxed out."""
        upgrade_def = self.upgrades_by_id.get(upgrade_id)
        if upgrade_def is None or current_level >= upgrade_def.max_level:
            return None
        return int(math.floor(upgrade_def.cost * (upgrade_def.cost_multiplier ** current_level)))

    def yield_multiplier(self, upgrades: Mapping[str, int]) -> float:
        bonus = 0.0
        for upgrade_id, level in upgrades.items():
            upgrade_def = self.upgrades_by_id.get(upgrade_id)
            if upgrade_def:
                bonus += upgrade_def.yield_bonus * min(level, upgrade_def.max_level)
        return 1.0 + bonus

    def slot_cost(self, slot_count: int) -> int:
        """Price of the next slot given the current number of slots."""
        purchased = max(0, slot_count - self.policy.starting_slots)
        return int(math.floor(self.policy.slot_base_cost * (self.policy.slot_cost_multiplier ** purchased)))
