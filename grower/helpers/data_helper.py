import dataclasses
import json
import pathlib
from typing import Any, Dict, List

from ..models import (
    PhaseDefinition,
    StrainDefinition,
    SoilDefinition,
    EventPreset,
    QuestDefinition,
    UpgradeDefinition,
    GamePolicy,
)
from .logging_helper import LoggingHelper


class DataHelper:
    """
    Handles the loading and validation of all JSON data files from the data directory.
    This class is responsible for parsing raw JSON into structured dataclass objects.
    It operates in a read-only manner on the data path.
    """

    def __init__(self, data_path_obj: pathlib.Path, logger: LoggingHelper):
        self.data_path = data_path_obj
        self.logger = logger

        self.phases: List[PhaseDefinition] = []
        self.strains: List[StrainDefinition] = []
        self.soils: List[SoilDefinition] = []
        self.event_presets: List[EventPreset] = []
        self.quests: List[QuestDefinition] = []
        self.upgrades: Dict[str, UpgradeDefinition] = {}
        self.policy: GamePolicy = GamePolicy()

    def load_all_data(self):
        """Master method to load all data files and populate helper classes."""

        self.logger.log("Data loading process initiated.", "INFO")

        self.phases = self._load_phases_data()
        self.strains = self._load_strains_data()
        self.soils = self._load_soils_data()
        self.event_presets = self._load_events_data()
        self.quests = self._load_quests_data()
        self.upgrades = self._load_upgrades_data()
        self.policy = self._load_policy_data()

        self.logger.log("All data files loaded and processed.", "INFO")

    def _load_json_file(self, filename: str, default_data: Any) -> Any:
        """Generic JSON file loader with validation and logging. Does not write to disk."""

        file_path = self.data_path / filename
        log_prefix = f"Data Load ({filename}): "
        try:
            if file_path.exists():
                with open(file_path, 'r', encoding='utf-8') as f:
                    data = json.load(f)

                if data:
                    self.logger.log(f"{log_prefix}Successfully loaded {len(data)} entries.", "INFO")
                    return data
                else:
                    self.logger.log(f"{log_prefix}File is empty. Using default fallback data.", "WARNING")
                    return default_data
            else:
                self.logger.log(
                    f"{log_prefix}File not found. This is a critical error if not intended. "
                    "Using default fallback data.", "ERROR"
                )
                return default_data
        except (json.JSONDecodeError, OSError) as e:
            self.logger.log(f"{log_prefix}Failed to load or parse: {e}. Using default fallback data.", "ERROR")
            return default_data

    def _load_phases_data(self) -> List[PhaseDefinition]:
        fallback = [
            {"id": "germination", "name": "Germination", "duration": 30},
            {"id": "seedling", "name": "Seedling", "duration": 60},
            {"id": "vegetative", "name": "Vegetative", "duration": 90},
            {"id": "preflower", "name": "Pre-Flower", "duration": 90},
            {"id": "flower", "name": "Flower", "duration": 120},
            {"id": "harvest", "name": "Harvest", "duration": 60},
        ]
        data = self._load_json_file("phases.json", fallback)
        return [PhaseDefinition(**p_dict) for p_dict in data]

    def _load_strains_data(self) -> List[StrainDefinition]:
        fallback = [{"id": "northern-lights", "name": "Northern Lights"}]
        data = self._load_json_file("strains.json", fallback)

        strains = []
        for s_dict in data:
            if 'name' not in s_dict:
                s_dict['name'] = s_dict['id']
            strains.append(StrainDefinition(**s_dict))
        return strains

    def _load_soils_data(self) -> List[SoilDefinition]:
        fallback = [
            {"id": "basic", "name": "Basic Soil", "growth_multiplier": 1.0},
            {"id": "light-mix", "name": "Light-Mix", "growth_multiplier": 0.9},
            {"id": "all-mix", "name": "All-Mix", "growth_multiplier": 1.0},
        ]
        data = self._load_json_file("soils.json", fallback)
        return [SoilDefinition(**s_dict) for s_dict in data]

    def _load_events_data(self) -> List[EventPreset]:
        data = self._load_json_file("events.json", [])
        if not data:
            self.logger.log("Data Load (events.json): No event presets loaded. Random events are disabled.",
                            "WARNING")
        return [EventPreset(**e_dict) for e_dict in data]

    def _load_quests_data(self) -> List[QuestDefinition]:
        data = self._load_json_file("quests.json", [])
        return [QuestDefinition(**q_dict) for q_dict in data]

    def _load_upgrades_data(self) -> Dict[str, UpgradeDefinition]:
        data = self._load_json_file("upgrades.json", {})
        return {upgrade_id: UpgradeDefinition(id=upgrade_id, **details) for upgrade_id, details in data.items()}

    def _load_policy_data(self) -> GamePolicy:
        data = self._load_json_file("policy.json", {})

        known_fields = {f.name for f in dataclasses.fields(GamePolicy)}
        unknown = sorted(set(data) - known_fields)
        if unknown:
            self.logger.log(f"Data Load (policy.json): Ignoring unknown policy keys: {', '.join(unknown)}.",
                            "WARNING")

        return GamePolicy(**{k: v for k, v in data.items() if k in known_fields})
