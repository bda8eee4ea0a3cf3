import asyncio
import dataclasses
import json
from typing import Any, Dict, List, Optional, Tuple, Type, TypeVar

from ..models import (
    GameEvent,
    GamePolicy,
    GameState,
    Plant,
    PlantModifiers,
    Quest,
    QuestReward,
    Settings,
    SlotItem,
    Stats,
    TradeOffer,
    TradeState,
)
from .logging_helper import LoggingHelper
from .quest_helper import QuestHelper
from .time_helper import TimeHelper

T = TypeVar("T")


class GameStateHelper:
    """
    The single source of truth for all persistent game data.
    Holds the live GameState snapshot and is the sole gatekeeper for disk I/O with Red's Config.
    The saved blob is additive-only: older saves are merged into the current default shape on load.
    """

    def __init__(self, config_object, logger: LoggingHelper, policy: GamePolicy, quest_helper: QuestHelper):
        self.config = config_object
        self.logger = logger
        self.policy = policy
        self.quest_helper = quest_helper
        self.game_state: GameState = self.default_state()
        self.last_saved_at: Optional[int] = None
        self.pending_commit: Optional[asyncio.Task] = None

    def default_state(self) -> GameState:
        return GameState(
            nugs=self.policy.starting_nugs,
            buds=self.policy.starting_buds,
            slots=(None,) * self.policy.starting_slots,
            upgrades={},
            trade=TradeState(),
            event=None,
            quests=self.quest_helper.default_quests(),
            stats=Stats(),
            settings=Settings(),
        )

    # --- Serialization ---

    @staticmethod
    def state_to_dict(state: GameState) -> Dict[str, Any]:
        return dataclasses.asdict(state)

    def serialize(self, state: GameState) -> str:
        return json.dumps(self.state_to_dict(state), separators=(",", ":"))

    def deserialize(self, blob: Optional[str]) -> GameState:
        """Never raises. An unreadable blob is logged and replaced by a fresh game."""

        if not blob:
            return self.default_state()

        try:
            parsed = json.loads(blob)
            if not isinstance(parsed, dict):
                raise ValueError(f"expected a JSON object, got {type(parsed).__name__}")
            return self.state_from_dict(parsed)
        except (ValueError, TypeError, KeyError, AttributeError) as e:
            self.logger.log(f"Load Failure: Saved game could not be read ({e}). Starting a fresh game.", "ERROR")
            return self.default_state()

    @staticmethod
    def _merged(defaults: Dict[str, Any], saved: Any) -> Dict[str, Any]:
        """Fills keys missing from `saved` with `defaults`. Keys the current schema does not know are dropped."""

        merged = dict(defaults)
        if isinstance(saved, dict):
            merged.update({k: v for k, v in saved.items() if k in defaults})
        return merged

    @staticmethod
    def _build(cls: Type[T], data: Dict[str, Any]) -> T:
        known_fields = {f.name for f in dataclasses.fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known_fields})

    def _plant_from_dict(self, plant_dict: Any) -> SlotItem:
        if not isinstance(plant_dict, dict):
            return None

        try:
            modifiers = self._build(
                PlantModifiers, self._merged(dataclasses.asdict(PlantModifiers()), plant_dict.get("modifiers")))
            plant_data = dict(plant_dict)
            plant_data["modifiers"] = modifiers
            return self._build(Plant, plant_data)
        except TypeError as e:
            self.logger.log(f"Load Warning: Dropping unreadable plant entry {plant_dict!r}: {e}", "WARNING")
            return None

    def _event_from_dict(self, event_dict: Any) -> Optional[GameEvent]:
        if not isinstance(event_dict, dict):
            return None

        try:
            return self._build(GameEvent, event_dict)
        except TypeError as e:
            self.logger.log(f"Load Warning: Dropping unreadable event {event_dict!r}: {e}", "WARNING")
            return None

    def _offer_from_dict(self, offer_dict: Any) -> Optional[TradeOffer]:
        try:
            return self._build(TradeOffer, offer_dict)
        except (TypeError, AttributeError) as e:
            self.logger.log(f"Load Warning: Dropping unreadable trade offer {offer_dict!r}: {e}", "WARNING")
            return None

    def _quest_from_dict(self, quest_dict: Any) -> Optional[Quest]:
        try:
            quest_data = dict(quest_dict)
            quest_data["reward"] = self._build(QuestReward, quest_data.get("reward") or {})
            return self._build(Quest, quest_data)
        except (TypeError, ValueError, AttributeError) as e:
            self.logger.log(f"Load Warning: Dropping unreadable quest {quest_dict!r}: {e}", "WARNING")
            return None

    def _quests_from_list(self, saved_quests: Any) -> Tuple[Quest, ...]:
        defaults = self.quest_helper.default_quests()
        if not isinstance(saved_quests, list):
            return defaults

        quests: List[Quest] = [q for q in map(self._quest_from_dict, saved_quests) if q is not None]

        known_ids = {q.id for q in quests}
        quests.extend(q for q in defaults if q.id not in known_ids)
        return tuple(quests)

    def state_from_dict(self, saved: Dict[str, Any]) -> GameState:
        defaults = self.default_state()

        trade_dict = self._merged(dataclasses.asdict(defaults.trade), saved.get("trade"))
        saved_offers = trade_dict["offers"] if isinstance(trade_dict["offers"], list) else []
        trade = TradeState(
            offers=tuple(o for o in map(self._offer_from_dict, saved_offers) if o is not None),
            next_refresh_at=trade_dict["next_refresh_at"],
        )

        slots = saved.get("slots")
        if not isinstance(slots, list):
            slots = [None] * len(defaults.slots)

        return GameState(
            nugs=saved.get("nugs", defaults.nugs),
            buds=saved.get("buds", defaults.buds),
            slots=tuple(self._plant_from_dict(p) for p in slots),
            upgrades=dict(saved.get("upgrades") or {}),
            trade=trade,
            event=self._event_from_dict(saved.get("event")),
            quests=self._quests_from_list(saved.get("quests")),
            stats=self._build(Stats, self._merged(dataclasses.asdict(defaults.stats), saved.get("stats"))),
            settings=self._build(Settings, self._merged(dataclasses.asdict(defaults.settings), saved.get("settings"))),
        )

    # --- Live state & disk I/O ---

    def get_state(self) -> GameState:
        return self.game_state

    def set_state(self, new_state: GameState):
        """Swaps in a new snapshot. The previous one is never mutated."""
        self.game_state = new_state

    async def load_game_state(self):
        """Loads the saved blob from Config and merges it into the current default shape."""

        blob = await self.config.save_blob()
        self.game_state = self.deserialize(blob)
        self.logger.log("System Startup: Game state loaded into memory.", "INFO")

    async def commit_to_disk(self, now: Optional[int] = None):
        await self.config.save_blob.set(self.serialize(self.game_state))
        self.last_saved_at = now if now is not None else TimeHelper.now_ms()

    def schedule_commit(self, loop: asyncio.AbstractEventLoop) -> asyncio.Task:
        """Starts a save on `loop` without awaiting it. The task is kept and its failure is logged."""

        self.pending_commit = loop.create_task(self.commit_to_disk())
        self.pending_commit.add_done_callback(self._log_commit_outcome)
        return self.pending_commit

    def _log_commit_outcome(self, task: asyncio.Task):
        if task.cancelled():
            self.logger.log("Save Failure: Background save was cancelled before it finished.", "ERROR")
        elif task.exception() is not None:
            self.logger.log(f"Save Failure: Background save failed: {task.exception()!r}", "ERROR")

    async def autosave_if_due(self, now: int) -> bool:
        if self.last_saved_at is not None and now - self.last_saved_at < self.policy.autosave_interval_ms:
            return False

        await self.commit_to_disk(now)
        return True

    async def reset_game(self):
        """Wipes the persisted blob and returns the in-memory state to a fresh game."""

        await self.config.save_blob.clear()
        self.game_state = self.default_state()
        self.last_saved_at = None
        self.logger.log("Game Reset: Saved data cleared and state restored to defaults.", "WARNING")
