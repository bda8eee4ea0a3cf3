from dataclasses import replace
from typing import List, Tuple

from ..models import GameState, Quest, QuestDefinition, QuestReward

QUEST_TYPES = ("harvest", "sell", "water")


class QuestHelper:
    """Tracks quest progress from harvest, sell and water actions and resolves reward claims."""

    def __init__(self, quest_definitions: List[QuestDefinition]):
        self.quest_definitions = list(quest_definitions)

        for quest_def in self.quest_definitions:
            if quest_def.type not in QUEST_TYPES:
                print(f"CRITICAL WARNING: Quest '{quest_def.id}' has unknown type '{quest_def.type}'. "
                      f"It can never progress.")

    def default_quests(self) -> Tuple[Quest, ...]:
        return tuple(
            Quest(
                id=q.id,
                type=q.type,
                description=q.description,
                goal=q.goal,
                reward=QuestReward(nugs=q.reward_nugs, buds=q.reward_buds),
            )
            for q in self.quest_definitions
        )

    @staticmethod
    def record_action(quests: Tuple[Quest, ...], action_type: str, amount: int) -> Tuple[Quest, ...]:
        """Advances every unclaimed quest of `action_type`, clamped to its goal."""

        if amount <= 0:
            return quests

        return tuple(
            replace(q, progress=min(q.goal, q.progress + amount))
            if q.type == action_type and not q.claimed else q
            for q in quests
        )

    @staticmethod
    def claim(state: GameState, quest_id: str) -> Tuple[GameState, bool]:
        index = next((i for i, q in enumerate(state.quests) if q.id == quest_id), None)
        if index is None:
            return state, False

        quest = state.quests[index]
        if quest.claimed or quest.progress < quest.goal:
            return state, False

        quests = list(state.quests)
        quests[index] = replace(quest, claimed=True)

        return replace(
            state,
            quests=tuple(quests),
            nugs=state.nugs + (quest.reward.nugs or 0),
            buds=state.buds + (quest.reward.buds or 0),
        ), True
