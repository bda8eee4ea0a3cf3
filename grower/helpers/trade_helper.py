import math
import random
from dataclasses import replace
from typing import Optional, Tuple

from ..models import GameEvent, GamePolicy, GameState, Stats, TradeOffer, TradeState
from .logging_helper import LoggingHelper
from .quest_helper import QuestHelper


def round_price(value: float) -> float:
    """Rounds half-up to one decimal place."""
    return math.floor(value * 10 + 0.5) / 10


class TradeHelper:
    """Generates buyer offers for harvested buds and resolves selling and haggling."""

    MIN_PRICE = 1.0
    MAX_OFFER_PRICE = 4.0

    def __init__(self, policy: GamePolicy, logger: LoggingHelper):
        self.policy = policy
        self.logger = logger

    def progression_stage(self, stats: Stats) -> int:
        return stats.total_harvests // self.policy.harvests_per_stage

    def quantity_bounds(self, stage: int, event: Optional[GameEvent] = None) -> Tuple[int, int]:
        quantity_multiplier = 1.0
        if event is not None and event.quantity_multiplier is not None:
            quantity_multiplier = event.quantity_multiplier

        min_qty = int(math.floor(min(200, 5 + stage * 10) * quantity_multiplier))
        max_qty = int(math.floor(min(400, 20 + stage * 20) * quantity_multiplier))
        return min_qty, max(min_qty, max_qty)

    def generate_offers(self, stage: int, event: Optional[GameEvent], now: int,
                        rng: random.Random) -> Tuple[Tuple[TradeOffer, ...], int]:
        """Returns a fresh batch of offers and the time the next batch may be requested."""

        price_multiplier = 1.0
        if event is not None and event.price_multiplier is not None:
            price_multiplier = event.price_multiplier

        min_qty, max_qty = self.quantity_bounds(stage, event)

        offers = []
        for i in range(self.policy.offer_count):
            quantity = max(1, rng.randint(min_qty, max_qty))
            base_price = 1 + rng.random() * 2
            price = min(self.MAX_OFFER_PRICE, max(self.MIN_PRICE, (base_price + stage * 0.1) * price_multiplier))
            offers.append(TradeOffer(id=f"offer-{now}-{i}", quantity=quantity, price_per_bud=round_price(price)))

        return tuple(offers), now + self.policy.offer_refresh_ms

    def refresh_offers(self, state: GameState, now: int, rng: random.Random) -> Tuple[GameState, bool]:
        """Replaces the offer board unless the refresh cooldown is still running."""

        if now < state.trade.next_refresh_at:
            return state, False

        offers, next_refresh_at = self.generate_offers(self.progression_stage(state.stats), state.event, now, rng)
        return replace(state, trade=TradeState(offers=offers, next_refresh_at=next_refresh_at)), True

    @staticmethod
    def find_offer(state: GameState, offer_id: str) -> Optional[TradeOffer]:
        return next((o for o in state.trade.offers if o.id == offer_id), None)

    def accept_offer(self, state: GameState, offer_id: str) -> Tuple[GameState, bool]:
        offer = self.find_offer(state, offer_id)
        if offer is None:
            self.logger.report_invariant(f"Tried to accept unknown trade offer '{offer_id}'.")
            return state, False

        if state.buds < offer.quantity:
            return state, False

        revenue = int(math.floor(offer.quantity * offer.price_per_bud))
        stats = replace(
            state.stats,
            total_nugs_earned=state.stats.total_nugs_earned + revenue,
            total_buds_sold=state.stats.total_buds_sold + offer.quantity,
            total_trades=state.stats.total_trades + 1,
        )
        trade = replace(state.trade, offers=tuple(o for o in state.trade.offers if o.id != offer_id))

        return replace(
            state,
            buds=state.buds - offer.quantity,
            nugs=state.nugs + revenue,
            stats=stats,
            trade=trade,
            quests=QuestHelper.record_action(state.quests, "sell", offer.quantity),
        ), True

    def haggle(self, state: GameState, offer_id: str, rng: random.Random) -> Tuple[GameState, bool]:
        """
        One roll against the haggle chance. Success raises the price; failure removes the offer
        for good, so a False result with a changed state means the buyer walked away.
        """

        index = next((i for i, o in enumerate(state.trade.offers) if o.id == offer_id), None)
        if index is None:
            return state, False

        offers = list(state.trade.offers)
        current = offers[index]

        succeeded = rng.random() < self.policy.haggle_success_chance
        if succeeded:
            new_price = round_price(current.price_per_bud * self.policy.haggle_multiplier)
            offers[index] = replace(current, price_per_bud=min(self.policy.max_haggle_price, new_price))
        else:
            del offers[index]

        return replace(state, trade=replace(state.trade, offers=tuple(offers))), succeeded
