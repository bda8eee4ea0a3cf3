import random
from dataclasses import replace

import pytest

from conftest import FixedRandom
from grower.errors import InvariantViolation
from grower.helpers import TradeHelper, round_price
from grower.models import GameEvent, Stats, TradeOffer, TradeState

NOW = 1_700_000_000_000

FESTIVAL = GameEvent(id="festival", name="Psychedelic Festival", description="", ends_at=NOW + 60000,
                     price_multiplier=1.5, quantity_multiplier=1.2)


def with_offers(state, *offers, buds=0):
    return replace(state, buds=buds, trade=TradeState(offers=tuple(offers), next_refresh_at=NOW))


def test_round_price_is_half_up():
    assert round_price(2.25) == 2.3
    assert round_price(2.24) == 2.2
    assert round_price(3.0) == 3.0


def test_progression_stage_from_harvest_count(trade_helper):
    assert trade_helper.progression_stage(Stats(total_harvests=4)) == 0
    assert trade_helper.progression_stage(Stats(total_harvests=5)) == 1
    assert trade_helper.progression_stage(Stats(total_harvests=23)) == 4


def test_generate_offers_shape(trade_helper):
    for seed in range(25):
        for stage in (0, 3, 12, 40):
            offers, next_refresh_at = trade_helper.generate_offers(stage, None, NOW, random.Random(seed))

            assert len(offers) == 3
            assert next_refresh_at == NOW + 30000
            assert len({o.id for o in offers}) == 3
            for offer in offers:
                assert offer.quantity >= 1
                assert 1 <= offer.price_per_bud <= 4
                assert round_price(offer.price_per_bud) == offer.price_per_bud


def test_stage_zero_bounds_without_event(trade_helper):
    for seed in range(100):
        offers, _ = trade_helper.generate_offers(0, None, NOW, random.Random(seed))
        for offer in offers:
            assert 5 <= offer.quantity <= 20
            assert 1.0 <= offer.price_per_bud <= 3.0


def test_quantity_bounds_are_capped(trade_helper):
    assert trade_helper.quantity_bounds(0) == (5, 20)
    assert trade_helper.quantity_bounds(2) == (25, 60)
    assert trade_helper.quantity_bounds(100) == (200, 400)


def test_event_scales_quantity_and_price(trade_helper):
    assert trade_helper.quantity_bounds(0, FESTIVAL) == (6, 24)

    high_draw = FixedRandom(0.99)
    offers, _ = trade_helper.generate_offers(0, FESTIVAL, NOW, high_draw)
    # (1 + 1.98) * 1.5 = 4.47, clamped to the offer ceiling
    assert all(o.price_per_bud == 4.0 for o in offers)

    low_draw = FixedRandom(0.0)
    offers, _ = trade_helper.generate_offers(0, None, NOW, low_draw)
    assert all(o.price_per_bud == 1.0 for o in offers)


def test_stage_adds_to_price(trade_helper):
    offers, _ = trade_helper.generate_offers(5, None, NOW, FixedRandom(0.25))

    assert all(o.price_per_bud == 2.0 for o in offers)


def test_refresh_respects_cooldown(trade_helper, new_game):
    state, refreshed = trade_helper.refresh_offers(new_game, NOW, random.Random(1))
    assert refreshed
    assert len(state.trade.offers) == 3
    assert state.trade.next_refresh_at == NOW + 30000

    blocked, refreshed = trade_helper.refresh_offers(state, NOW + 29999, random.Random(2))
    assert not refreshed
    assert blocked is state

    _, refreshed = trade_helper.refresh_offers(state, NOW + 30000, random.Random(3))
    assert refreshed


def test_accept_offer_exchanges_currency(trade_helper, new_game):
    state = with_offers(new_game, TradeOffer("o1", 20, 2.5), TradeOffer("o2", 10, 1.3), buds=50)

    state, accepted = trade_helper.accept_offer(state, "o1")

    assert accepted
    assert state.buds == 30
    assert state.nugs == new_game.nugs + 50
    assert [o.id for o in state.trade.offers] == ["o2"]
    assert state.stats.total_nugs_earned == 50
    assert state.stats.total_buds_sold == 20
    assert state.stats.total_trades == 1
    sell_quest = next(q for q in state.quests if q.type == "sell")
    assert sell_quest.progress == 20


def test_accept_offer_floors_revenue(trade_helper, new_game):
    state = with_offers(new_game, TradeOffer("o1", 7, 1.3), buds=7)

    state, accepted = trade_helper.accept_offer(state, "o1")

    assert accepted
    assert state.nugs == new_game.nugs + 9


def test_accept_offer_with_too_few_buds_changes_nothing(trade_helper, new_game):
    state = with_offers(new_game, TradeOffer("o1", 20, 2.5), buds=19)

    result, accepted = trade_helper.accept_offer(state, "o1")

    assert not accepted
    assert result is state


def test_accept_unknown_offer(new_game, policy, logger, lenient_logger):
    state = with_offers(new_game, TradeOffer("o1", 20, 2.5), buds=100)

    with pytest.raises(InvariantViolation):
        TradeHelper(policy, logger).accept_offer(state, "nope")

    result, accepted = TradeHelper(policy, lenient_logger).accept_offer(state, "nope")
    assert not accepted
    assert result is state


def test_haggle_success_raises_price(trade_helper, new_game):
    state = with_offers(new_game, TradeOffer("o1", 20, 2.5))

    state, succeeded = trade_helper.haggle(state, "o1", FixedRandom(0.1))

    assert succeeded
    assert state.trade.offers == (TradeOffer("o1", 20, 3.0),)


def test_haggle_price_is_capped(trade_helper, new_game):
    state = with_offers(new_game, TradeOffer("o1", 20, 4.5))

    state, succeeded = trade_helper.haggle(state, "o1", FixedRandom(0.0))

    assert succeeded
    assert state.trade.offers[0].price_per_bud == 5.0


def test_haggle_failure_removes_offer(trade_helper, new_game):
    state = with_offers(new_game, TradeOffer("o1", 20, 2.5), TradeOffer("o2", 5, 1.0))

    state, succeeded = trade_helper.haggle(state, "o1", FixedRandom(0.4))

    assert not succeeded
    assert [o.id for o in state.trade.offers] == ["o2"]


def test_haggle_either_raises_or_removes(trade_helper, new_game):
    rng = random.Random(99)
    for _ in range(50):
        state = with_offers(new_game, TradeOffer("o1", 20, 2.0))
        result, succeeded = trade_helper.haggle(state, "o1", rng)

        if succeeded:
            assert result.trade.offers == (TradeOffer("o1", 20, 2.4),)
        else:
            assert result.trade.offers == ()


def test_haggle_unknown_offer_is_soft(trade_helper, new_game):
    state = with_offers(new_game, TradeOffer("o1", 20, 2.5))

    result, succeeded = trade_helper.haggle(state, "gone", FixedRandom(0.0))

    assert not succeeded
    assert result is state
