import asyncio
import json
import random
from dataclasses import replace

from grower.helpers import GameStateHelper
from grower.models import GameState, PlantModifiers, Stats

NOW = 1_700_000_000_000


def build_played_state(garden_helper, new_game):
    """Drives a fresh game through most operations so every part of the state is populated."""

    rng = random.Random(7)
    state = garden_helper.add_nugs(new_game, 500)
    state, _ = garden_helper.plant_seed(state, 0, "northern-lights", "light-mix", NOW)
    state, _ = garden_helper.plant_seed(state, 1, "white-widow", "basic", NOW)
    state = garden_helper.tick_growth(state, 12.5)
    state, _ = garden_helper.water(state, 0, NOW + 1000)
    state, _ = garden_helper.fertilize(state, 1, NOW + 2000)
    state = garden_helper.update_plant(state, 1, 1000, 5)
    state, _ = garden_helper.harvest(state, 1)
    state = garden_helper.trigger_event(state, NOW, rng)
    state, _ = garden_helper.generate_offers(state, NOW, rng)
    state = garden_helper.upgrade_level(state, "grow_lights")
    state = garden_helper.add_slot(state)
    return state


def test_default_state(new_game, policy):
    assert new_game.nugs == 100
    assert new_game.buds == 0
    assert new_game.slots == (None, None)
    assert new_game.upgrades == {}
    assert new_game.event is None
    assert new_game.trade.offers == ()
    assert new_game.trade.next_refresh_at == 0
    assert len(new_game.quests) == 3
    assert new_game.stats == Stats()
    assert new_game.settings.random_events_enabled


def test_round_trip_default(game_state_helper, new_game):
    assert game_state_helper.deserialize(game_state_helper.serialize(new_game)) == new_game


def test_round_trip_played_state(game_state_helper, garden_helper, new_game):
    state = build_played_state(garden_helper, new_game)
    assert state.event is not None
    assert state.slots[0] is not None
    assert state.stats.total_harvests == 1

    assert game_state_helper.deserialize(game_state_helper.serialize(state)) == state


def test_empty_blob_gives_default(game_state_helper, new_game):
    assert game_state_helper.deserialize(None) == new_game
    assert game_state_helper.deserialize("") == new_game


def test_unparseable_blob_falls_back_to_default(game_state_helper, new_game):
    assert game_state_helper.deserialize("{not json") == new_game
    assert game_state_helper.deserialize("[1, 2, 3]") == new_game


def test_bad_offer_entries_are_dropped_one_by_one(game_state_helper):
    blob = json.dumps({
        "nugs": 5000,
        "trade": {"offers": [42, {"id": "o1"}, {"id": "o2", "quantity": 10, "price_per_bud": 2.0}],
                  "next_refresh_at": NOW},
    })

    state = game_state_helper.deserialize(blob)

    assert state.nugs == 5000
    assert [o.id for o in state.trade.offers] == ["o2"]
    assert state.trade.next_refresh_at == NOW


def test_bad_quest_entry_keeps_the_rest_of_the_save(game_state_helper, new_game):
    saved = json.loads(game_state_helper.serialize(replace(new_game, nugs=5000, buds=300)))
    del saved["quests"][0]["goal"]
    saved["quests"][1]["progress"] = 40
    saved["quests"].append("not a quest")

    state = game_state_helper.deserialize(json.dumps(saved))

    assert state.nugs == 5000
    assert state.buds == 300
    assert [q.id for q in state.quests] == ["q-s-1", "q-w-1", "q-h-1"]
    assert state.quests[0].progress == 40
    assert state.quests[2].progress == 0


def test_missing_quests_get_default_catalog(game_state_helper, quest_helper, new_game):
    saved = json.loads(game_state_helper.serialize(new_game))
    del saved["quests"]

    state = game_state_helper.deserialize(json.dumps(saved))

    assert state.quests == quest_helper.default_quests()


def test_old_save_is_merged_into_defaults(game_state_helper, new_game):
    state = game_state_helper.deserialize(json.dumps({"nugs": 640, "stats": {"total_harvests": 7}}))

    assert state.nugs == 640
    assert state.buds == new_game.buds
    assert state.slots == new_game.slots
    assert state.stats == Stats(total_harvests=7)
    assert state.trade == new_game.trade
    assert state.settings == new_game.settings


def test_partial_trade_and_settings_are_merged(game_state_helper):
    blob = json.dumps({
        "trade": {"offers": [{"id": "o1", "quantity": 10, "price_per_bud": 2.0}]},
        "settings": {"random_events_enabled": False},
    })

    state = game_state_helper.deserialize(blob)

    assert state.trade.offers[0].id == "o1"
    assert state.trade.next_refresh_at == 0
    assert state.settings.random_events_enabled is False
    assert state.settings.sfx_enabled is True


def test_saved_quests_keep_progress_and_gain_new_ones(game_state_helper):
    blob = json.dumps({"quests": [
        {"id": "q-h-1", "type": "harvest", "description": "Harvest 3 plants", "goal": 3, "progress": 2,
         "reward": {"nugs": 75}},
    ]})

    state = game_state_helper.deserialize(blob)

    assert [q.id for q in state.quests] == ["q-h-1", "q-s-1", "q-w-1"]
    assert state.quests[0].progress == 2
    assert state.quests[0].claimed is False


def test_plant_without_new_modifier_fields_loads(game_state_helper):
    blob = json.dumps({"slots": [
        {"id": "plant-1", "strain_id": "og-kush", "phase_index": 3, "elapsed_in_phase": 12.0,
         "planted_at": NOW, "modifiers": {"soil_type": "all-mix", "water_stacks": 4}},
        None,
        {"strain_id": "no-id"},
    ]})

    state = game_state_helper.deserialize(blob)

    plant = state.slots[0]
    assert plant.phase_index == 3
    assert plant.modifiers == PlantModifiers(soil_type="all-mix", water_stacks=4)
    assert state.slots[1] is None
    assert state.slots[2] is None


def test_unknown_keys_are_ignored(game_state_helper, new_game):
    saved = json.loads(game_state_helper.serialize(new_game))
    saved["future_feature"] = {"x": 1}
    saved["stats"]["future_stat"] = 3

    assert game_state_helper.deserialize(json.dumps(saved)) == new_game


def test_commit_and_load(game_state_helper, garden_helper, config, logger, policy, quest_helper, new_game):
    state = build_played_state(garden_helper, new_game)
    game_state_helper.set_state(state)

    asyncio.run(game_state_helper.commit_to_disk(NOW))
    assert config.save_blob.value == game_state_helper.serialize(state)
    assert game_state_helper.last_saved_at == NOW

    reloaded = GameStateHelper(config, logger, policy, quest_helper)
    asyncio.run(reloaded.load_game_state())
    assert reloaded.get_state() == state


def test_load_with_no_save(game_state_helper, new_game):
    asyncio.run(game_state_helper.load_game_state())

    assert game_state_helper.get_state() == new_game


def test_autosave_cadence(game_state_helper, config):
    assert asyncio.run(game_state_helper.autosave_if_due(NOW))
    assert config.save_blob.value is not None

    assert not asyncio.run(game_state_helper.autosave_if_due(NOW + 4999))
    assert asyncio.run(game_state_helper.autosave_if_due(NOW + 5000))
    assert game_state_helper.last_saved_at == NOW + 5000


def test_reset_clears_memory_and_disk(game_state_helper, config, new_game):
    game_state_helper.set_state(GameState(nugs=999))
    asyncio.run(game_state_helper.commit_to_disk(NOW))

    asyncio.run(game_state_helper.reset_game())

    assert config.save_blob.value is None
    assert game_state_helper.get_state() == new_game
    assert game_state_helper.last_saved_at is None


def test_background_save_is_kept_and_completes(game_state_helper, config, new_game):
    async def run():
        task = game_state_helper.schedule_commit(asyncio.get_running_loop())
        assert game_state_helper.pending_commit is task
        await task

    asyncio.run(run())

    assert config.save_blob.value == game_state_helper.serialize(new_game)


def test_background_save_failure_is_logged(game_state_helper, config, capsys):
    async def refuse(value):
        raise OSError("disk full")

    config.save_blob.set = refuse

    async def run():
        task = game_state_helper.schedule_commit(asyncio.get_running_loop())
        await asyncio.wait([task])
        await asyncio.sleep(0)

    asyncio.run(run())

    assert "Background save failed: OSError('disk full')" in capsys.readouterr().out
