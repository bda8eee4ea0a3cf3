import pathlib
import random

import pytest

from grower.helpers import (
    LoggingHelper,
    DataHelper,
    CatalogHelper,
    PlantHelper,
    QuestHelper,
    EventHelper,
    TradeHelper,
    GameStateHelper,
    GardenHelper,
)

DATA_PATH = pathlib.Path(__file__).resolve().parent.parent / "grower" / "data"


class FixedRandom(random.Random):
    """A seeded generator whose random() always returns the same draw."""

    def __init__(self, value: float):
        super().__init__(0)
        self.value = value

    def random(self):
        return self.value


class FakeConfigValue:
    """Mimics a Red Config value: awaitable call to read, async set/clear to write."""

    def __init__(self, value=None):
        self.value = value

    async def __call__(self):
        return self.value

    async def set(self, value):
        self.value = value

    async def clear(self):
        self.value = None


class FakeConfig:
    def __init__(self):
        self.save_blob = FakeConfigValue()
        self.log_channel_id = FakeConfigValue()


@pytest.fixture
def logger():
    return LoggingHelper(strict=True)


@pytest.fixture
def lenient_logger():
    return LoggingHelper()


@pytest.fixture
def data_helper(logger):
    helper = DataHelper(DATA_PATH, logger)
    helper.load_all_data()
    return helper


@pytest.fixture
def catalog(data_helper):
    return CatalogHelper.from_data_helper(data_helper)


@pytest.fixture
def policy(catalog):
    return catalog.policy


@pytest.fixture
def plant_helper(catalog, logger):
    return PlantHelper(catalog, logger)


@pytest.fixture
def quest_helper(catalog):
    return QuestHelper(catalog.quests)


@pytest.fixture
def trade_helper(policy, logger):
    return TradeHelper(policy, logger)


@pytest.fixture
def event_helper(catalog, logger):
    return EventHelper(catalog.event_presets, catalog.policy, logger)


@pytest.fixture
def config():
    return FakeConfig()


@pytest.fixture
def game_state_helper(config, logger, policy, quest_helper):
    return GameStateHelper(config, logger, policy, quest_helper)


@pytest.fixture
def garden_helper(catalog, plant_helper, trade_helper, quest_helper, event_helper, logger):
    return GardenHelper(catalog, plant_helper, trade_helper, quest_helper, event_helper, logger)


@pytest.fixture
def lenient_garden_helper(catalog, quest_helper, lenient_logger):
    return GardenHelper(
        catalog,
        PlantHelper(catalog, lenient_logger),
        TradeHelper(catalog.policy, lenient_logger),
        quest_helper,
        EventHelper(catalog.event_presets, catalog.policy, lenient_logger),
        lenient_logger,
    )


@pytest.fixture
def new_game(game_state_helper):
    return game_state_helper.default_state()
