from .time_helper import TimeHelper
from .logging_helper import LoggingHelper
from .data_helper import DataHelper
from .catalog_helper import CatalogHelper
from .plant_helper import PlantHelper
from .quest_helper import QuestHelper
from .event_helper import EventHelper
from .trade_helper import TradeHelper, round_price
from .game_state_helper import GameStateHelper
from .garden_helper import GardenHelper
