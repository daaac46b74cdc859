"""Domain Types — rich types that replace bare primitives across the codebase.

Invariants:
    - PlayerId wraps UUID; it is rendered with str() (canonical 36-char form) at the SQL boundary
    - Category enum values ARE the physical table / amount column names (prefix excluded)
    - Category and subcategory names are the only identifiers composed into SQL text

Design Decisions:
    - NewType over dataclass wrappers: zero runtime cost, full type-checker support
    - str Enums: the value doubles as the database name, no lookup tables
"""

from datetime import datetime
from enum import Enum
from typing import NamedTuple, NewType
from uuid import UUID


# ─── Identity Types ──────────────────────────────────────────────

PlayerId = NewType("PlayerId", UUID)


# ─── Result Types ────────────────────────────────────────────────

class AchievementEntry(NamedTuple):
    """One row of a player's achievement book."""
    name: str
    message: str
    date: str


class LeaderboardEntry(NamedTuple):
    player: UUID
    count: int


# ─── Enums ───────────────────────────────────────────────────────

class ConnectionState(str, Enum):
    """Connection supervisor lifecycle. CLOSED is terminal."""
    UNINITIALIZED = "uninitialized"
    OPEN = "open"
    CLOSED = "closed"


class NormalCategory(str, Enum):
    """Statistics with a single amount per player."""
    CONNECTIONS = "connections"
    DEATHS = "deaths"
    ARROWS = "arrows"
    SNOWBALLS = "snowballs"
    EGGS = "eggs"
    FISH = "fish"
    TREASURES = "treasures"
    ITEM_BREAKS = "itembreaks"
    EATEN_ITEMS = "eatenitems"
    SHEARS = "shears"
    MILKS = "milks"
    LAVA_BUCKETS = "lavabuckets"
    WATER_BUCKETS = "waterbuckets"
    TRADES = "trades"
    ANVILS = "anvils"
    ENCHANTMENTS = "enchantments"
    BEDS = "beds"
    LEVELS = "levels"
    CONSUMED_POTIONS = "consumedpotions"
    PLAYED_TIME = "playedtime"
    DISTANCE_FOOT = "distancefoot"
    DISTANCE_PIG = "distancepig"
    DISTANCE_HORSE = "distancehorse"
    DISTANCE_MINECART = "distanceminecart"
    DISTANCE_BOAT = "distanceboat"
    DISTANCE_GLIDING = "distancegliding"
    DISTANCE_LLAMA = "distancellama"
    DROPS = "drops"
    PICKUPS = "pickups"
    HOE_PLOWING = "hoeplowing"
    FERTILISING = "fertilising"
    TAMES = "tames"
    BREWING = "brewing"
    FIREWORKS = "fireworks"
    MUSIC_DISCS = "musicdiscs"
    ENDER_PEARLS = "enderpearls"
    PET_MASTER_GIVE = "petmastergive"
    PET_MASTER_RECEIVE = "petmasterreceive"
    SMELTING = "smelting"
    RIPTIDES = "riptides"

    @property
    def db_name(self) -> str:
        return self.value


class MultipleCategory(str, Enum):
    """Statistics keyed by (player, subcategory)."""
    PLACES = "places"
    BREAKS = "breaks"
    KILLS = "kills"
    CRAFTS = "crafts"
    BREEDING = "breeding"
    PLAYER_COMMANDS = "playercommands"
    CUSTOM = "custom"
    TARGETS_SHOT = "targetsshot"
    EFFECTS = "effects"

    @property
    def db_name(self) -> str:
        return self.value

    @property
    def subcategory_db_name(self) -> str:
        return _SUBCATEGORY_COLUMNS[self]


_SUBCATEGORY_COLUMNS: dict[MultipleCategory, str] = {
    MultipleCategory.PLACES: "blockid",
    MultipleCategory.BREAKS: "blockid",
    MultipleCategory.KILLS: "mobname",
    MultipleCategory.CRAFTS: "item",
    MultipleCategory.BREEDING: "mob",
    MultipleCategory.PLAYER_COMMANDS: "command",
    MultipleCategory.CUSTOM: "customname",
    MultipleCategory.TARGETS_SHOT: "targetname",
    MultipleCategory.EFFECTS: "effect",
}

Category = NormalCategory | MultipleCategory

# Zero / epoch start dates mean "all time" for leaderboard queries.
EPOCH = datetime(1970, 1, 1)


def is_all_time(since: datetime | None) -> bool:
    """True when a leaderboard start date means "consider every record"."""
    if since is None:
        return True
    return since.replace(tzinfo=None) <= EPOCH
