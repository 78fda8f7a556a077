"""
Canonical shared constants for the Element Fusion game core and service.

The game modules, the HTTP clients and the service all read their tunables
from here so that client and server agree on categories and defaults.
"""

from typing import Dict, List

# ---------------------------------------------------------------------------
# Progression defaults
# ---------------------------------------------------------------------------

STARTING_ELEMENTS: List[str] = ["H", "He", "Li", "Be", "B", "C", "N", "O", "F", "Ne"]

DEFAULT_ELEMENTS_FOUND = len(STARTING_ELEMENTS)
DEFAULT_MERGE_COUNT = 0
DEFAULT_FUSION_ENERGY = 100

# Fusion cost = floor(mass * FUSION_COST_FACTOR)
FUSION_COST_FACTOR = 5

# ---------------------------------------------------------------------------
# Reactor economy
# ---------------------------------------------------------------------------

DEFAULT_REACTOR_LEVEL = 1
REACTOR_STORAGE_PER_LEVEL = 50
REACTOR_PRODUCTION_FACTOR = 1.5
REACTOR_BASE_UPGRADE_COST = 50
REACTOR_UPGRADE_COST_GROWTH = 1.5
REACTOR_HARVEST_MINIMUM = 10

# ---------------------------------------------------------------------------
# Timers (seconds of wall time)
# ---------------------------------------------------------------------------

REACTOR_TICK_INTERVAL_S = 1.0
AUTOSAVE_INTERVAL_S = 30.0
CLOUD_SYNC_INTERVAL_S = 300.0
LEADERBOARD_REFRESH_INTERVAL_S = 300.0
TIP_INTERVAL_S = 120.0

# ---------------------------------------------------------------------------
# Element display categories
# ---------------------------------------------------------------------------

ELEMENT_CATEGORIES: List[Dict[str, str]] = [
    {"id": "alkali", "label": "Alkali Metals", "color": "#06D6A0"},
    {"id": "alkaline", "label": "Alkaline Earth", "color": "#118AB2"},
    {"id": "transition", "label": "Transition Metals", "color": "#FF5252"},
    {"id": "metal", "label": "Basic Metals", "color": "#EF476F"},
    {"id": "metalloid", "label": "Metalloids", "color": "#073B4C"},
    {"id": "nonmetal", "label": "Nonmetals", "color": "#4FC3F7"},
    {"id": "halogen", "label": "Halogens", "color": "#FFD166"},
    {"id": "noble", "label": "Noble Gases", "color": "#FF6B6B"},
    {"id": "lanthanide", "label": "Lanthanides", "color": "#9C27B0"},
    {"id": "actinide", "label": "Actinides", "color": "#E91E63"},
]

ELEMENT_CATEGORY_BY_ID: Dict[str, Dict[str, str]] = {c["id"]: c for c in ELEMENT_CATEGORIES}

DEFAULT_ELEMENT_COLOR = "#9E9E9E"

# ---------------------------------------------------------------------------
# Leaderboard
# ---------------------------------------------------------------------------

LEADERBOARD_CATEGORIES: Dict[str, str] = {
    "totalScore": "Total Score",
    "elementsFound": "Elements Discovered",
    "topFusions": "Fusion Reactions",
    "highestEnergy": "Energy Achieved",
    "reactorLevel": "Reactor Level",
}

DEFAULT_LEADERBOARD_CATEGORY = "totalScore"
LOCAL_LEADERBOARD_SIZE = 10
GLOBAL_LEADERBOARD_LIMIT = 20
PLAYER_RANK_LOOKUP_LIMIT = 50
SERVICE_LEADERBOARD_DEFAULT_LIMIT = 100

ANONYMOUS_PLAYER = "Anonymous"
UNKNOWN_COUNTRY = "??"
PLAYER_NAME_MIN_LEN = 3
PLAYER_NAME_MAX_LEN = 20

# ---------------------------------------------------------------------------
# Persistence
# ---------------------------------------------------------------------------

SAVE_FORMAT_VERSION = "1.0"

# Logical key names in the local key-value store.
STORAGE_KEYS: Dict[str, str] = {
    "player_name": "elementFusionPlayerName",
    "device_id": "elementFusionDeviceId",
    "country": "elementFusionCountry",
    "save_data": "elementFusionSaveData",
    "save_time": "elementFusionSaveTime",
    "local_leaderboards": "elementFusionLeaderboards",
    "global_leaderboards": "elementFusionGlobalLeaderboards",
    "highest_energy": "elementFusionHighestEnergy",
    "cloud_enabled": "elementFusionCloudEnabled",
    "api_key": "elementFusionApiKey",
    "conflict_policy": "elementFusionConflictRes",
}

# ---------------------------------------------------------------------------
# Educational tips
# ---------------------------------------------------------------------------

EDUCATIONAL_TIPS: List[str] = [
    "Tip: Did you know? Hydrogen makes up about 75% of all normal matter in the universe!",
    "Tip: Elements in the same column (group) have similar chemical properties!",
    "Tip: Upgrade your reactor regularly to generate more fusion energy!",
    "Tip: Try to discover elements in order - it's more energy efficient!",
    "Tip: Gold (Au) is so malleable that one ounce can be stretched into a wire 50 miles long!",
]
