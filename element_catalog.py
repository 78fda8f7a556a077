import json
import logging
import math
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple

from constants import DEFAULT_ELEMENT_COLOR, ELEMENT_CATEGORY_BY_ID, STARTING_ELEMENTS
from db import APP_DIR

ELEMENTS_PATH = APP_DIR / "config" / "elements.json"
COORDINATES_PATH = APP_DIR / "config" / "periodic_coordinates.json"

Coordinates = Tuple[int, int]


class ElementCatalogError(ValueError):
    pass


@dataclass(frozen=True)
class Element:
    number: int
    symbol: str
    name: str
    mass: float
    category: str
    color: str
    facts: Tuple[str, ...] = ()
    uses: Tuple[str, ...] = ()
    discovery: str = ""
    description: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "number": self.number,
            "symbol": self.symbol,
            "name": self.name,
            "mass": self.mass,
            "category": self.category,
            "color": self.color,
            "facts": list(self.facts),
            "uses": list(self.uses),
            "discovery": self.discovery,
            "description": self.description,
        }


# Embedded set used when elements.json cannot be read, so the game stays playable.
FALLBACK_ELEMENTS: List[Dict[str, Any]] = [
    {"number": 1, "symbol": "H", "name": "Hydrogen", "category": "nonmetal", "mass": 1.008, "color": "#FF6B6B"},
    {"number": 2, "symbol": "He", "name": "Helium", "category": "noble", "mass": 4.0026, "color": "#FFD166"},
    {"number": 3, "symbol": "Li", "name": "Lithium", "category": "alkali", "mass": 6.94, "color": "#06D6A0"},
    {"number": 4, "symbol": "Be", "name": "Beryllium", "category": "alkaline", "mass": 9.0122, "color": "#118AB2"},
    {"number": 5, "symbol": "B", "name": "Boron", "category": "metalloid", "mass": 10.81, "color": "#EF476F"},
    {"number": 6, "symbol": "C", "name": "Carbon", "category": "nonmetal", "mass": 12.011, "color": "#073B4C"},
    {"number": 7, "symbol": "N", "name": "Nitrogen", "category": "nonmetal", "mass": 14.007, "color": "#118AB2"},
    {"number": 8, "symbol": "O", "name": "Oxygen", "category": "nonmetal", "mass": 15.999, "color": "#06D6A0"},
    {"number": 9, "symbol": "F", "name": "Fluorine", "category": "halogen", "mass": 18.998, "color": "#FFD166"},
    {"number": 10, "symbol": "Ne", "name": "Neon", "category": "noble", "mass": 20.180, "color": "#FF6B6B"},
    {"number": 11, "symbol": "Na", "name": "Sodium", "category": "alkali", "mass": 22.990, "color": "#06D6A0"},
    {"number": 12, "symbol": "Mg", "name": "Magnesium", "category": "alkaline", "mass": 24.305, "color": "#118AB2"},
    {"number": 13, "symbol": "Al", "name": "Aluminum", "category": "metal", "mass": 26.982, "color": "#EF476F"},
    {"number": 14, "symbol": "Si", "name": "Silicon", "category": "metalloid", "mass": 28.085, "color": "#073B4C"},
    {"number": 15, "symbol": "P", "name": "Phosphorus", "category": "nonmetal", "mass": 30.974, "color": "#118AB2"},
    {"number": 16, "symbol": "S", "name": "Sulfur", "category": "nonmetal", "mass": 32.06, "color": "#06D6A0"},
    {"number": 17, "symbol": "Cl", "name": "Chlorine", "category": "halogen", "mass": 35.45, "color": "#FFD166"},
    {"number": 18, "symbol": "Ar", "name": "Argon", "category": "noble", "mass": 39.948, "color": "#FF6B6B"},
    {"number": 19, "symbol": "K", "name": "Potassium", "category": "alkali", "mass": 39.098, "color": "#06D6A0"},
    {"number": 20, "symbol": "Ca", "name": "Calcium", "category": "alkaline", "mass": 40.078, "color": "#118AB2"},
]

# ---------------------------------------------------------------------------
# Descriptive content. The tables are partial on purpose; every other symbol
# gets the generic text from the matching default_* generator.
# ---------------------------------------------------------------------------

ELEMENT_FACTS: Dict[str, List[str]] = {
    "H": [
        "Hydrogen is the most abundant element in the universe",
        "It makes up about 75% of all normal matter",
        "The Sun fuses hydrogen into helium",
    ],
    "He": [
        "Helium is the second lightest element",
        "It was discovered on the Sun before Earth",
        "Helium balloons float because it's lighter than air",
    ],
    "C": [
        "Carbon is the basis of all known life",
        "Diamonds are pure carbon in a crystal structure",
        "Carbon can form more compounds than any other element",
    ],
    "O": [
        "Oxygen makes up about 21% of Earth's atmosphere",
        "It's essential for respiration in most living organisms",
        "Oxygen is the third most abundant element in the universe",
    ],
    "Au": [
        "Gold is so malleable that one ounce can be stretched into a wire 50 miles long",
        "All the gold ever mined would fit into three Olympic-sized swimming pools",
        "Gold is chemically inert and doesn't rust or tarnish",
    ],
    "Fe": [
        "Iron is the most abundant element on Earth by mass",
        "The Earth's core is mostly iron",
        "Iron is essential for hemoglobin in blood",
    ],
}

ELEMENT_USES: Dict[str, List[str]] = {
    "H": ["Rocket fuel", "Hydrogen fuel cells", "Ammonia production"],
    "He": ["Party balloons", "Cooling MRI machines", "Airships"],
    "C": ["Pencil lead (graphite)", "Diamond jewelry", "Steel production"],
    "O": ["Medical oxygen", "Steel production", "Water treatment"],
    "Al": ["Aircraft construction", "Cans and foil", "Electrical wiring"],
    "Si": ["Computer chips", "Solar panels", "Glass manufacturing"],
    "Cu": ["Electrical wiring", "Coins", "Plumbing pipes"],
    "Au": ["Jewelry", "Electronics", "Financial reserves"],
    "Fe": ["Steel production", "Magnets", "Construction materials"],
    "Ag": ["Jewelry", "Photography", "Antibacterial coatings"],
}

ELEMENT_DISCOVERY: Dict[str, str] = {
    "H": "Discovered by Henry Cavendish in 1766",
    "He": "Discovered independently by Pierre Janssen and Norman Lockyer in 1868",
    "O": "Discovered independently by Carl Wilhelm Scheele and Joseph Priestley in the 1770s",
    "Au": "Known since ancient times",
    "Fe": "Known since ancient times, used since ~1200 BCE",
    "U": "Discovered by Martin Heinrich Klaproth in 1789",
}


def default_facts(entry: Dict[str, Any]) -> List[str]:
    known = ELEMENT_FACTS.get(entry["symbol"])
    if known:
        return list(known)
    return [
        f"This element has atomic number {entry['number']}",
        f"It belongs to the {entry['category']} category",
    ]


def default_uses(entry: Dict[str, Any]) -> List[str]:
    known = ELEMENT_USES.get(entry["symbol"])
    if known:
        return list(known)
    return ["Scientific research", "Industrial applications"]


def default_discovery(entry: Dict[str, Any]) -> str:
    return ELEMENT_DISCOVERY.get(entry["symbol"], "Discovered through scientific research")


def default_description(entry: Dict[str, Any]) -> str:
    return f"{entry['name']} is element number {entry['number']} in the periodic table."


def default_color(entry: Dict[str, Any]) -> str:
    category = ELEMENT_CATEGORY_BY_ID.get(entry["category"])
    return category["color"] if category else DEFAULT_ELEMENT_COLOR


# One generator per optional field, applied by normalize_element when the
# field is absent or empty.
OPTIONAL_FIELD_DEFAULTS: Dict[str, Callable[[Dict[str, Any]], Any]] = {
    "color": default_color,
    "facts": default_facts,
    "uses": default_uses,
    "discovery": default_discovery,
    "description": default_description,
}


def _as_float(value: Any, field_name: str) -> float:
    try:
        out = float(value)
    except (TypeError, ValueError):
        raise ElementCatalogError(f"{field_name} must be numeric")
    if not math.isfinite(out):
        raise ElementCatalogError(f"{field_name} must be finite")
    return out


def _as_int(value: Any, field_name: str) -> int:
    if isinstance(value, bool):
        raise ElementCatalogError(f"{field_name} must be an integer")
    try:
        out = int(value)
    except (TypeError, ValueError):
        raise ElementCatalogError(f"{field_name} must be an integer")
    if out != value:
        raise ElementCatalogError(f"{field_name} must be an integer")
    return out


def _require_str(obj: Dict[str, Any], key: str, ctx: str) -> str:
    value = obj.get(key)
    if not isinstance(value, str) or not value.strip():
        raise ElementCatalogError(f"{ctx}.{key} must be a non-empty string")
    return value.strip()


def _str_list(value: Any) -> List[str]:
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, list):
        return []
    return [str(v).strip() for v in value if str(v).strip()]


def normalize_element(raw: Any) -> Element:
    """Validate one catalog entry and fill its optional fields with defaults."""
    if not isinstance(raw, dict):
        raise ElementCatalogError("elements[] entries must be objects")
    symbol = _require_str(raw, "symbol", "elements[]")
    ctx = f"elements[{symbol}]"
    number = _as_int(raw.get("number"), f"{ctx}.number")
    if number < 1:
        raise ElementCatalogError(f"{ctx}.number must be positive")
    mass = _as_float(raw.get("mass"), f"{ctx}.mass")
    if mass <= 0:
        raise ElementCatalogError(f"{ctx}.mass must be positive")

    entry: Dict[str, Any] = {
        "number": number,
        "symbol": symbol,
        "name": _require_str(raw, "name", ctx),
        "mass": mass,
        "category": _require_str(raw, "category", ctx).lower(),
    }
    for key, generator in OPTIONAL_FIELD_DEFAULTS.items():
        value = raw.get(key)
        if key in ("facts", "uses"):
            value = _str_list(value)
        elif isinstance(value, str):
            value = value.strip()
        else:
            value = None
        entry[key] = value if value else generator(entry)

    return Element(
        number=entry["number"],
        symbol=entry["symbol"],
        name=entry["name"],
        mass=entry["mass"],
        category=entry["category"],
        color=entry["color"],
        facts=tuple(entry["facts"]),
        uses=tuple(entry["uses"]),
        discovery=entry["discovery"],
        description=entry["description"],
    )


@dataclass
class ElementCatalog:
    """Immutable-after-load lookup over the element reference data."""

    elements: List[Element]
    coordinates: Dict[int, Coordinates] = field(default_factory=dict)
    degraded: bool = False

    def __post_init__(self) -> None:
        self.elements = sorted(self.elements, key=lambda e: e.number)
        self._by_symbol: Dict[str, Element] = {}
        self._by_number: Dict[int, Element] = {}
        for element in self.elements:
            if element.symbol in self._by_symbol:
                raise ElementCatalogError(f"Duplicate element symbol: {element.symbol}")
            if element.number in self._by_number:
                raise ElementCatalogError(f"Duplicate element number: {element.number}")
            self._by_symbol[element.symbol] = element
            self._by_number[element.number] = element

    def __len__(self) -> int:
        return len(self.elements)

    def __contains__(self, symbol: object) -> bool:
        return symbol in self._by_symbol

    @property
    def size(self) -> int:
        return len(self.elements)

    def get(self, symbol: str) -> Optional[Element]:
        return self._by_symbol.get(symbol)

    def by_number(self, number: int) -> Optional[Element]:
        return self._by_number.get(number)

    def successor(self, element: Element) -> Optional[Element]:
        return self._by_number.get(element.number + 1)

    def highest(self) -> Element:
        return self.elements[-1]

    def coordinates_for(self, number: int) -> Optional[Coordinates]:
        return self.coordinates.get(number)

    def grid_size(self) -> Dict[str, int]:
        if not self.coordinates:
            return {"rows": 1, "cols": 1}
        return {
            "rows": max(r for r, _ in self.coordinates.values()) + 1,
            "cols": max(c for _, c in self.coordinates.values()) + 1,
        }

    def missing_starting_elements(self) -> List[str]:
        return [s for s in STARTING_ELEMENTS if s not in self._by_symbol]


def load_element_entries(path: Path = ELEMENTS_PATH) -> List[Element]:
    if not path.exists():
        raise ElementCatalogError(f"Element data not found: {path}")
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ElementCatalogError(f"Invalid JSON in {path}: {exc}") from exc
    if not isinstance(raw, list):
        raise ElementCatalogError("Element data is not an array")
    if not raw:
        raise ElementCatalogError("Element data array is empty")
    return [normalize_element(entry) for entry in raw]


def load_periodic_coordinates(path: Path = COORDINATES_PATH) -> Dict[int, Coordinates]:
    if not path.exists():
        raise ElementCatalogError(f"Coordinate data not found: {path}")
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ElementCatalogError(f"Invalid JSON in {path}: {exc}") from exc
    if not isinstance(raw, dict):
        raise ElementCatalogError("Coordinate data must be an object")

    coordinates: Dict[int, Coordinates] = {}
    for key, value in raw.items():
        number = _as_int(int(key) if str(key).isdigit() else key, "coordinates key")
        if not isinstance(value, (list, tuple)) or len(value) != 2:
            raise ElementCatalogError(f"coordinates[{key}] must be a [row, col] pair")
        row = _as_int(value[0], f"coordinates[{key}].row")
        col = _as_int(value[1], f"coordinates[{key}].col")
        if row < 0 or col < 0:
            raise ElementCatalogError(f"coordinates[{key}] must be non-negative")
        coordinates[number] = (row, col)
    return coordinates


def load_catalog(
    elements_path: Path = ELEMENTS_PATH,
    coordinates_path: Path = COORDINATES_PATH,
) -> ElementCatalog:
    """Load the catalog, degrading to the embedded set instead of failing startup."""
    degraded = False
    try:
        elements = load_element_entries(elements_path)
        catalog = ElementCatalog(elements)
        logging.info("Loaded %d elements from %s", len(catalog), elements_path)
    except ElementCatalogError as exc:
        logging.warning("Element data load failed (%s); using fallback element data", exc)
        catalog = ElementCatalog([normalize_element(e) for e in FALLBACK_ELEMENTS])
        degraded = True

    try:
        catalog.coordinates = load_periodic_coordinates(coordinates_path)
    except ElementCatalogError as exc:
        logging.warning("Periodic coordinates load failed: %s", exc)
        degraded = True

    missing = catalog.missing_starting_elements()
    if missing:
        logging.warning("Missing starting elements: %s", ", ".join(missing))

    catalog.degraded = degraded
    return catalog


@lru_cache(maxsize=1)
def default_catalog() -> ElementCatalog:
    return load_catalog()


def category_legend() -> List[Dict[str, str]]:
    return [dict(c) for c in ELEMENT_CATEGORY_BY_ID.values()]
