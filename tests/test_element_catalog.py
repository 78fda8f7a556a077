"""
Element catalog tests — loading, normalization defaults, fallback data and
periodic coordinates.

Catches:
  - Catalog files that no longer parse or validate
  - Missing optional fields that are not filled in
  - A broken element file blocking startup instead of degrading
  - Coordinate grid regressions
"""

import json

import pytest


# ── Shipped data ──────────────────────────────────────────────────────────

class TestShippedCatalog:
    def test_loads_all_elements(self, catalog):
        assert catalog.size == 118
        assert not catalog.degraded

    def test_numbers_are_contiguous(self, catalog):
        assert [e.number for e in catalog.elements] == list(range(1, 119))

    def test_starting_elements_present(self, catalog):
        assert catalog.missing_starting_elements() == []

    def test_successor_follows_atomic_number(self, catalog):
        h = catalog.get("H")
        assert catalog.successor(h).symbol == "He"
        assert catalog.successor(catalog.highest()) is None

    def test_every_element_has_coordinates(self, catalog):
        for element in catalog.elements:
            assert catalog.coordinates_for(element.number) is not None, element.symbol

    def test_grid_size_covers_lanthanide_rows(self, catalog):
        assert catalog.grid_size() == {"rows": 10, "cols": 18}


# ── Normalization ─────────────────────────────────────────────────────────

class TestNormalization:
    def test_known_symbol_gets_table_content(self):
        from element_catalog import normalize_element

        e = normalize_element({"number": 1, "symbol": "H", "name": "Hydrogen", "mass": 1.008, "category": "nonmetal"})
        assert e.facts[0] == "Hydrogen is the most abundant element in the universe"
        assert "Rocket fuel" in e.uses
        assert e.discovery == "Discovered by Henry Cavendish in 1766"

    def test_unknown_symbol_gets_generic_content(self):
        from element_catalog import normalize_element

        e = normalize_element({"number": 50, "symbol": "Sn", "name": "Tin", "mass": 118.71, "category": "metal"})
        assert e.facts == ("This element has atomic number 50", "It belongs to the metal category")
        assert e.uses == ("Scientific research", "Industrial applications")
        assert e.discovery == "Discovered through scientific research"
        assert e.description == "Tin is element number 50 in the periodic table."

    def test_color_defaults_from_category(self):
        from element_catalog import normalize_element

        e = normalize_element({"number": 9, "symbol": "F", "name": "Fluorine", "mass": 18.998, "category": "halogen"})
        assert e.color == "#FFD166"
        odd = normalize_element({"number": 9, "symbol": "F", "name": "Fluorine", "mass": 18.998, "category": "mystery"})
        assert odd.color == "#9E9E9E"

    def test_supplied_fields_are_kept(self):
        from element_catalog import normalize_element

        e = normalize_element({
            "number": 6, "symbol": "C", "name": "Carbon", "mass": 12.011, "category": "nonmetal",
            "color": "#000000", "facts": ["custom"], "description": "Soot.",
        })
        assert e.color == "#000000"
        assert e.facts == ("custom",)
        assert e.description == "Soot."

    @pytest.mark.parametrize("bad", [
        {"number": 1, "symbol": "H", "name": "Hydrogen", "mass": 0, "category": "nonmetal"},
        {"number": 0, "symbol": "H", "name": "Hydrogen", "mass": 1.0, "category": "nonmetal"},
        {"number": 1, "symbol": "", "name": "Hydrogen", "mass": 1.0, "category": "nonmetal"},
        {"number": 1.5, "symbol": "H", "name": "Hydrogen", "mass": 1.0, "category": "nonmetal"},
        "H",
    ])
    def test_invalid_entries_rejected(self, bad):
        from element_catalog import ElementCatalogError, normalize_element

        with pytest.raises(ElementCatalogError):
            normalize_element(bad)

    def test_duplicate_symbols_rejected(self):
        from element_catalog import ElementCatalog, ElementCatalogError, normalize_element

        h = normalize_element({"number": 1, "symbol": "H", "name": "Hydrogen", "mass": 1.0, "category": "nonmetal"})
        h2 = normalize_element({"number": 2, "symbol": "H", "name": "Fake", "mass": 2.0, "category": "nonmetal"})
        with pytest.raises(ElementCatalogError):
            ElementCatalog([h, h2])


# ── Degraded loading ──────────────────────────────────────────────────────

class TestFallback:
    def test_missing_file_uses_embedded_set(self, tmp_path):
        from element_catalog import load_catalog

        cat = load_catalog(tmp_path / "nope.json", tmp_path / "nope_coords.json")
        assert cat.degraded
        assert cat.size == 20
        assert cat.highest().symbol == "Ca"
        assert cat.grid_size() == {"rows": 1, "cols": 1}

    @pytest.mark.parametrize("content", ["not json", "{}", "[]"])
    def test_unusable_file_uses_embedded_set(self, tmp_path, content):
        from element_catalog import COORDINATES_PATH, load_catalog

        path = tmp_path / "elements.json"
        path.write_text(content)
        cat = load_catalog(path, COORDINATES_PATH)
        assert cat.degraded
        assert cat.size == 20

    def test_missing_starting_elements_only_warn(self, tmp_path, caplog):
        from element_catalog import COORDINATES_PATH, load_catalog

        path = tmp_path / "elements.json"
        path.write_text(json.dumps([
            {"number": 1, "symbol": "H", "name": "Hydrogen", "mass": 1.008, "category": "nonmetal"},
            {"number": 2, "symbol": "He", "name": "Helium", "mass": 4.0026, "category": "noble"},
        ]))
        cat = load_catalog(path, COORDINATES_PATH)
        assert cat.size == 2
        assert not cat.degraded
        assert "Missing starting elements" in caplog.text

    def test_bad_coordinates_degrade_but_keep_elements(self, tmp_path):
        from element_catalog import ELEMENTS_PATH, load_catalog

        coords = tmp_path / "coords.json"
        coords.write_text(json.dumps({"1": [0]}))
        cat = load_catalog(ELEMENTS_PATH, coords)
        assert cat.size == 118
        assert cat.degraded
        assert cat.coordinates == {}


class TestLegend:
    def test_ten_display_categories(self):
        from element_catalog import category_legend

        legend = category_legend()
        assert len(legend) == 10
        assert {"id": "noble", "label": "Noble Gases", "color": "#FF6B6B"} in legend
