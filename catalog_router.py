"""
Catalog API routes — read-only element reference data for clients.

  /api/catalog/elements
  /api/catalog/elements/{symbol}
  /api/catalog/categories
  /api/health
"""

import sqlite3
from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException

from constants import LEADERBOARD_CATEGORIES, STARTING_ELEMENTS
from db import get_db, ping
import element_catalog
from fusion_service import fusion_cost

router = APIRouter(tags=["catalog"])


@router.get("/api/catalog/elements")
def api_catalog_elements() -> Dict[str, Any]:
    catalog = element_catalog.default_catalog()
    elements = []
    for element in catalog.elements:
        entry = element.to_dict()
        entry["coordinates"] = catalog.coordinates_for(element.number)
        entry["fusionCost"] = fusion_cost(element) if catalog.successor(element) else None
        elements.append(entry)
    return {
        "success": True,
        "count": catalog.size,
        "degraded": catalog.degraded,
        "gridSize": catalog.grid_size(),
        "startingElements": STARTING_ELEMENTS,
        "elements": elements,
    }


@router.get("/api/catalog/elements/{symbol}")
def api_catalog_element(symbol: str) -> Dict[str, Any]:
    catalog = element_catalog.default_catalog()
    element = catalog.get(symbol)
    if element is None:
        raise HTTPException(status_code=404, detail=f"Unknown element: {symbol}")
    nxt = catalog.successor(element)
    return {
        "success": True,
        "element": element.to_dict(),
        "coordinates": catalog.coordinates_for(element.number),
        "fusesInto": nxt.symbol if nxt else None,
        "fusionCost": fusion_cost(element) if nxt else None,
    }


@router.get("/api/catalog/categories")
def api_catalog_categories() -> Dict[str, Any]:
    return {
        "success": True,
        "elementCategories": element_catalog.category_legend(),
        "leaderboardCategories": LEADERBOARD_CATEGORIES,
    }


@router.get("/api/health")
def api_health(conn: sqlite3.Connection = Depends(get_db)) -> Dict[str, Any]:
    return {
        "ok": ping(conn),
        "service": "element-fusion",
        "catalogDegraded": element_catalog.default_catalog().degraded,
    }
