"""休息点查询：在当前位置附近生成模拟休息点"""

import logging
import math
import random
from typing import List, Optional

from models.data_models import RestStop
from engine.dispatchers import RestStopDispatcher

logger = logging.getLogger(__name__)

EARTH_RADIUS_KM = 6371.0

_STOPS = [
    ("Highway Dhaba", "dhaba"),
    ("Comfort Inn", "hotel"),
    ("Fuel Plaza", "fuel"),
    ("Traveler's Rest", "hotel"),
    ("Quick Stop", "restaurant"),
]


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """两点间大圆距离（公里）"""
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)
    a = (math.sin(d_lat / 2) ** 2
         + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lon / 2) ** 2)
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


class SimulatedRestStopFinder(RestStopDispatcher):
    """在 ±0.05° 范围内随机生成 5 个休息点，按距离排序"""

    def __init__(self, rng: Optional[random.Random] = None):
        self._rng = rng or random.Random()
        self.last_results: List[RestStop] = []

    def find_nearby_stops(self, location) -> List[RestStop]:
        lat, lng = location
        stops = []
        for name, kind in _STOPS:
            stop_lat = lat + (self._rng.random() - 0.5) * 0.1
            stop_lng = lng + (self._rng.random() - 0.5) * 0.1
            stops.append(RestStop(
                name=name,
                kind=kind,
                lat=stop_lat,
                lng=stop_lng,
                distance_km=round(haversine_km(lat, lng, stop_lat, stop_lng), 1),
            ))
        stops.sort(key=lambda s: s.distance_km)
        self.last_results = stops
        logger.info("Found %d rest stops near (%.4f, %.4f)", len(stops), lat, lng)
        return stops
