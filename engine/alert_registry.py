"""告警标签注册表：带 TTL 的去重集合，用于各类提醒的冷却"""

import logging
import threading
from typing import Dict

logger = logging.getLogger(__name__)

# 各标签冷却时长（秒）
TAG_TTLS = {
    "headpose": 3.0,
    "yawn": 5.0,
    "psych_message": 30.0,
    "rest_stop": 60.0,
}


class AlertTagRegistry:
    """标签 -> 过期时间戳；now < expiry 时标签处于激活状态"""

    def __init__(self):
        self._expiry: Dict[str, float] = {}
        self._lock = threading.Lock()

    def is_active(self, tag: str, now: float) -> bool:
        with self._lock:
            expiry = self._expiry.get(tag)
            return expiry is not None and now < expiry

    def activate(self, tag: str, ttl_s: float, now: float) -> bool:
        """
        激活标签。

        Returns:
            True 表示新激活；标签仍在有效期内时不做任何修改并返回 False
        """
        with self._lock:
            expiry = self._expiry.get(tag)
            if expiry is not None and now < expiry:
                return False
            self._expiry[tag] = now + ttl_s
        logger.debug("Tag %s active for %.1fs", tag, ttl_s)
        return True

    def remaining(self, tag: str, now: float) -> float:
        """标签剩余有效时长，未激活时为 0"""
        with self._lock:
            expiry = self._expiry.get(tag)
        if expiry is None:
            return 0.0
        return max(0.0, expiry - now)

    def active_tags(self, now: float) -> list:
        with self._lock:
            return sorted(tag for tag, expiry in self._expiry.items() if now < expiry)

    def clear(self):
        with self._lock:
            self._expiry.clear()
