"""外部协作方接口：音频/语音、休息点查询、告警日志输出"""

import datetime
import logging
import threading

logger = logging.getLogger(__name__)


class AudioDispatcher:
    """音频与语音请求，发出即忘；默认实现只写日志"""

    def play_tone(self, frequency: int, duration_ms: int, repetitions: int = 1):
        logger.info("Tone %d Hz x%d (%d ms)", frequency, repetitions, duration_ms)

    def speak(self, text: str):
        logger.info("Speak: %s", text)

    def start_music(self):
        logger.info("Music started")

    def pause_music(self):
        logger.info("Music paused")

    def set_music_mode(self, mode: str, volume: float):
        logger.info("Music mode %s, volume %.1f", mode, volume)


class RestStopDispatcher:
    """休息点查询请求，结果不回传给引擎"""

    def find_nearby_stops(self, location):
        logger.info("Rest stop search near %s", location)


class AlertLog:
    """告警日志接收端，保存 (time, level, message)，条数有上限。level: info / warning / danger"""

    MAX_LOG_ENTRIES = 200

    def __init__(self):
        self._logs = []
        self._log_lock = threading.Lock()

    def emit(self, message: str, level: str = "info"):
        entry = {
            "time": datetime.datetime.now().strftime("%H:%M:%S"),
            "level": level,
            "message": message,
        }
        with self._log_lock:
            self._logs.append(entry)
            if len(self._logs) > self.MAX_LOG_ENTRIES:
                self._logs = self._logs[-self.MAX_LOG_ENTRIES:]
        logger.debug("[%s] %s", level, message)

    def get_logs(self, since: int = 0):
        """获取日志，since 为起始索引。"""
        with self._log_lock:
            return self._logs[since:], len(self._logs)

    def messages(self, level=None):
        with self._log_lock:
            return [e["message"] for e in self._logs if level is None or e["level"] == level]

    def clear(self):
        with self._log_lock:
            self._logs = []
