"""阈值配置：默认值、JSON 文件加载与边界校验"""

import json
import logging
import math
from dataclasses import asdict

from models.data_models import ConfigError, EngineConfig

logger = logging.getLogger(__name__)

# 默认阈值
_DEFAULTS = asdict(EngineConfig())

# 数值配置的取值范围，超出时截断
_BOUNDS = {
    "ear_threshold": (0.05, 1.0),
    "mar_threshold": (0.1, 2.0),
    "wait_time_s": (0.5, 10.0),
}

_FLAGS = ("sound_enabled", "auto_music", "psych_messages")


def _coerce_number(key, value) -> float:
    if isinstance(value, bool):
        raise ConfigError(f"{key} must be a number, got {value!r}")
    try:
        number = float(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"{key} must be a number, got {value!r}") from e
    if not math.isfinite(number):
        raise ConfigError(f"{key} must be finite, got {value!r}")

    low, high = _BOUNDS[key]
    clamped = min(high, max(low, number))
    if clamped != number:
        logger.warning("%s=%s out of range, clamped to %s", key, number, clamped)
    return clamped


def _coerce_flag(key, value) -> bool:
    """开关只接受 true/false 或 0/1，字符串 "false" 之类不做猜测"""
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    raise ConfigError(f"{key} must be a boolean, got {value!r}")


def merge_config(base: EngineConfig, data: dict) -> EngineConfig:
    """
    用 data 中的字段覆盖 base，返回新的 EngineConfig。

    缺失或为 None 的字段保留原值，未知字段忽略。

    Raises:
        ConfigError: 数值字段无法转换为有限数，或开关字段不是布尔值
    """
    if not isinstance(data, dict):
        raise ConfigError(f"config must be a JSON object, got {type(data).__name__}")

    values = asdict(base)
    for key in _BOUNDS:
        if data.get(key) is not None:
            values[key] = _coerce_number(key, data[key])
    for key in _FLAGS:
        if data.get(key) is not None:
            values[key] = _coerce_flag(key, data[key])
    return EngineConfig(**values)


def load_config(config_path=None) -> EngineConfig:
    """从 JSON 配置文件加载阈值参数，缺失字段使用默认值。"""
    config = EngineConfig()

    if config_path is None:
        return config

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError:
        logger.warning("配置文件不存在 %s，使用默认阈值", config_path)
        return config
    except json.JSONDecodeError:
        logger.warning("配置文件格式错误 %s，使用默认阈值", config_path)
        return config

    if not isinstance(data, dict):
        logger.warning("配置文件格式错误 %s，使用默认阈值", config_path)
        return config

    return merge_config(config, data)
