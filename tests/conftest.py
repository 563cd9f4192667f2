import sys
import os

# Add project root to sys.path so tests can import from all modules
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import numpy as np
import pytest
from hypothesis import settings

from detectors.landmarks import make_sample

# CI profile: more examples for thorough testing
settings.register_profile("ci", max_examples=200)
# Dev profile: fewer examples for faster iteration
settings.register_profile("dev", max_examples=100)
# Default to dev profile
settings.load_profile("dev")


def build_points(ear=0.3, mar=0.2, nose=(0.5, 0.5)):
    """
    构造 468 个归一化关键点，使双眼 EAR、MAR 和鼻尖位置等于给定值。

    眼睛宽 0.1，位于 y=0.4；嘴角间距 0.1，位于 y=0.7；下巴 y=0.85。
    """
    points = np.full((468, 3), 0.5)
    points[:, 2] = 0.0

    def eye(indices, x0):
        w, y = 0.1, 0.4
        gap = ear * w / 2.0
        p0, p1, p2, p3, p4, p5 = indices
        points[p0] = (x0, y, 0.0)
        points[p3] = (x0 + w, y, 0.0)
        points[p1] = (x0 + 0.03, y - gap, 0.0)
        points[p5] = (x0 + 0.03, y + gap, 0.0)
        points[p2] = (x0 + 0.07, y - gap, 0.0)
        points[p4] = (x0 + 0.07, y + gap, 0.0)

    eye([362, 385, 387, 263, 373, 380], 0.55)
    eye([33, 160, 158, 133, 153, 144], 0.35)

    h, y = 0.1, 0.7
    points[61] = (0.45, y, 0.0)
    points[291] = (0.55, y, 0.0)
    gap = mar * h / 2.0
    for (top, bottom), x in zip([(13, 14), (312, 311), (82, 87)], [0.5, 0.48, 0.52]):
        points[top] = (x, y - gap, 0.0)
        points[bottom] = (x, y + gap, 0.0)

    points[1] = (nose[0], nose[1], 0.0)
    points[152] = (0.5, 0.85, 0.0)
    return points


@pytest.fixture
def sample_factory():
    """按 EAR / MAR / 鼻尖位置生成 LandmarkSample"""
    def factory(t, ear=0.3, mar=0.2, nose=(0.5, 0.5)):
        return make_sample(build_points(ear=ear, mar=mar, nose=nose), t)
    return factory
