"""综合疲劳分数模块"""

from typing import List

from models.data_models import EyeResult, FatigueSnapshot, MouthResult, PoseResult

MAX_FATIGUE = 100.0


def fatigue_level(score: float) -> str:
    """疲劳分数显示等级: normal / warning / danger"""
    if score < 30:
        return "normal"
    if score < 60:
        return "warning"
    return "danger"


class FatigueEvaluator:
    """汇总各检测模块的贡献值，输出当前帧的疲劳分数快照和触发原因。"""

    def evaluate(
        self,
        eye_result: EyeResult,
        mouth_result: MouthResult,
        pose_result: PoseResult,
    ) -> FatigueSnapshot:
        """
        计算疲劳分数。

        分数只反映当前帧状况，不跨帧累积：闭眼、分心、张嘴同时消失时立即归零。

        Args:
            eye_result: 眼睛分析结果
            mouth_result: 嘴巴分析结果
            pose_result: 头部姿态分析结果

        Returns:
            FatigueSnapshot(score, level, reasons)，score 位于 [0, 100]
        """
        reasons: List[str] = []
        if eye_result.fatigue_contribution > 0:
            reasons.append("eyes_closed")
        if pose_result.fatigue_contribution > 0:
            reasons.append("distracted")
        if mouth_result.fatigue_contribution > 0:
            reasons.append("yawning")

        total = (
            eye_result.fatigue_contribution
            + pose_result.fatigue_contribution
            + mouth_result.fatigue_contribution
        )
        score = min(MAX_FATIGUE, max(0.0, total))
        return FatigueSnapshot(score=score, level=fatigue_level(score), reasons=reasons)

    @staticmethod
    def idle() -> FatigueSnapshot:
        """未检测到人脸时的快照"""
        return FatigueSnapshot(score=0.0, level="normal", reasons=[])
