"""
播放时钟
可控的虚拟时间源，驱动仿真推进

功能:
- 播放/暂停
- 跳转到 [0, 总工期] 内任意时刻
- 倍速控制
- 按外部节拍推进（到达总工期时自动暂停）

设计要点:
- 不使用墙钟定时器，时间只随 advance/seek 改变
- 非法命令抛出错误且不修改任何状态
"""

import math
from typing import Tuple

from pydantic import BaseModel, Field

from constructsim.exceptions import InvalidSeekError, InvalidSpeedError
from constructsim.utils.logger import get_logger

logger = get_logger(__name__)


class PlaybackState(BaseModel):
    """
    播放状态

    Attributes:
        current_time: 当前仿真时间
        speed_multiplier: 播放倍速
        is_playing: 是否播放中
        total_duration: 总工期
    """
    current_time: float = Field(default=0.0, ge=0, description="当前仿真时间")
    speed_multiplier: float = Field(default=1.0, gt=0, description="播放倍速")
    is_playing: bool = Field(default=False, description="是否播放中")
    total_duration: float = Field(default=0.0, ge=0, description="总工期")

    @property
    def progress(self) -> float:
        if self.total_duration <= 0:
            return 1.0
        return min(self.current_time / self.total_duration, 1.0)


class PlaybackClock:
    """
    播放时钟

    持有 PlaybackState，只能通过播放控制命令修改
    """

    def __init__(self, total_duration: float = 0.0, speed: float = 1.0):
        self._validate_speed(speed)
        self._state = PlaybackState(speed_multiplier=speed, total_duration=total_duration)

    @property
    def state(self) -> PlaybackState:
        """当前状态的副本"""
        return self._state.model_copy()

    @property
    def current_time(self) -> float:
        return self._state.current_time

    @property
    def speed(self) -> float:
        return self._state.speed_multiplier

    @property
    def is_playing(self) -> bool:
        return self._state.is_playing

    @property
    def total_duration(self) -> float:
        return self._state.total_duration

    def at_end(self) -> bool:
        return self._state.current_time >= self._state.total_duration

    def reset(self, total_duration: float, speed: float = 1.0):
        """新项目加载：回到0，暂停"""
        self._validate_speed(speed)
        self._state = PlaybackState(speed_multiplier=speed, total_duration=total_duration)

    def play(self):
        self._state.is_playing = True

    def pause(self):
        self._state.is_playing = False

    def seek(self, t: float) -> Tuple[float, float]:
        """
        跳转

        Args:
            t: 目标时间

        Returns:
            (跳转前时间, 跳转后时间)

        Raises:
            InvalidSeekError: t 不在 [0, 总工期] 内
        """
        if not isinstance(t, (int, float)) or not math.isfinite(t):
            raise InvalidSeekError(f"无效的跳转时间: {t}")
        if t < 0 or t > self._state.total_duration:
            raise InvalidSeekError(
                f"跳转时间 {t} 超出范围 [0, {self._state.total_duration}]"
            )
        old = self._state.current_time
        self._state.current_time = float(t)
        return old, self._state.current_time

    def set_speed(self, multiplier: float):
        """
        设置倍速

        Raises:
            InvalidSpeedError: 倍速不是正数
        """
        self._validate_speed(multiplier)
        self._state.speed_multiplier = float(multiplier)

    def advance(self, delta: float) -> Tuple[float, float]:
        """
        按外部节拍推进

        currentTime += delta * speed，仅在播放中生效，到达总工期时自动暂停

        Args:
            delta: 墙钟时间增量

        Returns:
            (推进前时间, 推进后时间)
        """
        if not isinstance(delta, (int, float)) or not math.isfinite(delta) or delta < 0:
            raise ValueError(f"节拍增量必须为非负数: {delta}")
        old = self._state.current_time
        if not self._state.is_playing:
            return old, old
        new = min(old + delta * self._state.speed_multiplier, self._state.total_duration)
        self._state.current_time = new
        if new >= self._state.total_duration:
            self._state.is_playing = False
            logger.debug("播放到达终点 t=%.2f，自动暂停", new)
        return old, new

    @staticmethod
    def _validate_speed(multiplier: float):
        if (
            not isinstance(multiplier, (int, float))
            or not math.isfinite(multiplier)
            or multiplier <= 0
        ):
            raise InvalidSpeedError(f"播放倍速必须为正数: {multiplier}")
