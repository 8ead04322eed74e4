"""
几何计算：网格吸附 + 容器边界约束。
纯函数，对任意数值输入都不会抛异常。
"""

import math

from snippet_builder.models import Position, Size

DEFAULT_GRID_SIZE = 20
DEFAULT_MIN_WIDTH = 100
DEFAULT_MIN_HEIGHT = 100


def _round_half_away(value: float) -> int:
    """四舍五入，.5 远离 0（区别于 Python 内置 round 的银行家舍入）。"""
    n = math.floor(abs(value) + 0.5)
    return int(-n if value < 0 else n)


def snap(value: float, grid_size: int = DEFAULT_GRID_SIZE) -> float:
    """
    将 value 吸附到最近的 grid_size 整数倍。
    NaN 视为 0；±inf 原样返回，由后续 clamp 收敛到边界。
    """
    if math.isnan(value):
        return 0
    if math.isinf(value):
        return value
    if grid_size <= 0:
        return _round_half_away(value)
    return _round_half_away(value / grid_size) * grid_size


def _clamp(value: float, low: float, high: float) -> int:
    # 下界优先：high < low 时返回 low
    result = max(low, min(value, high))
    if math.isinf(result):
        # 无上界时的 +inf 输入
        return int(low)
    return int(result)


def clamp_drag(
    raw_x: float,
    raw_y: float,
    widget_width: float,
    widget_height: float,
    container_width: float,
    container_height: float,
    grid_size: int = DEFAULT_GRID_SIZE,
) -> Position:
    """
    拖拽位置：先吸附，再约束到 [0, container - widget]。
    容器比组件小时上界为负数，此时取 0，组件允许溢出容器。
    """
    max_x = container_width - widget_width
    max_y = container_height - widget_height
    return Position(
        x=_clamp(snap(raw_x, grid_size), 0, max_x),
        y=_clamp(snap(raw_y, grid_size), 0, max_y),
    )


def clamp_resize(
    raw_width: float,
    raw_height: float,
    min_width: float = DEFAULT_MIN_WIDTH,
    min_height: float = DEFAULT_MIN_HEIGHT,
    max_width: float = math.inf,
    max_height: float = math.inf,
    grid_size: int = DEFAULT_GRID_SIZE,
) -> Size:
    """
    调整尺寸：先吸附，再约束到 [min, max]。
    max 由调用方按 容器尺寸 - 组件位置 计算；max < min 时最小值优先。
    """
    return Size(
        width=_clamp(snap(raw_width, grid_size), min_width, max_width),
        height=_clamp(snap(raw_height, grid_size), min_height, max_height),
    )
