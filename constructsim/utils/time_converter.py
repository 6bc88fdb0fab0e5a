"""
时间转换工具
提供仿真时间（天）与施工日历的相互转换

功能:
- 仿真天数 ↔ 周-日格式
- 时间格式化
"""

from typing import Any, Dict

TIME_UNIT_LABELS = {
    "day": "天",
    "hour": "小时",
    "week": "周",
}


def days_to_week_day(days: float, work_days_per_week: int = 6) -> str:
    """
    将仿真天数转换为 周-日 格式字符串

    Args:
        days: 仿真时间（天）
        work_days_per_week: 每周工作天数

    Returns:
        格式化字符串，如 "W1 D3.0"

    Example:
        >>> days_to_week_day(2, 6)
        'W1 D3.0'
        >>> days_to_week_day(6, 6)
        'W2 D1.0'
    """
    week = int(days // work_days_per_week) + 1
    day_in_week = days % work_days_per_week + 1
    return f"W{week} D{day_in_week:.1f}"


def days_to_week_day_dict(days: float, work_days_per_week: int = 6) -> Dict[str, Any]:
    """
    将仿真天数转换为字典格式

    Returns:
        包含week, day, formatted的字典
    """
    week = int(days // work_days_per_week) + 1
    day_in_week = days % work_days_per_week + 1
    return {
        "week": week,
        "day": round(day_in_week, 2),
        "formatted": f"W{week} D{day_in_week:.1f}",
        "total_days": days,
    }


def week_day_to_days(week: int, day: float, work_days_per_week: int = 6) -> float:
    """
    将 周-日 格式转换为仿真天数

    Args:
        week: 周数（从1开始）
        day: 周内天数（从1开始）
        work_days_per_week: 每周工作天数

    Example:
        >>> week_day_to_days(2, 1, 6)
        6.0
    """
    return float((week - 1) * work_days_per_week + (day - 1))


def format_sim_time(t: float, time_unit: str = "day") -> str:
    """
    格式化仿真时刻

    Example:
        >>> format_sim_time(12.5)
        '12.5天'
    """
    label = TIME_UNIT_LABELS.get(time_unit, time_unit)
    if float(t).is_integer():
        return f"{int(t)}{label}"
    return f"{t:.1f}{label}"


def format_duration(days: float, work_days_per_week: int = 6) -> str:
    """
    格式化工期为易读字符串

    Returns:
        格式化字符串，如 "2周3天" 或 "4.5天"
    """
    if days < work_days_per_week:
        return f"{days:g}天"

    weeks = int(days // work_days_per_week)
    rest = days - weeks * work_days_per_week
    if rest == 0:
        return f"{weeks}周"
    return f"{weeks}周{rest:g}天"
