"""
工具函数包

模块说明:
- logger.py: 日志配置
- time_converter.py: 时间转换工具
- statistics.py: 时间线统计计算
"""

from constructsim.utils.logger import get_logger, setup_logger

from constructsim.utils.time_converter import (
    days_to_week_day,
    days_to_week_day_dict,
    week_day_to_days,
    format_sim_time,
    format_duration,
)

from constructsim.utils.statistics import (
    calculate_resource_profile,
    calculate_resource_utilization,
    calculate_phase_summary,
    calculate_peak_concurrency,
    generate_timeline_report,
)

__all__ = [
    # 日志
    "get_logger",
    "setup_logger",
    # 时间转换
    "days_to_week_day",
    "days_to_week_day_dict",
    "week_day_to_days",
    "format_sim_time",
    "format_duration",
    # 统计
    "calculate_resource_profile",
    "calculate_resource_utilization",
    "calculate_phase_summary",
    "calculate_peak_concurrency",
    "generate_timeline_report",
]
