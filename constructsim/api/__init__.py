"""
API模块包
包含所有REST API端点的定义

模块说明:
- session.py: 共享仿真会话与统一响应格式
- project.py: 项目加载与时间线查询接口
- playback.py: 播放控制接口
"""

from constructsim.api import project, playback

__all__ = ["project", "playback"]
