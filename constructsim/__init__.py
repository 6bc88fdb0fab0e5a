"""
建筑施工进度仿真系统
Construction Timeline Scheduler

子包说明:
- models: Pydantic数据模型（构件、施工步骤、阶段目录、配置）
- core: 调度核心（依赖图、时间线、资源池、阶段状态机、播放时钟、仿真驱动）
- utils: 工具函数（日志、统计、时间转换）
- api: FastAPI控制接口
"""

__version__ = "1.0.0"
