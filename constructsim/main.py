"""
FastAPI 主入口
建筑施工进度仿真系统 - Construction Timeline Scheduler
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from constructsim import __version__
from constructsim.api import playback, project
from constructsim.api.session import get_simulator
from constructsim.utils.logger import get_logger, setup_logger

logger = get_logger(__name__)

# 创建FastAPI应用实例
app = FastAPI(
    title="建筑施工进度仿真系统",
    description="Construction Timeline Scheduler",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
)

# CORS中间件配置 - 允许渲染端跨域访问
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# 注册API路由
app.include_router(project.router, prefix="/api/project", tags=["项目"])
app.include_router(playback.router, prefix="/api/playback", tags=["播放控制"])


@app.get("/health")
async def health_check():
    """
    健康检查接口
    """
    return JSONResponse(content={
        "status": "healthy",
        "version": __version__,
        "service": "Construction Timeline Scheduler",
        "simulation_status": get_simulator().status.value,
    })


@app.on_event("startup")
async def startup_event():
    """
    应用启动事件
    """
    setup_logger(get_simulator().config.log_level)
    logger.info("建筑施工进度仿真系统启动成功，API文档: http://localhost:8000/docs")


@app.on_event("shutdown")
async def shutdown_event():
    """
    应用关闭事件
    """
    logger.info("建筑施工进度仿真系统已关闭")


def run():
    """命令行入口"""
    import uvicorn
    uvicorn.run("constructsim.main:app", host="0.0.0.0", port=8000)


if __name__ == "__main__":
    run()
