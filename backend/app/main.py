import logging
import os
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware

from app.api.api import api_router
from app.core.config import Settings, settings
from app.db.database import create_gaze_log_store
from app.services.static_files import SPAStaticFiles

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


def create_app(app_settings: Optional[Settings] = None) -> FastAPI:
    """
    创建 FastAPI 应用：API 路由、压缩、可选的 CORS 和静态资源。
    """
    app_settings = app_settings or settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        启动时按配置创建存储适配器（连接池），整个进程生命周期复用，关闭时释放。
        """
        app.state.gaze_log_store = create_gaze_log_store(app_settings)
        try:
            yield
        finally:
            store = app.state.gaze_log_store
            if store is not None:
                logger.info("释放数据库连接池")
                store.dispose()

    app = FastAPI(title=app_settings.PROJECT_NAME, lifespan=lifespan)
    app.state.gaze_log_store = None

    app.add_middleware(GZipMiddleware, minimum_size=app_settings.GZIP_MINIMUM_SIZE)

    # Set all CORS enabled origins
    if app_settings.BACKEND_CORS_ORIGINS:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=[str(origin) for origin in app_settings.BACKEND_CORS_ORIGINS],
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    app.include_router(api_router)

    # 静态资源（index.html / webgazer.js 等），必须最后挂载，否则会遮住 API 路由
    static_dir = app_settings.STATIC_DIR
    if static_dir and os.path.isdir(static_dir):
        app.mount(
            "/",
            SPAStaticFiles(directory=static_dir, max_age=app_settings.STATIC_MAX_AGE_SECONDS),
            name="static",
        )
    elif static_dir:
        logger.warning(f"STATIC_DIR {static_dir} 不存在，跳过静态资源")

    return app


app = create_app()


if __name__ == '__main__':
    logger.info(f"Listening on :{settings.PORT}")
    uvicorn.run(
        'app.main:app',
        host='0.0.0.0',
        port=settings.PORT,
        proxy_headers=True,
        forwarded_allow_ips='*',
    )
