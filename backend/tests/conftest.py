import os
import sys
from typing import Generator

import pytest

# 将 backend 目录添加到 sys.path 中，便于按项目方式导入
backend_path = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
if backend_path not in sys.path:
    sys.path.insert(0, backend_path)

# 在导入项目模块前设置测试环境：默认不连数据库
os.environ["DATABASE_URL"] = ""
os.environ.setdefault("LOG_LEVEL", "WARNING")

from fastapi.testclient import TestClient

from app.config.dependency_injection import get_gaze_log_store
from app.core.config import Settings
from app.crud.crud_gaze_log import GazeLogStore
from app.db.database import create_db_engine
from app.main import create_app


def make_settings(**overrides) -> Settings:
    """不读取 .env 的测试配置"""
    return Settings(_env_file=None, **overrides)


@pytest.fixture
def store() -> Generator[GazeLogStore, None, None]:
    """内存 SQLite 上的存储适配器，每个测试独立"""
    engine = create_db_engine("sqlite://", make_settings())
    gaze_store = GazeLogStore(engine)
    try:
        yield gaze_store
    finally:
        gaze_store.dispose()


@pytest.fixture
def make_client():
    """
    创建测试客户端，store 通过依赖覆盖注入（None 表示未配置数据库）
    """
    def _make(store_override, **settings_overrides) -> TestClient:
        app = create_app(make_settings(**settings_overrides))
        app.dependency_overrides[get_gaze_log_store] = lambda: store_override
        return TestClient(app)
    return _make
