#!/usr/bin/env python3
"""
数据库初始化脚本
建表并补齐新增字段（与 /save 每次请求执行的 ensure_schema 相同，可重复执行）
"""

import sys
from pathlib import Path
from typing import Optional

# 添加项目根目录到Python路径
project_root = Path(__file__).parent
sys.path.insert(0, str(project_root))

# 确保在导入任何其他模块之前加载环境变量
from dotenv import load_dotenv
env_path = project_root.parent / ".env"
if env_path.exists():
    load_dotenv(env_path)

from sqlalchemy import inspect
from app.core.config import Settings, settings
from app.core.errors import StorageError
from app.db.database import create_gaze_log_store


def init_database(app_settings: Optional[Settings] = None) -> bool:
    """初始化数据库，返回是否成功"""
    app_settings = app_settings or settings
    print("🗄️  初始化数据库...")

    store = create_gaze_log_store(app_settings)
    if store is None:
        print("❌ 未配置 DATABASE_URL，跳过")
        return False

    try:
        print("📋 创建 gaze_logs 表...")
        store.ensure_schema()

        columns = [c["name"] for c in inspect(store.engine).get_columns(store.table.name)]
        print(f"📊 gaze_logs 字段: {columns}")
        print("✅ 数据库初始化完成!")
        return True
    except StorageError as e:
        print(f"❌ 数据库初始化失败: {e}")
        return False
    finally:
        store.dispose()


if __name__ == "__main__":
    sys.exit(0 if init_database() else 1)
