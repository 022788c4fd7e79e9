"""
Pytest 公共配置和 Fixtures

提供测试所需的公共资源：
- 临时文件
- 数据库连接
- 内存存储与序号维护器
"""

import pytest
import os
import tempfile
from typing import Generator

# SQLAlchemy
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

from ysequence.sequence import MemoryStore, SequenceConfig, Sequencer


# ==================== 基础 Fixtures ====================

@pytest.fixture(scope="session")
def temp_dir():
    """创建临时目录"""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield tmpdir


@pytest.fixture
def temp_file(temp_dir):
    """创建临时文件的工厂函数"""
    created_files = []

    def _create_file(filename: str, content: str = "") -> str:
        filepath = os.path.join(temp_dir, filename)
        if os.path.dirname(filepath):
            os.makedirs(os.path.dirname(filepath), exist_ok=True)
        with open(filepath, "w", encoding="utf-8") as f:
            f.write(content)
        created_files.append(filepath)
        return filepath

    yield _create_file

    # 清理
    for f in created_files:
        if os.path.exists(f):
            os.remove(f)


# ==================== 数据库 Fixtures ====================

@pytest.fixture(scope="function")
def memory_engine():
    """创建内存数据库引擎

    使用 StaticPool 和 check_same_thread=False 确保：
    1. 所有操作使用同一个连接（StaticPool）
    2. 允许跨线程访问（check_same_thread=False）
    """
    engine = create_engine(
        "sqlite:///:memory:",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    yield engine
    engine.dispose()


@pytest.fixture
def db_session(memory_engine) -> Generator[Session, None, None]:
    """创建数据库会话"""
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=memory_engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


# ==================== 序号 Fixtures ====================

@pytest.fixture
def memory_store():
    """空的内存存储"""
    return MemoryStore("items")


@pytest.fixture
def make_sequencer(memory_store):
    """按配置创建绑定到 memory_store 的序号维护器"""

    def _make(**options) -> Sequencer:
        return Sequencer(SequenceConfig(**options), memory_store)

    return _make



# ==================== 配置 Fixtures ====================

@pytest.fixture
def sample_yaml_config(temp_file):
    """创建示例 YAML 配置文件"""
    yaml_content = """
order_field: "position"
start_at: 1
out_of_range: "reject"

collections:
  tasks:
    group_fields: ["board_id", "column_id"]
  tags:
    order_field: "weight"
    start_at: 0
    out_of_range: "allow"

logging:
  level: "DEBUG"
  file_path: "logs/sequence.log"
"""
    return temp_file("config/sequence.yaml", yaml_content)
