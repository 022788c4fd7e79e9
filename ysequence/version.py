"""版本信息"""

__version__ = "0.1.0"
__author__ = "yafo-ai"
__description__ = "基于 SQLAlchemy 的连续序号维护库"
