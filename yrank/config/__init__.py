"""配置模块

提供配置管理功能：
- AppSettings: 应用基础配置，支持 YAML + 环境变量
- 子配置类: RankingSettings, DatabaseSettings, LoggingSettings
- ConfigLoader: YAML 配置加载器

快速开始:
    from yrank.config import AppSettings, load_yaml_config

    settings = load_yaml_config("config/settings.yaml", AppSettings)
    policy = settings.ranking.get_policy("regions")

YAML 文件中未出现的子配置从环境变量读取。
"""

from .settings import (
    AppSettings,
    PolicySettings,
    RankingSettings,
    DatabaseSettings,
    LoggingSettings,
)

from .loader import (
    ConfigLoader,
    load_yaml_config,
)

__all__ = [
    "AppSettings",
    "PolicySettings",
    "RankingSettings",
    "DatabaseSettings",
    "LoggingSettings",
    "ConfigLoader",
    "load_yaml_config",
]
