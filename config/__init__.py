# -*- coding: utf-8 -*-
"""
配置模块
"""

from .settings import Config, default_config, DEFAULT_CHARACTER_SET

__all__ = [
    'Config',
    'default_config',
    'DEFAULT_CHARACTER_SET'
]
