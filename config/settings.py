# -*- coding: utf-8 -*-
"""
配置设置模块

定义打字机艺术渲染的各种参数和配置
"""

import os
import json
import logging
import yaml
from typing import Dict, Any, Optional


DEFAULT_CHARACTER_SET = "$@B%8&WM#*oahkbdpqwmZO0QLCJUYXzcvunxrjft/\\|()1{}[]?-_+~<>i!lI;:,\"^`'. "

logger = logging.getLogger(__name__)


class Config:
    """
    配置管理类

    管理渲染、笔刷、历史、帧捕获和导出的所有参数配置，支持从文件加载和默认值
    """

    SECTIONS = ('render', 'image', 'brush', 'history', 'capture', 'export', 'logging')

    def __init__(self, config_path: Optional[str] = None):
        """
        初始化配置

        Args:
            config_path (str, optional): 配置文件路径 (.yaml/.yml/.json)
        """
        # 设置默认配置
        self._set_default_config()

        # 如果提供了配置文件路径，则加载配置
        if config_path and os.path.exists(config_path):
            self._load_config_file(config_path)
        elif config_path:
            logger.warning(f"Config file not found: {config_path}, using defaults")

    def _set_default_config(self):
        """
        设置默认配置参数
        """
        # 渲染参数
        self.render = {
            'total_strokes': 300000,     # 总笔触数
            'font_size': 14,             # 基础字号
            'gamma': 1.4,                # 伽马
            'output_scale': 2.0,         # 输出缩放
            'ink_opacity': 140,          # 墨水不透明度 (0-255)
            'ribbon_wear': 0.2,          # 色带磨损 [0,1]
            'dirty_ink': 0.1,            # 脏墨概率 [0,1]
            'density_weight': 2.0,       # 密度蒙版权重 (>=1)
            'character_set': DEFAULT_CHARACTER_SET,
            'color_mode': 'color',       # color / bw / masked_color
            'min_chunk_strokes': 5000,   # 每块最少笔触数
            'chunk_divisor': 100,        # 总笔触数 / 块数
            'rotation_jitter': 5.0,      # 字形旋转抖动(度)
            'detail_substrokes': 3,      # 细节模式子笔触数
            'font_path': None,           # 自定义字体路径
        }

        # 图像参数
        self.image = {
            'resolution': 2000,          # 源图最长边上限
        }

        # 笔刷参数
        self.brush = {
            'size': 40,                  # 半径
            'hardness': 1.0,             # 硬度
            'opacity': 1.0,              # 不透明度
            'margin': 1,                 # 包围盒边距
            'active_layer': 'density',
        }

        # 历史参数
        self.history = {
            'max_depth': 15,
        }

        # 帧捕获参数
        self.capture = {
            'threshold': 0.01,           # 进度阈值
            'max_height': 1080,
            'max_pixels': 2000000,
        }

        # 导出参数
        self.export = {
            'duration': 10.0,            # 目标时长(秒)
            'target_height': 1080,
            'frame_density': 100,        # 帧使用百分比
            'min_delay_ms': 40,
            'final_pause_ms': 3000,
        }

        # 日志参数
        self.logging = {
            'log_dir': 'logs',
            'console_level': 'INFO',
            'file_level': 'DEBUG',
            'use_colors': True,
            'use_json': False,
        }

    def _load_config_file(self, config_path: str):
        """
        从文件加载配置

        Args:
            config_path (str): 配置文件路径
        """
        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                if config_path.endswith('.yaml') or config_path.endswith('.yml'):
                    config_data = yaml.safe_load(f) or {}
                else:
                    config_data = json.load(f)
        except (OSError, ValueError, yaml.YAMLError) as e:
            logger.warning(f"Failed to load config file {config_path}: {str(e)}")
            logger.warning("Using default configuration")
            return

        # 更新配置
        self._update_config(config_data)

    def _update_config(self, config_data: Dict[str, Any]):
        """
        更新配置数据

        Args:
            config_data (dict): 新的配置数据
        """
        for section, values in config_data.items():
            if section not in self.SECTIONS:
                logger.warning(f"Ignoring unknown config section: {section}")
                continue
            if not isinstance(values, dict):
                logger.warning(f"Config section '{section}' must be a mapping, ignoring it")
                continue
            getattr(self, section).update(values)

    def get(self, section: str, key: str = None, default=None):
        """
        获取配置值

        Args:
            section (str): 配置段名
            key (str, optional): 配置键名
            default: 默认值

        Returns:
            配置值
        """
        if not hasattr(self, section):
            return default

        section_config = getattr(self, section)

        if key is None:
            return section_config

        if isinstance(section_config, dict):
            return section_config.get(key, default)
        else:
            return default

    def set(self, section: str, key: str, value):
        """
        设置配置值

        Args:
            section (str): 配置段名
            key (str): 配置键名
            value: 配置值
        """
        if not hasattr(self, section):
            setattr(self, section, {})

        section_config = getattr(self, section)
        if isinstance(section_config, dict):
            section_config[key] = value
        else:
            setattr(self, section, {key: value})

    def reset_section(self, section: str):
        """
        将某个配置段恢复为默认值

        Args:
            section (str): 配置段名
        """
        defaults = Config()
        setattr(self, section, dict(getattr(defaults, section)))

    def to_dict(self) -> Dict[str, Any]:
        """转换为字典"""
        return {section: dict(getattr(self, section)) for section in self.SECTIONS}

    def save_config(self, output_path: str):
        """
        保存配置到文件

        Args:
            output_path (str): 输出文件路径
        """
        with open(output_path, 'w', encoding='utf-8') as f:
            yaml.dump(self.to_dict(), f, default_flow_style=False,
                      allow_unicode=True, indent=2)
        logger.info(f"Configuration saved to: {output_path}")

    def __str__(self):
        """
        返回配置的字符串表示
        """
        config_str = "Configuration Settings:\n"
        for section in self.SECTIONS:
            config_str += f"\n{section}:\n"
            for key, value in getattr(self, section).items():
                config_str += f"  {key}: {value}\n"
        return config_str


# 创建默认配置实例
default_config = Config()
