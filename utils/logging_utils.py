# -*- coding: utf-8 -*-
"""
日志工具

提供日志配置功能
包括彩色控制台输出、JSON 文件格式、轮转日志文件和性能信息
"""

import json
import logging
import logging.handlers
import os
import sys
import time
from datetime import datetime
from typing import Dict, List, Optional, Union

import colorama
import psutil
from colorama import Back, Fore, Style

# 初始化colorama
colorama.init(autoreset=True)

# LogRecord 的标准属性，JSON 输出时不当作额外字段
_RECORD_ATTRIBUTES = frozenset(vars(logging.LogRecord('', 0, '', 0, '', None, None)).keys()) | {
    'message', 'asctime'
}


def _level(level: Union[str, int]) -> int:
    if isinstance(level, str):
        return getattr(logging, level.upper())
    return level


class ColoredFormatter(logging.Formatter):
    """
    彩色日志格式化器

    按日志级别给控制台输出着色
    """

    COLORS = {
        'DEBUG': Fore.CYAN,
        'INFO': Fore.GREEN,
        'WARNING': Fore.YELLOW,
        'ERROR': Fore.RED,
        'CRITICAL': Fore.RED + Back.WHITE + Style.BRIGHT
    }

    def __init__(self, fmt=None, datefmt=None, use_colors=True, stream=None):
        """
        初始化彩色格式化器

        Args:
            fmt (str): 日志格式
            datefmt (str): 日期格式
            use_colors (bool): 是否使用颜色
            stream: 输出流，仅在其为终端时着色
        """
        super().__init__(fmt, datefmt)
        self.use_colors = use_colors
        self.stream = stream or sys.stdout

    def format(self, record):
        message = super().format(record)
        color = self.COLORS.get(record.levelname)
        if self.use_colors and color and self.stream.isatty():
            message = f"{color}{message}{Style.RESET_ALL}"
        return message


class JsonFormatter(logging.Formatter):
    """
    JSON格式化器

    每条日志一行 JSON，附带 extra 传入的字段
    """

    def __init__(self, fields: Optional[List[str]] = None):
        """
        Args:
            fields (List[str]): 要包含的字段列表
        """
        super().__init__()
        self.fields = fields or [
            'timestamp', 'level', 'logger', 'message', 'module', 'function', 'line'
        ]

    def format(self, record):
        values = {
            'timestamp': datetime.fromtimestamp(record.created).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'module': record.module,
            'function': record.funcName,
            'line': record.lineno,
        }
        log_data = {key: values[key] for key in self.fields if key in values}

        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)

        for key, value in record.__dict__.items():
            if key not in _RECORD_ATTRIBUTES:
                log_data[key] = value

        return json.dumps(log_data, ensure_ascii=False, default=str)


class PerformanceFilter(logging.Filter):
    """
    性能过滤器

    给每条日志附加运行时间、进程内存和 CPU 占用
    """

    def __init__(self):
        super().__init__()
        self.start_time = time.time()
        self.process = psutil.Process()

    def filter(self, record):
        record.runtime = time.time() - self.start_time
        record.memory_mb = self.process.memory_info().rss / 1024 / 1024
        record.cpu_percent = self.process.cpu_percent()
        return True


class LogManager:
    """
    日志管理器

    按名称创建并登记处理器，再把它们挂到日志记录器上
    """

    def __init__(self):
        self.handlers: Dict[str, logging.Handler] = {}
        self.default_format = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        self.default_date_format = '%Y-%m-%d %H:%M:%S'

    def create_console_handler(self, name: str = 'console',
                               level: Union[str, int] = 'INFO',
                               use_colors: bool = True,
                               format_string: Optional[str] = None) -> logging.Handler:
        """
        创建控制台处理器

        Args:
            name (str): 处理器名称
            level (Union[str, int]): 日志级别
            use_colors (bool): 是否使用颜色
            format_string (Optional[str]): 格式字符串

        Returns:
            logging.Handler: 新处理器
        """
        handler = logging.StreamHandler(sys.stdout)
        handler.setLevel(_level(level))
        handler.setFormatter(ColoredFormatter(
            format_string or self.default_format, self.default_date_format,
            use_colors=use_colors, stream=sys.stdout
        ))
        self.handlers[name] = handler
        return handler

    def create_file_handler(self, name: str, file_path: str,
                            level: Union[str, int] = 'DEBUG',
                            max_bytes: int = 10 * 1024 * 1024,
                            backup_count: int = 5,
                            use_json: bool = False) -> logging.Handler:
        """
        创建轮转文件处理器

        Args:
            name (str): 处理器名称
            file_path (str): 文件路径
            level (Union[str, int]): 日志级别
            max_bytes (int): 单个文件最大字节数
            backup_count (int): 备份文件数量
            use_json (bool): 是否使用JSON格式

        Returns:
            logging.Handler: 新处理器
        """
        log_dir = os.path.dirname(file_path)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)

        handler = logging.handlers.RotatingFileHandler(
            file_path, maxBytes=max_bytes, backupCount=backup_count, encoding='utf-8'
        )
        handler.setLevel(_level(level))
        if use_json:
            handler.setFormatter(JsonFormatter())
        else:
            handler.setFormatter(logging.Formatter(self.default_format, self.default_date_format))
        self.handlers[name] = handler
        return handler

    def attach(self, logger: logging.Logger, names: Optional[List[str]] = None,
               performance: bool = True):
        """
        把已创建的处理器挂到日志记录器上
        """
        perf_filter = PerformanceFilter() if performance else None
        for name in (names or list(self.handlers)):
            handler = self.handlers[name]
            if perf_filter is not None:
                handler.addFilter(perf_filter)
            logger.addHandler(handler)

    def setup_default_logging(self, log_dir: Optional[str] = 'logs',
                              app_name: str = 'typewriter_studio',
                              console_level: str = 'INFO',
                              file_level: str = 'DEBUG',
                              use_colors: bool = True,
                              use_json: bool = False) -> logging.Logger:
        """
        设置默认日志配置

        处理器挂在根日志记录器上，各模块的 logging.getLogger(__name__) 都会经过它们

        Args:
            log_dir (str): 日志目录，None 表示不写文件
            app_name (str): 应用名称
            console_level (str): 控制台日志级别
            file_level (str): 文件日志级别
            use_colors (bool): 是否使用颜色
            use_json (bool): 是否使用JSON格式

        Returns:
            logging.Logger: 应用日志记录器
        """
        root = logging.getLogger()
        self.close_all_handlers(root)
        root.setLevel(logging.DEBUG)

        self.create_console_handler('console', console_level, use_colors)
        if log_dir:
            self.create_file_handler(
                'file', os.path.join(log_dir, f'{app_name}.log'), file_level, use_json=use_json
            )
            self.create_file_handler(
                'error_file', os.path.join(log_dir, f'{app_name}_error.log'), 'ERROR',
                use_json=use_json
            )
        self.attach(root)
        return logging.getLogger(app_name)

    def close_all_handlers(self, logger: Optional[logging.Logger] = None):
        """
        关闭并移除本管理器创建的所有处理器
        """
        for handler in self.handlers.values():
            if logger is not None:
                logger.removeHandler(handler)
            handler.close()
        self.handlers.clear()


_manager = LogManager()


def setup_logging(log_dir: Optional[str] = 'logs', app_name: str = 'typewriter_studio',
                  console_level: str = 'INFO', file_level: str = 'DEBUG',
                  use_colors: bool = True, use_json: bool = False) -> logging.Logger:
    """
    快速设置日志配置，重复调用会替换之前的处理器

    Returns:
        logging.Logger: 应用日志记录器
    """
    return _manager.setup_default_logging(
        log_dir, app_name, console_level, file_level, use_colors, use_json
    )


def setup_logging_from_config(config, debug: bool = False) -> logging.Logger:
    """
    按配置的 logging 段设置日志
    """
    section = config.get('logging')
    return setup_logging(
        log_dir=section.get('log_dir', 'logs'),
        console_level='DEBUG' if debug else section.get('console_level', 'INFO'),
        file_level=section.get('file_level', 'DEBUG'),
        use_colors=section.get('use_colors', True),
        use_json=section.get('use_json', False),
    )


def shutdown_logging():
    """关闭 setup_logging 创建的处理器并从根日志记录器移除"""
    _manager.close_all_handlers(logging.getLogger())
