# -*- coding: utf-8 -*-
"""
命令行入口端到端测试
"""

import numpy as np
import pytest
import yaml

import main
from utils.image_utils import ImageProcessor
from utils.logging_utils import shutdown_logging


@pytest.fixture
def workspace(tmp_path):
    image = np.zeros((30, 40, 3), dtype=np.uint8)
    image[:, 20:] = 220
    ImageProcessor.save_image(image, str(tmp_path / "photo.png"))

    mask = np.zeros((30, 40), dtype=np.uint8)
    mask[:, :10] = 255
    ImageProcessor.save_image(mask, str(tmp_path / "original.png"))

    config_path = tmp_path / "config.yaml"
    config_path.write_text(yaml.safe_dump({
        'logging': {'log_dir': str(tmp_path / 'logs'), 'use_colors': False},
        'render': {'font_size': 4},
    }))
    yield tmp_path
    shutdown_logging()


def test_cli_renders_png_and_gif(workspace):
    output = workspace / "out.png"
    gif = workspace / "out.gif"
    code = main.main([
        str(workspace / "photo.png"),
        "--config", str(workspace / "config.yaml"),
        "--output", str(output),
        "--original-mask", str(workspace / "original.png"),
        "--strokes", "6000",
        "--scale", "1",
        "--color-mode", "bw",
        "--gif", str(gif),
        "--gif-height", "30",
    ])

    assert code == 0
    rendered = ImageProcessor.load_image(str(output))
    assert rendered.shape == (30, 40, 4)
    assert gif.read_bytes()[:6] == b"GIF89a"
    assert (workspace / "logs" / "typewriter_studio.log").exists()


def test_cli_reports_missing_input(workspace):
    code = main.main([
        str(workspace / "missing.png"),
        "--config", str(workspace / "config.yaml"),
    ])
    assert code == 1


def test_parser_defaults():
    args = main.build_parser().parse_args(["in.png"])
    assert args.output is None
    assert args.gif is None
    assert not args.debug
