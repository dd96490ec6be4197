#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
打字机艺术工作室
主程序入口

读取图像和可选的蒙版图层，渲染打字机艺术图像，可选导出延时动画 GIF
"""

import argparse
import sys
from pathlib import Path

from tqdm import tqdm

# 添加项目根目录到Python路径
project_root = Path(__file__).parent
sys.path.insert(0, str(project_root))

from config.settings import Config
from core import MaskLayer, StudioError, TypewriterStudio
from utils.image_utils import ImageProcessor
from utils.logging_utils import setup_logging_from_config
from utils.performance import measure_memory


MASK_ARGUMENTS = {
    MaskLayer.DENSITY: 'density_mask',
    MaskLayer.DETAIL: 'detail_mask',
    MaskLayer.COLOR: 'color_mask',
    MaskLayer.ORIGINAL: 'original_mask',
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Typewriter art renderer')
    parser.add_argument('input_image', help='输入图像路径')
    parser.add_argument('--output', '-o', default=None, help='输出 PNG 路径')
    parser.add_argument('--config', '-c', default=None, help='YAML/JSON 配置文件')
    parser.add_argument('--density-mask', help='密度蒙版图像')
    parser.add_argument('--detail-mask', help='细节蒙版图像')
    parser.add_argument('--color-mask', help='颜色蒙版图像')
    parser.add_argument('--original-mask', help='原图蒙版图像')
    parser.add_argument('--strokes', type=int, help='总笔触数')
    parser.add_argument('--font-size', type=int, help='基础字号')
    parser.add_argument('--gamma', type=float, help='伽马')
    parser.add_argument('--scale', type=float, help='输出缩放')
    parser.add_argument('--color-mode', choices=['color', 'bw', 'masked_color'], help='颜色模式')
    parser.add_argument('--palette', help='字符调色板')
    parser.add_argument('--resolution', type=int, help='源图最长边上限')
    parser.add_argument('--gif', default=None, help='延时动画 GIF 输出路径')
    parser.add_argument('--gif-duration', type=float, help='延时动画时长（秒）')
    parser.add_argument('--gif-height', type=int, help='延时动画高度')
    parser.add_argument('--frame-density', type=float, help='帧使用百分比 (0, 100]')
    parser.add_argument('--debug', action='store_true', help='调试模式')
    return parser


def apply_arguments(config: Config, args):
    """命令行参数覆盖配置"""
    overrides = [
        ('render', 'total_strokes', args.strokes),
        ('render', 'font_size', args.font_size),
        ('render', 'gamma', args.gamma),
        ('render', 'output_scale', args.scale),
        ('render', 'color_mode', args.color_mode),
        ('render', 'character_set', args.palette),
        ('image', 'resolution', args.resolution),
        ('export', 'duration', args.gif_duration),
        ('export', 'target_height', args.gif_height),
        ('export', 'frame_density', args.frame_density),
    ]
    for section, key, value in overrides:
        if value is not None:
            config.set(section, key, value)


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    config = Config(args.config)
    apply_arguments(config, args)
    logger = setup_logging_from_config(config, debug=args.debug)

    input_path = Path(args.input_image)
    output_path = Path(args.output) if args.output else input_path.with_name(
        f"{input_path.stem}_typewriter.png"
    )

    try:
        studio = TypewriterStudio(config)
        source = studio.load_image_file(str(input_path))

        for layer, attribute in MASK_ARGUMENTS.items():
            mask_path = getattr(args, attribute)
            if mask_path:
                alpha = ImageProcessor.load_mask(mask_path, source.size)
                studio.set_mask(layer, alpha)
                logger.info(f"Loaded {layer.value} mask from {mask_path}")

        with measure_memory("Render", logger), tqdm(total=100, desc="Rendering", unit="%") as bar:
            def on_event(event):
                bar.update(round(event.fraction * 100) - bar.n)

            studio.render_blocking(on_event)

        studio.save_render(str(output_path))

        if args.gif:
            logger.info(f"Captured {len(studio.frames)} frames, "
                        f"estimated GIF size {studio.estimate_export_size():.1f} MB")
            data = studio.export_timelapse()
            gif_path = Path(args.gif)
            gif_path.parent.mkdir(parents=True, exist_ok=True)
            gif_path.write_bytes(data)
            logger.info(f"Timelapse saved to: {gif_path}")

    except (ValueError, StudioError) as e:
        logger.error(f"Error: {str(e)}", exc_info=args.debug)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
