# -*- coding: utf-8 -*-
"""
分段配置测试
"""

import json

import yaml

from config import DEFAULT_CHARACTER_SET, Config


def test_defaults():
    config = Config()
    assert config.get('render', 'total_strokes') == 300000
    assert config.get('render', 'font_size') == 14
    assert config.get('render', 'gamma') == 1.4
    assert config.get('render', 'output_scale') == 2.0
    assert config.get('render', 'ink_opacity') == 140
    assert config.get('render', 'character_set') == DEFAULT_CHARACTER_SET
    assert config.get('image', 'resolution') == 2000
    assert config.get('history', 'max_depth') == 15
    assert config.get('capture', 'threshold') == 0.01


def test_missing_values_fall_back_to_default():
    config = Config()
    assert config.get('render', 'nope', 7) == 7
    assert config.get('no_section', 'key', 'x') == 'x'
    assert isinstance(config.get('brush'), dict)


def test_yaml_file_merges_sections(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(yaml.safe_dump({'render': {'gamma': 2.0}, 'brush': {'size': 10}}))
    config = Config(str(path))
    assert config.get('render', 'gamma') == 2.0
    assert config.get('render', 'font_size') == 14
    assert config.get('brush', 'size') == 10


def test_json_file(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({'export': {'duration': 4.0}}))
    assert Config(str(path)).get('export', 'duration') == 4.0


def test_unreadable_file_keeps_defaults(tmp_path):
    path = tmp_path / "broken.json"
    path.write_text("{not json")
    config = Config(str(path))
    assert config.get('render', 'total_strokes') == 300000


def test_set_and_reset_section():
    config = Config()
    config.set('render', 'gamma', 3.0)
    assert config.get('render', 'gamma') == 3.0
    config.reset_section('render')
    assert config.get('render', 'gamma') == 1.4


def test_save_round_trip(tmp_path):
    config = Config()
    config.set('brush', 'hardness', 0.25)
    path = tmp_path / "saved.yaml"
    config.save_config(str(path))

    loaded = Config(str(path))
    assert loaded.get('brush', 'hardness') == 0.25
    assert loaded.to_dict() == config.to_dict()


def test_str_lists_sections():
    text = str(Config())
    assert 'render:' in text
    assert 'export:' in text


def test_unknown_sections_are_ignored(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(yaml.safe_dump({
        'get': {'x': 1},
        'set': 'oops',
        'plugins': {'enabled': True},
        'render': {'gamma': 1.8},
        'brush': 'not a mapping',
    }))
    config = Config(str(path))

    assert config.get('render', 'gamma') == 1.8
    assert config.get('render', 'font_size') == 14
    assert config.get('brush', 'size') == 40
    assert callable(config.get) and callable(config.set)
    assert not hasattr(config, 'plugins')
    assert set(config.to_dict()) == set(Config.SECTIONS)
