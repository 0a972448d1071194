# -*- coding: utf-8 -*-
"""
Module: test_io.py
Package: tests.utils
Purpose: Unit tests for JSON/JSONL helpers and catalogue loading
"""

# Standard library
import json
import sys
from pathlib import Path

# Project root
PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

# Third-party
import pytest

# Local
from src.utils.dataclasses import MatchType
from src.utils.io import load_json, load_jsonl, load_materials, save_json

pytestmark = pytest.mark.utils

ROWS = [
    {'rm_code': 'rm-000001', 'trade_name': 'Hyaluronic Acid', 'rm_cost': '1,200.50'},
    {'rm_code': '', 'trade_name': 'No code'},
    {'code': 'RC00A008', 'trade_name': ' Ginger Extract - DL ', 'benefits': 'Soothing'},
]


def _write_jsonl(rows, path):
    path.write_text(
        ''.join(json.dumps(row, ensure_ascii=False) + '\n' for row in rows), encoding='utf-8'
    )


class TestLoadMaterials:

    def test_json_array(self, tmp_path):
        path = tmp_path / "materials.json"
        path.write_text(json.dumps(ROWS), encoding='utf-8')

        materials = load_materials(path)

        assert [m.code for m in materials] == ["RM000001", "RC00A008"]
        assert materials[0].cost_per_unit == pytest.approx(1200.5)
        assert materials[1].trade_name == "Ginger Extract - DL"
        assert materials[1].function == "Soothing"

    def test_wrapped_object(self, tmp_path):
        path = tmp_path / "materials.json"
        path.write_text(json.dumps({'materials': ROWS}), encoding='utf-8')
        assert len(load_materials(path)) == 2

    def test_jsonl(self, tmp_path):
        path = tmp_path / "materials.jsonl"
        _write_jsonl(ROWS, path)
        assert [m.code for m in load_materials(path)] == ["RM000001", "RC00A008"]

    def test_non_object_rows_are_skipped(self, tmp_path):
        path = tmp_path / "materials.json"
        path.write_text(json.dumps(["RM000001", ROWS[0]]), encoding='utf-8')
        assert len(load_materials(path)) == 1


class TestJson:

    def test_round_trip_keeps_thai_and_enums(self, tmp_path):
        path = tmp_path / "nested" / "out.json"
        save_json({'text': 'ชุ่มชื้น', 'match': MatchType.EXACT}, path)

        assert 'ชุ่มชื้น' in path.read_text(encoding='utf-8')
        assert load_json(path) == {'text': 'ชุ่มชื้น', 'match': 'exact'}

    def test_jsonl_skips_blank_lines(self, tmp_path):
        path = tmp_path / "rows.jsonl"
        path.write_text('{"a": 1}\n\n{"b": 2}\n', encoding='utf-8')
        assert load_jsonl(path) == [{'a': 1}, {'b': 2}]
