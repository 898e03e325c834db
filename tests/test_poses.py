"""
Pose Parsing Tests
==================
"""

import pytest

from stopmotion_agent.generation import PoseParseError, parse_poses
from stopmotion_agent.generation.prompts import build_frame_prompt, build_planner_prompt


class TestParsePoses:
    """Planner output shapes."""

    def test_planner_schema(self):
        poses = parse_poses('[{"pose": "arms raised"}, {"pose": "arms lowered"}]')

        assert [p.text for p in poses] == ["arms raised", "arms lowered"]
        assert [p.index for p in poses] == [0, 1]

    def test_bare_strings(self):
        poses = parse_poses('["crouch", "jump"]')

        assert [p.text for p in poses] == ["crouch", "jump"]

    def test_code_fence(self):
        raw = '```json\n[{"pose": "wave"}]\n```'

        assert [p.text for p in parse_poses(raw)] == ["wave"]

    def test_decoded_list(self):
        assert [p.text for p in parse_poses([{"pose": "a"}, "b"])] == ["a", "b"]

    def test_bytes(self):
        assert [p.text for p in parse_poses(b'["a"]')] == ["a"]

    def test_unusable_items_skipped_and_reindexed(self):
        poses = parse_poses('[{"pose": "a"}, {"other": 1}, 7, {"pose": "  "}, "b"]')

        assert [(p.index, p.text) for p in poses] == [(0, "a"), (1, "b")]

    def test_limit_truncates(self):
        poses = parse_poses('["a", "b", "c"]', limit=2)

        assert [p.text for p in poses] == ["a", "b"]

    @pytest.mark.parametrize("raw", [None, "", "   ", "not json", '{"pose": "a"}', "42"])
    def test_malformed_yields_zero_poses(self, raw):
        assert parse_poses(raw) == []

    @pytest.mark.parametrize("raw", [None, "not json", '{"pose": "a"}'])
    def test_malformed_strict_raises(self, raw):
        with pytest.raises(PoseParseError):
            parse_poses(raw, strict=True)


class TestPrompts:
    """Prompt templates."""

    def test_frame_prompt_wraps_pose(self):
        prompt = build_frame_prompt("  arms raised overhead ")

        assert "arms raised overhead\n" in prompt
        assert "Maintain the same character/object identity" in prompt

    def test_planner_prompt_names_count(self):
        assert "create 12 sequential poses" in build_planner_prompt(12)
