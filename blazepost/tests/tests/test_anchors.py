"""
Unit tests for SSD anchor generation.
"""
import dataclasses
import unittest

import torch

from blazepost.anchor_utils import GridConfig, generate_anchors, num_anchors
from blazepost.config import GRID_PRESETS, SSD_OPTIONS_BACK, SSD_OPTIONS_FRONT


class TestGenerateAnchors(unittest.TestCase):
    """Tests for anchor table generation."""

    def test_small_grid_ordering(self):
        """y-outer, x-inner, each center repeated twice."""
        config = GridConfig(
            num_layers=1,
            strides=(2,),
            input_size_height=4,
            input_size_width=4,
            anchor_offset_x=0.5,
            anchor_offset_y=0.5,
            interpolated_scale_aspect_ratio=1.0,
        )
        expected = [
            [0.25, 0.25], [0.25, 0.25],
            [0.75, 0.25], [0.75, 0.25],
            [0.25, 0.75], [0.25, 0.75],
            [0.75, 0.75], [0.75, 0.75],
        ]
        anchors = generate_anchors(config)
        self.assertEqual(anchors.shape, torch.Size([8, 2]))
        self.assertEqual(anchors.tolist(), expected)

    def test_presets_produce_896_anchors(self):
        """Both MediaPipe face presets have 16x16x2 + 8x8x6 anchors."""
        for name, config in GRID_PRESETS.items():
            with self.subTest(preset=name):
                anchors = generate_anchors(config)
                self.assertEqual(anchors.shape, torch.Size([896, 2]))
                self.assertEqual(num_anchors(config), 896)
                self.assertEqual(anchors.dtype, torch.float64)

    def test_front_preset_layout(self):
        """Small grid first, then the merged 8x8 grid with 6 repeats."""
        anchors = generate_anchors(SSD_OPTIONS_FRONT)

        self.assertEqual(anchors[0].tolist(), [0.03125, 0.03125])
        self.assertEqual(anchors[1].tolist(), [0.03125, 0.03125])
        self.assertEqual(anchors[2].tolist(), [0.09375, 0.03125])
        # Second row of the 16x16 grid starts after 16 cells * 2 repeats
        self.assertEqual(anchors[32].tolist(), [0.03125, 0.09375])
        self.assertEqual(anchors[511].tolist(), [0.96875, 0.96875])

        big = anchors[512:]
        for i in range(6):
            self.assertEqual(big[i].tolist(), [0.0625, 0.0625])
        self.assertEqual(big[6].tolist(), [0.1875, 0.0625])
        self.assertEqual(big[-1].tolist(), [0.9375, 0.9375])

    def test_back_preset_matches_front_centers(self):
        """The back grid is the front grid scaled 2x, so centers are identical."""
        self.assertTrue(torch.equal(
            generate_anchors(SSD_OPTIONS_BACK),
            generate_anchors(SSD_OPTIONS_FRONT),
        ))

    def test_interpolated_aspect_ratio_adds_repeat(self):
        """A ratio other than 1.0 adds one anchor per merged layer."""
        config = GridConfig(
            num_layers=2,
            strides=(2, 2),
            input_size_height=4,
            input_size_width=4,
            interpolated_scale_aspect_ratio=0.5,
        )
        anchors = generate_anchors(config)
        # 2x2 cells, 2 layers * 3 repeats
        self.assertEqual(anchors.shape[0], 24)
        self.assertEqual(anchors[:6].tolist(), [[0.25, 0.25]] * 6)
        self.assertEqual(anchors[6].tolist(), [0.75, 0.25])

    def test_distinct_strides_are_separate_groups(self):
        config = GridConfig(num_layers=2, strides=(2, 4), input_size_height=4, input_size_width=4)
        anchors = generate_anchors(config)
        self.assertEqual(anchors.shape[0], 2 * 2 * 2 + 1 * 1 * 2)
        self.assertEqual(anchors[-2:].tolist(), [[0.5, 0.5], [0.5, 0.5]])

    def test_non_square_input(self):
        config = GridConfig(num_layers=1, strides=(2,), input_size_height=2, input_size_width=4)
        anchors = generate_anchors(config)
        self.assertEqual(anchors.tolist(), [[0.25, 0.5], [0.25, 0.5], [0.75, 0.5], [0.75, 0.5]])

    def test_anchor_offsets(self):
        config = GridConfig(
            num_layers=1, strides=(4,), input_size_height=4, input_size_width=4,
            anchor_offset_x=0.0, anchor_offset_y=1.0,
        )
        self.assertEqual(generate_anchors(config).tolist(), [[0.0, 1.0], [0.0, 1.0]])

    def test_fractional_feature_map_warns(self):
        config = GridConfig(num_layers=1, strides=(4,), input_size_height=6, input_size_width=6)
        with self.assertLogs("blazepost.anchor_utils", level="WARNING"):
            anchors = generate_anchors(config)
        # ceil(1.5) cells per axis
        self.assertEqual(anchors.shape[0], 2 * 2 * 2)


class TestGridConfig(unittest.TestCase):
    """Tests for grid configuration handling."""

    def test_from_options_ignores_scale_keys(self):
        """MediaPipe option dicts carry extra keys that only matter for anchor sizes."""
        options = {
            "num_layers": 4,
            "min_scale": 0.1484375,
            "max_scale": 0.75,
            "input_size_height": 128,
            "input_size_width": 128,
            "anchor_offset_x": 0.5,
            "anchor_offset_y": 0.5,
            "strides": [8, 16, 16, 16],
            "aspect_ratios": [1.0],
            "reduce_boxes_in_lowest_layer": False,
            "interpolated_scale_aspect_ratio": 1.0,
            "fixed_anchor_size": True,
        }
        config = GridConfig.from_options(options)
        self.assertEqual(config, SSD_OPTIONS_FRONT)

    def test_stride_count_must_match_layers(self):
        with self.assertRaises(ValueError):
            GridConfig(num_layers=3, strides=(8, 16), input_size_height=128, input_size_width=128)

    def test_strides_must_be_positive(self):
        with self.assertRaises(ValueError):
            GridConfig(num_layers=1, strides=(0,), input_size_height=128, input_size_width=128)

    def test_config_is_immutable(self):
        with self.assertRaises(dataclasses.FrozenInstanceError):
            SSD_OPTIONS_FRONT.num_layers = 2


if __name__ == "__main__":
    unittest.main()
