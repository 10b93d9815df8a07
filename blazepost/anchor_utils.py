"""
SSD anchor generation for BlazeFace-style detectors.

Port of the center-only part of MediaPipe's SsdAnchorsCalculator:
- Consecutive layers that share a stride are merged into one feature map
- Each merged layer contributes 2 anchors per cell (3 with an
  interpolated aspect ratio other than 1.0)
- Order: layer group -> y -> x -> repeat

The detector output rows are keyed to this order by position only, so the
loop nesting below must not change.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any, Mapping, Tuple

import torch


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GridConfig:
    """
    Anchor grid configuration for one network variant.

    Field names follow the MediaPipe ``anchor_options`` keys.
    """

    num_layers: int
    strides: Tuple[int, ...]
    input_size_height: int
    input_size_width: int
    anchor_offset_x: float = 0.5
    anchor_offset_y: float = 0.5
    interpolated_scale_aspect_ratio: float = 1.0

    def __post_init__(self):
        object.__setattr__(self, "strides", tuple(self.strides))
        if len(self.strides) != self.num_layers:
            raise ValueError(
                f"Expected {self.num_layers} strides, got {len(self.strides)}: {self.strides}"
            )
        if any(stride <= 0 for stride in self.strides):
            raise ValueError(f"Strides must be positive, got {self.strides}")

    @classmethod
    def from_options(cls, options: Mapping[str, Any]) -> "GridConfig":
        """Build a config from a MediaPipe-style options dict (extra keys ignored)."""
        return cls(
            num_layers=options["num_layers"],
            strides=tuple(options["strides"]),
            input_size_height=options["input_size_height"],
            input_size_width=options["input_size_width"],
            anchor_offset_x=options.get("anchor_offset_x", 0.5),
            anchor_offset_y=options.get("anchor_offset_y", 0.5),
            interpolated_scale_aspect_ratio=options.get("interpolated_scale_aspect_ratio", 1.0),
        )


def _stride_groups(config: GridConfig):
    """Yield (stride, repeats) for each run of layers sharing a stride."""
    strides = config.strides
    layer_id = 0

    while layer_id < config.num_layers:
        last_same_stride_layer = layer_id
        repeats = 0
        while (last_same_stride_layer < config.num_layers and
               strides[last_same_stride_layer] == strides[layer_id]):
            last_same_stride_layer += 1
            repeats += 2
            if config.interpolated_scale_aspect_ratio != 1.0:
                repeats += 1

        yield strides[layer_id], repeats
        layer_id = last_same_stride_layer


def _feature_map_size(config: GridConfig, stride: int) -> Tuple[float, float]:
    feature_map_height = config.input_size_height / stride
    feature_map_width = config.input_size_width / stride
    if not (feature_map_height.is_integer() and feature_map_width.is_integer()):
        logger.warning(
            "Stride %s does not divide input %sx%s; feature map is %sx%s",
            stride, config.input_size_width, config.input_size_height,
            feature_map_width, feature_map_height,
        )
    return feature_map_height, feature_map_width


def num_anchors(config: GridConfig) -> int:
    """Number of anchors ``generate_anchors`` produces for ``config``."""
    total = 0
    for stride, repeats in _stride_groups(config):
        feature_map_height, feature_map_width = _feature_map_size(config, stride)
        total += math.ceil(feature_map_height) * math.ceil(feature_map_width) * repeats
    return total


def generate_anchors(config: GridConfig) -> torch.Tensor:
    """
    Generate the anchor table for a grid configuration.

    Args:
        config: Grid configuration (see ``blazepost.config`` for presets)

    Returns:
        (N, 2) float64 tensor of normalized (x_center, y_center)
    """
    anchors = []

    for stride, repeats in _stride_groups(config):
        feature_map_height, feature_map_width = _feature_map_size(config, stride)

        for y in range(math.ceil(feature_map_height)):
            y_center = (y + config.anchor_offset_y) / feature_map_height

            for x in range(math.ceil(feature_map_width)):
                x_center = (x + config.anchor_offset_x) / feature_map_width

                for _ in range(repeats):
                    anchors.append((x_center, y_center))

    return torch.tensor(anchors, dtype=torch.float64).reshape(-1, 2)
