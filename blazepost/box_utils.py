"""
Box decoding and score filtering for raw detector outputs.

Raw row layout = [dx, dy, w, h, kp0_x, kp0_y, ...] in input-pixel units.
Decoded layout = [xmin, ymin, xmax, ymax, kp0_x, kp0_y, ...] normalized to
[0, 1] against the square network input.
"""
from __future__ import annotations

from typing import List, Sequence, Union

import numpy as np
import torch

from blazepost.config import MIN_SCORE_THRESH, RAW_SCORE_LIMIT
from blazepost.detection import Detection


ArrayLike = Union[torch.Tensor, np.ndarray, Sequence]


class AnchorMismatchError(ValueError):
    """Raised when the network produced more rows than there are anchors."""

    def __init__(self, expected: int, actual: int):
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Raw output has {actual} rows but the anchor table only has {expected} anchors; "
            f"the grid configuration does not match the model"
        )


def _as_rows(values: ArrayLike, name: str) -> torch.Tensor:
    rows = torch.as_tensor(values, dtype=torch.float64)
    if rows.ndim == 3 and rows.shape[0] == 1:
        rows = rows[0]
    if rows.numel() == 0 and rows.ndim < 2:
        return rows.reshape(0, 4)
    if rows.ndim != 2:
        raise ValueError(f"Expected {name} of shape (N, C), got {tuple(rows.shape)}")
    return rows


def decode_boxes(size: float, anchors: ArrayLike, raw_boxes: ArrayLike) -> torch.Tensor:
    """Converts the predictions into actual coordinates using the anchor centers.

    - x_center = pred_x / size + anchor_x
    - y_center = pred_y / size + anchor_y
    - w = pred_w / size, h = pred_h / size
    - keypoints: x / size + anchor_x, y / size + anchor_y

    Args:
        size: edge length of the square network input (128 front, 256 back)
        anchors: [A, 2] anchor centers [x, y]
        raw_boxes: [N, 4 + 2K] raw regressor rows, N <= A

    Returns:
        [N, 4 + 2K] float64 tensor of decoded boxes and keypoints

    Raises:
        AnchorMismatchError: N exceeds the number of anchors
    """
    anchors = torch.as_tensor(anchors, dtype=torch.float64).reshape(-1, 2)
    raw_boxes = _as_rows(raw_boxes, "raw_boxes")

    num_rows, num_coords = raw_boxes.shape
    if num_rows > anchors.shape[0]:
        raise AnchorMismatchError(expected=anchors.shape[0], actual=num_rows)
    if num_coords < 4 or (num_coords - 4) % 2 != 0:
        raise ValueError(f"Expected rows of 4 + 2K values, got {num_coords}")

    anchor_x = anchors[:num_rows, 0:1]
    anchor_y = anchors[:num_rows, 1:2]

    x_center = raw_boxes[:, 0:1] / size + anchor_x
    y_center = raw_boxes[:, 1:2] / size + anchor_y
    half_w = raw_boxes[:, 2:3] / size / 2
    half_h = raw_boxes[:, 3:4] / size / 2

    boxes = torch.empty_like(raw_boxes)
    boxes[:, 0:1] = x_center - half_w  # xmin
    boxes[:, 1:2] = y_center - half_h  # ymin
    boxes[:, 2:3] = x_center + half_w  # xmax
    boxes[:, 3:4] = y_center + half_h  # ymax

    # x coordinates are at indices 4, 6, 8, ...; y coordinates at 5, 7, 9, ...
    boxes[:, 4::2] = raw_boxes[:, 4::2] / size + anchor_x
    boxes[:, 5::2] = raw_boxes[:, 5::2] / size + anchor_y

    return boxes


def sigmoid(logits: ArrayLike, limit: float = RAW_SCORE_LIMIT) -> torch.Tensor:
    """Clamp logits to [-limit, limit] and map them to probabilities."""
    logits = torch.as_tensor(logits, dtype=torch.float64)
    return torch.sigmoid(logits.clamp(-limit, limit))


def filter_detections(
    logits: ArrayLike,
    boxes: ArrayLike,
    limit: float = RAW_SCORE_LIMIT,
    threshold: float = MIN_SCORE_THRESH,
) -> List[Detection]:
    """
    Turn raw classification logits plus decoded boxes into scored detections.

    Detections with probability below ``threshold`` are dropped; the rest
    keep their input order.

    Args:
        logits: [N], [N, 1] or [1, N, 1] raw classifier outputs
        boxes: [N, 4 + 2K] decoded boxes from ``decode_boxes``
        limit: clamp applied to logits before the sigmoid
        threshold: minimum probability to keep (inclusive)
    """
    scores = sigmoid(logits, limit).reshape(-1)
    boxes = _as_rows(boxes, "boxes")

    if scores.shape[0] != boxes.shape[0]:
        raise ValueError(
            f"Got {scores.shape[0]} scores for {boxes.shape[0]} boxes; "
            f"regressors and classificators must have the same row count"
        )

    mask = scores >= threshold
    return [
        Detection(score=float(score), data=tuple(box))
        for score, box in zip(scores[mask].tolist(), boxes[mask].tolist())
    ]
