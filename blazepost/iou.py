"""
Box overlap utilities used by non-maximum suppression.

Boxes are [xmin, ymin, xmax, ymax] in normalized coordinates.
"""
from __future__ import annotations

import torch


def area(boxes: torch.Tensor) -> torch.Tensor:
    """Signed area of one box [4] or a set of boxes [N, 4]."""
    return (boxes[..., 2] - boxes[..., 0]) * (boxes[..., 3] - boxes[..., 1])


def intersect(box: torch.Tensor, other_boxes: torch.Tensor) -> torch.Tensor:
    """
    Intersection area between a single box and a set of other boxes.

    A rectangle that is not strictly positive in both dimensions counts as
    no intersection. NaN coordinates therefore yield 0.

    Args:
        box: [4] tensor - single box
        other_boxes: [N, 4] tensor of boxes

    Returns:
        [N] tensor of intersection areas
    """
    xmin = torch.maximum(box[0], other_boxes[:, 0])
    ymin = torch.maximum(box[1], other_boxes[:, 1])
    xmax = torch.minimum(box[2], other_boxes[:, 2])
    ymax = torch.minimum(box[3], other_boxes[:, 3])

    valid = (xmin < xmax) & (ymin < ymax)
    inter = (xmax - xmin) * (ymax - ymin)
    return torch.where(valid, inter, torch.zeros_like(inter))


def overlap_similarity(box: torch.Tensor, other_boxes: torch.Tensor) -> torch.Tensor:
    """
    Compute IoU between a single box and a set of other boxes.

    Args:
        box: [4] tensor - single box
        other_boxes: [N, 4] tensor of boxes (a single [4] box is accepted)

    Returns:
        [N] tensor of IoU values, 0 where boxes do not overlap or the
        union is not positive
    """
    box = torch.as_tensor(box, dtype=torch.float64)
    other_boxes = torch.as_tensor(other_boxes, dtype=torch.float64).reshape(-1, 4)

    inter = intersect(box, other_boxes)
    denominator = area(box) + area(other_boxes) - inter

    valid = (inter > 0) & (denominator > 0)
    safe_denominator = torch.where(valid, denominator, torch.ones_like(denominator))
    return torch.where(valid, inter / safe_denominator, torch.zeros_like(inter))
