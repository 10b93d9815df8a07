"""
Non-maximum suppression over scored detections.

Two strategies share the same IoU primitive:
- standard: greedy, keeps the best box and discards anything overlapping it
- weighted: the blending strategy from the BlazeFace paper, which replaces
  each cluster with a score-weighted mean of its members

Based on mediapipe/calculators/util/non_max_suppression_calculator.cc
"""
from __future__ import annotations

from typing import List, Optional, Sequence, Tuple

import torch

from blazepost.detection import Detection
from blazepost.iou import overlap_similarity


def _sorted_indices(detections: Sequence[Detection]) -> Tuple[torch.Tensor, torch.Tensor, torch.Tensor]:
    """Stack detections and order them by descending score, ties by input order."""
    scores = torch.tensor([d.score for d in detections], dtype=torch.float64)
    data = torch.tensor([d.data for d in detections], dtype=torch.float64)
    order = torch.sort(scores, descending=True, stable=True).indices
    return order, scores, data


def standard_non_max_suppression(
    detections: Sequence[Detection],
    min_suppression_threshold: float,
    min_score: Optional[float] = None,
) -> List[Detection]:
    """Greedy NMS. Output is in descending score order."""
    if len(detections) == 0:
        return []

    order, _, data = _sorted_indices(detections)
    boxes = data[:, :4]

    kept_boxes: List[torch.Tensor] = []
    outputs: List[Detection] = []

    for index in order.tolist():
        detection = detections[index]
        if min_score is not None and detection.score < min_score:
            break

        bbox = boxes[index]
        if kept_boxes:
            similarity = overlap_similarity(bbox, torch.stack(kept_boxes))
            if bool((similarity > min_suppression_threshold).any()):
                continue

        outputs.append(detection)
        kept_boxes.append(bbox)

    return outputs


def weighted_non_max_suppression(
    detections: Sequence[Detection],
    min_suppression_threshold: float,
    min_score: Optional[float] = None,
) -> List[Detection]:
    """The alternative NMS method as mentioned in the BlazeFace paper:

    "We replace the suppression algorithm with a blending strategy that
    estimates the regression parameters of a bounding box as a weighted
    mean between the overlapping predictions."

    The merged detection keeps the score of the most confident member.
    Once the best remaining detection scores below ``min_score``, all the
    remaining detections are dropped.
    """
    if len(detections) == 0:
        return []

    remaining, scores, data = _sorted_indices(detections)
    boxes = data[:, :4]
    outputs: List[Detection] = []

    while remaining.numel() > 0:
        detection = detections[int(remaining[0])]
        if min_score is not None and detection.score < min_score:
            break

        # Compute the overlap between the first box and the other
        # remaining boxes. (Note that the other boxes also include
        # the first box.)
        ious = overlap_similarity(boxes[remaining[0]], boxes[remaining])
        mask = ious > min_suppression_threshold
        # A degenerate box has zero self-overlap; it still forms its own cluster.
        mask[0] = True

        overlapping = remaining[mask]
        remaining = remaining[~mask]

        weighted_detection = detection
        if overlapping.numel() > 1:
            cluster_scores = scores[overlapping].unsqueeze(1)
            weighted = (data[overlapping] * cluster_scores).sum(dim=0) / cluster_scores.sum()
            weighted_detection = Detection(score=detection.score, data=tuple(weighted.tolist()))

        outputs.append(weighted_detection)

    return outputs


def non_max_suppression(
    detections: Sequence[Detection],
    min_suppression_threshold: float,
    min_score: Optional[float] = None,
    weighted: bool = False,
) -> List[Detection]:
    if weighted:
        return weighted_non_max_suppression(detections, min_suppression_threshold, min_score)
    return standard_non_max_suppression(detections, min_suppression_threshold, min_score)
