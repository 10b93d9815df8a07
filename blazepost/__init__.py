"""
Post-processing for BlazeFace-style SSD detectors.

Turns raw regressor/classificator outputs into scored boxes with keypoints:
anchors -> decode -> sigmoid filter -> (weighted) non-maximum suppression.
"""

from .anchor_utils import GridConfig, generate_anchors, num_anchors
from .box_utils import AnchorMismatchError, decode_boxes, filter_detections, sigmoid
from .config import GRID_PRESETS, SSD_OPTIONS_BACK, SSD_OPTIONS_FRONT
from .detection import BBox, Detection
from .iou import overlap_similarity
from .nms import non_max_suppression, standard_non_max_suppression, weighted_non_max_suppression

__all__ = [
    "GridConfig",
    "generate_anchors",
    "num_anchors",
    "AnchorMismatchError",
    "decode_boxes",
    "filter_detections",
    "sigmoid",
    "GRID_PRESETS",
    "SSD_OPTIONS_BACK",
    "SSD_OPTIONS_FRONT",
    "BBox",
    "Detection",
    "overlap_similarity",
    "non_max_suppression",
    "standard_non_max_suppression",
    "weighted_non_max_suppression",
]
