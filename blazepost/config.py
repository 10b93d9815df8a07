"""
Configuration constants for BlazeFace post-processing.
"""
from blazepost.anchor_utils import GridConfig

# Score handling
RAW_SCORE_LIMIT = 80.0  # logits are clamped to [-80, 80] before the sigmoid
MIN_SCORE_THRESH = 0.3
MIN_SUPPRESSION_THRESHOLD = 0.5

# Row layout: [cx, cy, w, h, kp0_x, kp0_y, ..., kp5_x, kp5_y]
NUM_BOX_COORDS = 4
NUM_KEYPOINTS = 6
NUM_COORDS = NUM_BOX_COORDS + 2 * NUM_KEYPOINTS  # 16

# Face keypoint indices
RIGHT_EYE = 0
LEFT_EYE = 1
NOSE = 2
MOUTH = 3
RIGHT_CHEEK = 4
LEFT_CHEEK = 5

# Preprocessing: (pixel - 128) / 128 -> roughly [-1, 1]
PIXEL_MEAN = 128.0
PIXEL_SCALE = 128.0

# =============================================================================
# Grid presets
# =============================================================================

# Front camera model: 128x128 input, 896 anchors
SSD_OPTIONS_FRONT = GridConfig(
    num_layers=4,
    strides=(8, 16, 16, 16),
    input_size_height=128,
    input_size_width=128,
    anchor_offset_x=0.5,
    anchor_offset_y=0.5,
    interpolated_scale_aspect_ratio=1.0,
)

# Back camera model: 256x256 input, 896 anchors
SSD_OPTIONS_BACK = GridConfig(
    num_layers=4,
    strides=(16, 32, 32, 32),
    input_size_height=256,
    input_size_width=256,
    anchor_offset_x=0.5,
    anchor_offset_y=0.5,
    interpolated_scale_aspect_ratio=1.0,
)

GRID_PRESETS = {
    "front": SSD_OPTIONS_FRONT,
    "back": SSD_OPTIONS_BACK,
}
