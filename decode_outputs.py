"""
Decode raw BlazeFace outputs saved as .npy files into detections.

Useful for checking a model export without running the network again:
dump the two output tensors once, then inspect the post-processing.

Usage:
    python decode_outputs.py --regressors reg.npy --classificators cls.npy
    python decode_outputs.py -r reg.npy -c cls.npy --variant front --method standard --json
"""
import argparse
import json
import sys

import numpy as np

from blazedetector import BlazeDetector
from blazepost.box_utils import AnchorMismatchError
from blazepost.config import GRID_PRESETS, MIN_SCORE_THRESH, MIN_SUPPRESSION_THRESHOLD


def parse_args(argv=None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Decode raw BlazeFace regressors/classificators into detections",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )
    parser.add_argument(
        "--regressors", "-r",
        type=str,
        required=True,
        help="Path to .npy file with raw box/keypoint regressors, shape (N, 16) or (1, N, 16)"
    )
    parser.add_argument(
        "--classificators", "-c",
        type=str,
        required=True,
        help="Path to .npy file with raw logits, shape (N,), (N, 1) or (1, N, 1)"
    )
    parser.add_argument(
        "--variant", "-v",
        type=str,
        choices=sorted(GRID_PRESETS),
        default="back",
        help="Anchor grid preset matching the model"
    )
    parser.add_argument(
        "--method", "-m",
        type=str,
        choices=["weighted", "standard"],
        default="weighted",
        help="Non-maximum suppression strategy"
    )
    parser.add_argument(
        "--threshold", "-t",
        type=float,
        default=MIN_SCORE_THRESH,
        help="Minimum detection score"
    )
    parser.add_argument(
        "--suppression", "-s",
        type=float,
        default=MIN_SUPPRESSION_THRESHOLD,
        help="IoU above which overlapping detections are merged/suppressed"
    )
    parser.add_argument(
        "--width",
        type=float,
        default=None,
        help="Scale output coordinates to this canvas width (requires --height)"
    )
    parser.add_argument(
        "--height",
        type=float,
        default=None,
        help="Scale output coordinates to this canvas height (requires --width)"
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print detections as a JSON list"
    )
    args = parser.parse_args(argv)
    if (args.width is None) != (args.height is None):
        parser.error("--width and --height must be given together")
    return args


def main(argv=None) -> int:
    args = parse_args(argv)

    regressors = np.load(args.regressors)
    classificators = np.load(args.classificators)

    detector = BlazeDetector(
        grid_config=GRID_PRESETS[args.variant],
        min_score_thresh=args.threshold,
        min_suppression_threshold=args.suppression,
        suppression_method=args.method,
    )

    try:
        detections = detector.postprocess(regressors, classificators)
    except AnchorMismatchError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    if args.width is not None:
        detections = [d.denormalize(args.width, args.height) for d in detections]

    if args.json:
        print(json.dumps([d.to_dict() for d in detections], indent=2))
        return 0

    print(f"{len(detections)} detection(s) ({args.variant} grid, {detector.num_anchors} anchors)")
    for i, detection in enumerate(detections):
        xmin, ymin, xmax, ymax = detection.bbox
        print(f"[{i}] score={detection.score:.3f} "
              f"box=({xmin:.4f}, {ymin:.4f}, {xmax:.4f}, {ymax:.4f})")
        for j, (x, y) in enumerate(detection.keypoints):
            print(f"      kp{j}: ({x:.4f}, {y:.4f})")
    return 0


if __name__ == "__main__":
    sys.exit(main())
