import logging
from typing import Any, Callable, List, Mapping, Optional, Tuple, Union

import numpy as np
import torch
import torch.nn as nn

from blazepost.anchor_utils import GridConfig, generate_anchors
from blazepost.box_utils import decode_boxes, filter_detections
from blazepost.config import (
    MIN_SCORE_THRESH,
    MIN_SUPPRESSION_THRESHOLD,
    PIXEL_MEAN,
    PIXEL_SCALE,
    RAW_SCORE_LIMIT,
    SSD_OPTIONS_BACK,
)
from blazepost.detection import Detection
from blazepost.nms import non_max_suppression


logger = logging.getLogger(__name__)

EngineOutput = Union[Tuple[Any, Any], List[Any], Mapping[str, Any]]
InferenceEngine = Callable[[torch.Tensor], EngineOutput]

SUPPRESSION_METHODS = ("weighted", "standard")


def preprocess(image: Union[np.ndarray, torch.Tensor]) -> torch.Tensor:
    """Converts an (H, W, C) image to the (1, H, W, 3) float tensor the network expects.

    Extra channels (e.g. alpha) are dropped and pixels are mapped to roughly
    [-1, 1] with (x - 128) / 128.
    """
    if isinstance(image, np.ndarray):
        image = torch.from_numpy(image)

    if image.ndim != 3:
        raise ValueError(f"Expected image shape (H, W, C), got {tuple(image.shape)}")
    if image.shape[2] < 3:
        raise ValueError(f"Expected at least 3 channels, got {image.shape[2]}")

    x = image[:, :, :3].to(torch.float32)
    x = (x - PIXEL_MEAN) / PIXEL_SCALE
    return x.unsqueeze(0)


def _split_outputs(out: EngineOutput) -> Tuple[Any, Any]:
    if isinstance(out, Mapping):
        return out["regressors"], out["classificators"]
    regressors, classificators = out
    return regressors, classificators


class TorchModuleEngine:
    """Runs a BlazeFace-style ``nn.Module`` as the inference engine.

    The module's forward must return ``[regressors, classificators]``.
    ``preprocess`` produces NHWC; PyTorch detectors take NCHW, so the input
    is permuted unless ``channels_first`` is False.
    """

    def __init__(self, module: nn.Module, channels_first: bool = True):
        self.module = module
        self.channels_first = channels_first
        self.module.eval()

    def _device(self):
        """Which device (CPU or GPU) is being used by this model?"""
        try:
            return next(self.module.parameters()).device
        except StopIteration:
            return torch.device("cpu")

    def __call__(self, x: torch.Tensor) -> Tuple[torch.Tensor, torch.Tensor]:
        if self.channels_first:
            x = x.permute((0, 3, 1, 2))
        x = x.to(self._device())

        with torch.no_grad():
            out = self.module(x)

        regressors, classificators = _split_outputs(out)
        return regressors.detach().cpu(), classificators.detach().cpu()


class BlazeDetector:
    """ Post-processing pipeline for BlazeFace-style SSD detectors.

    Owns the anchor table for one grid configuration and turns the two raw
    network outputs into a list of ``Detection``:

        decode (anchors) -> sigmoid + threshold -> non-maximum suppression

    The anchor table is computed once and never modified, so one detector
    can serve concurrent calls.

    Based on code from https://github.com/hollance/BlazeFace-PyTorch and
    https://github.com/google/mediapipe/
    """

    def __init__(
        self,
        engine: Optional[InferenceEngine] = None,
        grid_config: GridConfig = SSD_OPTIONS_BACK,
        *,
        score_clipping_thresh: float = RAW_SCORE_LIMIT,
        min_score_thresh: float = MIN_SCORE_THRESH,
        min_suppression_threshold: float = MIN_SUPPRESSION_THRESHOLD,
        suppression_method: str = "weighted",
    ):
        if suppression_method not in SUPPRESSION_METHODS:
            raise NotImplementedError(
                "suppression_method [%s] not supported" % suppression_method)

        self.engine = engine
        self.grid_config = grid_config
        self.score_clipping_thresh = score_clipping_thresh
        self.min_score_thresh = min_score_thresh
        self.min_suppression_threshold = min_suppression_threshold
        self.suppression_method = suppression_method

        self.anchors = generate_anchors(grid_config)
        logger.debug("Generated %d anchors for %s", self.num_anchors, grid_config)

    @property
    def num_anchors(self) -> int:
        return int(self.anchors.shape[0])

    @property
    def input_size(self) -> Tuple[int, int]:
        """(width, height) of the network input."""
        return self.grid_config.input_size_width, self.grid_config.input_size_height

    def postprocess(self, regressors: Any, classificators: Any) -> List[Detection]:
        """Converts the raw network outputs into final detections.

        Arguments:
            regressors: (N, 16) or (1, N, 16) raw box + keypoint offsets
            classificators: (N,), (N, 1) or (1, N, 1) raw logits

        Returns:
            Detections in normalized coordinates, highest score first.
        """
        width, _ = self.input_size
        boxes = decode_boxes(width, self.anchors, regressors)

        detections = filter_detections(
            classificators,
            boxes,
            limit=self.score_clipping_thresh,
            threshold=self.min_score_thresh,
        )
        logger.debug("%d of %d candidates above score %.2f",
                     len(detections), boxes.shape[0], self.min_score_thresh)

        faces = non_max_suppression(
            detections,
            self.min_suppression_threshold,
            self.min_score_thresh,
            weighted=self.suppression_method == "weighted",
        )
        logger.debug("%d detections after %s suppression", len(faces), self.suppression_method)
        return faces

    def detect(self, image: Union[np.ndarray, torch.Tensor]) -> List[Detection]:
        """Makes a prediction on a single (H, W, C) image.

        The image must already be letterboxed to the network input size.
        """
        if self.engine is None:
            raise RuntimeError("BlazeDetector has no inference engine attached")

        x = preprocess(image)
        width, height = self.input_size
        if x.shape[1] != height or x.shape[2] != width:
            raise ValueError(
                f"Expected a {width}x{height} image, got {x.shape[2]}x{x.shape[1]}")

        regressors, classificators = _split_outputs(self.engine(x))
        return self.postprocess(regressors, classificators)
