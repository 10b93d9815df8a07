from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, NamedTuple, Tuple


class BBox(NamedTuple):
    xmin: float
    ymin: float
    xmax: float
    ymax: float


@dataclass(frozen=True)
class Detection:
    """
    One detected object in normalized [0, 1] image coordinates.

    ``data`` is laid out as [xmin, ymin, xmax, ymax, kp0_x, kp0_y, ...].
    """

    score: float
    data: Tuple[float, ...]

    def __post_init__(self):
        object.__setattr__(self, "data", tuple(float(v) for v in self.data))

    @property
    def bbox(self) -> BBox:
        return BBox(*self.data[:4])

    @property
    def keypoints(self) -> List[Tuple[float, float]]:
        return [(self.data[i], self.data[i + 1]) for i in range(4, len(self.data) - 1, 2)]

    def keypoint(self, index: int) -> Tuple[float, float]:
        """Return keypoint ``index`` (see ``blazepost.config`` for face landmark names)."""
        offset = 4 + 2 * index
        if index < 0 or offset + 1 >= len(self.data):
            raise IndexError(f"Keypoint {index} out of range ({len(self.keypoints)} keypoints)")
        return self.data[offset], self.data[offset + 1]

    def denormalize(self, width: float, height: float) -> "Detection":
        """Map coordinates to a ``width`` x ``height`` canvas (x by width, y by height)."""
        scaled = [
            value * (width if i % 2 == 0 else height)
            for i, value in enumerate(self.data)
        ]
        return Detection(self.score, tuple(scaled))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "score": self.score,
            "bbox": self.bbox._asdict(),
            "keypoints": [list(kp) for kp in self.keypoints],
        }
