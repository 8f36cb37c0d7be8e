"""
Single-frame liveness gate for eye scans.

Known limitation: liveness is judged from one frame only. Both eyes must be
open and the face roughly centred; there is no temporal blink tracking, so a
high-quality still image of an open-eyed face can pass this gate.
"""

import logging
from typing import Optional

from voiceeye.models.internal_models import FaceScan
from voiceeye.models.results import LivenessDecision

logger = logging.getLogger(__name__)


class LivenessGate:
    """Accepts or rejects a face-scan frame as coming from a live subject."""

    def __init__(
        self,
        eye_open_threshold: float = 0.70,
        max_pose_angle: float = 30.0,
        min_face_ratio: Optional[float] = 0.30
    ):
        self.eye_open_threshold = eye_open_threshold
        self.max_pose_angle = max_pose_angle
        self.min_face_ratio = min_face_ratio

    def evaluate(self, scan: FaceScan) -> LivenessDecision:
        """
        Evaluate a single capture against the liveness criteria.

        Args:
            scan: Eye-openness probabilities, head pose and optional face size

        Returns:
            LivenessDecision with the verdict and a short reason
        """
        if self.min_face_ratio is not None and scan.face_ratio is not None:
            if scan.face_ratio < self.min_face_ratio:
                return LivenessDecision(False, "face too small")

        if abs(scan.pose_angle) > self.max_pose_angle:
            return LivenessDecision(False, "face not centered")

        left = scan.eye_open_left if scan.eye_open_left is not None else 0.0
        right = scan.eye_open_right if scan.eye_open_right is not None else 0.0
        if not (left > self.eye_open_threshold and right > self.eye_open_threshold):
            logger.debug(f"Eyes not open enough: left={left:.2f}, right={right:.2f}")
            return LivenessDecision(False, "eyes not open")

        return LivenessDecision(True, "live")

    def is_live(self, scan: FaceScan) -> bool:
        return self.evaluate(scan).is_live
