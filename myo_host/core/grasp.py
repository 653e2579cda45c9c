# myo_host/core/grasp.py
from __future__ import annotations

from enum import Enum
from typing import Optional, Tuple


class GraspType(Enum):
    """
    Hand postures the external classifier can report.

    Each member carries:
      - code:     numeric value used on the wire ("0", "1", "2")
      - label:    lowercase wire label ("power sphere", ...)
      - display:  human-readable name
      - image_key: asset name the UI uses for the posture picture
    """

    REST = (0, "rest", "Rest", "rest")
    POWER_SPHERE = (1, "power sphere", "Power Sphere Grasp", "power_sphere")
    LARGE_DIAMETER = (2, "large diameter", "Large Diameter Grasp", "large_diameter")

    def __init__(self, code: int, label: str, display: str, image_key: str) -> None:
        self.code = code
        self.label = label
        self.display = display
        self.image_key = image_key

    @classmethod
    def from_code(cls, text: str) -> Optional["GraspType"]:
        for g in cls:
            if text == str(g.code):
                return g
        return None

    @classmethod
    def from_label(cls, text: str) -> Optional["GraspType"]:
        for g in cls:
            if text == g.label:
                return g
        return None

    @classmethod
    def resolve(cls, payload: str) -> Tuple["GraspType", bool]:
        """
        Resolve a class_output payload.

        Returns (grasp, defaulted). Unresolvable payloads map to REST with
        defaulted=True so "no signal" can still be told apart downstream.
        """
        text = payload.strip().lower()
        grasp = cls.from_code(text) or cls.from_label(text)
        if grasp is None:
            return cls.REST, True
        return grasp, False


# Grasp types exercised by the calibration protocol, in order.
CALIBRATED_GRASPS = (GraspType.POWER_SPHERE, GraspType.LARGE_DIAMETER)
