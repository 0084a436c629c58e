"""
Armor Matcher

Pairs light bars into armor candidates using geometric compatibility rules.
"""

import cv2
import numpy as np
from dataclasses import replace
from typing import List, Optional, Tuple
import logging
import math

from ..data_models import Armor, ArmorParams, ArmorType, DebugArmor, DetectColor, Light


class ArmorMatcher:
    """
    Pairs lights into armors.

    Every unordered pair of lights is tested. When a light could belong to
    several valid pairs, pairs are accepted greedily by ascending score
    ``(tilt difference, band residual, i, j)`` where the band residual is
    the distance of the normalized center distance from the middle of its
    size band, divided by the band width. A light is used at most once.
    Accepted armors are returned in scan order.
    """

    def __init__(self):
        """Initialize armor matcher."""
        self.logger = logging.getLogger(__name__)

    def match_lights(self,
                     lights: List[Light],
                     params: ArmorParams,
                     detect_color: Optional[DetectColor] = None,
                     debug_armors: Optional[List[DebugArmor]] = None) -> List[Armor]:
        """
        Pair lights into armors.

        Args:
            lights: Lights from the light detector
            params: Armor geometry constraints
            detect_color: Only pair lights of this colour (None pairs any)
            debug_armors: Optional list receiving one record per tested pair

        Returns:
            Armors, each owning copies of its two lights
        """
        candidates = []
        for i in range(len(lights)):
            for j in range(i + 1, len(lights)):
                light_1, light_2 = lights[i], lights[j]
                if detect_color is not None and (
                        light_1.color != detect_color or light_2.color != detect_color):
                    continue

                if self.contain_light(light_1, light_2, lights):
                    continue

                armor_type = self.is_armor(light_1, light_2, params, debug_armors)
                if armor_type == ArmorType.INVALID:
                    continue

                score = self.pair_score(light_1, light_2, armor_type, params) + (i, j)
                candidates.append((score, i, j, armor_type))

        used = set()
        accepted = []
        for score, i, j, armor_type in sorted(candidates, key=lambda c: c[0]):
            if i in used or j in used:
                continue
            used.update((i, j))
            accepted.append((i, j, armor_type))

        armors = [
            Armor(replace(lights[i]), replace(lights[j]), armor_type=armor_type)
            for i, j, armor_type in sorted(accepted)
        ]

        self.logger.debug(f"Matched {len(armors)} armors from {len(candidates)} valid pairs")

        return armors

    @staticmethod
    def center_distance(light_1: Light, light_2: Light) -> float:
        """Distance between light centers divided by the mean light length."""
        avg_light_length = (light_1.length + light_2.length) / 2.0
        distance = math.hypot(light_1.center[0] - light_2.center[0],
                              light_1.center[1] - light_2.center[1])
        return distance / avg_light_length

    @staticmethod
    def classify_center_distance(center_distance: float, params: ArmorParams) -> ArmorType:
        """
        Map a normalized center distance onto an armor size band.

        Both bands are inclusive at each end; the small band is checked first.
        """
        if params.min_small_center_distance <= center_distance <= params.max_small_center_distance:
            return ArmorType.SMALL
        if params.min_large_center_distance <= center_distance <= params.max_large_center_distance:
            return ArmorType.LARGE
        return ArmorType.INVALID

    @classmethod
    def is_armor(cls,
                 light_1: Light,
                 light_2: Light,
                 params: ArmorParams,
                 debug_armors: Optional[List[DebugArmor]] = None) -> ArmorType:
        """
        Check whether two lights form an armor.

        Args:
            light_1: First light
            light_2: Second light
            params: Armor geometry constraints
            debug_armors: Optional list receiving the measurement

        Returns:
            SMALL or LARGE for a valid pair, INVALID otherwise
        """
        # Similar light lengths
        light_length_ratio = min(light_1.length, light_2.length) / max(light_1.length, light_2.length)
        light_ratio_ok = light_length_ratio >= params.min_light_ratio

        # Distance between the centers, in light lengths
        center_distance = cls.center_distance(light_1, light_2)
        size_class = cls.classify_center_distance(center_distance, params)

        # Near-parallel lights on a near-horizontal line
        tilt_difference = abs(light_1.tilt_angle - light_2.tilt_angle)
        angle = cls.connection_angle(light_1, light_2)
        angle_ok = tilt_difference <= params.max_angle and angle <= params.max_angle

        is_armor = light_ratio_ok and size_class != ArmorType.INVALID and angle_ok
        armor_type = size_class if is_armor else ArmorType.INVALID

        if debug_armors is not None:
            debug_armors.append(DebugArmor(
                center_x=(light_1.center[0] + light_2.center[0]) / 2.0,
                type=armor_type.value,
                light_ratio=light_length_ratio,
                center_distance=center_distance,
                angle=angle
            ))

        return armor_type

    @staticmethod
    def connection_angle(light_1: Light, light_2: Light) -> float:
        """Angle in degrees between the line joining the centers and the horizontal."""
        dx = abs(light_1.center[0] - light_2.center[0])
        dy = abs(light_1.center[1] - light_2.center[1])
        return math.degrees(math.atan2(dy, dx))

    @classmethod
    def pair_score(cls,
                   light_1: Light,
                   light_2: Light,
                   armor_type: ArmorType,
                   params: ArmorParams) -> Tuple[float, float]:
        """Lower is better: tilt difference, then normalized band residual."""
        if armor_type == ArmorType.SMALL:
            low, high = params.min_small_center_distance, params.max_small_center_distance
        else:
            low, high = params.min_large_center_distance, params.max_large_center_distance

        band_width = high - low
        midpoint = (low + high) / 2.0
        residual = abs(cls.center_distance(light_1, light_2) - midpoint)
        if band_width > 0:
            residual /= band_width

        return (abs(light_1.tilt_angle - light_2.tilt_angle), residual)

    @staticmethod
    def contain_light(light_1: Light, light_2: Light, lights: List[Light]) -> bool:
        """
        Check whether another light lies inside the area spanned by a pair.

        Args:
            light_1: First light of the pair
            light_2: Second light of the pair
            lights: All lights of the frame

        Returns:
            True if any other light's top, center or bottom is inside the
            bounding rectangle of the pair's endpoints
        """
        points = np.array([light_1.top, light_1.bottom, light_2.top, light_2.bottom], dtype=np.float32)
        x, y, w, h = cv2.boundingRect(points)

        for test_light in lights:
            if test_light.center == light_1.center or test_light.center == light_2.center:
                continue

            for px, py in (test_light.top, test_light.bottom, test_light.center):
                if x <= px < x + w and y <= py < y + h:
                    return True

        return False
