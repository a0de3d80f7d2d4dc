#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# ****************************************************************************************************************************************************
# * BSD 3-Clause License
# *
# * Copyright (c) 2025, Mana Battery
# * All rights reserved.
# *
# * Redistribution and use in source and binary forms, with or without modification, are permitted provided that the following conditions are met:
# *
# * 1. Redistributions of source code must retain the above copyright notice, this list of conditions and the following disclaimer.
# * 2. Redistributions in binary form must reproduce the above copyright notice, this list of conditions and the following disclaimer in the
# *    documentation and/or other materials provided with the distribution.
# * 3. Neither the name of the copyright holder nor the names of its contributors may be used to endorse or promote products derived from this
# *    software without specific prior written permission.
# *
# * THIS SOFTWARE IS PROVIDED BY THE COPYRIGHT HOLDERS AND CONTRIBUTORS "AS IS" AND ANY EXPRESS OR IMPLIED WARRANTIES, INCLUDING, BUT NOT LIMITED TO,
# * THE IMPLIED WARRANTIES OF MERCHANTABILITY AND FITNESS FOR A PARTICULAR PURPOSE ARE DISCLAIMED. IN NO EVENT SHALL THE COPYRIGHT HOLDER OR
# * CONTRIBUTORS BE LIABLE FOR ANY DIRECT, INDIRECT, INCIDENTAL, SPECIAL, EXEMPLARY, OR CONSEQUENTIAL DAMAGES (INCLUDING, BUT NOT LIMITED TO,
# * PROCUREMENT OF SUBSTITUTE GOODS OR SERVICES; LOSS OF USE, DATA, OR PROFITS; OR BUSINESS INTERRUPTION) HOWEVER CAUSED AND ON ANY THEORY OF
# * LIABILITY, WHETHER IN CONTRACT, STRICT LIABILITY, OR TORT (INCLUDING NEGLIGENCE OR OTHERWISE) ARISING IN ANY WAY OUT OF THE USE OF THIS SOFTWARE,
# * EVEN IF ADVISED OF THE POSSIBILITY OF SUCH DAMAGE.
# ****************************************************************************************************************************************************
"""Platform version timelines for the version-debt metric.

Each platform family has a monotonic timeline of (version, debt score)
points: the oldest supported release carries the most debt (100) and the
current releases carry none (0). Known monikers resolve to their timeline
point; other parseable versions of a known family are interpolated between
the neighbouring points and clamped to the family's ends.
"""

import re
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

import numpy as np

logger = logging.getLogger(__name__)

Version = Tuple[int, ...]

# Family -> ordered (version, debt score) points
PLATFORM_TIMELINES: Dict[str, List[Tuple[Version, float]]] = {
    "netframework": [
        ((3, 5), 100.0),
        ((4, 0), 90.0),
        ((4, 5), 80.0),
        ((4, 5, 1), 75.0),
        ((4, 5, 2), 70.0),
        ((4, 6), 65.0),
        ((4, 6, 1), 60.0),
        ((4, 6, 2), 55.0),
        ((4, 7), 50.0),
        ((4, 7, 1), 45.0),
        ((4, 7, 2), 40.0),
        ((4, 8), 40.0),
    ],
    "netstandard": [
        ((1, 0), 70.0),
        ((1, 6), 70.0),
        ((2, 0), 50.0),
        ((2, 1), 35.0),
    ],
    "netcore": [
        ((1, 0), 45.0),
        ((2, 0), 40.0),
        ((3, 1), 30.0),
    ],
    "net": [
        ((5, 0), 20.0),
        ((6, 0), 10.0),
        ((7, 0), 5.0),
        ((8, 0), 0.0),
        ((9, 0), 0.0),
    ],
    "python": [
        ((2, 7), 100.0),
        ((3, 6), 80.0),
        ((3, 7), 65.0),
        ((3, 8), 50.0),
        ((3, 9), 35.0),
        ((3, 10), 20.0),
        ((3, 11), 10.0),
        ((3, 12), 0.0),
        ((3, 13), 0.0),
    ],
}

_LEGACY_FRAMEWORK = re.compile(r"^v(\d+(?:\.\d+)*)$")
_NET_COMPACT = re.compile(r"^net(\d)(\d)(\d)?$")
_NET_DOTTED = re.compile(r"^net(\d+(?:\.\d+)*)(?:-[a-z0-9.]+)?$")
_NETSTANDARD = re.compile(r"^netstandard(\d+(?:\.\d+)*)$")
_NETCOREAPP = re.compile(r"^netcoreapp(\d+(?:\.\d+)*)$")
_PYTHON = re.compile(r"^(?:python|py|cp)(\d)\.?(\d+)?$")
_PYTHON_SPEC = re.compile(r"^(?:>=|~=|==)?\s*(\d+)\.(\d+)")


@dataclass(frozen=True)
class PlatformVersion:
    """Parsed platform tag."""

    family: str
    version: Version

    @property
    def label(self) -> str:
        return f"{self.family} {'.'.join(str(part) for part in self.version)}"


def _parse_version(text: str) -> Version:
    return tuple(int(part) for part in text.split("."))


def normalize_platform_tag(tag: str) -> str:
    """Normalize a declared platform tag.

    Multi-target declarations ("net48;net8.0") use the first target, legacy
    framework versions ("v4.7.2") become their moniker ("net472") and
    modern single-digit monikers gain a ".0" suffix ("net8" -> "net8.0").
    """
    normalized = tag.strip().split(";")[0].strip().lower()
    legacy = _LEGACY_FRAMEWORK.match(normalized)
    if legacy:
        normalized = "net" + legacy.group(1).replace(".", "")
    # Two-digit forms ("net48") are compact framework monikers, not modern versions
    digits = normalized[3:]
    if normalized.startswith("net") and len(digits) == 1 and digits.isdigit() and int(digits) >= 5:
        normalized += ".0"
    return normalized


def parse_platform_tag(tag: str) -> Optional[PlatformVersion]:
    """Parse a platform tag into its family and version.

    Returns:
        PlatformVersion, or None if the tag is not recognized
    """
    normalized = normalize_platform_tag(tag)
    if not normalized:
        return None

    match = _NETSTANDARD.match(normalized)
    if match:
        return PlatformVersion("netstandard", _parse_version(match.group(1)))
    match = _NETCOREAPP.match(normalized)
    if match:
        return PlatformVersion("netcore", _parse_version(match.group(1)))
    match = _NET_COMPACT.match(normalized)
    if match:
        parts = tuple(int(group) for group in match.groups() if group is not None)
        return PlatformVersion("netframework", parts)
    match = _NET_DOTTED.match(normalized)
    if match:
        version = _parse_version(match.group(1))
        return PlatformVersion("net" if version[0] >= 5 else "netframework", version)
    match = _PYTHON.match(normalized.replace(" ", ""))
    if match:
        minor = int(match.group(2)) if match.group(2) else 0
        return PlatformVersion("python", (int(match.group(1)), minor))
    match = _PYTHON_SPEC.match(normalized)
    if match:
        return PlatformVersion("python", (int(match.group(1)), int(match.group(2))))
    return None


def _timeline_position(version: Version) -> float:
    """Map a version tuple onto a monotonic number line (3.10 sorts after 3.9)."""
    padded = (version + (0, 0, 0))[:3]
    return padded[0] * 10000.0 + padded[1] * 100.0 + padded[2]


def lookup_version_debt(tag: str) -> Optional[float]:
    """Debt score in [0, 100] for a platform tag, or None if unknown.

    Args:
        tag: Declared platform tag (e.g. "net472", "net8.0", "python3.8")

    Returns:
        Timeline score, interpolated for versions between known points
    """
    parsed = parse_platform_tag(tag)
    if parsed is None:
        return None
    timeline = PLATFORM_TIMELINES.get(parsed.family)
    if not timeline:
        return None

    positions = np.array([_timeline_position(version) for version, _ in timeline])
    scores = np.array([score for _, score in timeline])
    # np.interp clamps to the first/last score outside the known range
    return float(np.interp(_timeline_position(parsed.version), positions, scores))
