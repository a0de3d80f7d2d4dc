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
"""Graphviz detection and rendering.

Detection results are cached within the Python process session to avoid
repeated subprocess calls. A missing Graphviz installation is not an error
for the analysis: the DOT file is still written and rendering is skipped.
"""

import shutil
import logging
import subprocess
from pathlib import Path
from typing import Dict, List, Optional
from dataclasses import dataclass

from depmap.constants import GRAPHVIZ_RENDER_TIMEOUT, GRAPHVIZ_VERSION_TIMEOUT

logger = logging.getLogger(__name__)

DOT_COMMANDS = ["dot"]
RENDER_FORMATS = ("png", "svg")

# Session-level cache for tool detection results (keyed by function name)
_tool_cache: Dict[str, "ToolInfo"] = {}


@dataclass
class ToolInfo:
    """Information about a detected external tool.

    Attributes:
        command: Executable path or name, None if not found
        version: Version line as reported by the tool
    """

    command: Optional[str]
    version: Optional[str]

    def is_found(self) -> bool:
        return self.command is not None


def clear_cache() -> None:
    """Clear the tool detection cache."""
    _tool_cache.clear()
    logger.debug("Tool detection cache cleared")


def _try_version(command: str, timeout: int = GRAPHVIZ_VERSION_TIMEOUT) -> Optional[str]:
    """Run `<command> -V` and return its version line.

    Graphviz prints its version to stderr.
    """
    try:
        result = subprocess.run([command, "-V"], capture_output=True, text=True, check=True, timeout=timeout)
    except (subprocess.CalledProcessError, FileNotFoundError, subprocess.TimeoutExpired, OSError):
        return None
    output = (result.stderr or result.stdout).strip()
    return output.split("\n")[0].strip() if output else ""


def find_graphviz() -> ToolInfo:
    """Find the Graphviz `dot` executable.

    Returns:
        ToolInfo with command and version if found, or empty ToolInfo if not found
    """
    cache_key = "find_graphviz"
    if cache_key in _tool_cache:
        return _tool_cache[cache_key]

    info = ToolInfo(command=None, version=None)
    for candidate in DOT_COMMANDS:
        path = shutil.which(candidate)
        if path is None:
            continue
        version = _try_version(path)
        if version is not None:
            info = ToolInfo(command=path, version=version)
            logger.debug("Found Graphviz: %s (%s)", path, version)
            break

    if not info.is_found():
        logger.debug("Graphviz 'dot' not found on PATH")
    _tool_cache[cache_key] = info
    return info


def render_dot(dot_file: str, formats: List[str], timeout: int = GRAPHVIZ_RENDER_TIMEOUT) -> List[str]:
    """Render a DOT file into image formats with Graphviz.

    Args:
        dot_file: DOT input file
        formats: Output formats ("png", "svg")
        timeout: Timeout in seconds per rendering

    Returns:
        Paths of the rendered files (empty if Graphviz is unavailable)

    Raises:
        ValueError: If an unsupported format is requested
        RuntimeError: If Graphviz fails or times out
    """
    unsupported = [fmt for fmt in formats if fmt not in RENDER_FORMATS]
    if unsupported:
        raise ValueError(f"Unsupported render format(s): {', '.join(unsupported)}")

    tool = find_graphviz()
    if not tool.is_found():
        logger.warning("Graphviz not found, skipping rendering of %s", dot_file)
        return []
    assert tool.command is not None, "Tool command should not be None when found"

    rendered = []
    for fmt in formats:
        output = str(Path(dot_file).with_suffix(f".{fmt}"))
        try:
            result = subprocess.run(
                [tool.command, f"-T{fmt}", dot_file, "-o", output],
                capture_output=True,
                text=True,
                timeout=timeout,
            )
        except subprocess.TimeoutExpired as exc:
            raise RuntimeError(f"Graphviz timed out after {timeout} seconds rendering {dot_file}") from exc
        if result.returncode != 0:
            raise RuntimeError(f"Graphviz failed with code {result.returncode}: {result.stderr[:1000]}")
        logger.info("Rendered %s", output)
        rendered.append(output)
    return rendered
