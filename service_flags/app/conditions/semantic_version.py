"""
Semantic version comparison for the semver match kinds.
"""

import re
from typing import List, Optional

from shared.logging import get_logger

logger = get_logger("flags.semantic_version")

PRE_RELEASE_DELIMITER = "-"
BUILD_DELIMITER = "+"

_NUMERIC = re.compile(r"^\d+$")
_WHITESPACE = re.compile(r"\s")


def _is_numeric(part: str) -> bool:
    return bool(_NUMERIC.match(part))


def is_pre_release(version: str) -> bool:
    """True if the version carries a pre-release suffix ahead of any build suffix."""
    pre_index = version.find(PRE_RELEASE_DELIMITER)
    build_index = version.find(BUILD_DELIMITER)
    if pre_index < 0:
        return False
    return build_index < 0 or pre_index < build_index


def is_build(version: str) -> bool:
    """True if the version carries build metadata ahead of any pre-release suffix."""
    pre_index = version.find(PRE_RELEASE_DELIMITER)
    build_index = version.find(BUILD_DELIMITER)
    if build_index < 0:
        return False
    return pre_index < 0 or build_index < pre_index


def split_version(version: str) -> Optional[List[str]]:
    """
    Split a version into its numeric parts plus an optional suffix.

    "1.2.3-beta" -> ["1", "2", "3", "beta"]. Returns None for malformed
    versions (whitespace, more than three numeric parts, non-numeric parts).
    """
    if _WHITESPACE.search(version):
        logger.warning("Invalid semantic version", version=version)
        return None

    prefix, suffix = version, ""
    if is_pre_release(version):
        prefix, suffix = version.split(PRE_RELEASE_DELIMITER, 1)
    elif is_build(version):
        prefix, suffix = version.split(BUILD_DELIMITER, 1)

    parts = prefix.split(".")
    if len(parts) > 3 or not all(_is_numeric(part) for part in parts):
        logger.warning("Invalid semantic version", version=version)
        return None

    if suffix:
        parts.append(suffix)
    return parts


def compare_version(condition_version: str, user_version: str) -> Optional[int]:
    """
    Compare a user's version against a condition's version.

    Returns 0 if equal, 1 if the user version is greater, -1 if it is
    lower, and None if either version is malformed. Only as many parts as
    the condition names are compared, so "2" matches "2.9.1".
    """
    user_parts = split_version(user_version)
    condition_parts = split_version(condition_version)
    if user_parts is None or condition_parts is None:
        return None

    for idx, condition_part in enumerate(condition_parts):
        if idx >= len(user_parts):
            return 1 if is_pre_release(condition_version) or is_build(condition_version) else -1

        user_part = user_parts[idx]
        if not _is_numeric(user_part):
            if user_part < condition_part:
                return 1 if is_pre_release(condition_version) and not is_pre_release(user_version) else -1
            if user_part > condition_part:
                return -1 if not is_pre_release(condition_version) and is_pre_release(user_version) else 1
        elif _is_numeric(condition_part):
            if int(user_part) > int(condition_part):
                return 1
            if int(user_part) < int(condition_part):
                return -1

    if is_pre_release(user_version) and not is_pre_release(condition_version):
        return -1

    return 0
