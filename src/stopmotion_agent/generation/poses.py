"""
Pose Output Parsing
===================

Turns raw pose planner output into an ordered list of PoseDescriptions.

Accepted Shapes:
    '[{"pose": "arms raised"}, {"pose": "arms lowered"}]'   (planner schema)
    '["arms raised", "arms lowered"]'                       (bare strings)
    The same, wrapped in a ```json fence
    An already-decoded Python list of either item shape

Policy:
    Unparseable output, or output that is not a list, yields zero poses
    unless ``strict`` is set, in which case PoseParseError is raised.
    Items without a usable description are skipped.
"""

import json
import logging
from typing import Any, List, Optional

from stopmotion_agent.models.media import PoseDescription


logger = logging.getLogger(__name__)


class PoseParseError(ValueError):
    """Raised when planner output cannot be read as a pose list (strict mode)."""
    pass


def _strip_code_fence(text: str) -> str:
    cleaned = text.strip()
    if cleaned.startswith("```"):
        cleaned = cleaned.split("\n", 1)[1] if "\n" in cleaned else ""
        if cleaned.rstrip().endswith("```"):
            cleaned = cleaned.rstrip()[:-3]
    return cleaned.strip()


def _item_text(item: Any) -> Optional[str]:
    if isinstance(item, str):
        text = item
    elif isinstance(item, dict) and isinstance(item.get("pose"), str):
        text = item["pose"]
    else:
        return None
    text = text.strip()
    return text or None


def parse_poses(
    raw: Any,
    limit: Optional[int] = None,
    strict: bool = False,
) -> List[PoseDescription]:
    """
    Parse planner output into pose descriptions.

    Args:
        raw: Planner output (JSON text, decoded list, or None)
        limit: Keep at most this many poses (None = no limit)
        strict: Raise instead of degrading to an empty list

    Returns:
        Poses in planner order, indexed from 0

    Raises:
        PoseParseError: In strict mode, if raw is not a JSON list
    """
    if raw is None:
        return _fail("planner returned no output", strict)

    if isinstance(raw, (bytes, bytearray)):
        raw = raw.decode("utf-8", errors="replace")

    if isinstance(raw, str):
        cleaned = _strip_code_fence(raw)
        if not cleaned:
            return _fail("planner returned empty output", strict)
        try:
            decoded = json.loads(cleaned)
        except json.JSONDecodeError as e:
            return _fail(f"planner output is not valid JSON: {e}", strict)
    else:
        decoded = raw

    if not isinstance(decoded, list):
        return _fail(
            f"planner output is a {type(decoded).__name__}, expected a list",
            strict,
        )

    poses: List[PoseDescription] = []
    skipped = 0
    for item in decoded:
        text = _item_text(item)
        if text is None:
            skipped += 1
            continue
        poses.append(PoseDescription(index=len(poses), text=text))
        if limit is not None and len(poses) >= limit:
            break

    if skipped:
        logger.warning(f"Skipped {skipped} planner item(s) without a pose description")

    return poses


def _fail(reason: str, strict: bool) -> List[PoseDescription]:
    if strict:
        raise PoseParseError(reason)
    logger.warning(f"Treating planner output as zero poses: {reason}")
    return []
