"""Canonical storage naming for presentation uploads.

Files land at::

    uploads/{hall}/Day_{day}/{slot_ordinal}_{speaker_code}_{base}{ext}

where ``hall``, ``day`` and ``base`` have every character outside
``[A-Za-z0-9_]`` replaced by ``_``. The slot ordinal maps the slot's
conference-wide ``slot_order`` back to a position within the day.

Examples:
    >>> slot_order_in_day(7, 3)
    1
    >>> compose_stored_path("Main Hall", 2)
    'uploads/Main_Hall/Day_2/'
    >>> compose_stored_filename(1, "SP004", "My Talk!.pptx")
    '1_SP004_My_Talk_.pptx'
"""
import re
from pathlib import PurePosixPath
from typing import Tuple, Union

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9_]")

DEFAULT_UPLOADS_DIR = "uploads"


def sanitize_segment(value: Union[str, int]) -> str:
    """Make *value* safe to use as a single path segment."""
    return _UNSAFE_CHARS.sub("_", str(value))


def slot_order_in_day(slot_order: int, total_days: int) -> int:
    """Return ``((slot_order - 1) mod total_days) + 1``."""
    if total_days < 1:
        raise ValueError(f"total_days must be >= 1, got {total_days}")
    return ((slot_order - 1) % total_days) + 1


def split_filename(filename: str) -> Tuple[str, str]:
    """Split an uploaded filename into ``(base, extension)``.

    Any directory part a client sends along is dropped. The extension keeps
    its original case and leading dot; a name without one yields ``""``.
    """
    name = PurePosixPath(filename.replace("\\", "/")).name
    suffix = PurePosixPath(name).suffix
    if not suffix or suffix == name:
        return name, ""
    return name[: -len(suffix)], suffix


def compose_stored_filename(slot_ordinal: int, speaker_code: str, original_filename: str) -> str:
    base, ext = split_filename(original_filename)
    return f"{slot_ordinal}_{speaker_code}_{sanitize_segment(base)}{ext}"


def compose_stored_path(
    hall_name: str, day_number: Union[str, int], uploads_dir: str = DEFAULT_UPLOADS_DIR
) -> str:
    return f"{uploads_dir}/{sanitize_segment(hall_name)}/Day_{sanitize_segment(day_number)}/"
