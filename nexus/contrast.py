"""
Text-contrast selection from background settings.

Luminance uses the 0.299/0.587/0.114 weights on 8-bit channels, computed with
integer weights so pure white is exactly 1.0. The threshold is exclusive:
luminance strictly below 0.5 selects light text, exactly 0.5 selects dark.
"""

import logging
import re

from nexus.models import BackgroundSettings, BackgroundType, TextColorMode

logger = logging.getLogger(__name__)

LIGHT_TEXT_THRESHOLD = 0.5

_HEX_RE = re.compile(r"^#?([0-9a-fA-F]{3}|[0-9a-fA-F]{6})$")


def parse_hex(color: str) -> tuple[int, int, int]:
    """`#rgb` or `#rrggbb` -> (r, g, b). Raises ValueError otherwise."""
    match = _HEX_RE.match(color.strip())
    if not match:
        raise ValueError(f"not a hex color: {color!r}")
    digits = match.group(1)
    if len(digits) == 3:
        digits = "".join(c * 2 for c in digits)
    return int(digits[0:2], 16), int(digits[2:4], 16), int(digits[4:6], 16)


def luminance(color: str) -> float:
    """Perceptual luminance in [0, 1]; unparseable colors count as black."""
    try:
        r, g, b = parse_hex(color)
    except ValueError:
        logger.warning(f"Invalid background color {color!r}, treating as dark")
        return 0.0
    return (299 * r + 587 * g + 114 * b) / (1000 * 255)


def use_light_text(settings: BackgroundSettings) -> bool:
    if settings.text_color == TextColorMode.LIGHT:
        return True
    if settings.text_color == TextColorMode.DARK:
        return False

    if settings.type == BackgroundType.SOLID:
        return luminance(settings.solid_color) < LIGHT_TEXT_THRESHOLD
    if settings.type == BackgroundType.GRADIENT:
        average = (luminance(settings.gradient_start) + luminance(settings.gradient_end)) / 2
        return average < LIGHT_TEXT_THRESHOLD
    # No image analysis for photos.
    return True
