"""
User-agent heuristics.

All regex-based sniffing lives here so it can be replaced as one unit.
Order of the checks matters: many tablet UAs also contain generic mobile
terms, so the tablet pattern runs first.
"""

import re
from typing import Optional

TABLET_PATTERN = re.compile(r'(tablet|ipad|playbook|silk)|(android(?!.*mobi))', re.IGNORECASE)
MOBILE_PATTERN = re.compile(r'mobile|iphone|ipod|blackberry|opera mini|iemobile|wpdesktop', re.IGNORECASE)

# (pattern, label), first match wins
OS_PATTERNS = [
    (re.compile(r'windows', re.IGNORECASE), 'Windows'),
    (re.compile(r'macintosh|mac os x', re.IGNORECASE), 'macOS'),
    (re.compile(r'linux', re.IGNORECASE), 'Linux'),
    (re.compile(r'android', re.IGNORECASE), 'Android'),
    (re.compile(r'iphone|ipad|ipod', re.IGNORECASE), 'iOS'),
]

# Case-sensitive substrings, as vendors spell them in UA strings
PROCESSOR_HINTS = [
    ('Intel', 'Intel'),
    ('AMD', 'AMD'),
    ('Apple', 'Apple Silicon'),
    ('Snapdragon', 'Snapdragon'),
    ('Exynos', 'Exynos'),
    ('MediaTek', 'MediaTek'),
]

APPLE_DEVICE_PATTERN = re.compile(r'iPhone(\d+)|iPad(\d+)|Mac')

SOFTWARE_RENDERERS = ('swiftshader', 'llvmpipe', 'software rasterizer')


def device_type(user_agent: Optional[str]) -> str:
    """Classify a UA as 'tablet', 'mobile' or 'desktop'."""
    ua = (user_agent or '').lower()

    if TABLET_PATTERN.search(ua):
        return 'tablet'

    if MOBILE_PATTERN.search(ua):
        return 'mobile'

    return 'desktop'


def operating_system(user_agent: Optional[str]) -> str:
    ua = user_agent or ''
    for pattern, label in OS_PATTERNS:
        if pattern.search(ua):
            return label
    return 'Unknown'


def processor_family(user_agent: Optional[str]) -> str:
    """Best-effort CPU vendor from the UA; 'Unknown CPU' if nothing matches."""
    ua = user_agent or ''
    for needle, label in PROCESSOR_HINTS:
        if needle in ua:
            return label
    return 'Unknown CPU'


def npu_hint(user_agent: Optional[str], ml_api_available: bool = False) -> Optional[str]:
    """
    Guess the neural accelerator from the UA string.

    Nothing is measured. Returns None when no known accelerator is named
    and no ML API is exposed.
    """
    ua = user_agent or ''

    if 'Apple' in ua and APPLE_DEVICE_PATTERN.search(ua):
        return 'Apple Neural Engine'

    if 'Snapdragon' in ua:
        return 'Qualcomm Hexagon NPU'

    if 'Exynos' in ua:
        return 'Samsung NPU'

    if 'MediaTek' in ua:
        return 'MediaTek APU'

    if ml_api_available:
        return 'WebNN ML Accelerator'

    return None


def is_software_renderer(renderer: Optional[str]) -> bool:
    if not renderer:
        return False
    lowered = renderer.lower()
    return any(name in lowered for name in SOFTWARE_RENDERERS)


def is_desktop_platform(platform_string: Optional[str]) -> bool:
    """True for navigator.platform values of desktop-class systems."""
    lowered = (platform_string or '').lower()
    return 'win' in lowered or 'mac' in lowered or 'linux' in lowered
