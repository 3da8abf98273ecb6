# pulse_chart/styles/base_styles.py
"""
Base styles and common theme definitions
"""

class BaseStyles:
    # Dark theme color palette
    BACKGROUND_PRIMARY = "#12121a"
    BACKGROUND_SECONDARY = "#1a1a24"
    BACKGROUND_TERTIARY = "#22222e"

    BORDER_COLOR = "#2a2a38"
    BORDER_LIGHT = "#3a3a4a"

    TEXT_PRIMARY = "#e0e0e0"
    TEXT_SECONDARY = "#b0b0b8"
    TEXT_MUTED = "#888888"

    ACCENT_PRIMARY = "#00e5ff"
    ACCENT_PRESSED = "#0097a7"

    POSITIVE = "#00d66b"
    NEGATIVE = "#ff2952"
    WARNING = "#ffa726"

    FONT_FAMILY = "Segoe UI, Arial, sans-serif"
    FONT_SIZE_SMALL = "11px"
    FONT_SIZE_NORMAL = "12px"
    FONT_SIZE_LARGE = "14px"
