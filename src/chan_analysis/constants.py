"""Centralized constants for Chan structure analysis."""

# Minimum stroke length in merged bars, both endpoint bars included.
MIN_STROKE_BARS = 5

# Center formation.
MIN_CENTER_STROKES = 3
MAX_CENTER_STROKES = 12  # Extension cap for the fixed-window strategy

# Center validity.
MIN_CENTER_HEIGHT_PCT = 0.3
MAX_CENTER_DURATION_BARS = 150

# Center strength weights (sum to 100).
STRENGTH_STROKE_WEIGHT = 40.0
STRENGTH_DURATION_WEIGHT = 30.0
STRENGTH_AMPLITUDE_WEIGHT = 30.0
STRENGTH_FULL_STROKES = 9
STRENGTH_FULL_DURATION_BARS = 50
STRENGTH_ZERO_AMPLITUDE_PCT = 15.0

# Fractal strength: relative gap is scaled by this factor and capped at 1.
FRACTAL_STRENGTH_SCALE = 10.0

# Relative change between halves of a center that counts as a volume trend.
VOLUME_TREND_THRESHOLD = 0.2
