"""
Confidence thresholds live here.
Changing these changes when the restart-capture prompt appears.
"""

from core.config import LOW_CONFIDENCE_THRESHOLD

# Running confidence below this (after one final event) raises the flag
LOW_CONFIDENCE_MIN = LOW_CONFIDENCE_THRESHOLD

# Final events that arrive without a confidence score
DEFAULT_FINAL_CONFIDENCE = 1.0
