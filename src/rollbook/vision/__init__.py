"""AI-assisted reading of attendance photos."""

from src.rollbook.vision.gemini import GeminiVisionProvider
from src.rollbook.vision.matcher import AttendanceVisionMatcher, parse_payload

__all__ = ["AttendanceVisionMatcher", "GeminiVisionProvider", "parse_payload"]
