from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field


class EngineConfig(BaseModel):
    """
    Tunable constants for one verification call.

    Attributes:
        line_buffer: Lines searched on each side of the expected lines (strategy 2)
        expanded_line_buffer: Wider line buffer (strategies 3 and 6)
        page_window: Pages searched on each side of the expected page (strategy 7)
        line_tolerance: Fraction of item height within which two items share a line
        ambiguity_medium_max: Highest occurrence count still reported as medium confidence
        max_phrase_length: Ceiling on claim phrase length, in characters
        max_scan_length: Ceiling on any text canonicalized for scanning, in characters
        context_words: Words kept on each side of the match in the snippet
    """
    model_config = ConfigDict(frozen=True)

    line_buffer: int = Field(default=1, ge=0)
    expanded_line_buffer: int = Field(default=3, ge=0)
    page_window: int = Field(default=2, ge=1)
    line_tolerance: float = Field(default=0.5, gt=0)
    ambiguity_medium_max: int = Field(default=3, ge=2)
    max_phrase_length: int = Field(default=100_000, gt=0)
    max_scan_length: int = Field(default=5_000_000, gt=0)
    context_words: int = Field(default=5, ge=0)


DEFAULT_CONFIG = EngineConfig()


def load_config(path: Path) -> EngineConfig:
    """Load an EngineConfig from a JSON file; missing keys keep their defaults."""
    if not path.exists():
        raise FileNotFoundError(f"Config not found: {path}")
    return EngineConfig.model_validate_json(path.read_text(encoding="utf-8"))
