"""Domain models for the AI thumbnail critique.

The analysis shape is owned by the hosted model; these models validate it on
receipt so that a malformed reply is reported as a collaborator failure.
"""
from __future__ import annotations

import re
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

_HEX_COLOR = re.compile(r"^#(?:[0-9a-fA-F]{3}|[0-9a-fA-F]{6})$")


class AnalysisResult(BaseModel):
    """Structured critique of a thumbnail.

    Notes
    -----
    - ``score`` must be an integer in [0, 100]; floats and numeric strings are rejected.
    - The optional fields are only present when the model chose to fill them.
    - Unknown keys in the reply are ignored.
    """

    model_config = ConfigDict(extra="ignore", strict=True)

    score: int = Field(ge=0, le=100, description="Overall click-through score")
    strengths: list[str] = Field(description="What works in the thumbnail")
    weaknesses: list[str] = Field(description="What hurts the thumbnail")
    suggestions: list[str] = Field(description="Actionable improvements")
    summary: str = Field(description="One short paragraph")
    hashtags: Optional[list[str]] = Field(default=None, description="Suggested hashtags")
    caption: Optional[str] = Field(default=None, description="Suggested social caption")
    dominantColors: Optional[list[str]] = Field(default=None, description="Hex colors, e.g. #ff0000")
    sentiment: Optional[str] = Field(default=None, description="Overall emotional tone")

    @field_validator("dominantColors")
    @classmethod
    def _check_colors(cls, value: Optional[list[str]]) -> Optional[list[str]]:
        if value is None:
            return value
        for color in value:
            if not _HEX_COLOR.match(color):
                raise ValueError(f"not a hex color: {color!r}")
        return value


class AnalyzeRequest(BaseModel):
    """Request payload to analyze the best thumbnail of a video."""

    videoId: str = Field(description="Video identifier")
