# stocklab/models/patterns.py
"""
Chart pattern models.
"""

import datetime as dt
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class PatternType(str, Enum):
    """Detected pattern kind."""
    BB_REVERSAL = "bb_reversal"
    GAP_DOWN_REVERSAL = "gap_down_reversal"
    CUP_WITH_HANDLE = "cup_with_handle"


class FormingStage(str, Enum):
    """Progress of a cup-with-handle that has not broken out."""
    HANDLE_FORMING = "handle_forming"
    HANDLE_READY = "handle_ready"


class Sentiment(str, Enum):
    BULLISH = "bullish"
    BEARISH = "bearish"
    NEUTRAL = "neutral"


class CupGeometry(BaseModel):
    """Rim, bottom and handle measurements of a cup."""
    left_rim_idx: int = Field(..., description="Left rim bar index")
    bottom_idx: int = Field(..., description="Cup bottom bar index")
    right_rim_idx: int = Field(..., description="Right rim bar index")
    left_rim_high: float = Field(..., description="High at the left rim")
    bottom_low: float = Field(..., description="Lowest low inside the cup")
    right_rim_high: float = Field(..., description="High at the right rim")
    cup_days: int = Field(..., description="Bars between the rims")
    depth_pct: float = Field(..., description="Cup depth percentage")
    handle_days: int = Field(default=0, description="Bars from right rim to breakout")
    pullback_pct: float = Field(default=0.0, description="Handle pullback percentage")


class PatternEvent(BaseModel):
    """Buy-side pattern occurrence."""
    index: int = Field(..., description="Bar index of the event")
    date: dt.date = Field(..., description="Bar date of the event")
    price: float = Field(..., description="Close on the event bar")
    type: PatternType = Field(..., description="Pattern kind")
    label: str = Field(..., description="Short label")
    description: str = Field(default="", description="Human readable description")
    cup: Optional[CupGeometry] = Field(None, description="Cup geometry for cup-with-handle events")


class CupFormingPattern(BaseModel):
    """Cup-with-handle whose handle is still forming."""
    cup: CupGeometry = Field(..., description="Cup geometry")
    current_price: float = Field(..., description="Latest close")
    handle_days: int = Field(..., description="Bars since the right rim")
    pullback_pct: float = Field(..., description="Handle pullback percentage")
    breakout_price: float = Field(..., description="Right rim high")
    distance_to_breakout_pct: float = Field(..., description="Percent the close is below the breakout price")
    cup_depth_pct: float = Field(..., description="Cup depth percentage")
    cup_days: int = Field(..., description="Bars between the rims")
    left_rim_date: dt.date = Field(..., description="Left rim date")
    right_rim_date: dt.date = Field(..., description="Right rim date")
    bottom_date: dt.date = Field(..., description="Cup bottom date")
    stage: FormingStage = Field(..., description="Forming stage")


class MarketSentiment(BaseModel):
    """Trend state of the latest close against its 25-bar average."""
    sentiment: Sentiment = Field(..., description="Sentiment")
    price: float = Field(..., description="Latest close")
    ma25: float = Field(..., description="25-bar simple moving average")
    diff: float = Field(..., description="price - ma25")
    diff_pct: float = Field(..., description="Deviation percentage from ma25")
