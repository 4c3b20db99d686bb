"""Tunable thresholds, weights and discount policy.

The numbers below are one consistent policy. Tests rely on the shape of the
scoring function (monotonic, saturating, bounded) more than on the literals.
"""
from pydantic import BaseModel, Field, model_validator


class AnalysisConfig(BaseModel):
    """Pixel classification, component filtering and scoring parameters."""

    # Pixel classification (HSL, hue in degrees, saturation/lightness 0-1)
    tooth_min_lightness: float = Field(0.6, ge=0.0, le=1.0)
    tooth_mean_factor: float = Field(1.0, gt=0.0, description="k in L > max(0.6, mean(L) * k)")
    tooth_max_saturation: float = Field(0.35, ge=0.0, le=1.0)
    lip_hue_low: float = Field(260.0, ge=0.0, le=360.0, description="Lip hue band start (wraps through 0)")
    lip_hue_high: float = Field(40.0, ge=0.0, le=360.0, description="Lip hue band end")
    lip_min_saturation: float = Field(0.25, ge=0.0, le=1.0)
    lip_min_lightness: float = Field(0.08, ge=0.0, le=1.0)
    lip_max_lightness: float = Field(0.85, ge=0.0, le=1.0)
    dark_max_lightness: float = Field(0.2, ge=0.0, le=1.0)

    # Component filtering
    min_area_fraction: float = Field(0.00005, ge=0.0, le=1.0)
    min_area_floor: int = Field(60, ge=1)
    max_area_fraction: float = Field(0.1, gt=0.0, le=1.0)
    min_aspect_ratio: float = Field(0.2, gt=0.0)
    max_aspect_ratio: float = Field(1.5, gt=0.0)

    # Geometric metrics
    neutral_symmetry: float = Field(0.5, ge=0.0, le=1.0)
    min_vertical_overlap: float = Field(0.25, ge=0.0, le=1.0)
    gap_dark_fraction: float = Field(0.35, ge=0.0, le=1.0)
    min_gap_width: int = Field(2, ge=1)
    inner_bright_lightness: float = Field(0.9, ge=0.0, le=1.0)
    outline_lightness: float = Field(0.7, ge=0.0, le=1.0)

    # Score combination
    gap_weight: float = Field(8.0, ge=0.0)
    max_penalized_gaps: int = Field(5, ge=0)
    symmetry_weight: float = Field(1.0, ge=0.0)
    symmetry_scale: float = Field(0.3, ge=0.0)
    alignment_weight: float = Field(1.0, ge=0.0)
    max_penalized_alignment: float = Field(
        10.0, ge=0.0, description="Mean row deviation (px) beyond which the penalty saturates"
    )
    bite_weight: float = Field(0.5, ge=0.0)
    max_penalized_bite: float = Field(20.0, ge=0.0, description="Bite spread (px) beyond which the penalty saturates")
    ratio_weight: float = Field(30.0, ge=0.0)
    ideal_ratio: float = Field(2.0, gt=0.0)


class DiscountPolicy(BaseModel):
    """discount = clamp(round((100 - score) * factor), low, high)"""

    factor: float = Field(1.0, ge=0.0)
    low: int = Field(10, ge=0, le=100)
    high: int = Field(40, ge=0, le=100)

    @model_validator(mode="after")
    def check_bounds(self):
        if self.low > self.high:
            raise ValueError(f"Discount bounds inverted: low={self.low} > high={self.high}")
        return self


DEFAULT_CONFIG = AnalysisConfig()
DEFAULT_POLICY = DiscountPolicy()
