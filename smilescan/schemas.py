"""Pydantic models for metrics and request/response schemas."""
from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, List, Literal


class Metrics(BaseModel):
    """Geometric metrics of one analysis run."""
    model_config = ConfigDict(frozen=True)

    teethCount: int = Field(..., ge=0, description="Tooth candidates after filtering")
    symmetryScore: float = Field(..., ge=0.0, le=1.0, description="Mirror balance about the centerline")
    alignmentDeviation: float = Field(..., ge=0.0, description="Mean distance (px) of centroids from their row mean")
    gapCount: int = Field(..., ge=0, description="Dark interdental strips between same-row neighbours")
    biteScore: float = Field(..., ge=0.0, description="Vertical spread of candidate centroids (px)")
    innerOutlineRatio: float = Field(..., ge=0.0, description="Inner-bright / (outline + 1) pixel ratio")


class LandmarkInput(BaseModel):
    """Optional mouth polygon supplied by an external landmark detector."""
    points: List[List[float]] = Field(..., description="[[x, y], ...] mouth polygon")
    normalized: bool = Field(
        default=False,
        description="Coordinates are 0-1 fractions of the image size instead of pixels"
    )
    face_mesh: bool = Field(
        default=False,
        description="Points are the full normalized FaceMesh landmark list; the mouth contour is selected from it"
    )


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    uptime_seconds: float


class AnalyzeResponse(BaseModel):
    """Immediate response after submitting analysis job."""
    job_id: str


class DiscountResponse(BaseModel):
    """Discount for a given smile score."""
    score: int
    discount: int


class Visualization(BaseModel):
    """Overlay image data."""
    image: str = Field(..., description="Base64 data URI string (data:image/png;base64,...)")


class AnalysisResult(BaseModel):
    """Complete analysis result."""
    score: int = Field(..., ge=0, le=100)
    discount: int
    confidence: Literal["low", "normal"]
    metrics: Metrics
    visualization: Visualization
    lipBoxSource: Optional[Literal["landmarks", "color"]] = None
    processingTimeMs: int
    qualityWarnings: List[str] = Field(default_factory=list)


class JobStatus(BaseModel):
    """Job status and result."""
    status: Literal["processing", "completed", "failed"]
    progress: Optional[str] = None
    result: Optional[AnalysisResult] = None
    error: Optional[str] = None
    message: Optional[str] = None
