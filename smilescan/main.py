"""FastAPI application for the SmileScan smile analysis server."""
import asyncio
import io
import json
import logging
import math
import time
import uuid
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, List, Optional

import cv2
import numpy as np
from fastapi import FastAPI, File, Form, HTTPException, Query, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from PIL import Image, ImageOps
from pydantic import ValidationError
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from .errors import InvalidInput
from .landmarks import (
    MIN_POLYGON_POINTS,
    MOUTH_LANDMARK_INDICES,
    mouth_points_from_face_mesh,
    normalize_points,
)
from .pipeline import analyze, score_to_discount
from .schemas import (
    AnalysisResult,
    AnalyzeResponse,
    DiscountResponse,
    HealthResponse,
    JobStatus,
    LandmarkInput,
    Visualization,
)
from .visualization import encode_png_data_uri

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# Application state
app = FastAPI(
    title="SmileScan",
    description="Smile scoring and discount API",
    version="1.0.0"
)

# Rate limiting
limiter = Limiter(key_func=get_remote_address)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# CORS - allow_origin_regex for Vercel wildcard subdomains
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000"],
    allow_origin_regex=r"https://.*\.vercel\.app",
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Global state
_jobs: Dict[str, JobStatus] = {}
_finished_at: Dict[str, float] = {}
_executor: Optional[ThreadPoolExecutor] = None
_server_start_time: Optional[float] = None

# Image validation
ALLOWED_MAGIC_BYTES = {
    b'\xff\xd8\xff': 'jpeg',
    b'\x89PNG\r\n\x1a\n': 'png',
}
MAX_IMAGE_SIZE_BYTES = 5 * 1024 * 1024  # 5MB

# Longest side analysed; larger photos are downscaled first
MAX_ANALYSIS_SIDE = 640

# Quality thresholds
MIN_LAPLACIAN_VARIANCE = 100  # Blur detection
MIN_BRIGHTNESS = 30
MAX_BRIGHTNESS = 225

JOB_TTL_SECONDS = 600


def validate_image_bytes(content: bytes) -> Optional[str]:
    """Validate image format using magic bytes.

    Returns:
        Format name if valid, None otherwise
    """
    for magic, fmt in ALLOWED_MAGIC_BYTES.items():
        if content.startswith(magic):
            return fmt
    # WebP has RIFF at start, need to check deeper
    if content.startswith(b'RIFF') and b'WEBP' in content[:12]:
        return 'webp'
    return None


def parse_landmarks(raw: Optional[str]) -> Optional[LandmarkInput]:
    """Parse the optional landmarks form field.

    Raises:
        InvalidInput: malformed JSON, points that are not finite [x, y] pairs,
            or too few points for a polygon (or for a FaceMesh list)
    """
    if not raw:
        return None
    try:
        landmarks = LandmarkInput(**json.loads(raw))
    except (json.JSONDecodeError, ValidationError, TypeError) as e:
        raise InvalidInput(f"Invalid landmarks: {e}") from e
    if any(len(p) != 2 for p in landmarks.points):
        raise InvalidInput("Each landmark point must be an [x, y] pair")
    if not all(math.isfinite(v) for p in landmarks.points for v in p):
        raise InvalidInput("Landmark coordinates must be finite")

    needed = max(MOUTH_LANDMARK_INDICES) + 1 if landmarks.face_mesh else MIN_POLYGON_POINTS
    if len(landmarks.points) < needed:
        raise InvalidInput(f"Need at least {needed} landmark points, got {len(landmarks.points)}")
    return landmarks


def decode_image(image_bytes: bytes) -> np.ndarray:
    """Decode upload bytes into an RGB uint8 array with EXIF orientation applied."""
    image = Image.open(io.BytesIO(image_bytes))

    # Fix EXIF orientation
    image = ImageOps.exif_transpose(image)

    if image.mode != 'RGB':
        image = image.convert('RGB')
    return np.array(image)


def limit_image_size(image: np.ndarray, max_side: int = MAX_ANALYSIS_SIDE) -> tuple:
    """Downscale so the longest side is at most max_side.

    Returns:
        Tuple of (image, scale) where scale maps original to analysed pixels
    """
    h, w = image.shape[:2]
    longest = max(h, w)
    if longest <= max_side:
        return image, 1.0

    scale = max_side / longest
    new_size = (max(1, int(round(w * scale))), max(1, int(round(h * scale))))
    resized = cv2.resize(image, new_size, interpolation=cv2.INTER_AREA)
    logger.info(f"Downscaled image from {w}x{h} to {new_size[0]}x{new_size[1]}")
    return resized, scale


def check_image_quality(image_array: np.ndarray) -> List[str]:
    """Check image quality for common issues.

    Returns:
        List of warning messages
    """
    warnings = []

    # Convert to grayscale for blur detection
    gray = cv2.cvtColor(image_array, cv2.COLOR_RGB2GRAY)

    # Laplacian variance for blur detection
    laplacian_var = cv2.Laplacian(gray, cv2.CV_64F).var()
    if laplacian_var < MIN_LAPLACIAN_VARIANCE:
        warnings.append(f"Image may be blurry (variance: {laplacian_var:.1f})")

    # Brightness check
    mean_brightness = np.mean(gray)
    if mean_brightness < MIN_BRIGHTNESS:
        warnings.append(f"Image is too dark (brightness: {mean_brightness:.1f})")
    elif mean_brightness > MAX_BRIGHTNESS:
        warnings.append(f"Image is too bright (brightness: {mean_brightness:.1f})")

    return warnings


def _finish(job_id: str) -> None:
    _finished_at[job_id] = time.time()


async def process_job(job_id: str, image_bytes: bytes, landmarks: Optional[LandmarkInput]):
    """Background job processing function."""
    try:
        _jobs[job_id].progress = "preprocessing"
        _jobs[job_id].message = "Decoding image and checking quality"

        image_array = decode_image(image_bytes)
        image_array, scale = limit_image_size(image_array)
        h, w = image_array.shape[:2]

        quality_warnings = check_image_quality(image_array)

        points = None
        if landmarks is not None:
            if landmarks.face_mesh:
                points = mouth_points_from_face_mesh(landmarks.points, w, h)
            elif landmarks.normalized:
                points = normalize_points(landmarks.points, w, h)
            else:
                points = [(x * scale, y * scale) for x, y in landmarks.points]

        _jobs[job_id].progress = "analysis"
        _jobs[job_id].message = "Segmenting teeth and scoring smile"

        start = time.time()
        analysis = await asyncio.get_event_loop().run_in_executor(
            _executor,
            analyze,
            image_array,
            points
        )
        processing_time_ms = int((time.time() - start) * 1000)

        viz_data_uri = encode_png_data_uri(analysis.overlay_image)
        if viz_data_uri is None:
            raise ValueError("Failed to generate visualization")

        if analysis.confidence == "low":
            quality_warnings.append("No clear teeth detected; consider retaking the photo")

        result = AnalysisResult(
            score=analysis.score,
            discount=score_to_discount(analysis.score),
            confidence=analysis.confidence,
            metrics=analysis.metrics,
            visualization=Visualization(image=viz_data_uri),
            lipBoxSource=analysis.lip_box_source,
            processingTimeMs=processing_time_ms,
            qualityWarnings=quality_warnings
        )

        _jobs[job_id].status = "completed"
        _jobs[job_id].result = result
        _jobs[job_id].progress = None
        _jobs[job_id].message = "Analysis completed successfully"

        logger.info(f"Job {job_id} completed: score={analysis.score}, confidence={analysis.confidence}")

    except Exception as e:
        logger.error(f"Job {job_id} failed: {e}", exc_info=True)
        _jobs[job_id].status = "failed"
        _jobs[job_id].error = str(e)
        _jobs[job_id].message = f"Analysis failed: {str(e)}"

    finally:
        _finish(job_id)


def purge_finished_jobs(now: float, ttl: float = JOB_TTL_SECONDS) -> int:
    """Remove finished jobs older than ttl seconds. Returns the number removed."""
    expired = [job_id for job_id, finished in _finished_at.items() if now - finished > ttl]
    for job_id in expired:
        _jobs.pop(job_id, None)
        del _finished_at[job_id]
    return len(expired)


async def cleanup_old_jobs():
    """Periodic task to clean up finished jobs."""
    while True:
        await asyncio.sleep(60)
        removed = purge_finished_jobs(time.time())
        if removed:
            logger.info(f"Cleaned up {removed} old jobs")


@app.on_event("startup")
async def startup_event():
    """Initialize server on startup."""
    global _executor, _server_start_time

    _server_start_time = time.time()
    _executor = ThreadPoolExecutor(max_workers=2)

    # Start cleanup task
    asyncio.create_task(cleanup_old_jobs())

    logger.info("Server started successfully")


@app.on_event("shutdown")
async def shutdown_event():
    """Cleanup on shutdown."""
    global _executor

    if _executor:
        _executor.shutdown(wait=True)

    logger.info("Server shutdown complete")


@app.get("/health", response_model=HealthResponse)
async def health_check():
    """Health check endpoint."""
    uptime = time.time() - _server_start_time if _server_start_time else 0

    return HealthResponse(
        status="healthy",
        uptime_seconds=round(uptime, 1)
    )


@app.post("/analyze", response_model=AnalyzeResponse)
@limiter.limit("10/minute")
async def analyze_image(
    request: Request,
    image: UploadFile = File(...),
    landmarks: Optional[str] = Form(None)
):
    """Submit image for analysis.

    Returns job_id immediately. Check /status/{job_id} for results.
    """
    try:
        parsed_landmarks = parse_landmarks(landmarks)
    except InvalidInput as e:
        raise HTTPException(status_code=400, detail=str(e))

    # Read image
    image_bytes = await image.read()

    # Validate size
    if len(image_bytes) > MAX_IMAGE_SIZE_BYTES:
        raise HTTPException(
            status_code=400,
            detail=f"Image size exceeds {MAX_IMAGE_SIZE_BYTES / 1024 / 1024:.1f}MB limit"
        )

    # Validate format
    image_format = validate_image_bytes(image_bytes)
    if image_format is None:
        raise HTTPException(
            status_code=400,
            detail="Invalid image format. Only JPEG, PNG, and WebP are supported."
        )

    # Create job
    job_id = str(uuid.uuid4())
    _jobs[job_id] = JobStatus(
        status="processing",
        progress="queued",
        message="Job queued for processing"
    )

    # Start background processing
    asyncio.create_task(process_job(job_id, image_bytes, parsed_landmarks))

    logger.info(f"Created job {job_id}: format={image_format}, landmarks={parsed_landmarks is not None}")

    return AnalyzeResponse(job_id=job_id)


@app.get("/status/{job_id}", response_model=JobStatus)
async def get_job_status(job_id: str):
    """Get job status and result."""
    if job_id not in _jobs:
        raise HTTPException(status_code=404, detail="Job not found")

    return _jobs[job_id]


@app.get("/discount", response_model=DiscountResponse)
async def get_discount(score: int = Query(..., ge=0, le=100)):
    """Discount percentage for a smile score."""
    return DiscountResponse(score=score, discount=score_to_discount(score))


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
