import logging
from typing import Optional

from dotenv import load_dotenv
from fastapi import FastAPI, File, Form, Request, UploadFile
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse

from pad_analyzer.analyzer import analyze, analyze_annotated, calibrate
from pad_analyzer.config import AnalyzerConfig
from pad_analyzer.errors import (
    ImageDecodeError,
    InvalidConfigurationError,
    PadAnalyzerError,
    UnsupportedSourceError,
)
from pad_analyzer.schemas import (
    AnalysisReport,
    AnnotatedAnalysisResponse,
    CalibrationRequest,
    CalibrationResponse,
)
from pad_analyzer.utils import encode_image_to_data_url

load_dotenv()

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# Read once at startup; requests derive calibrated copies, never mutate it.
BASE_CONFIG = AnalyzerConfig.from_env()

ERROR_STATUS = {
    InvalidConfigurationError: 400,
    UnsupportedSourceError: 415,
    ImageDecodeError: 422,
}

app = FastAPI(title="Pad Analyzer API")


@app.exception_handler(PadAnalyzerError)
async def pad_analyzer_error_handler(request: Request, exc: PadAnalyzerError):
    status = next((code for cls, code in ERROR_STATUS.items() if isinstance(exc, cls)), 400)
    logger.warning("%s %s rejected (%d): %s", request.method, request.url.path, status, exc)
    return JSONResponse(status_code=status, content={"detail": str(exc)})


def request_config(pad_width_cm: Optional[float], image_pad_width_px: Optional[float]) -> AnalyzerConfig:
    """Per-request calibration on top of the startup config."""
    if pad_width_cm is None and image_pad_width_px is None:
        return BASE_CONFIG
    return calibrate(pad_width_cm, image_pad_width_px, BASE_CONFIG)


# ----- Endpoints -----
@app.get("/")
def health_check():
    return {"status": "ok"}


@app.post("/analyze", response_model=AnalysisReport)
async def analyze_image(
    file: UploadFile = File(...),
    weight_g: float = Form(0.0),
    pad_width_cm: Optional[float] = Form(None),
    image_pad_width_px: Optional[float] = Form(None),
):
    contents = await file.read()
    config = request_config(pad_width_cm, image_pad_width_px)
    return await run_in_threadpool(analyze, contents, weight_g, config)


@app.post("/analyze/annotated", response_model=AnnotatedAnalysisResponse)
async def analyze_image_annotated(
    file: UploadFile = File(...),
    weight_g: float = Form(0.0),
    pad_width_cm: Optional[float] = Form(None),
    image_pad_width_px: Optional[float] = Form(None),
):
    contents = await file.read()
    config = request_config(pad_width_cm, image_pad_width_px)
    report, png = await run_in_threadpool(analyze_annotated, contents, weight_g, config)
    return AnnotatedAnalysisResponse(report=report, annotated_image=encode_image_to_data_url(png))


@app.post("/calibrate", response_model=CalibrationResponse)
def calibrate_scale(body: CalibrationRequest):
    config = calibrate(body.pad_width_cm, body.image_pad_width_px, BASE_CONFIG)
    return CalibrationResponse(scale_px_per_cm=config.scale_px_per_cm)
