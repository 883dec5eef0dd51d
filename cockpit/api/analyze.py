import logging

from fastapi import APIRouter, File, Form, Request, UploadFile
from fastapi.responses import JSONResponse

from ..core.config import Settings
from ..core.retry import ExternalServiceError, RetryExecutor, error_message
from ..vision.pipeline import AnalysisParseError, analyze_chart_images
from ..vision.schema import MODES, ChartImage

log = logging.getLogger(__name__)

router = APIRouter(prefix="/v1", tags=["analyze"])


def _error(status: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status, content={"error": message})


async def _read(upload: UploadFile | None) -> ChartImage | None:
    if upload is None:
        return None
    raw = await upload.read()
    if not raw:
        return None
    return ChartImage(filename=upload.filename or "chart", data=raw, content_type=upload.content_type)


@router.post("/analyze")
async def analyze(
    request: Request,
    mode: str | None = Form(None),
    context: str | None = Form(None),
    image: UploadFile | None = File(None),  # single-image clients
    image_htf: UploadFile | None = File(None),
    image_ltf: UploadFile | None = File(None),
):
    settings: Settings = request.app.state.settings
    executor: RetryExecutor = request.app.state.retry_executor

    main = await _read(image) or await _read(image_htf)
    ltf = await _read(image_ltf)
    if main is None:
        main, ltf = ltf, None

    if main is None or not mode:
        return _error(400, "Missing required image or mode.")
    if mode not in MODES:
        return _error(400, f"Unknown mode: {mode}")

    images = [main] if ltf is None else [main, ltf]

    if not settings.demo_mode and not settings.openai_api_key:
        return _error(500, "API key not configured.")

    try:
        record = await analyze_chart_images(
            images,
            mode=mode,
            context=context,
            settings=settings,
            executor=executor,
            client=getattr(request.app.state, "openai_client", None),
        )
    except ExternalServiceError as e:
        log.error("Analysis call failed: %s", e)
        return _error(503, error_message(e))
    except AnalysisParseError as e:
        log.error("JSON parse error: %s", e)
        return _error(500, "Failed to parse AI response.")

    return record.to_wire()
