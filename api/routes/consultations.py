"""Consultation API routes."""

import logging
import time
from typing import Optional, Union

from fastapi import APIRouter, HTTPException, Request, status

from api.schemas.consultation import PollRequest, QuickCheckRequest
from medconsult.complexity.analyzer import ComplexityAnalyzer
from medconsult.errors import (
    ComplianceRejectedError,
    ConsultationError,
    ConsultationNotFoundError,
    DelegateStatusError,
    DelegateSubmissionError,
    PollingTimeoutError,
)
from medconsult.models import (
    ConsultationRequest,
    ConsultationResponse,
    ConsultationResult,
    QuickCheckResult,
)
from medconsult.orchestration.manager import ConsultationManager

logger = logging.getLogger(__name__)

router = APIRouter()


def get_manager(request: Request) -> ConsultationManager:
    """The manager built at startup and kept on app.state."""
    manager = getattr(request.app.state, "manager", None)
    if manager is None:
        raise HTTPException(status_code=503, detail="Consultation manager not initialized")
    return manager


def to_http_error(error: ConsultationError) -> HTTPException:
    """Map engine exceptions onto HTTP status codes."""
    if isinstance(error, ComplianceRejectedError):
        code, label = status.HTTP_403_FORBIDDEN, "Compliance check failed"
    elif isinstance(error, ConsultationNotFoundError):
        code, label = status.HTTP_404_NOT_FOUND, "Consultation not found"
    elif isinstance(error, (DelegateSubmissionError, DelegateStatusError)):
        code, label = status.HTTP_502_BAD_GATEWAY, "Delegate orchestrator error"
    elif isinstance(error, PollingTimeoutError):
        code, label = status.HTTP_504_GATEWAY_TIMEOUT, "Consultation timed out"
    else:
        code, label = status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error"
    return HTTPException(status_code=code, detail={"error": label, "message": str(error)})


@router.post(
    "/consultations",
    response_model=ConsultationResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
async def start_consultation(body: ConsultationRequest, request: Request) -> ConsultationResponse:
    """Start a consultation and return the pending snapshot."""
    manager = get_manager(request)
    logger.info(
        f"Received consultation request for patient {body.patient_id} "
        f"({len(body.symptoms)} symptoms, {body.urgency})"
    )
    try:
        return await manager.start_consultation(body)
    except ConsultationError as e:
        logger.warning(f"Consultation not started: {e}")
        raise to_http_error(e)


@router.get(
    "/consultations/{consultation_id}",
    response_model=Union[ConsultationResult, ConsultationResponse],
)
async def get_consultation(consultation_id: str, request: Request):
    """Get consultation progress, or the final result once it is done."""
    manager = get_manager(request)
    try:
        return await manager.get_consultation_status(consultation_id)
    except ConsultationError as e:
        raise to_http_error(e)


@router.post("/consultations/{consultation_id}/poll", response_model=ConsultationResult)
async def poll_consultation(
    consultation_id: str,
    request: Request,
    body: Optional[PollRequest] = None,
) -> ConsultationResult:
    """Block until the consultation finishes or the poll gives up."""
    manager = get_manager(request)
    options = body or PollRequest()
    deadline = time.monotonic() + options.timeout_seconds if options.timeout_seconds else None
    try:
        return await manager.poll_consultation_until_complete(
            consultation_id,
            max_attempts=options.max_attempts,
            poll_interval=options.poll_interval,
            on_progress=lambda update: logger.debug(
                f"Polling {update.consultation_id}: {update.status} {update.percent}%"
            ),
            deadline=deadline,
        )
    except ConsultationError as e:
        raise to_http_error(e)


@router.post("/consultations/quick-check", response_model=QuickCheckResult)
async def quick_check(body: QuickCheckRequest) -> QuickCheckResult:
    """Coarse complexity triage without starting a consultation."""
    return ComplexityAnalyzer.quick_check(
        symptom_count=body.symptom_count,
        urgency=body.urgency,
        comorbidity_count=body.comorbidity_count,
    )
