"""
Exam Router

Thin FastAPI surface over the exam session controller. Student identity is
read from the ``X-Student-Id`` header; authentication belongs to the
deployment and can replace ``get_current_student_id`` through dependency
overrides.
"""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from backend.common.exceptions import (
    BaseError,
    DataAccessError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from backend.common.logger import app_logger
from backend.common.serialization import serialize
from backend.assessments.exam.service import ExamSessionController

logger = app_logger.getChild("exam.router")

router = APIRouter()


# Request Models
class StartExamRequest(BaseModel):
    room_id: int = Field(..., description="Room identifier")


class AnswerRequest(BaseModel):
    room_id: int = Field(..., description="Room identifier")
    question_id: int = Field(..., description="Question being answered")
    answer: Optional[str] = Field(None, description="Chosen option; omit or leave blank to skip")
    time_taken_seconds: Optional[int] = Field(None, ge=0, description="Seconds spent on the question")


class QuestionRequest(BaseModel):
    room_id: int = Field(..., description="Room identifier")
    question_id: int = Field(..., description="Question to open")


class FinishRequest(BaseModel):
    room_id: int = Field(..., description="Room identifier")


async def get_current_student_id(x_student_id: Optional[str] = Header(None)) -> str:
    """
    Get the current student ID from the ``X-Student-Id`` header.

    Raises:
        HTTPException: If the header is missing or blank
    """
    if not x_student_id or not x_student_id.strip():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing X-Student-Id header"
        )
    return x_student_id.strip()


def get_exam_controller(request: Request) -> ExamSessionController:
    """Get the controller wired on the application state."""
    controller = getattr(request.app.state, "exam_controller", None)
    if controller is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Exam engine not initialized"
        )
    return controller


def _success(data: Any) -> Dict[str, Any]:
    return {"status": "success", "data": serialize(data)}


def error_status_code(error: BaseError) -> int:
    """HTTP status of an engine error."""
    if isinstance(error, NotFoundError):
        return status.HTTP_404_NOT_FOUND
    if isinstance(error, (InvalidStateError, ValidationError)):
        return status.HTTP_400_BAD_REQUEST
    if isinstance(error, DataAccessError):
        return status.HTTP_503_SERVICE_UNAVAILABLE
    return status.HTTP_500_INTERNAL_SERVER_ERROR


async def exam_error_handler(request: Request, exc: BaseError) -> JSONResponse:
    """Render engine errors as ``{"status": "fail", "message": ...}``."""
    status_code = error_status_code(exc)
    if status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    else:
        logger.info(f"{request.method} {request.url.path} rejected ({status_code}): {exc.message}")
    return JSONResponse(status_code=status_code, content={"status": "fail", "message": exc.message})


@router.post("/start", summary="Start or resume an exam session")
async def start_exam(
    request: StartExamRequest,
    student_id: str = Depends(get_current_student_id),
    controller: ExamSessionController = Depends(get_exam_controller)
) -> Dict[str, Any]:
    """
    Start or resume a session and return the first unanswered question, or
    the completion state when there is nothing left to serve.
    """
    outcome = await controller.start(student_id, request.room_id)
    return _success(outcome)


@router.post("/next", summary="Submit an answer and get the next question")
async def submit_answer(
    request: AnswerRequest,
    student_id: str = Depends(get_current_student_id),
    controller: ExamSessionController = Depends(get_exam_controller)
) -> Dict[str, Any]:
    outcome = await controller.answer(
        student_id,
        request.room_id,
        request.question_id,
        response=request.answer,
        time_taken=request.time_taken_seconds,
    )
    return _success(outcome)


@router.post("/question", summary="Open a question of the exam map")
async def get_question(
    request: QuestionRequest,
    student_id: str = Depends(get_current_student_id),
    controller: ExamSessionController = Depends(get_exam_controller)
) -> Dict[str, Any]:
    detail = await controller.get_question(student_id, request.room_id, request.question_id)
    return _success(detail)


@router.post("/finish", summary="Finish an exam session")
async def finish_exam(
    request: FinishRequest,
    student_id: str = Depends(get_current_student_id),
    controller: ExamSessionController = Depends(get_exam_controller)
) -> Dict[str, Any]:
    summary = await controller.finish(student_id, request.room_id)
    return _success(summary)


@router.get("/result/{room_id}", summary="Get the result of a finished session")
async def get_result(
    room_id: int,
    student_id: str = Depends(get_current_student_id),
    controller: ExamSessionController = Depends(get_exam_controller)
) -> Dict[str, Any]:
    summary = await controller.result(student_id, room_id)
    return _success(summary)
