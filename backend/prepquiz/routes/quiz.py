"""Quiz lifecycle routes."""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from prepquiz.core.catalog import get_catalog
from prepquiz.services.llm_service.structured_invoker import LLMServiceError
from prepquiz.services.quiz.schemas import QuizConfig
from prepquiz.services.quiz.session import FINISH_COMPLETED, InvalidTransitionError, QuizSessionController
from .utils import get_quiz_controller, to_http_error

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/quiz")


class AnswerRequest(BaseModel):
    index: int = Field(ge=0)
    option: Optional[int] = Field(default=None, ge=0, le=3)


class CompleteRequest(BaseModel):
    answers: Optional[List[Optional[int]]] = None
    reason: str = FINISH_COMPLETED


@router.get("/catalog")
async def catalog():
    return get_catalog()


@router.get("/state")
async def quiz_state(controller: QuizSessionController = Depends(get_quiz_controller)):
    return controller.snapshot()


@router.post("/start")
async def start_quiz(
    config: QuizConfig,
    controller: QuizSessionController = Depends(get_quiz_controller),
):
    try:
        accepted = await controller.start(config)
    except InvalidTransitionError as e:
        raise to_http_error(e)
    return {"accepted": accepted, **controller.snapshot()}


@router.post("/answer")
async def record_answer(
    request: AnswerRequest,
    controller: QuizSessionController = Depends(get_quiz_controller),
):
    try:
        controller.record_answer(request.index, request.option)
    except (InvalidTransitionError, ValueError) as e:
        raise to_http_error(e)
    return controller.snapshot()


@router.post("/complete")
async def complete_quiz(
    request: Optional[CompleteRequest] = None,
    controller: QuizSessionController = Depends(get_quiz_controller),
):
    request = request or CompleteRequest()
    try:
        controller.complete(request.answers, request.reason)
    except (InvalidTransitionError, ValueError) as e:
        raise to_http_error(e)
    return controller.snapshot()


@router.post("/try-again")
async def try_again(controller: QuizSessionController = Depends(get_quiz_controller)):
    try:
        accepted = await controller.try_again()
    except InvalidTransitionError as e:
        raise to_http_error(e)
    return {"accepted": accepted, **controller.snapshot()}


@router.post("/new-topic")
async def new_topic(controller: QuizSessionController = Depends(get_quiz_controller)):
    try:
        controller.new_topic()
    except InvalidTransitionError as e:
        raise to_http_error(e)
    return controller.snapshot()


@router.post("/dismiss-error")
async def dismiss_error(controller: QuizSessionController = Depends(get_quiz_controller)):
    controller.dismiss_error()
    return controller.snapshot()


@router.post("/suggestions")
async def suggestions(controller: QuizSessionController = Depends(get_quiz_controller)):
    try:
        result = await controller.fetch_suggestions()
    except (InvalidTransitionError, LLMServiceError) as e:
        logger.error(f"Suggestion generation failed: {e}")
        raise to_http_error(e)
    return result.to_wire()


@router.post("/improvements")
async def improvements(controller: QuizSessionController = Depends(get_quiz_controller)):
    try:
        result = await controller.fetch_improvements()
    except (InvalidTransitionError, LLMServiceError) as e:
        logger.error(f"Improvement topic generation failed: {e}")
        raise to_http_error(e)
    return result.to_wire()
