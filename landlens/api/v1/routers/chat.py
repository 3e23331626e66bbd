"""
API router for the assistant chat.
"""
from fastapi import APIRouter, HTTPException

from landlens.api.dependencies import AnalysisClientDep
from landlens.api.v1.models.requests import ChatRequest
from landlens.api.v1.models.responses import ChatResponse
from landlens.infrastructure.external_api_client import ExternalAPIError


router = APIRouter(
    prefix="/chat",
    tags=["chat"],
)


@router.post(
    "",
    response_model=ChatResponse,
    summary="Ask the assistant",
    responses={502: {"description": "Language model unavailable"}},
)
async def ask(body: ChatRequest, analysis_client: AnalysisClientDep) -> ChatResponse:
    """
    Forward a free-form question to the language model.

    Raises:
        HTTPException: 502 if the model call fails
    """
    try:
        answer = await analysis_client.ask(body.query)
    except ExternalAPIError as e:
        raise HTTPException(
            status_code=502,
            detail=f"Sorry, the assistant is unavailable: {e.message}",
        )
    return ChatResponse(answer=answer)
