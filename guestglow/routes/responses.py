"""
Response generation endpoints

- POST /api/v1/responses/generate    - deterministic template reply
- POST /api/v1/responses/generate-ai - model reply with template fallback
"""
from fastapi import APIRouter, Depends, HTTPException, status

from guestglow.dependencies import get_ai_generator
from guestglow.models.schemas import GenerateResponseRequest, GenerateResponseResult
from guestglow.services.ai_response_generator import AIResponseGenerator
from guestglow.services.response_generator import generate_template_response, tone_for_rating
from guestglow.utils.auth import verify_api_key
from guestglow.utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter(
    prefix="/api/v1/responses",
    tags=["responses"],
    dependencies=[Depends(verify_api_key)]
)


@router.post("/generate", response_model=GenerateResponseResult)
async def generate_response(request: GenerateResponseRequest) -> GenerateResponseResult:
    if not request.review_text.strip():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="reviewText is required"
        )

    text, tone = generate_template_response(
        request.review_text,
        request.rating,
        guest_name=request.guest_name,
        hotel_name=request.hotel_name
    )
    return GenerateResponseResult(response=text, type=tone.value)


@router.post("/generate-ai", response_model=GenerateResponseResult)
async def generate_ai_response(
    request: GenerateResponseRequest,
    generator: AIResponseGenerator = Depends(get_ai_generator)
) -> GenerateResponseResult:
    if not request.review_text.strip():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="reviewText is required"
        )

    try:
        text, source = await generator.generate(
            request.review_text,
            request.rating,
            guest_name=request.guest_name,
            hotel_name=request.hotel_name,
            is_external=request.is_external,
            platform=request.platform
        )
    except Exception as e:
        logger.error(f"AI response generation failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(e)
        )

    return GenerateResponseResult(
        response=text,
        type=tone_for_rating(request.rating).value,
        source=source
    )
