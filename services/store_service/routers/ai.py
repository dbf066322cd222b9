"""Text generation router for staff tooling (product description drafts)."""

from fastapi import APIRouter, Depends, Request
from libs.auth.dependencies import require_admin
from libs.auth.models import AuthUser
from libs.common.rate_limit import ai_limit
from services.store_service.errors import MissingPromptError
from services.store_service.routers._helpers import get_text_generator
from services.store_service.schemas import GenerateRequest, GenerateResponse
from services.store_service.services.text_generation import TextGenerator

router = APIRouter(prefix="/ai", tags=["ai"])


@router.post("/generate", response_model=GenerateResponse)
@ai_limit
async def generate_text(
    request: Request,
    request_in: GenerateRequest,
    current_user: AuthUser = Depends(require_admin),
    generator: TextGenerator = Depends(get_text_generator),
):
    if not request_in.prompt.strip():
        raise MissingPromptError()

    result = await generator.generate(request_in.prompt)
    return GenerateResponse(text=result.text, generated=result.generated)
