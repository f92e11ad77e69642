"""
Letter API Routes

Drafts a dispute letter with the language-model collaborator.
"""
from fastapi import APIRouter, Depends
from pydantic import BaseModel

from ..auth import get_current_user, CurrentUser
from ..services.exceptions import ServiceError
from ..services.letters import DisputeLetterGenerator, LetterRequest
from .errors import to_http


router = APIRouter(prefix="/letters", tags=["letters"])


def get_letter_generator() -> DisputeLetterGenerator:
    return DisputeLetterGenerator()


class LetterResponse(BaseModel):
    letter: str


@router.post("/generate", response_model=LetterResponse)
async def generate_letter(
    request: LetterRequest,
    generator: DisputeLetterGenerator = Depends(get_letter_generator),
    _: CurrentUser = Depends(get_current_user),
):
    try:
        letter = await generator.generate_async(request)
    except ServiceError as e:
        raise to_http(e)
    return LetterResponse(letter=letter)
