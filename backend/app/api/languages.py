from __future__ import annotations

from fastapi import APIRouter

from app.services.languages import LANGUAGES


router = APIRouter(prefix="/languages", tags=["languages"])


@router.get("")
def list_languages() -> list[dict[str, str]]:
    return [lang.to_dict() for lang in LANGUAGES]
