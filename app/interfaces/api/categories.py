from fastapi import APIRouter, Depends

from app.application.services import tract_service
from app.domain.repositories.tract_repository import TractRepository
from app.domain.schemas.tract import CategoryRead
from app.interfaces.deps import get_tract_repository

router = APIRouter(prefix="/api/categories", tags=["Categories"])


@router.get("")
def list_categories(repo: TractRepository = Depends(get_tract_repository)):
    categories = tract_service.list_categories(repo)
    return {"success": True, "categories": [CategoryRead.model_validate(c) for c in categories]}
