"""
Navigation API endpoints (current top-level page, kept in the session)
"""
from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from pilotage.api.deps import get_navigator
from pilotage.application.navigation import NavigationError, Navigator, Page


router = APIRouter(prefix="/api/v1/navigation", tags=["navigation"])


class NavigateRequest(BaseModel):
    page: str


@router.get("/")
def current_page(navigator: Navigator = Depends(get_navigator)):
    return {"current_page": navigator.current_page.value, "pages": [p.value for p in Page]}


@router.put("/")
def navigate(req: NavigateRequest, navigator: Navigator = Depends(get_navigator)):
    """Aller sur une page"""
    try:
        page = navigator.navigate_to(req.page)
    except NavigationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"current_page": page.value}
