from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from auth.utils import get_current_user
from services.link_preview_service import HtmlFetcher, fetch_link_preview, get_html_fetcher

router = APIRouter(prefix="/link-preview", tags=["link-preview"], dependencies=[Depends(get_current_user)])


class LinkPreviewRequest(BaseModel):
    url: Optional[str] = None


@router.post("")
def link_preview(req: LinkPreviewRequest, fetcher: HtmlFetcher = Depends(get_html_fetcher)):
    return fetch_link_preview(req.url, fetcher=fetcher)
