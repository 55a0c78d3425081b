"""
Browser page for trying the relay by hand.
"""

from functools import lru_cache
from pathlib import Path
from fastapi import APIRouter
from fastapi.responses import HTMLResponse

router = APIRouter()

INDEX_PATH = Path(__file__).parents[1] / "static" / "index.html"


@lru_cache(maxsize=1)
def load_index_html() -> str:
    return INDEX_PATH.read_text(encoding="utf-8")


@router.get("/", response_class=HTMLResponse, include_in_schema=False)
async def index():
    return HTMLResponse(load_index_html())
