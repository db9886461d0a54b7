"""FastAPI interface for the citation renderer.

Run with:
    uvicorn citation_renderer.web:app --reload
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Union

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .app import RENDER_MODES, CitationRendererApp
from .config import API_DESCRIPTION, API_HOST, API_PORT, API_TITLE, configure_logging, load_settings
from .errors import NoItemsToRender, StyleParseError
from .exporters import to_dict
from .formats import OUTPUT_FORMATS
from .item_store import ItemStore
from .style import load_style

logger = logging.getLogger(__name__)

app = FastAPI(title=API_TITLE, description=API_DESCRIPTION)


class RenderRequest(BaseModel):
    """Style XML and CSL-JSON items to render in one request."""

    model_config = ConfigDict(populate_by_name=True)

    style: str
    items: List[Dict[str, Any]]
    mode: str = "both"
    ids: Optional[List[Union[str, int]]] = None
    output_format: str = Field("text", alias="format")

    @field_validator("mode")
    @classmethod
    def known_mode(cls, value: str) -> str:
        if value not in RENDER_MODES:
            raise ValueError(f"mode must be one of {', '.join(RENDER_MODES)}")
        return value

    @field_validator("output_format")
    @classmethod
    def known_format(cls, value: str) -> str:
        if value not in OUTPUT_FORMATS:
            raise ValueError(f"format must be one of {', '.join(OUTPUT_FORMATS)}")
        return value


@app.get("/")
async def home() -> Dict[str, Any]:
    """Describe the service."""
    return {"service": API_TITLE, "modes": list(RENDER_MODES), "formats": list(OUTPUT_FORMATS)}


@app.post("/render")
async def render(request: RenderRequest) -> Dict[str, Any]:
    """Render citations and/or a bibliography for the posted style and items."""
    try:
        style = load_style(request.style)
    except StyleParseError as exc:
        logger.info("Rejected style: %s", exc)
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    try:
        items = ItemStore.from_csl_json(request.items)
    except (ValidationError, ValueError) as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc

    renderer = CitationRendererApp(style, items, style_path=style.title or "", output_format=request.output_format)
    try:
        result = renderer.render(request.mode, request.ids)
    except NoItemsToRender as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return to_dict(result)


def main() -> None:
    """Run the FastAPI app using uvicorn."""

    import uvicorn

    configure_logging(load_settings())
    uvicorn.run("citation_renderer.web:app", host=API_HOST, port=API_PORT, reload=False)


__all__ = ["RenderRequest", "app", "main"]
