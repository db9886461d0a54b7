"""Exporters for render results."""
from __future__ import annotations

import json
from dataclasses import asdict
from typing import Any, Dict, List

from .formats import strip_html
from .models import BibliographyResult, RenderResult


def to_dict(result: RenderResult) -> Dict[str, Any]:
    data = asdict(result)
    if result.bibliography is None:
        data.pop("bibliography")
    return data


def to_json(result: RenderResult) -> str:
    return json.dumps(to_dict(result), indent=2, ensure_ascii=False)


def bibliography_lines(bibliography: BibliographyResult, plain: bool = False) -> List[str]:
    """Entry texts in order; ``plain`` strips HTML markup and entities."""
    return [strip_html(entry.text) if plain else entry.text for entry in bibliography.entries]


def bibliography_html(bibliography: BibliographyResult) -> str:
    """Wrap HTML entries in the conventional ``csl-bib-body`` container."""
    body = "\n".join(f"  {line}" for line in bibliography_lines(bibliography))
    return f'<div class="csl-bib-body">\n{body}\n</div>'


__all__ = ["bibliography_html", "bibliography_lines", "to_dict", "to_json"]
