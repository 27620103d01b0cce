"""FastAPI + Tailwind interface for the citation checker.

Run with:
    uvicorn citation_checker.web:app --reload
"""
from __future__ import annotations

import html
import logging
from typing import Any, Dict

from fastapi import FastAPI, Form, HTTPException, Request
from fastapi.responses import HTMLResponse
from pydantic import BaseModel, Field, ValidationError

from .app import CitationCheckerApp
from .config import configure_logging, load_settings
from .report import render_report, result_to_dict

logger = logging.getLogger(__name__)

app = FastAPI(title="Citation Checker", description="Check APA 7 citations from the browser")


class ValidateRequest(BaseModel):
    text: Any = Field(None, description="One or more citations separated by blank lines")
    use_enrichment: bool = Field(True, description="Look citations up on Crossref before checking")


def _build_checker() -> CitationCheckerApp:
    return CitationCheckerApp(settings=load_settings())


def _layout(content: str) -> str:
    """Wrap provided content in a Tailwind-powered HTML page."""

    return f"""
    <!doctype html>
    <html lang=\"en\" class=\"h-full bg-gray-50\">
    <head>
        <meta charset=\"utf-8\" />
        <title>Citation Checker</title>
        <link href=\"https://cdn.jsdelivr.net/npm/tailwindcss@3.4.4/dist/tailwind.min.css\" rel=\"stylesheet\" />
    </head>
    <body class=\"min-h-full py-10\">
        <div class=\"max-w-5xl mx-auto px-4\">
            <div class=\"bg-white shadow rounded-lg p-6\">
                <h1 class=\"text-3xl font-semibold text-gray-900\">Citation Checker</h1>
                <p class=\"text-gray-600 mt-2\">Paste APA 7 references to see issues, automatic fixes and a corrected version.</p>
                {content}
            </div>
        </div>
    </body>
    </html>
    """


def _form_page(report: str | None = None, crossref: bool = False) -> str:
    crossref_checkbox = "checked" if crossref else ""
    text_form = f"""
    <form action=\"/analyze-text\" method=\"post\" class=\"bg-gray-50 border border-gray-200 rounded-lg p-4 mt-6\">
        <label class=\"block text-sm font-medium text-gray-700 mb-2\" for=\"text\">Citations (separate with a blank line)</label>
        <textarea name=\"text\" required placeholder=\"Kim, B. Y., &amp; Lee, S. H. (2024). ...\" class=\"w-full h-44 border border-gray-300 rounded-md p-3 text-sm\"></textarea>
        <div class=\"flex items-center gap-2 mt-3\">
            <input type=\"checkbox\" id=\"crossref\" name=\"crossref\" value=\"1\" {crossref_checkbox} class=\"h-4 w-4 text-indigo-600 border-gray-300 rounded\" />
            <label for=\"crossref\" class=\"text-sm text-gray-700\">Correct type and pages from Crossref metadata</label>
        </div>
        <button type=\"submit\" class=\"mt-4 inline-flex items-center px-4 py-2 bg-indigo-600 text-white rounded-md shadow hover:bg-indigo-700\">Check Citations</button>
    </form>
    """

    report_block = ""
    if report:
        report_block = f"""
        <div class=\"mt-8\">
            <h2 class=\"text-xl font-semibold text-gray-800\">Validation Report</h2>
            <pre class=\"mt-3 bg-gray-900 text-green-100 p-4 rounded-lg whitespace-pre-wrap text-sm\">{html.escape(report)}</pre>
        </div>
        """
    return _layout(text_form + report_block)


@app.get("/", response_class=HTMLResponse)
async def home() -> HTMLResponse:
    """Serve the citation submission form."""

    return HTMLResponse(_form_page())


@app.post("/analyze-text", response_class=HTMLResponse)
async def analyze_text(text: str = Form(...), crossref: bool = Form(False)) -> HTMLResponse:
    """Check pasted citations and return a formatted report."""

    checker = _build_checker()
    results = await checker.validate_many(text, use_enrichment=crossref)
    return HTMLResponse(_form_page(render_report(results), crossref=crossref))


@app.post("/api/validate")
async def validate(request: Request) -> Dict[str, Any]:
    """Validate citations posted as ``{"text": ..., "use_enrichment": ...}``."""

    try:
        body = await request.json()
        payload = ValidateRequest(**body) if isinstance(body, dict) else None
    except (ValueError, ValidationError):
        payload = None
    if payload is None or not isinstance(payload.text, str) or not payload.text.strip():
        raise HTTPException(status_code=400, detail="Citation text is required")

    try:
        checker = _build_checker()
        results = await checker.validate_many(payload.text, use_enrichment=payload.use_enrichment)
    except Exception:
        logger.exception("Citation validation failed")
        raise HTTPException(status_code=500, detail="Internal server error during validation")
    return {"results": [result_to_dict(result) for result in results]}


def main() -> None:
    """Run the FastAPI app using uvicorn."""

    import uvicorn

    configure_logging(load_settings().log_level)
    uvicorn.run("citation_checker.web:app", host="0.0.0.0", port=8000, reload=False)


__all__ = ["app", "main"]
