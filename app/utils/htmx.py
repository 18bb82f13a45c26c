"""HTMX response utilities."""

from fastapi import Request
from fastapi.templating import Jinja2Templates
from starlette.responses import Response


def is_htmx_request(request: Request) -> bool:
    """Check if request is an HTMX request."""
    return request.headers.get("HX-Request") == "true"


def htmx_response(
    templates: Jinja2Templates,
    request: Request,
    full_template: str,
    partial_template: str,
    context: dict,
    replace_url: str | None = None,
    status_code: int = 200,
) -> Response:
    """
    Return appropriate template response based on HTMX vs full page request.

    Args:
        templates: Jinja2Templates instance
        request: FastAPI Request object
        full_template: Template name for full page loads
        partial_template: Template name for HTMX partial updates
        context: Template context dict (must not include 'request')
        replace_url: For HTMX requests, URL the browser should show without
            adding a history entry (HX-Replace-Url)
        status_code: Response status

    Returns:
        TemplateResponse with appropriate template
    """
    htmx = is_htmx_request(request)
    response = templates.TemplateResponse(
        request=request,
        name=partial_template if htmx else full_template,
        context=context,
        status_code=status_code,
    )
    if htmx and replace_url is not None:
        response.headers["HX-Replace-Url"] = replace_url
    return response


def trigger_event(response: Response, event: str) -> Response:
    """Ask HTMX to fire a client-side event after the swap."""
    response.headers["HX-Trigger"] = event
    return response
