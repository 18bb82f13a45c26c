"""Request helpers shared by the routers and the filter layer."""

from app.utils.htmx import htmx_response, is_htmx_request, trigger_event
from app.utils.query_params import (
    parse_bool_param,
    parse_date_param,
    parse_id_list,
    parse_int_param,
)

__all__ = [
    "parse_int_param",
    "parse_bool_param",
    "parse_date_param",
    "parse_id_list",
    "is_htmx_request",
    "htmx_response",
    "trigger_event",
]
