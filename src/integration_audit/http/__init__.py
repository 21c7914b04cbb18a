"""HTTP transport: retrying executor and pagination strategies."""

from integration_audit.http.executor import (
    MAX_RETRIES,
    RequestExecutor,
    RetryPolicy,
    TokenSlot,
    parse_body,
    parse_retry_after,
)
from integration_audit.http.pagination import (
    paginate_cursor,
    paginate_link_header,
    paginate_pages,
    parse_next_link,
)

__all__ = [
    "MAX_RETRIES",
    "RequestExecutor",
    "RetryPolicy",
    "TokenSlot",
    "paginate_cursor",
    "paginate_link_header",
    "paginate_pages",
    "parse_body",
    "parse_next_link",
    "parse_retry_after",
]
