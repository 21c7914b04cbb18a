"""Pagination strategies.

Three ways providers split a collection across requests:

- page number (``?page=N&per_page=M``)
- opaque cursor returned in the body
- RFC 5988 ``Link`` header with ``rel="next"``

Every strategy fetches pages strictly in order and concatenates them. A page
body that is not a list (or has no list at the data path) ends pagination
instead of raising, since some providers answer the last page with ``{}``.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Mapping
from typing import Any, Optional

import httpx

from integration_audit.http.executor import parse_body
from integration_audit.utils.errors import safe_get
from integration_audit.utils.logging import get_logger

logger = get_logger("http.pagination")

DEFAULT_PER_PAGE = 100
DEFAULT_MAX_PAGES = 100

PageFetcher = Callable[[dict[str, str]], Awaitable[Any]]
RawSender = Callable[[str, Optional[dict[str, str]]], Awaitable[httpx.Response]]



async def paginate_pages(
    fetch_page: PageFetcher,
    *,
    per_page: int = DEFAULT_PER_PAGE,
    max_pages: int = DEFAULT_MAX_PAGES,
    page_param: str = "page",
    per_page_param: str = "per_page",
    params: Mapping[str, str] | None = None,
) -> list[Any]:
    """Collect items from a page-number paginated endpoint.

    Pages start at 1. Stops after a page with fewer than ``per_page`` items,
    an empty or non-list page, or ``max_pages`` requests.

    Args:
        fetch_page: Fetches one page given its query parameters
        per_page: Items requested per page
        max_pages: Maximum number of requests
        page_param: Query parameter carrying the page number
        per_page_param: Query parameter carrying the page size
        params: Extra query parameters sent with every page

    Returns:
        All items in page order
    """
    items: list[Any] = []
    page = 1

    while page <= max_pages:
        query = dict(params or {})
        query[page_param] = str(page)
        query[per_page_param] = str(per_page)

        body = await fetch_page(query)
        if not isinstance(body, list) or not body:
            break

        items.extend(body)
        if len(body) < per_page:
            break
        page += 1
    else:
        logger.warning("Stopped page pagination at max_pages=%d", max_pages)

    return items


async def paginate_cursor(
    fetch_page: PageFetcher,
    *,
    cursor_param: str = "cursor",
    cursor_path: str = "next_cursor",
    data_path: str = "data",
    params: Mapping[str, str] | None = None,
    max_pages: int = DEFAULT_MAX_PAGES,
) -> list[Any]:
    """Collect items from a cursor paginated endpoint.

    Args:
        fetch_page: Fetches one page given its query parameters
        cursor_param: Query parameter that carries the cursor
        cursor_path: Dot-separated path of the next cursor in the body
        data_path: Dot-separated path of the item list in the body; empty
            means the body itself is the list
        params: Extra query parameters sent with every page
        max_pages: Maximum number of requests

    Returns:
        All items in page order
    """
    items: list[Any] = []
    cursor: str | None = None

    for _ in range(max_pages):
        query = dict(params or {})
        if cursor:
            query[cursor_param] = cursor

        body = await fetch_page(query)
        data = safe_get(body, data_path) if data_path else body
        if not isinstance(data, list) or not data:
            break
        items.extend(data)

        next_cursor = safe_get(body, cursor_path)
        if not isinstance(next_cursor, str) or not next_cursor:
            break
        cursor = next_cursor
    else:
        logger.warning("Stopped cursor pagination at max_pages=%d", max_pages)

    return items


def parse_next_link(response: httpx.Response, request_url: str) -> str | None:
    """Return the absolute URL of the response's ``rel="next"`` link, or None.

    Relative references resolve against the URL that produced the response
    (after redirects), or ``request_url`` when the response carries no request.

    Example:
        >>> response = httpx.Response(200, headers={"Link": '</items?page=2>; rel="next"'})
        >>> parse_next_link(response, "https://api.example.com/items")
        'https://api.example.com/items?page=2'
    """
    link = response.links.get("next", {}).get("url")
    if not link:
        return None
    try:
        base = response.url
    except RuntimeError:
        base = httpx.URL(request_url)
    return str(base.join(link))


async def paginate_link_header(
    send: RawSender,
    url: str,
    *,
    params: Mapping[str, str] | None = None,
    max_pages: int = DEFAULT_MAX_PAGES,
) -> list[Any]:
    """Collect items by following ``Link: <url>; rel="next"`` headers.

    ``params`` apply to the first request only; next links already carry
    the query string the provider wants.

    Args:
        send: Sends one GET for a URL and returns the raw response
        url: Absolute URL of the first page
        params: Query parameters for the first page
        max_pages: Maximum number of requests

    Returns:
        All items in page order
    """
    items: list[Any] = []
    next_url: str | None = url
    query: dict[str, str] | None = dict(params) if params else None

    for _ in range(max_pages):
        if next_url is None:
            break
        response = await send(next_url, query)
        query = None

        body = parse_body(response)
        if not isinstance(body, list) or not body:
            break
        items.extend(body)

        next_url = parse_next_link(response, next_url)
    else:
        if next_url is not None:
            logger.warning("Stopped link pagination at max_pages=%d", max_pages)

    return items
