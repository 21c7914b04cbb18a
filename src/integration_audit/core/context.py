"""CheckContext: the object a check uses to talk to its provider.

One context exists per (connection, check) execution. It owns the access
token slot, the result sinks and the captured logs, and it is discarded once
the runner has collected its results.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from types import TracebackType
from typing import Any, TypeVar

import httpx
from pydantic import BaseModel

from integration_audit.auth.builders import build_auth
from integration_audit.core.state import InMemoryStateStorage, StateStorage
from integration_audit.http.executor import (
    RequestExecutor,
    RequestFactory,
    RetryPolicy,
    Sleep,
    TokenRefresh,
    TokenSlot,
)
from integration_audit.http.pagination import (
    paginate_cursor,
    paginate_link_header,
    paginate_pages,
)
from integration_audit.models.manifest import CheckVariableValues, Manifest
from integration_audit.models.result import (
    CheckFindingResult,
    CheckPassingResult,
    CheckRunLog,
    CheckRunResult,
    CheckRunSummary,
    Finding,
    IntegrationFinding,
    IntegrationPassingResult,
    PassingResult,
)
from integration_audit.utils.config import PaginationConfig
from integration_audit.utils.errors import GraphQLError
from integration_audit.utils.logging import get_logger_with_context

M = TypeVar("M", bound=BaseModel)

_NO_BODY = object()


def _coerce(model: type[M], value: Any) -> M:
    if isinstance(value, model):
        return value
    if isinstance(value, BaseModel):
        value = value.model_dump()
    return model.model_validate(value)


class CheckContext:
    """Transport facade and result sink handed to a check's ``run`` routine.

    Example:
        async def branch_protection(ctx: CheckContext) -> None:
            repos = await ctx.fetch_all_pages("/user/repos")
            for repo in repos:
                if repo["private"]:
                    ctx.pass_({...})
                else:
                    ctx.fail({...})
    """

    def __init__(
        self,
        manifest: Manifest,
        *,
        credentials: Mapping[str, str] | None = None,
        access_token: str | None = None,
        variables: CheckVariableValues | None = None,
        connection_id: str = "",
        organization_id: str = "",
        metadata: Mapping[str, Any] | None = None,
        logger: logging.Logger | logging.LoggerAdapter | None = None,
        state_storage: StateStorage | None = None,
        on_token_refresh: TokenRefresh | None = None,
        http_client: httpx.AsyncClient | None = None,
        retry_policy: RetryPolicy | None = None,
        pagination: PaginationConfig | None = None,
        sleep: Sleep | None = None,
        check_id: str | None = None,
    ) -> None:
        self.manifest = manifest
        self.credentials: dict[str, str] = dict(credentials or {})
        self.variables: CheckVariableValues = dict(variables or {})
        self.connection_id = connection_id
        self.organization_id = organization_id
        self.metadata: dict[str, Any] = dict(metadata or {})
        self.check_id = check_id

        self._logger = logger or get_logger_with_context(
            "check",
            provider=manifest.id,
            connection_id=connection_id,
            check_id=check_id,
        )
        self._state = state_storage if state_storage is not None else InMemoryStateStorage()
        self._token = TokenSlot(access_token, on_token_refresh)
        self._executor = RequestExecutor(self._token, retry_policy, sleep)
        self._pagination = pagination or PaginationConfig()

        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(follow_redirects=True)

        self._findings: list[Finding] = []
        self._passing: list[PassingResult] = []
        self._logs: list[CheckRunLog] = []
        self._total_checked = 0

    async def __aenter__(self) -> "CheckContext":
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the HTTP client if this context created it."""
        if self._owns_client:
            await self._client.aclose()

    @property
    def access_token(self) -> str | None:
        """The current access token; changes after a successful refresh."""
        return self._token.value

    # ------------------------------------------------------------------
    # Logging
    # ------------------------------------------------------------------

    def _record(self, level: str, message: str, data: dict[str, Any] | None) -> None:
        self._logs.append(CheckRunLog(level=level, message=message, data=data))
        log_level = {"info": logging.INFO, "warn": logging.WARNING, "error": logging.ERROR}[level]
        self._logger.log(log_level, message, extra={"data": data} if data else None)

    def log(self, message: str, data: dict[str, Any] | None = None) -> None:
        """Log an info message into the run result and the logger."""
        self._record("info", message, data)

    def warn(self, message: str, data: dict[str, Any] | None = None) -> None:
        self._record("warn", message, data)

    def error(self, message: str, data: dict[str, Any] | None = None) -> None:
        self._record("error", message, data)

    # ------------------------------------------------------------------
    # Results
    # ------------------------------------------------------------------

    def pass_(self, result: CheckPassingResult | Mapping[str, Any]) -> None:
        """Record a resource that was verified compliant, with evidence."""
        result = _coerce(CheckPassingResult, result)
        self._total_checked += 1
        self._passing.append(PassingResult(**result.model_dump()))
        self.log(
            f"PASS: {result.title}",
            {"resource_type": result.resource_type, "resource_id": result.resource_id},
        )

    def fail(self, finding: CheckFindingResult | Mapping[str, Any]) -> None:
        """Record a non-compliant resource, with remediation."""
        finding = _coerce(CheckFindingResult, finding)
        self._total_checked += 1
        self._findings.append(Finding(**finding.model_dump()))
        self.log(
            f"FAIL: {finding.title}",
            {
                "resource_type": finding.resource_type,
                "resource_id": finding.resource_id,
                "severity": finding.severity.value,
            },
        )

    def add_finding(self, finding: IntegrationFinding | Mapping[str, Any]) -> None:
        """Record a finding given in raw-payload form."""
        finding = _coerce(IntegrationFinding, finding)
        self._total_checked += 1
        self._findings.append(
            Finding(
                title=finding.title,
                description=finding.description or "",
                resource_type=finding.resource_type,
                resource_id=finding.resource_id,
                severity=finding.severity,
                remediation=finding.remediation or "No remediation provided",
                evidence=finding.raw_payload,
            )
        )

    def add_passing_result(self, result: IntegrationPassingResult | Mapping[str, Any]) -> None:
        """Record a passing result given in raw form."""
        result = _coerce(IntegrationPassingResult, result)
        self._total_checked += 1
        self._passing.append(
            PassingResult(
                title=result.title,
                description=result.description or "",
                resource_type=result.resource_type,
                resource_id=result.resource_id,
                evidence=result.evidence or {},
            )
        )

    def get_results(self) -> CheckRunResult:
        """Snapshot of everything recorded so far."""
        return CheckRunResult(
            findings=list(self._findings),
            passing_results=list(self._passing),
            logs=list(self._logs),
            summary=CheckRunSummary(
                total_checked=self._total_checked,
                passed=len(self._passing),
                failed=len(self._findings),
            ),
        )

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    async def get_state(self, key: str) -> Any | None:
        """Get a value remembered for this connection, or None."""
        return await self._state.get(key)

    async def set_state(self, key: str, value: Any) -> None:
        """Remember a value for this connection."""
        await self._state.set(key, value)

    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------

    def _resolve_url(self, path: str, base_url: str | None = None) -> str:
        if path.startswith(("http://", "https://")):
            return path
        base = (base_url or self.manifest.base_url).rstrip("/")
        return f"{base}/{path.lstrip('/')}"

    def _request_factory(
        self,
        method: str,
        url: str,
        *,
        params: Mapping[str, str] | None = None,
        headers: Mapping[str, str] | None = None,
        body: Any = _NO_BODY,
    ) -> RequestFactory:
        async def send() -> httpx.Response:
            auth = build_auth(self.manifest.auth, self.credentials, self._token.value)
            request_headers = {**self.manifest.default_headers, **auth.headers, **(headers or {})}
            query = {**(params or {}), **auth.query_params}
            kwargs: dict[str, Any] = {}
            if body is not _NO_BODY and body is not None:
                kwargs["json"] = body
            return await self._client.request(
                method,
                url,
                params=query or None,
                headers=request_headers,
                **kwargs,
            )

        return send

    async def _json_request(
        self,
        method: str,
        path: str,
        *,
        base_url: str | None = None,
        params: Mapping[str, str] | None = None,
        headers: Mapping[str, str] | None = None,
        body: Any = _NO_BODY,
    ) -> Any:
        url = self._resolve_url(path, base_url)
        factory = self._request_factory(method, url, params=params, headers=headers, body=body)
        return await self._executor.execute(factory)

    async def fetch(
        self,
        path: str,
        *,
        base_url: str | None = None,
        headers: Mapping[str, str] | None = None,
        params: Mapping[str, str] | None = None,
    ) -> Any:
        """Authenticated GET returning parsed JSON."""
        return await self._json_request("GET", path, base_url=base_url, params=params, headers=headers)

    async def post(
        self,
        path: str,
        body: Any = None,
        *,
        base_url: str | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> Any:
        """Authenticated POST with a JSON body."""
        return await self._json_request("POST", path, base_url=base_url, headers=headers, body=body)

    async def put(
        self,
        path: str,
        body: Any = None,
        *,
        base_url: str | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> Any:
        return await self._json_request("PUT", path, base_url=base_url, headers=headers, body=body)

    async def patch(
        self,
        path: str,
        body: Any = None,
        *,
        base_url: str | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> Any:
        return await self._json_request("PATCH", path, base_url=base_url, headers=headers, body=body)

    async def delete(
        self,
        path: str,
        *,
        base_url: str | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> Any:
        return await self._json_request("DELETE", path, base_url=base_url, headers=headers)

    async def graphql(
        self,
        query: str,
        variables: Mapping[str, Any] | None = None,
        *,
        endpoint: str | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> Any:
        """Run a GraphQL query and return its ``data``.

        Raises:
            GraphQLError: If the response carries a non-empty ``errors`` array,
                even with HTTP 200
        """
        url = self._resolve_url(endpoint or "/graphql")
        payload = {"query": query, "variables": dict(variables or {})}
        body = await self._json_request("POST", url, headers=headers, body=payload)

        if not isinstance(body, dict):
            return body
        errors = body.get("errors")
        if errors:
            raise GraphQLError(errors if isinstance(errors, list) else [errors])
        return body.get("data")

    # ------------------------------------------------------------------
    # Pagination
    # ------------------------------------------------------------------

    async def fetch_all_pages(
        self,
        path: str,
        *,
        base_url: str | None = None,
        per_page: int | None = None,
        max_pages: int | None = None,
        page_param: str = "page",
        per_page_param: str = "per_page",
        params: Mapping[str, str] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> list[Any]:
        """Fetch every page of a page-number paginated endpoint."""

        async def fetch_page(query: dict[str, str]) -> Any:
            return await self.fetch(path, base_url=base_url, headers=headers, params=query)

        return await paginate_pages(
            fetch_page,
            per_page=per_page or self._pagination.per_page,
            max_pages=max_pages or self._pagination.max_pages,
            page_param=page_param,
            per_page_param=per_page_param,
            params=params,
        )

    async def fetch_with_cursor(
        self,
        path: str,
        *,
        base_url: str | None = None,
        cursor_param: str = "cursor",
        cursor_path: str = "next_cursor",
        data_path: str = "data",
        params: Mapping[str, str] | None = None,
        max_pages: int | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> list[Any]:
        """Fetch every page of a cursor paginated endpoint.

        Example:
            messages = await ctx.fetch_with_cursor(
                "/conversations.history",
                cursor_path="response_metadata.next_cursor",
                data_path="messages",
            )
        """

        async def fetch_page(query: dict[str, str]) -> Any:
            return await self.fetch(path, base_url=base_url, headers=headers, params=query)

        return await paginate_cursor(
            fetch_page,
            cursor_param=cursor_param,
            cursor_path=cursor_path,
            data_path=data_path,
            params=params,
            max_pages=max_pages or self._pagination.max_pages,
        )

    async def fetch_with_link_header(
        self,
        path: str,
        *,
        base_url: str | None = None,
        params: Mapping[str, str] | None = None,
        max_pages: int | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> list[Any]:
        """Fetch every page by following ``Link: <...>; rel="next"`` headers."""

        async def send(url: str, query: dict[str, str] | None) -> httpx.Response:
            factory = self._request_factory("GET", url, params=query, headers=headers)
            return await self._executor.send(factory)

        return await paginate_link_header(
            send,
            self._resolve_url(path, base_url),
            params=params,
            max_pages=max_pages or self._pagination.max_pages,
        )
