"""CheckRunner for executing a manifest's checks against one connection."""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator, Mapping
from contextlib import asynccontextmanager
from typing import Any

import httpx

from integration_audit.core.context import CheckContext
from integration_audit.core.state import FileStateStorage, InMemoryStateStorage, StateStorage
from integration_audit.core.variables import resolve_variables
from integration_audit.http.executor import RetryPolicy, Sleep, TokenRefresh
from integration_audit.models.manifest import CheckDefinition, CheckVariableValues, Manifest
from integration_audit.models.result import CheckExecution, CheckStatus, RunAllResult
from integration_audit.utils.config import IntegrationAuditConfig, get_config
from integration_audit.utils.errors import CheckLogicError, CheckNotFoundError
from integration_audit.utils.logging import get_logger, get_logger_with_context

logger = get_logger("runner")


class CheckRunner:
    """Runs the checks of one manifest for one connection.

    Checks run sequentially in manifest order. Each gets a fresh
    CheckContext; an exception raised by a check is recorded as an
    ``error`` execution and never turns into a finding.

    Contexts never share a token slot. The only state carried between
    checks is the access token: once a check refreshes it, later checks
    start from the refreshed token instead of the stale one (see
    ``access_token``).

    Example:
        runner = CheckRunner(manifest, access_token=token, connection_id="conn_1")

        result = await runner.run_all()
        for execution in result.results:
            print(execution.check_id, execution.status)
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
        config: IntegrationAuditConfig | None = None,
        sleep: Sleep | None = None,
    ) -> None:
        self.manifest = manifest
        self.credentials = dict(credentials or {})
        self.variables: CheckVariableValues = dict(variables or {})
        self.connection_id = connection_id
        self.organization_id = organization_id
        self.metadata = dict(metadata or {})
        self.config = config or get_config()

        self._access_token = access_token
        self._logger = logger
        self._on_token_refresh = on_token_refresh
        self._http_client = http_client
        self._sleep = sleep
        self._retry_policy = RetryPolicy.from_config(self.config.http)
        self._state = state_storage if state_storage is not None else self._default_state_storage()

    @property
    def access_token(self) -> str | None:
        """Latest access token, including refreshes made by earlier checks."""
        return self._access_token

    def _default_state_storage(self) -> StateStorage:
        if self.config.state.backend == "file":
            return FileStateStorage(self.config.state.directory, self.connection_id)
        return InMemoryStateStorage()

    @asynccontextmanager
    async def _client_scope(self) -> AsyncIterator[httpx.AsyncClient]:
        if self._http_client is not None:
            yield self._http_client
            return

        client = httpx.AsyncClient(
            timeout=self.config.http.timeout,
            headers={"User-Agent": self.config.http.user_agent},
            follow_redirects=True,
        )
        try:
            yield client
        finally:
            await client.aclose()

    def _context_for(self, check: CheckDefinition, client: httpx.AsyncClient) -> CheckContext:
        return CheckContext(
            self.manifest,
            credentials=self.credentials,
            access_token=self._access_token,
            connection_id=self.connection_id,
            organization_id=self.organization_id,
            metadata=self.metadata,
            logger=self._logger
            or get_logger_with_context(
                "check",
                provider=self.manifest.id,
                connection_id=self.connection_id,
                check_id=check.id,
            ),
            state_storage=self._state,
            on_token_refresh=self._on_token_refresh,
            http_client=client,
            retry_policy=self._retry_policy,
            pagination=self.config.pagination,
            sleep=self._sleep,
            check_id=check.id,
        )

    async def _execute(self, check: CheckDefinition, client: httpx.AsyncClient) -> CheckExecution:
        ctx = self._context_for(check, client)
        started = time.monotonic()
        error = None

        ctx.log(f"Running check: {check.name}", {"check_id": check.id})
        try:
            ctx.variables = resolve_variables(self.manifest.variables_for(check), self.variables)
            await check.run(ctx)
        except Exception as e:
            failure = CheckLogicError(check.id, e)
            error = failure.to_audit_error()
            ctx.error(failure.message, {"exception": type(e).__name__})
            logger.debug("Check %s raised", check.id, exc_info=True)

        # Later checks reuse a token refreshed by this one.
        self._access_token = ctx.access_token

        result = ctx.get_results()
        if error is not None:
            status = CheckStatus.ERROR
        elif result.findings:
            status = CheckStatus.FAILED
        else:
            status = CheckStatus.SUCCESS

        return CheckExecution(
            check_id=check.id,
            check_name=check.name,
            status=status,
            result=result,
            error=error,
            duration_ms=int((time.monotonic() - started) * 1000),
        )

    async def run_check(self, check: CheckDefinition | str) -> CheckExecution:
        """Run a single check.

        Args:
            check: Check definition, or the id of a check in the manifest

        Returns:
            The execution with its accumulated results

        Raises:
            CheckNotFoundError: If a check id is not in the manifest
        """
        if isinstance(check, str):
            check = self._get_check(check)
        async with self._client_scope() as client:
            return await self._execute(check, client)

    async def run_all(self, check_id: str | None = None) -> RunAllResult:
        """Run every check in manifest order, or only ``check_id``.

        Raises:
            CheckNotFoundError: If ``check_id`` is not in the manifest
        """
        checks = [self._get_check(check_id)] if check_id else list(self.manifest.checks)

        executions: list[CheckExecution] = []
        async with self._client_scope() as client:
            for check in checks:
                executions.append(await self._execute(check, client))

        result = RunAllResult.from_executions(self.manifest.id, self.connection_id, executions)
        logger.info(
            "Ran %d checks for %s: %d findings, %d passing, %d errors",
            len(executions),
            self.manifest.id,
            result.total_findings,
            result.total_passing,
            len(result.errored),
        )
        return result

    def _get_check(self, check_id: str) -> CheckDefinition:
        check = self.manifest.get_check(check_id)
        if check is None:
            raise CheckNotFoundError(check_id, self.manifest.id)
        return check


async def run_all_checks(
    manifest: Manifest,
    check_id: str | None = None,
    **options: Any,
) -> RunAllResult:
    """Run a manifest's checks with a one-off CheckRunner.

    Args:
        manifest: Manifest whose checks to run
        check_id: Only run this check
        **options: Keyword arguments for CheckRunner

    Returns:
        Aggregated results in manifest order
    """
    runner = CheckRunner(manifest, **options)
    return await runner.run_all(check_id)
