"""Router control gateway.

Suspension and reinstatement of a subscriber's internet access happen by
disabling or enabling the subscriber's PPP secret on a MikroTik router. The
gateway hides the RouterOS API behind three calls and never raises for remote
failures: every call returns a result carrying success and the raw message.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import asdict, dataclass
from typing import Callable

import routeros_api
from sqlalchemy.orm import Session

from isp_billing.config import settings
from isp_billing.metrics import observe_gateway_call
from isp_billing.models.network import Router
from isp_billing.services.billing_errors import RemoteGatewayError

logger = logging.getLogger(__name__)

PPP_SECRET_PATH = "/ppp/secret"
PPP_ACTIVE_PATH = "/ppp/active"


@dataclass
class GatewayResult:
    success: bool
    message: str
    error: str | None = None

    def as_dict(self) -> dict:
        return asdict(self)


@dataclass
class AccountStatus:
    success: bool
    found: bool = False
    disabled: bool | None = None
    profile: str | None = None
    service: str | None = None
    message: str | None = None
    error: str | None = None

    def as_dict(self) -> dict:
        return asdict(self)


class RouterControlGateway(ABC):
    @abstractmethod
    def disable(self, router_name: str, account: str) -> GatewayResult:
        raise NotImplementedError

    @abstractmethod
    def enable(self, router_name: str, account: str) -> GatewayResult:
        raise NotImplementedError

    @abstractmethod
    def check_status(self, router_name: str, account: str) -> AccountStatus:
        raise NotImplementedError


def _is_disabled(secret: dict) -> bool:
    return str(secret.get("disabled", "false")).lower() in {"true", "yes"}


def _routeros_api(conn: dict) -> routeros_api.RouterOsApiPool:
    if not conn.get("host"):
        raise ValueError("RouterOS host is required")
    return routeros_api.RouterOsApiPool(
        host=conn["host"],
        username=conn.get("username") or "",
        password=conn.get("password") or "",
        port=int(conn.get("port") or settings.router_api_port),
        use_ssl=bool(conn.get("use_ssl")),
        plaintext_login=True,
    )


class MikrotikGateway(RouterControlGateway):
    """RouterOS API implementation of the router control gateway.

    Router credentials are looked up by router name in the routers table.
    Each call runs on a worker thread and is abandoned after the configured
    timeout, which counts as a failure.
    """

    def __init__(
        self,
        db: Session,
        timeout: float | None = None,
        status_timeout: float | None = None,
        pool_factory: Callable[[dict], routeros_api.RouterOsApiPool] | None = None,
    ):
        self.db = db
        self.timeout = timeout or settings.router_operation_timeout_sec
        self.status_timeout = status_timeout or settings.router_status_timeout_sec
        self.pool_factory = pool_factory or _routeros_api

    def disable(self, router_name: str, account: str) -> GatewayResult:
        return self._run_toggle("disable", router_name, account, disable=True)

    def enable(self, router_name: str, account: str) -> GatewayResult:
        return self._run_toggle("enable", router_name, account, disable=False)

    def check_status(self, router_name: str, account: str) -> AccountStatus:
        conn = self._connection(router_name)
        if conn is None:
            observe_gateway_call("check_status", False)
            return AccountStatus(
                success=False,
                message=f"Router {router_name} not found",
                error="router_not_found",
            )
        try:
            status = self._bounded(
                lambda: self._read_status(conn, account), self.status_timeout
            )
        except RemoteGatewayError as exc:
            logger.warning("Router %s status account=%s failed: %s", router_name, account, exc)
            status = AccountStatus(success=False, message=exc.message, error=exc.code)
        observe_gateway_call("check_status", status.success)
        return status

    def _connection(self, router_name: str) -> dict | None:
        # Read on the caller's thread; worker threads never touch the session.
        router = (
            self.db.query(Router)
            .filter(Router.name == router_name)
            .filter(Router.is_active.is_(True))
            .first()
        )
        if router is None:
            return None
        return {
            "host": router.ip_address,
            "username": router.username,
            "password": router.password,
            "port": router.port,
            "use_ssl": router.use_ssl,
        }

    def _run_toggle(
        self, operation: str, router_name: str, account: str, disable: bool
    ) -> GatewayResult:
        conn = self._connection(router_name)
        if conn is None:
            result = GatewayResult(
                success=False,
                message=f"Router {router_name} not found",
                error="router_not_found",
            )
        else:
            try:
                result = self._bounded(
                    lambda: self._toggle(conn, account, disable), self.timeout
                )
            except RemoteGatewayError as exc:
                result = GatewayResult(success=False, message=exc.message, error=exc.code)
        observe_gateway_call(operation, result.success)
        if result.success:
            logger.info(
                "Router %s %s account=%s: %s", router_name, operation, account, result.message
            )
        else:
            logger.warning(
                "Router %s %s account=%s failed: %s",
                router_name,
                operation,
                account,
                result.message,
            )
        return result

    @staticmethod
    def _bounded(func, timeout: float):
        executor = ThreadPoolExecutor(max_workers=1)
        future = executor.submit(func)
        try:
            return future.result(timeout=timeout)
        except FutureTimeoutError as exc:
            raise RemoteGatewayError(
                f"Router operation timed out after {timeout:g}s",
                details={"timeout": timeout},
            ) from exc
        except Exception as exc:
            raise RemoteGatewayError(str(exc) or exc.__class__.__name__) from exc
        finally:
            executor.shutdown(wait=False)

    def _toggle(self, conn: dict, account: str, disable: bool) -> GatewayResult:
        state = "disabled" if disable else "enabled"
        pool = self.pool_factory(conn)
        try:
            api = pool.get_api()
            secrets = api.get_resource(PPP_SECRET_PATH)
            matches = secrets.get(name=account)
            if not matches:
                return GatewayResult(
                    success=False,
                    message=f"PPP secret {account} not found",
                    error="secret_not_found",
                )
            secret = matches[0]
            if _is_disabled(secret) == disable:
                return GatewayResult(success=True, message=f"PPP secret {account} already {state}")
            secrets.set(id=secret["id"], disabled="yes" if disable else "no")
            if disable:
                self._drop_active_sessions(api, account)
            return GatewayResult(success=True, message=f"PPP secret {account} {state}")
        finally:
            pool.disconnect()

    @staticmethod
    def _drop_active_sessions(api, account: str) -> None:
        active = api.get_resource(PPP_ACTIVE_PATH)
        try:
            sessions = active.get(name=account)
        except Exception as exc:
            logger.warning("Failed to list active PPP sessions for %s: %s", account, exc)
            return
        for session in sessions:
            try:
                active.remove(id=session["id"])
            except Exception as exc:
                # The secret is already disabled; a lingering session drops on reconnect.
                logger.warning("Failed to remove active PPP session for %s: %s", account, exc)

    def _read_status(self, conn: dict, account: str) -> AccountStatus:
        pool = self.pool_factory(conn)
        try:
            api = pool.get_api()
            matches = api.get_resource(PPP_SECRET_PATH).get(name=account)
            if not matches:
                return AccountStatus(
                    success=True, found=False, message=f"PPP secret {account} not found"
                )
            secret = matches[0]
            return AccountStatus(
                success=True,
                found=True,
                disabled=_is_disabled(secret),
                profile=secret.get("profile"),
                service=secret.get("service"),
                message="ok",
            )
        finally:
            pool.disconnect()
