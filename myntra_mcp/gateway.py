import logging
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

from pydantic import ValidationError as ArgsValidationError

from .api import SellerApi
from .auth import AuthManager
from .catalog import AUTHENTICATE, STATUS, TOOLS_BY_NAME, ToolArgs, ToolSpec
from .errors import ApiError, AuthError, InternalError, MyntraError, NotAuthenticated, ValidationError
from .handlers import HANDLERS

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ToolResult:
    """Text payload plus error flag; the only thing dispatch ever returns."""

    text: str
    is_error: bool = False


def _describe(exc: ArgsValidationError) -> str:
    problems = []
    for error in exc.errors():
        field = ".".join(str(part) for part in error.get("loc", ())) or "arguments"
        problems.append(f"{field} ({error.get('msg')})")
    return "; ".join(problems)


class ToolGateway:
    """Routes tool calls through the authentication gate and argument validation to a handler."""

    def __init__(self, auth: AuthManager, api: SellerApi):
        self.auth = auth
        self.api = api

    async def dispatch(self, name: str, arguments: Optional[Mapping[str, Any]] = None) -> ToolResult:
        args: Dict[str, Any] = dict(arguments or {})
        try:
            if name == AUTHENTICATE:
                return await self._authenticate(args)
            if name == STATUS:
                return await self._status(args)
            return await self._run_tool(name, args)
        except MyntraError as exc:
            return self._failure(name, exc)
        except Exception as exc:
            logger.exception("Error in %s", name)
            return self._failure(name, InternalError(f"Error executing {name}: {exc}"))

    @staticmethod
    def _failure(name: str, exc: MyntraError) -> ToolResult:
        logger.info("Tool %s failed: %s: %s", name, exc.__class__.__name__, exc)
        return ToolResult(str(exc), is_error=True)

    @staticmethod
    def _validate(spec: ToolSpec, args: Dict[str, Any]) -> ToolArgs:
        try:
            return spec.args_model.model_validate(args)
        except ArgsValidationError as exc:
            raise ValidationError(f"Error: invalid arguments for {spec.name}: {_describe(exc)}") from exc

    async def _authenticate(self, args: Dict[str, Any]) -> ToolResult:
        if not all(args.get(key) for key in ("seller_id", "api_key", "api_secret")):
            raise ValidationError("Error: seller_id, api_key, and api_secret are required for authentication.")
        parsed = self._validate(TOOLS_BY_NAME[AUTHENTICATE], args)

        try:
            session, reused = await self.auth.authenticate(parsed.seller_id, parsed.api_key, parsed.api_secret)
        except AuthError as exc:
            return ToolResult(f"Authentication failed: {exc}", is_error=True)

        if reused:
            return ToolResult(f"Already authenticated with Myntra!\n\nSeller ID: {session.seller_id}")
        minutes = session.expires_in(self.auth.clock()) // 60
        return ToolResult(
            "Successfully authenticated with Myntra!\n\n"
            f"Seller ID: {session.seller_id}\n"
            f"Token expires in: {minutes} minutes"
        )

    async def _status(self, args: Dict[str, Any]) -> ToolResult:
        seller_id = args.get("seller_id")
        if not seller_id:
            raise ValidationError("Error: seller_id is required")
        seller_id = str(seller_id)

        if not await self.auth.is_authenticated(seller_id):
            return ToolResult("**Not connected to Myntra**\n\nRun authenticate to get started.")

        try:
            data = await self.api.call(seller_id, "GET", "/account/info")
        except (ApiError, NotAuthenticated) as exc:
            return ToolResult(f"Connected but unable to fetch details: {exc}")

        info = data if isinstance(data, dict) else {}
        return ToolResult(
            "**Myntra Seller Account Connected**\n\n"
            f"Seller ID: {seller_id}\n"
            f"Seller Name: {info.get('seller_name') or 'N/A'}\n"
            f"Status: {info.get('status') or 'Active'}\n"
            "Authenticated: Yes"
        )

    async def _run_tool(self, name: str, args: Dict[str, Any]) -> ToolResult:
        spec = TOOLS_BY_NAME.get(name)
        handler = HANDLERS.get(name)
        if spec is None or handler is None:
            raise ValidationError(f"Unknown tool: {name}")

        if not args.get("seller_id"):
            raise ValidationError("Error: seller_id is required for all Myntra operations.")
        if not await self.auth.is_authenticated(str(args["seller_id"])):
            raise NotAuthenticated()

        parsed = self._validate(spec, args)
        return ToolResult(await handler(self.api, parsed))
