"""HTTP surface of the CDP gateway."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Union

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, StrictInt, StrictStr
from starlette.exceptions import HTTPException as StarletteHTTPException

from .codec import decode
from .config import Settings
from .exceptions import GatewayError, InternalError, ValidationError
from .gateway import CdpGateway

logger = logging.getLogger(__name__)

# Amounts arrive as decimal strings; plain JSON integers are accepted too.
# Strict types keep booleans and floats from being coerced to integers.
Amount = Union[StrictInt, StrictStr]


# Data type classes
class AmountRequest(BaseModel):
    amount: Amount


class PriceRequest(BaseModel):
    price: Amount


class LiquidateRequest(BaseModel):
    user: str


class MintRequest(AmountRequest):
    to: str


def get_gateway(request: Request) -> CdpGateway:
    return request.app.state.gateway


def _tx(result) -> dict[str, str]:
    return {"tx": result.tx_hash}


def error_response(error: GatewayError) -> JSONResponse:
    return JSONResponse(status_code=error.status_code, content={"error": error.message})


async def gateway_error_handler(request: Request, exc: GatewayError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.warning(
            "%s %s failed with %s: %s %s",
            request.method,
            request.url.path,
            type(exc).__name__,
            exc.message,
            exc.details,
        )
    return error_response(exc)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    problems = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        problems.append(f"{location}: {error.get('msg')}" if location else str(error.get("msg")))
    return error_response(ValidationError("; ".join(problems) or "Invalid request"))


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"error": str(exc.detail)})


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error serving %s %s", request.method, request.url.path)
    return error_response(InternalError("Internal error"))


@asynccontextmanager
async def lifespan(app: FastAPI):
    owned = app.state.gateway is None
    if owned:
        settings = app.state.settings or Settings.from_env()
        gateway = CdpGateway.from_settings(settings)
        if settings.expected_chain_id is not None:
            try:
                await gateway.ledger.connect(settings.expected_chain_id)
            except BaseException:
                await gateway.aclose()
                raise
        app.state.gateway = gateway
    try:
        yield
    finally:
        if owned:
            await app.state.gateway.aclose()
            app.state.gateway = None


def create_app(gateway: CdpGateway | None = None, settings: Settings | None = None) -> FastAPI:
    """Build the app; without ``gateway`` one is built from ``settings`` (or the environment) at startup."""
    app = FastAPI(title="CDP Gateway", lifespan=lifespan)
    app.state.gateway = gateway
    app.state.settings = settings

    origins = list(settings.cors_origins) if settings else ["*"]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(GatewayError, gateway_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    @app.get("/price")
    async def get_price(gateway: CdpGateway = Depends(get_gateway)):
        price = await gateway.get_price()
        return {"price": decode(price)}

    @app.post("/price")
    async def set_price(data: PriceRequest, gateway: CdpGateway = Depends(get_gateway)):
        return _tx(await gateway.set_price(data.price))

    @app.get("/position/{address}")
    async def get_position(address: str, gateway: CdpGateway = Depends(get_gateway)):
        position = await gateway.get_position(address)
        return position.to_response()

    @app.post("/deposit")
    async def deposit(data: AmountRequest, gateway: CdpGateway = Depends(get_gateway)):
        return _tx(await gateway.deposit(data.amount))

    @app.post("/borrow")
    async def borrow(data: AmountRequest, gateway: CdpGateway = Depends(get_gateway)):
        return _tx(await gateway.borrow(data.amount))

    @app.post("/repay")
    async def repay(data: AmountRequest, gateway: CdpGateway = Depends(get_gateway)):
        return _tx(await gateway.repay(data.amount))

    @app.post("/withdraw")
    async def withdraw(data: AmountRequest, gateway: CdpGateway = Depends(get_gateway)):
        return _tx(await gateway.withdraw(data.amount))

    @app.post("/liquidate")
    async def liquidate(data: LiquidateRequest, gateway: CdpGateway = Depends(get_gateway)):
        return _tx(await gateway.liquidate(data.user))

    @app.post("/mint/collateral")
    async def mint_collateral(data: MintRequest, gateway: CdpGateway = Depends(get_gateway)):
        return _tx(await gateway.mint("collateral", data.to, data.amount))

    @app.post("/mint/debt")
    async def mint_debt(data: MintRequest, gateway: CdpGateway = Depends(get_gateway)):
        return _tx(await gateway.mint("debt", data.to, data.amount))

    @app.post("/approve/collateral")
    async def approve_collateral(data: AmountRequest, gateway: CdpGateway = Depends(get_gateway)):
        return _tx(await gateway.approve("collateral", data.amount))

    @app.post("/approve/debt")
    async def approve_debt(data: AmountRequest, gateway: CdpGateway = Depends(get_gateway)):
        return _tx(await gateway.approve("debt", data.amount))

    return app


app = create_app()
