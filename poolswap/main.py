from typing import Dict, Type

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .api import health, pool, swap, wallet
from .config import settings
from .core.errors import (
    ConfirmationTimeout,
    InvalidAmount,
    NoWalletCapability,
    NotConnected,
    OrchestrationBusy,
    PoolSwapError,
    ReadError,
    RpcError,
    TransactionFailed,
    TransactionRejected,
    WalletAuthorizationDenied,
)
from .logging_config import setup_logging
from .middleware import RequestLoggingMiddleware

setup_logging()

# Create FastAPI app
app = FastAPI(
    title="Pool Swap API",
    description="Allowance-gated token swaps against an on-ledger liquidity pool",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(health.router, tags=["Health"])
app.include_router(wallet.router, tags=["Wallet"])
app.include_router(pool.router, tags=["Pool"])
app.include_router(swap.router, tags=["Swap"])


ERROR_STATUS: Dict[Type[PoolSwapError], int] = {
    NoWalletCapability: 503,
    WalletAuthorizationDenied: 403,
    NotConnected: 401,
    InvalidAmount: 422,
    OrchestrationBusy: 409,
    ReadError: 502,
    RpcError: 502,
    TransactionRejected: 403,
    TransactionFailed: 502,
    ConfirmationTimeout: 504,
}


@app.exception_handler(PoolSwapError)
async def poolswap_error_handler(request: Request, exc: PoolSwapError) -> JSONResponse:
    status_code = next(
        (code for error_type, code in ERROR_STATUS.items() if isinstance(exc, error_type)),
        500,
    )
    return JSONResponse(
        status_code=status_code,
        content={"error": exc.code, "detail": exc.message},
    )


@app.get("/")
async def root():
    """Root endpoint with basic info"""
    return {
        "name": "Pool Swap API",
        "version": "0.1.0",
        "pool_address": settings.pool_address,
        "token_address": settings.token_address,
        "docs": "/docs",
        "health": "/healthz"
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "poolswap.main:app",
        host=settings.host,
        port=settings.port,
        reload=True,
        log_level=settings.log_level.lower()
    )
