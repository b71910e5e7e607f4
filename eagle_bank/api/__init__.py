"""
Eagle Bank API Application Factory
"""

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
import uvicorn

from ..config import get_config
from ..errors import BankingError
from ..logging_config import get_logger, setup_logging
from .accounts import router as accounts_router
from .auth import router as auth_router
from .transactions import router as transactions_router
from .users import router as users_router


STATUS_BY_KIND = {
    "not_found": 404,
    "forbidden": 403,
    "conflict": 409,
    "validation": 400,
    "unexpected": 500,
}

logger = get_logger("eagle_bank.api")


async def banking_error_handler(request: Request, exc: BankingError) -> JSONResponse:
    """Translate domain errors to HTTP responses"""
    status_code = STATUS_BY_KIND.get(exc.kind, 500)
    if status_code == 500:
        logger.error("Unexpected banking error on %s %s", request.method, request.url.path, exc_info=exc)
        return JSONResponse(status_code=500, content={"message": "An unexpected error occurred"})
    return JSONResponse(status_code=status_code, content={"message": exc.message})


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report malformed request bodies and parameters as 400 with field details"""
    errors = [
        {"field": ".".join(str(part) for part in error["loc"][1:]), "message": error["msg"]}
        for error in exc.errors()
    ]
    return JSONResponse(status_code=400, content={"message": "Validation failed", "errors": errors})


async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Never leak internal details of unexpected failures"""
    logger.error("Unexpected error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(status_code=500, content={"message": "An unexpected error occurred"})


def create_app() -> FastAPI:
    """Create and configure the FastAPI application"""
    app = FastAPI(
        title="Eagle Bank API",
        description="Users, bank accounts and transfers with exact Decimal balances",
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc"
    )

    app.add_exception_handler(BankingError, banking_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unexpected_error_handler)

    # Include routers
    app.include_router(auth_router, prefix="/v1/auth", tags=["Auth"])
    app.include_router(users_router, prefix="/v1/users", tags=["Users"])
    app.include_router(accounts_router, prefix="/v1/accounts", tags=["Accounts"])
    app.include_router(transactions_router, prefix="/v1/transactions", tags=["Transactions"])

    # Health check endpoint
    @app.get("/health")
    async def health_check():
        """Health check endpoint"""
        return {
            "status": "healthy",
            "service": "eagle_bank_api",
            "version": "1.0.0"
        }

    return app


def run_server(host: str = None, port: int = None) -> None:
    """Run the API with uvicorn using configured host and port"""
    config = get_config()
    setup_logging(config.log_level, log_format=config.log_format)
    uvicorn.run(app, host=host or config.api_host, port=port or config.api_port)


app = create_app()
