from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
import logging
from freightops.core.config import settings
from freightops.core.exceptions import FreightOpsError
from freightops.core.middleware import TenantAuditMiddleware
from freightops.api import health, banking, payroll, currency, subscription, hq, explanation, reports

logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

app = FastAPI(title=settings.PROJECT_NAME)

app.add_middleware(TenantAuditMiddleware)

# Include routers
app.include_router(health.router)
app.include_router(banking.router)
app.include_router(payroll.router)
app.include_router(currency.router)
app.include_router(subscription.router)
app.include_router(hq.router)
app.include_router(explanation.router)
app.include_router(reports.router)


@app.exception_handler(FreightOpsError)
async def freightops_error_handler(request: Request, exc: FreightOpsError):
    logger.warning(f"{request.method} {request.url.path} failed ({exc.status_code}): {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
