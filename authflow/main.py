from fastapi import FastAPI
from fastapi import Request
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from authflow.api.routes import router
from authflow.api.admin_routes import router as admin_router
from authflow.core.flows import flow_names
from authflow.observability.logging import log
from authflow.settings import settings

app = FastAPI(title="Account Verification Workflow API")

# The storefront and admin console are served from different origins.
origins = [x.strip() for x in settings.CORS_ORIGINS.split(",") if x.strip()]
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(router)
app.include_router(admin_router)


@app.get("/health")
def health():
    return {"status": "ok"}


@app.exception_handler(Exception)
async def universal_exception_handler(request: Request, exc: Exception):
    log(event="unhandled_exception", path=request.url.path, errorType=type(exc).__name__, error=str(exc)[:300])
    return JSONResponse(
        status_code=500,
        content={"status": "error", "message": "Something went wrong. Please try again."},
    )


log(event="boot", flows=flow_names(), verifyServiceUrl=settings.VERIFY_SERVICE_URL)
