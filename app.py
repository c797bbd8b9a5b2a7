from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from utils.logger_factory import new_logger
import os


app = FastAPI(title="Recruiter Portal Auth API")

@app.middleware("http")
async def log_request(request: Request, call_next):
    # Bodies carry login codes and session ids, so only the request line is logged
    log = new_logger("log_request")
    log.info(f"INCOMING REQUEST: {request.method} {request.url.path}")
    response = await call_next(request)
    log.info(f"RESPONSE: {request.method} {request.url.path} -> {response.status_code}")
    return response

@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    log = new_logger("request_validation_handler")
    fields = [".".join(str(part) for part in err.get("loc", ())) for err in exc.errors()]
    log.warning(f"Rejected malformed body for {request.url.path}: {fields}")
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"detail": "Invalid request body"})

allowed_origins = [o.strip() for o in os.getenv("CORS_ALLOWED_ORIGINS", "*").split(",") if o.strip()]
app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=["POST", "GET", "OPTIONS"],
    allow_headers=["*"],
)


@app.get("/")
def root():
    return {"message": "Recruiter portal auth API deployed."}

from api.portal_auth import router as portal_auth_router
from api.healthcheck import router as health_router

app.include_router(portal_auth_router, prefix="/api")
app.include_router(health_router, prefix="/api")
