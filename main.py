from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import traceback
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware

from config import settings
from errors import AppError, Unauthorized

# Import logging
from logging_config import logger, log_request_info, log_response_info

# Import routers
from routers import auth, requests, users, notifications
from database.db import init_db

# Create FastAPI app
app = FastAPI(
    title=settings.project_name,
    description="""
    # Waste Management Request Tracker API

    Campus waste-management service requests: users submit requests, administrators
    triage them and move them through their lifecycle, and both sides get notified.

    ## Features

    - **Accounts**: Self-service registration, profile and password changes
    - **Service Requests**: Submit requests and follow their status
      (`pending`, `in-progress`, `completed`, `rejected`)
    - **Triage**: Admins update status and delete requests
    - **Notifications**: Per-user messages for submissions and status changes
    - **User Management**: Admins create, edit and remove accounts

    ## User Roles

    - **User**: Can submit requests and view their own requests and notifications
    - **Admin**: Full access to all requests and users

    ## Authentication

    All endpoints (except registration and login) require a bearer token:

    ```
    Authorization: Bearer your_access_token
    ```

    Get one from `/auth/login` with your email (as `username`) and password.

    Every response is a JSON envelope with a `success` flag and, where relevant, a `message`.
    """,
    version=settings.api_version,
    openapi_tags=[
        {
            "name": "Authentication",
            "description": "Registration, login, own profile and password"
        },
        {
            "name": "Requests",
            "description": "Waste-management service requests and their status workflow"
        },
        {
            "name": "Users",
            "description": "Account management (admin only)"
        },
        {
            "name": "Notifications",
            "description": "Operations related to user notifications"
        },
        {
            "name": "Root",
            "description": "Root endpoint for the API"
        }
    ]
)

# Logging middleware
class LoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        log_request_info(request)
        try:
            response = await call_next(request)
            log_response_info(response)
            return response
        except Exception as e:
            logger.error(f"Request failed: {str(e)}")
            logger.error(traceback.format_exc())
            raise

# Add logging middleware
app.add_middleware(LoggingMiddleware)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(auth.router, prefix="/auth", tags=["Authentication"])
app.include_router(requests.router, prefix="/requests", tags=["Requests"])
app.include_router(users.router, prefix="/users", tags=["Users"])
app.include_router(notifications.router, prefix="/notifications", tags=["Notifications"])

# Root endpoint
@app.get("/", tags=["Root"])
async def root():
    logger.info("Root endpoint accessed")
    return {"success": True, "message": "Welcome to the Waste Management Request Tracker API"}

# Expected failures raised by the services
@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, Unauthorized) else None
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "message": exc.message},
        headers=headers,
    )

# Malformed bodies and query parameters
@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    message = "Invalid input"
    if errors:
        first = errors[0]
        field = ".".join(str(part) for part in first.get("loc", ()) if part not in ("body", "query", "path"))
        message = f"{field}: {first.get('msg')}" if field else first.get("msg", message)
    logger.warning(f"Validation failed for {request.method} {request.url.path}: {message}")
    return JSONResponse(status_code=400, content={"success": False, "message": message})

# Routing errors (unknown path, wrong method)
@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "message": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )

# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled exception: {str(exc)}")
    logger.error(traceback.format_exc())
    return JSONResponse(
        status_code=500,
        content={"success": False, "message": "An unexpected error occurred"}
    )

# Startup event to initialize database
@app.on_event("startup")
async def startup_event():
    logger.info("Starting application...")
    await init_db()
    logger.info("Application started successfully")

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)
