from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, RedirectResponse
from contextlib import asynccontextmanager
from datetime import datetime
import logging
import os

from models.register_model import RegisterUser
from models.login_model import LoginUser
from dataBase import db, ensure_indexes, get_db
from routes import admin_routes, book_routes, notification_routes, review_routes, swap_routes, user_routes
from services import user_directory
from services.exceptions import BookSwapError
from utils import ACCESS_TOKEN_EXPIRE_MINUTES, create_access_token, serialize_document

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO"),
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
)
logger = logging.getLogger(__name__)

FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:3000")


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("BookSwap API starting up...")
    await ensure_indexes(db)
    yield
    logger.info("BookSwap API shutting down...")


app = FastAPI(title="BookSwap API", version="1.0.0", lifespan=lifespan)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=[FRONTEND_URL, "http://localhost:8080"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(BookSwapError)
async def bookswap_exception_handler(_: Request, exc: BookSwapError):
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "message": str(exc), "error": type(exc).__name__},
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(_: Request, exc: HTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "message": exc.detail},
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content={"success": False, "message": "Internal server error"},
    )


app.include_router(user_routes)
app.include_router(book_routes)
app.include_router(swap_routes)
app.include_router(review_routes)
app.include_router(notification_routes)
app.include_router(admin_routes)


@app.get("/")
def root():
    return RedirectResponse(url="/docs")


@app.get("/health")
async def health():
    return {"status": "OK", "message": "BookSwap API is running", "timestamp": datetime.utcnow()}


# Authentication Routes
@app.post("/register", status_code=201)
async def register_user(user: RegisterUser, database=Depends(get_db)):
    created_user = await user_directory.register_user(database, user.dict())
    return {"message": "Registration successful", "user": serialize_document(created_user)}


@app.post("/login")
async def login_user(user: LoginUser, database=Depends(get_db)):
    existing_user = await user_directory.authenticate_credentials(database, user.email, user.password)
    if not existing_user:
        raise HTTPException(status_code=401, detail="Invalid email or password")
    if not existing_user.get("isActive", True):
        raise HTTPException(status_code=401, detail="Account is deactivated")
    if existing_user.get("isBlocked", False):
        raise HTTPException(status_code=403, detail="Account is blocked")

    token_data = {
        "user_id": str(existing_user["_id"]),
        "email": existing_user["email"],
        "role": existing_user.get("role", "user"),
    }
    access_token = create_access_token(data=token_data)

    return {
        "message": "Login successful",
        "access_token": access_token,
        "token_type": "bearer",
        "user": serialize_document(existing_user),
        "expires_in": ACCESS_TOKEN_EXPIRE_MINUTES * 60,
    }
