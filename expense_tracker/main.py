# expense_tracker/main.py
import logging
from contextlib import asynccontextmanager
from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from expense_tracker.config import env_path, settings
from expense_tracker.database import SessionLocal, init_db
from expense_tracker.exceptions import ExpenseTrackerError
from expense_tracker.services.categories import seed_default_categories
from expense_tracker.services.users import ensure_default_admin

load_dotenv(env_path)

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

# Routers
from expense_tracker.routes.admin import router as admin_router  # noqa: E402
from expense_tracker.routes.auth import router as auth_router  # noqa: E402
from expense_tracker.routes.categories import router as categories_router  # noqa: E402
from expense_tracker.routes.expenses import router as expenses_router  # noqa: E402
from expense_tracker.routes.logs import router as logs_router  # noqa: E402
from expense_tracker.routes.reports import router as reports_router  # noqa: E402
from expense_tracker.routes.stats import router as stats_router  # noqa: E402
from expense_tracker.routes.users import router as users_router  # noqa: E402


def bootstrap(db):
    """Seed categories into an empty table and guarantee an administrator."""
    seed_default_categories(db)
    ensure_default_admin(
        db,
        settings.DEFAULT_ADMIN_ID,
        email=settings.DEFAULT_ADMIN_EMAIL,
        first_name=settings.DEFAULT_ADMIN_FIRST_NAME,
        last_name=settings.DEFAULT_ADMIN_LAST_NAME,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    db = SessionLocal()
    try:
        bootstrap(db)
    finally:
        db.close()
    yield


app = FastAPI(title="Expense Tracker API", version="1.0.0", lifespan=lifespan)

# Receipt uploads
upload_dir = Path(settings.UPLOAD_DIR)
upload_dir.mkdir(parents=True, exist_ok=True)
app.mount("/uploads", StaticFiles(directory=str(upload_dir)), name="uploads")

origins = [
    "http://localhost:5173",
    "http://127.0.0.1:5173",
]
if settings.FRONTEND_URL and settings.FRONTEND_URL not in origins:
    origins.append(settings.FRONTEND_URL)

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# === Error responses: always {"message": ..., "errors"?: ...} ===

@app.exception_handler(ExpenseTrackerError)
async def expense_tracker_error_handler(request: Request, exc: ExpenseTrackerError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": exc.detail},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=400,
        content={"message": "Invalid data", "errors": jsonable_encoder(exc.errors())},
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"message": "Internal server error"})


# Stats first so /api/expenses/stats is not read as an id
app.include_router(auth_router)
app.include_router(users_router)
app.include_router(categories_router)
app.include_router(stats_router)
app.include_router(expenses_router)
app.include_router(reports_router)
app.include_router(admin_router)
app.include_router(logs_router)


@app.get("/api/health")
def health():
    return {"status": "ok"}
