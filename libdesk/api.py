import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import List, Optional

from fastapi import Depends, FastAPI, HTTPException, Query, Request, Security
from fastapi.responses import JSONResponse, PlainTextResponse
from fastapi.security import APIKeyHeader
from pydantic import BaseModel, Field

from libdesk import catalog_items
from libdesk.config import settings
from libdesk.lending import LendingFailure
from libdesk.library import Library, OperationResult
from libdesk.store import SQLiteLibraryStore, StorageError

logging.basicConfig(level=settings.log_level.upper())
logger = logging.getLogger(__name__)

library: Optional[Library] = None


def get_library() -> Library:
    """Library used by the endpoints; created on first use for the configured database."""
    global library
    if library is None:
        library = Library(SQLiteLibraryStore(settings.database_file, seed=settings.seed_demo_data))
    return library


@asynccontextmanager
async def lifespan(app: FastAPI):
    lib = get_library()
    if not await lib.test_connection():
        # Keep serving: reads will report the outage per request
        logger.error("Database connection failed at startup; continuing with limited features")
    yield


app = FastAPI(title=f"{settings.app_name} API", version=settings.app_version, debug=settings.debug,
              lifespan=lifespan)


@app.exception_handler(StorageError)
async def storage_error_handler(request: Request, exc: StorageError):
    logger.error(f"Storage error on {request.url.path}: {exc}")
    return JSONResponse(status_code=503, content={"detail": "Storage unavailable"})


# --- Security ---
api_key_header = APIKeyHeader(name="X-API-Key")


def get_api_key(api_key: str = Security(api_key_header)):
    """Dependency that validates the API key."""
    if api_key == settings.api_key:
        return api_key
    raise HTTPException(status_code=403, detail="Could not validate credentials")


# --- Models ---
class BookModel(BaseModel):
    id: int
    title: str
    author: str
    category: str
    stock: int


class BookCreateModel(BaseModel):
    title: str
    author: str
    category: str = "General"
    stock: int = Field(default=1, ge=0)


class BorrowModel(BaseModel):
    book_id: int
    user_id: int
    staff_id: int


class ReturnModel(BaseModel):
    book_id: int


class OperationModel(BaseModel):
    success: bool
    message: str


class LoanModel(BaseModel):
    id: int
    book_id: int
    user_id: int
    staff_id: int
    borrowed_at: str
    returned_at: Optional[str] = None
    status: str
    book_title: str
    user_name: str
    staff_name: str


class UserModel(BaseModel):
    id: int
    name: str
    address: str
    phone: str


class StaffModel(BaseModel):
    id: int
    name: str
    role: str
    phone: str


class CatalogItemModel(BaseModel):
    id: int
    kind: str
    info: str
    available: bool


FAILURE_STATUS = {
    LendingFailure.NOT_FOUND: 404,
    LendingFailure.OUT_OF_STOCK: 409,
    LendingFailure.ALREADY_RETURNED: 409,
    LendingFailure.PERSISTENCE_FAILURE: 500,
}


def _operation_response(result: OperationResult) -> OperationModel:
    if not result.success:
        raise HTTPException(status_code=FAILURE_STATUS.get(result.failure, 400), detail=result.message)
    return OperationModel(success=True, message=result.message)


# --- Endpoints ---
@app.get("/health")
async def health(lib: Library = Depends(get_library)):
    """Lightweight health check with a database ping."""
    return {
        "status": "healthy",
        "timestamp": datetime.utcnow().isoformat() + "Z",
        "db": await lib.test_connection(),
        "version": settings.app_version,
    }


@app.get("/books", response_model=List[BookModel])
async def get_books(q: Optional[str] = Query(None, description="Keyword for title, author or category"),
                    lib: Library = Depends(get_library)):
    books = await lib.search_books(q) if q else await lib.list_books()
    return [b.to_dict() for b in books]


@app.post("/books", response_model=OperationModel, dependencies=[Depends(get_api_key)])
async def add_book(payload: BookCreateModel, lib: Library = Depends(get_library)):
    result = await lib.add_book(payload.title, payload.author, payload.category, payload.stock)
    if not result.success:
        raise HTTPException(status_code=400, detail=result.message)
    return OperationModel(success=True, message=result.message)


@app.get("/loans", response_model=List[LoanModel])
async def get_active_loans(lib: Library = Depends(get_library)):
    return [d.to_dict() for d in await lib.list_active_loans()]


@app.post("/loans", response_model=OperationModel, dependencies=[Depends(get_api_key)])
async def borrow_book(payload: BorrowModel, lib: Library = Depends(get_library)):
    return _operation_response(await lib.borrow_book(payload.book_id, payload.user_id, payload.staff_id))


@app.post("/loans/{loan_id}/return", response_model=OperationModel, dependencies=[Depends(get_api_key)])
async def return_book(loan_id: int, payload: ReturnModel, lib: Library = Depends(get_library)):
    return _operation_response(await lib.return_book(loan_id, payload.book_id))


@app.get("/users", response_model=List[UserModel])
async def get_users(lib: Library = Depends(get_library)):
    return [u.to_dict() for u in await lib.list_users()]


@app.get("/staff", response_model=List[StaffModel])
async def get_staff(lib: Library = Depends(get_library)):
    return [s.to_dict() for s in await lib.list_staff()]


@app.get("/reports/{kind}")
async def get_report(kind: str, author: str = Query(settings.report_author), fmt: str = Query("json", alias="format"),
                     lib: Library = Depends(get_library)):
    try:
        report = await lib.build_report(kind, author)
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    if fmt == "text":
        return PlainTextResponse(report.render())
    return report.to_dict()


@app.get("/items", response_model=List[CatalogItemModel])
async def get_catalog_items(lib: Library = Depends(get_library)):
    return [catalog_items.to_dict(item) for item in await lib.list_catalog_items(catalog_items.SAMPLE_HOLDINGS)]
