from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from marketplace.database import Base, engine
from marketplace.exceptions import DomainException, ValidationException
from marketplace.middleware import add_request_id_and_process_time
from marketplace.models import booking_model, review_model, service_model  # noqa: F401
from marketplace.routes.booking_route import booking_router
from marketplace.routes.review_route import review_router
from marketplace.routes.service_route import service_router
from marketplace.logger import get_logger

logger = get_logger(__name__)

Base.metadata.create_all(bind=engine)
app = FastAPI(
    title="Service Marketplace Booking API",
    version="1.0.0",
    description="Booking lifecycle for a service marketplace: slot booking, role-scoped status changes and reviews.",
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.middleware("http")(add_request_id_and_process_time)


@app.exception_handler(DomainException)
async def domain_exception_handler(request: Request, exc: DomainException):
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    error = ValidationException(
        "Invalid request",
        details={"errors": [
            {"loc": list(e.get("loc", ())), "msg": e.get("msg", "")} for e in exc.errors()
        ]},
    )
    logger.warning(f"{error.code} on {request.url.path}: {error.details['errors']}")
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


@app.get("/", status_code=200)
async def home():
    return {"message": "Service Marketplace Booking API"}


app.include_router(booking_router, prefix="/api", tags=["Bookings"])
app.include_router(review_router, prefix="/api", tags=["Reviews"])
app.include_router(service_router, prefix="/api", tags=["Services"])
