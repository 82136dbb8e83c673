from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from starlette.responses import Response

from app.core.config import settings
from app.routers import customer_payments, customers, invoices


OPENAPI_TAGS = [
    {"name": "Customers", "description": "Create and read customers and their balances."},
    {"name": "Invoices", "description": "Manage invoices, their payments and settlement."},
    {
        "name": "Customer Payments",
        "description": "Record lump-sum payments and allocate them across open invoices.",
    },
]

app = FastAPI(
    title=settings.APP_NAME,
    version=settings.version,
    description=(
        "Retail payment ledger API. "
        "Derives invoice payment status from the payment ledger and allocates "
        "customer payments to the oldest outstanding invoices first."
    ),
    openapi_tags=OPENAPI_TAGS,
    debug=settings.DEBUG,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        o.strip() for o in settings.CORS_ORIGINS.split(",") if o.strip()
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Total-Count", "Idempotency-Replayed"],
)


@app.middleware("http")
async def options_handler(request: Request, call_next):  # type: ignore[no-untyped-def]
    if request.method == "OPTIONS":
        origin = request.headers.get("origin", "*")
        return Response(
            status_code=200,
            headers={
                "Access-Control-Allow-Origin": origin,
                "Access-Control-Allow-Methods": "*",
                "Access-Control-Allow-Headers": "*",
                "Access-Control-Allow-Credentials": "true",
                "Access-Control-Max-Age": "86400",
            },
        )
    return await call_next(request)


app.include_router(customers.router, prefix="/v1/customers", tags=["Customers"])
app.include_router(invoices.router, prefix="/v1/invoices", tags=["Invoices"])
app.include_router(
    customer_payments.router,
    prefix="/v1/customer_payments",
    tags=["Customer Payments"],
)


@app.get("/")
async def root() -> dict[str, str]:
    return {
        "app": settings.APP_NAME,
        "version": settings.version,
        "domain": settings.APP_DOMAIN,
        "status": "running",
    }


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}
