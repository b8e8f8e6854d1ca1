
import logging
from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prize_engine import config
from prize_engine.database import Base, engine
from prize_engine.models import (  # noqa: F401
    order, pending_spin, product, segment, spin_eligibility, spin_record, store_coupon, user_coupon,
)
from prize_engine.routers import checkout as checkout_router
from prize_engine.routers import coupons as coupons_router
from prize_engine.routers import segments as segments_router
from prize_engine.routers import wheel as wheel_router

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)

# Create database tables
Base.metadata.create_all(bind=engine)

app = FastAPI(
    title="Prize Wheel & Coupon Redemption API",
    description="Prize wheel spins, wheel coupons and store promo codes for the storefront cart and checkout",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

# CORS - keep permissive for demo; restrict in prod
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(wheel_router.router)
app.include_router(segments_router.router)
app.include_router(coupons_router.router)
app.include_router(checkout_router.router)


@app.get("/health")
def health():
    return {"status": "healthy"}


# Proper JSON error with correct status code
@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": {
            "status_code": exc.status_code,
            "code": getattr(exc, "code", None),
            "detail": exc.detail,
        }},
    )

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("prize_engine.main:app", host="0.0.0.0", port=8000, reload=True)
