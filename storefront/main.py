import logging
import os
from typing import Optional

from fastapi import APIRouter, Depends, FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import accounts, cart, catalog, config, orders, schemas
from .auth import Identity, admin_identity, current_identity, optional_identity
from .db import Base, SessionLocal, engine
from .errors import InternalError, StoreError

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

# Create tables if not existing. There is no migration tooling; schema changes need a fresh DB.
Base.metadata.create_all(bind=engine)

app = FastAPI(title="Storefront API", version="1.0.0")
router = APIRouter(prefix="/api/products")

# Dependency to get DB session per request

def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


# -------------------- Error mapping --------------------

@app.exception_handler(StoreError)
async def store_error_handler(request: Request, exc: StoreError):
    return JSONResponse(status_code=exc.status_code, content={"message": exc.message})


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    if errors:
        first = errors[0]
        field = ".".join(str(part) for part in first.get("loc", ()) if part not in ("body", "query", "path"))
        message = f"{field}: {first.get('msg')}" if field else first.get("msg")
    else:
        message = "Invalid request"
    return JSONResponse(status_code=400, content={"message": message})


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == 404:
        return JSONResponse(status_code=404, content={"message": "Route not found"})
    return JSONResponse(status_code=exc.status_code, content={"message": str(exc.detail)})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("unhandled error on %s %s", request.method, request.url.path)
    error = InternalError(str(exc))
    return JSONResponse(status_code=error.status_code, content={"message": error.message})


@app.get("/health")
async def health():
    return {"status": "ok"}


# -------------------- Auth --------------------

@router.post("/signup", response_model=schemas.SignupOut, status_code=201)
async def signup(payload: schemas.SignupRequest, db: Session = Depends(get_db)):
    user = accounts.signup(db, payload)
    return {
        "message": f"{user.role.capitalize()} signup successful. Please login to receive a token.",
        "user": user,
    }


@router.post("/login", response_model=schemas.LoginOut)
async def login(payload: schemas.LoginRequest, db: Session = Depends(get_db)):
    result = accounts.login(db, payload)
    return {"message": "Login successful", **result}


# -------------------- Admin --------------------

@router.get("/admin/users", response_model=schemas.AdminUsersOut)
async def admin_list_users(db: Session = Depends(get_db), admin: Identity = Depends(admin_identity)):
    users = accounts.list_users(db)
    return {"message": "All users retrieved successfully", "total_users": len(users), "users": users}


@router.get("/admin/users-stats", response_model=schemas.StatsOut)
async def admin_user_stats(db: Session = Depends(get_db), admin: Identity = Depends(admin_identity)):
    return {"message": "User statistics retrieved", "stats": accounts.user_stats(db)}


@router.get("/admin/users/{user_id}", response_model=schemas.AdminUserOut)
async def admin_get_user(user_id: int, db: Session = Depends(get_db), admin: Identity = Depends(admin_identity)):
    return {"message": "User retrieved successfully", "user": accounts.get_user(db, user_id)}


@router.post("/add", response_model=schemas.ProductOut, status_code=201)
async def add_product(payload: schemas.ProductCreate, db: Session = Depends(get_db), admin: Identity = Depends(admin_identity)):
    return {"message": "Product added successfully", "product": catalog.add_product(db, payload)}


@router.post("/assign", response_model=schemas.ProductOut)
async def assign_product(payload: schemas.AssignRequest, db: Session = Depends(get_db), admin: Identity = Depends(admin_identity)):
    return {"message": "Product assigned successfully", "product": catalog.assign_admin(db, payload)}


@router.put("/update/{product_id}", response_model=schemas.ProductOut)
async def update_product(product_id: int, payload: schemas.ProductUpdate, db: Session = Depends(get_db), admin: Identity = Depends(admin_identity)):
    return {"message": "Product updated successfully", "product": catalog.update_product(db, product_id, payload)}


@router.get("/admin/reviews", response_model=schemas.ReviewsOut)
async def admin_list_reviews(db: Session = Depends(get_db), admin: Identity = Depends(admin_identity)):
    reviews = catalog.list_all_reviews(db)
    return {"message": "All reviews retrieved", "total_reviews": len(reviews), "reviews": reviews}


@router.get("/orders/payment", response_model=schemas.PaymentsOut)
async def admin_list_payments(db: Session = Depends(get_db), admin: Identity = Depends(admin_identity)):
    payments = orders.list_payments(db)
    return {"message": "Payment details retrieved", "total_orders": len(payments), "payments": payments}


@router.get("/delivery-tracking", response_model=schemas.TrackingOut)
async def admin_list_tracking(db: Session = Depends(get_db), admin: Identity = Depends(admin_identity)):
    rows = orders.list_delivery_tracking(db)
    return {"message": "Delivery tracking retrieved", "total_orders": len(rows), "orders": rows}


@router.post("/delivery-tracking", response_model=schemas.OrderOut)
async def admin_update_tracking(payload: schemas.TrackingUpdate, db: Session = Depends(get_db), admin: Identity = Depends(admin_identity)):
    order = orders.update_delivery_tracking(db, payload)
    return {"message": "Delivery tracking updated successfully", "order": order}


# -------------------- Catalog --------------------

@router.get("", response_model=schemas.ProductsOut, include_in_schema=False)
@router.get("/", response_model=schemas.ProductsOut)
async def list_products(db: Session = Depends(get_db)):
    products = catalog.list_products(db)
    return {"message": "Products retrieved successfully", "count": len(products), "products": products}


# -------------------- Cart --------------------
# Identity comes from the token; userId in body/query only counts in trusted-cart mode.

def explicit_user_id(body_user_id: Optional[int], query_user_id: Optional[int]) -> Optional[int]:
    # body wins over query
    return body_user_id if body_user_id is not None else query_user_id


@router.post("/cart/add", response_model=schemas.CartOut)
async def add_to_cart(
    payload: schemas.CartAddRequest,
    user_id: Optional[int] = Query(default=None, alias="userId"),
    db: Session = Depends(get_db),
    identity: Optional[Identity] = Depends(optional_identity),
):
    uid = cart.resolve_cart_user(identity, explicit_user_id(payload.user_id, user_id))
    lines = cart.add_to_cart(db, uid, payload.product_id, payload.quantity)
    return {"message": "Product added to cart successfully", "cart": lines}


@router.delete("/cart/delete/{product_id}", response_model=schemas.CartOut)
async def remove_from_cart(
    product_id: int,
    payload: Optional[schemas.CartUserRequest] = None,
    user_id: Optional[int] = Query(default=None, alias="userId"),
    db: Session = Depends(get_db),
    identity: Optional[Identity] = Depends(optional_identity),
):
    uid = cart.resolve_cart_user(identity, explicit_user_id(payload.user_id if payload else None, user_id))
    lines = cart.remove_from_cart(db, uid, product_id)
    return {"message": "Product removed from cart successfully", "cart": lines}


@router.get("/cart", response_model=schemas.CartOut)
async def get_cart(
    payload: Optional[schemas.CartUserRequest] = None,
    user_id: Optional[int] = Query(default=None, alias="userId"),
    db: Session = Depends(get_db),
    identity: Optional[Identity] = Depends(optional_identity),
):
    uid = cart.resolve_cart_user(identity, explicit_user_id(payload.user_id if payload else None, user_id))
    return {"message": "Cart retrieved successfully", "cart": cart.get_cart(db, uid)}


# -------------------- Orders --------------------

@router.post("/orders/place", response_model=schemas.OrderOut, status_code=201)
async def place_order(payload: schemas.OrderCreate, db: Session = Depends(get_db), identity: Identity = Depends(current_identity)):
    order = orders.place_order(db, identity.id, payload)
    return {"message": "Order placed successfully", "order": order}


@router.get("/user/orders", response_model=schemas.OrdersOut)
async def list_user_orders(db: Session = Depends(get_db), identity: Identity = Depends(current_identity)):
    user_orders = orders.list_user_orders(db, identity.id)
    return {"message": "Orders retrieved successfully", "total_orders": len(user_orders), "orders": user_orders}


@router.delete("/orders/{order_id}", response_model=schemas.OrderOut)
async def cancel_order(order_id: int, db: Session = Depends(get_db), identity: Identity = Depends(current_identity)):
    cancelled = orders.cancel_order(db, order_id, identity)
    return {"message": "Order cancelled/deleted successfully", "order": cancelled}


# -------------------- Profile & reviews --------------------

@router.put("/profile/update", response_model=schemas.UserOut)
async def update_profile(payload: schemas.ProfileUpdate, db: Session = Depends(get_db), identity: Identity = Depends(current_identity)):
    user = accounts.update_profile(db, identity.id, payload)
    return {"message": "Profile updated successfully", "user": user}


@router.post("/{product_id}/reviews", response_model=schemas.ProductOut, status_code=201)
async def post_review(product_id: int, payload: schemas.ReviewCreate, db: Session = Depends(get_db), identity: Identity = Depends(current_identity)):
    product = catalog.post_review(db, product_id, identity.id, payload)
    return {"message": "Review posted successfully", "product": product}


# Registered last so the fixed paths above take precedence
@router.get("/{product_id}", response_model=schemas.ProductOut)
async def get_product(product_id: int, db: Session = Depends(get_db)):
    return {"message": "Product retrieved successfully", "product": catalog.get_product(db, product_id)}


app.include_router(router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=int(os.getenv("PORT", "8000")))
