import logging
import os
from contextlib import contextmanager
from typing import Any, Dict, Optional
from uuid import uuid4

from fastapi import Body, Depends, FastAPI, Header, Query, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from pymongo.errors import PyMongoError
from starlette.exceptions import HTTPException as StarletteHTTPException

import database
from auth import AuthError, auth_error_status, describe_auth_error
from catalog import CATEGORIES, CATEGORY_OPTIONS, SAMPLE_PRODUCTS, SORT_OPTIONS, ShopFilters, filter_products, find_product, present
from database import MongoProductRepository, ProductRepository
from errors import NotFound, StoreError, ValidationFailure
from products import SORTABLE_FIELDS, prepare_product, prepare_update, search_terms
from session import StorefrontSession, storefront_session
from storage import KeyValueStore, MemoryStore, MongoStore

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO"),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Fashion Storefront API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

CLIENT_COOKIE = "client_id"

# Key-value slots when no database is configured
memory_store = MemoryStore()


# Error envelope

def error_body(message: str, error: Optional[str] = None) -> Dict[str, Any]:
    body: Dict[str, Any] = {"success": False, "message": message}
    if error:
        body["error"] = error
    return body


@app.exception_handler(StoreError)
async def store_error_handler(request: Request, exc: StoreError):
    return JSONResponse(status_code=exc.status_code, content=error_body(exc.message, exc.error))


@app.exception_handler(AuthError)
async def auth_error_handler(request: Request, exc: AuthError):
    return JSONResponse(
        status_code=auth_error_status(exc.code),
        content=error_body(describe_auth_error(exc.code, "session"), exc.code),
    )


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(status_code=exc.status_code, content=error_body(str(exc.detail)))


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    detail = errors[0].get("msg") if errors else None
    return JSONResponse(status_code=400, content=error_body("Invalid request", detail))


@contextmanager
def backend_failure(message: str):
    try:
        yield
    except PyMongoError as e:
        logger.exception(message)
        raise StoreError(500, message, str(e))


# Dependencies

def get_db():
    return database.db


def get_product_repository(db=Depends(get_db)) -> ProductRepository:
    if db is None:
        raise StoreError(500, "Database not available")
    return MongoProductRepository(db["products"])


def get_store(db=Depends(get_db)) -> KeyValueStore:
    if db is None:
        return memory_store
    return MongoStore(db["storage"])


def get_session(
    request: Request,
    response: Response,
    db=Depends(get_db),
    store: KeyValueStore = Depends(get_store),
    authorization: Optional[str] = Header(default=None),
    prefers_color_scheme: Optional[str] = Header(default=None, alias="Sec-CH-Prefers-Color-Scheme"),
):
    client_id = request.cookies.get(CLIENT_COOKIE) or uuid4().hex
    response.set_cookie(CLIENT_COOKIE, client_id, httponly=True, samesite="lax")
    token = None
    if authorization and authorization.startswith("Bearer "):
        token = authorization.split(" ", 1)[1]
    users = db["users"] if db is not None else None
    revoked = db["revoked_tokens"] if db is not None else None
    with storefront_session(store, users, client_id, revoked=revoked, token=token, ambient=prefers_color_scheme) as session:
        yield session


def require_user(session: StorefrontSession) -> Dict[str, Any]:
    if not session.auth.user:
        raise StoreError(401, "Not authenticated")
    return session.auth.user


def require_admin(session: StorefrontSession) -> None:
    require_user(session)
    if not session.auth.has_admin_privileges():
        raise StoreError(403, "Admins only")


# Routes
@app.get("/")
def read_root():
    return {"message": "Fashion Storefront API"}


@app.get("/test")
def test_database(db=Depends(get_db)):
    response = {
        "backend": "✅ Running",
        "database": "❌ Not Available",
        "database_url": "✅ Set" if os.getenv("DATABASE_URL") else "❌ Not Set",
        "database_name": "✅ Set" if os.getenv("DATABASE_NAME") else "❌ Not Set",
        "connection_status": "Not Connected",
        "collections": []
    }
    try:
        if db is not None:
            response["database"] = "✅ Available"
            response["connection_status"] = "Connected"
            response["collections"] = db.list_collection_names()[:10]
            response["database"] = "✅ Connected & Working"
    except Exception as e:
        response["database"] = f"⚠️ Connected but Error: {str(e)[:80]}"
    return response


# Auth
class RegisterInput(BaseModel):
    name: str
    email: str
    password: str
    role: str = "user"
    access_key: Optional[str] = None


class LoginInput(BaseModel):
    email: str
    password: str


def auth_failure(e: AuthError, flow: str, email: str) -> StoreError:
    logger.warning("%s failed for %s: %s", flow.capitalize(), email, e.code)
    return StoreError(auth_error_status(e.code), describe_auth_error(e.code, flow), e.code)


def token_response(session: StorefrontSession, token: str) -> Dict[str, Any]:
    return {
        "success": True,
        "data": {
            "access_token": token,
            "token_type": "bearer",
            "user": session.auth.profile,
        },
    }


@app.post("/auth/register", status_code=201)
def register(payload: RegisterInput, session: StorefrontSession = Depends(get_session)):
    try:
        with backend_failure("Registration failed"):
            token = session.auth.register(
                payload.email, payload.password, payload.name,
                role=payload.role, access_key=payload.access_key,
            )
    except AuthError as e:
        raise auth_failure(e, "register", payload.email)
    return token_response(session, token)


@app.post("/auth/login")
def login(payload: LoginInput, session: StorefrontSession = Depends(get_session)):
    try:
        with backend_failure("Login failed"):
            token = session.auth.sign_in(payload.email, payload.password)
    except AuthError as e:
        raise auth_failure(e, "login", payload.email)
    return token_response(session, token)


@app.post("/auth/logout")
def logout(session: StorefrontSession = Depends(get_session)):
    with backend_failure("Logout failed"):
        session.auth.sign_out()
    return {"success": True, "message": "Signed out"}


@app.get("/auth/me")
def me(session: StorefrontSession = Depends(get_session)):
    user = require_user(session)
    return {
        "success": True,
        "data": {
            "user": user,
            "profile": session.auth.profile,
            "is_admin": session.auth.is_admin(),
            "is_moderator": session.auth.is_moderator(),
        },
    }


@app.get("/users/{uid}")
def get_user_profile(uid: str, session: StorefrontSession = Depends(get_session)):
    user = require_user(session)
    if uid != user["uid"] and not session.auth.has_admin_privileges():
        raise StoreError(403, "Admins only")
    with backend_failure("Failed to fetch user"):
        profile = session.auth.get_profile(uid)
    if not profile:
        raise NotFound("User not found")
    return {"success": True, "data": profile}


# Cart
class AddToCartInput(BaseModel):
    product_id: str
    quantity: int = 1
    size: str = ""
    color: str = ""


class UpdateCartItem(BaseModel):
    item_id: str
    quantity: int


def resolve_product(product_id: str, db) -> Optional[Dict[str, Any]]:
    if db is not None:
        with backend_failure("Failed to fetch product"):
            product = MongoProductRepository(db["products"]).get(product_id)
        if product:
            return product
    return find_product(product_id)


def cart_response(session: StorefrontSession) -> Dict[str, Any]:
    return {"success": True, "data": session.cart.as_dict()}


@app.get("/cart")
def get_cart(session: StorefrontSession = Depends(get_session)):
    require_user(session)
    return cart_response(session)


@app.post("/cart")
def add_to_cart(item: AddToCartInput, db=Depends(get_db), session: StorefrontSession = Depends(get_session)):
    require_user(session)
    product = resolve_product(item.product_id, db)
    if not product:
        raise NotFound("Product not found")
    try:
        with backend_failure("Failed to update cart"):
            session.cart.add_to_cart(product, item.quantity, item.size, item.color)
    except ValueError as e:
        raise ValidationFailure(str(e))
    return cart_response(session)


@app.patch("/cart")
def update_cart(item: UpdateCartItem, session: StorefrontSession = Depends(get_session)):
    require_user(session)
    if not session.cart.find(item.item_id):
        raise NotFound("Cart item not found")
    with backend_failure("Failed to update cart"):
        session.cart.update_quantity(item.item_id, item.quantity)
    return cart_response(session)


@app.delete("/cart/{item_id}")
def remove_from_cart(item_id: str, session: StorefrontSession = Depends(get_session)):
    require_user(session)
    if not session.cart.find(item_id):
        raise NotFound("Cart item not found")
    with backend_failure("Failed to update cart"):
        session.cart.remove_from_cart(item_id)
    return cart_response(session)


@app.delete("/cart")
def clear_cart(session: StorefrontSession = Depends(get_session)):
    require_user(session)
    with backend_failure("Failed to clear cart"):
        session.cart.clear_cart()
    return cart_response(session)


# Theme
class ThemeInput(BaseModel):
    theme: str


@app.get("/theme")
def get_theme(session: StorefrontSession = Depends(get_session)):
    return {"success": True, "data": session.theme.snapshot()}


@app.post("/theme/toggle")
def toggle_theme(session: StorefrontSession = Depends(get_session)):
    with backend_failure("Failed to save theme"):
        session.theme.toggle_theme()
    return {"success": True, "data": session.theme.snapshot()}


@app.put("/theme")
def set_theme(payload: ThemeInput, session: StorefrontSession = Depends(get_session)):
    try:
        with backend_failure("Failed to save theme"):
            session.theme.set_theme_mode(payload.theme)
    except ValueError as e:
        raise ValidationFailure(str(e))
    return {"success": True, "data": session.theme.snapshot()}


# Shop view
@app.get("/shop")
def shop(
    search: str = "",
    category: str = "all",
    min_price: float = 0,
    max_price: float = 10000,
    sort: str = "newest",
):
    filters = ShopFilters(search=search, category=category, min_price=min_price, max_price=max_price, sort=sort)
    products = filter_products(SAMPLE_PRODUCTS, filters)
    return {
        "success": True,
        "data": [present(p) for p in products],
        "count": len(products),
        "categories": CATEGORY_OPTIONS,
        "sort_options": SORT_OPTIONS,
    }


@app.get("/categories")
def list_categories():
    return {"success": True, "data": CATEGORIES}


# Products
@app.get("/api/products")
def list_products(
    category: Optional[str] = None,
    subcategory: Optional[str] = None,
    min_price: Optional[float] = None,
    max_price: Optional[float] = None,
    sort_by: str = "created_at",
    order: str = "desc",
    page: int = Query(1, ge=1),
    limit: int = Query(12, ge=1, le=100),
    search: Optional[str] = None,
    repo: ProductRepository = Depends(get_product_repository),
):
    if sort_by not in SORTABLE_FIELDS:
        raise ValidationFailure(f"Cannot sort by '{sort_by}'")
    if order not in ("asc", "desc"):
        raise ValidationFailure("Order must be 'asc' or 'desc'")
    with backend_failure("Failed to fetch products"):
        products = repo.list(
            category=category,
            subcategory=subcategory,
            min_price=min_price,
            max_price=max_price,
            search_terms=search_terms(search),
            sort_by=sort_by,
            order=order,
            page=page,
            limit=limit,
        )
    return {
        "success": True,
        "data": products,
        "pagination": {"page": page, "limit": limit, "total": len(products)},
    }


@app.get("/api/products/featured")
def featured_products(repo: ProductRepository = Depends(get_product_repository)):
    with backend_failure("Failed to fetch featured products"):
        products = repo.featured()
    return {"success": True, "data": products}


@app.get("/api/products/category/{category}")
def products_by_category(
    category: str,
    page: int = Query(1, ge=1),
    limit: int = Query(12, ge=1, le=100),
    repo: ProductRepository = Depends(get_product_repository),
):
    with backend_failure("Failed to fetch products by category"):
        products = repo.by_category(category, limit=limit)
    return {
        "success": True,
        "data": products,
        "category": category,
        "pagination": {"page": page, "limit": limit, "total": len(products)},
    }


@app.get("/api/products/{product_id}")
def get_product(product_id: str, repo: ProductRepository = Depends(get_product_repository)):
    with backend_failure("Failed to fetch product"):
        product = repo.get(product_id)
    if not product:
        raise NotFound("Product not found")
    return {"success": True, "data": product}


@app.post("/api/products", status_code=201)
def create_product(
    payload: Dict[str, Any] = Body(...),
    repo: ProductRepository = Depends(get_product_repository),
    session: StorefrontSession = Depends(get_session),
):
    require_admin(session)
    data = prepare_product(payload)
    with backend_failure("Failed to create product"):
        created = repo.create(data)
    logger.info("Product %s created by %s", created["id"], session.auth.user["email"])
    return {"success": True, "message": "Product created successfully", "data": created}


@app.put("/api/products/{product_id}")
def update_product(
    product_id: str,
    payload: Dict[str, Any] = Body(...),
    repo: ProductRepository = Depends(get_product_repository),
    session: StorefrontSession = Depends(get_session),
):
    require_admin(session)
    with backend_failure("Failed to update product"):
        existing = repo.get(product_id)
        if not existing:
            raise NotFound("Product not found")
        updated = repo.update(product_id, prepare_update(payload, existing))
    if not updated:
        raise NotFound("Product not found")
    return {"success": True, "message": "Product updated successfully", "data": updated}


@app.delete("/api/products/{product_id}")
def delete_product(
    product_id: str,
    repo: ProductRepository = Depends(get_product_repository),
    session: StorefrontSession = Depends(get_session),
):
    require_admin(session)
    with backend_failure("Failed to delete product"):
        repo.delete(product_id)
    logger.info("Product %s deleted by %s", product_id, session.auth.user["email"])
    return {"success": True, "message": "Product deleted successfully"}


if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port)
