import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from caisse.middleware import RequestIdMiddleware
from caisse.db import Base, engine, SessionLocal
from caisse.config import settings
from caisse.errors import ValidationFailed
from caisse.models.core import Product

from caisse.routers import auth, users, products, transactions, room_rentals, expenses, stats, admin
from caisse.routers import inventory, ingredients, recipes

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
log = logging.getLogger(__name__)

DEFAULT_PRODUCTS = [
    ("Café expresso", 15),
    ("Café américain", 18),
    ("Thé à la menthe", 12),
    ("Eau minérale", 10),
    ("Jus d'orange", 20),
]

app = FastAPI(title="CoworkCaisse API", version="1.0.0")

@app.on_event("startup")
def init_db():
    Base.metadata.create_all(bind=engine)
    with SessionLocal() as db:
        if db.query(Product).count() == 0:
            for name, price in DEFAULT_PRODUCTS:
                db.add(Product(name=name, price=price, category="beverage", is_active=True))
            db.commit()
            log.info("seeded %d default products", len(DEFAULT_PRODUCTS))

@app.exception_handler(ValidationFailed)
async def validation_failed(request: Request, exc: ValidationFailed):
    log.info("rejected %s %s: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=400, content={"detail": exc.message, "field": exc.field})

# Middlewares
app.add_middleware(RequestIdMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth.router)
app.include_router(admin.router)
app.include_router(users.router)
app.include_router(products.router)
app.include_router(transactions.router)
app.include_router(room_rentals.router)
app.include_router(expenses.router)
app.include_router(stats.router)
app.include_router(inventory.router)
app.include_router(ingredients.router)
app.include_router(recipes.router)

@app.get("/healthz")
def healthz():
    return {"ok": True}
