from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import settings
from .logging_config import configure_logging
from .routers import auth, cart, catalog, consignments, health, inventory, orders, purchases, sales

configure_logging()

app = FastAPI(title=settings.APP_NAME)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router)
app.include_router(auth.router)
app.include_router(catalog.router)
app.include_router(cart.router)
app.include_router(orders.router)
app.include_router(sales.router)
app.include_router(purchases.router)
app.include_router(consignments.router)
app.include_router(inventory.router)


@app.get("/")
def root():
    return {"status": "ok"}
