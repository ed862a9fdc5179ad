import logging
import os
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import RedirectResponse
from pymongo.database import Database

import admin
import auth
import medicines
import notifications
import orders
import pharmacies
import users
from database import db, ensure_indexes, get_db
from errors import register_exception_handlers
from seed import seed_database

logger = logging.getLogger(__name__)

SEED_DATABASE = os.getenv("SEED_DATABASE", "1").lower() not in ("0", "false", "no")
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]


@asynccontextmanager
async def lifespan(app: FastAPI):
    ensure_indexes(db)
    if SEED_DATABASE:
        seed_database(db)
    logger.info("Pharmacy delivery API started, database %s", db.name)
    yield


app = FastAPI(title="Pharmacy Delivery API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

app.include_router(auth.router)
app.include_router(users.router)
app.include_router(pharmacies.router)
app.include_router(medicines.router)
app.include_router(orders.router)
app.include_router(notifications.router)
app.include_router(admin.router)


@app.get("/")
def read_root():
    return {"name": "Pharmacy Delivery API", "status": "ok"}


@app.get("/health")
def health():
    return {"ok": True}


@app.get("/test")
def test_database(database: Database = Depends(get_db)):
    info = {"backend": "running", "database": "disconnected"}
    try:
        info["collections"] = database.list_collection_names()
        info["database"] = "connected"
    except Exception as e:
        logger.warning("Database check failed: %s", e)
        info["error"] = str(e)
    return info


# Older clients still open order details through this path.
@app.get("/api/admin/requests/{order_id}")
def legacy_admin_request(order_id: str):
    return RedirectResponse(url=f"/api/orders/{order_id}", status_code=301)


if __name__ == "__main__":
    import uvicorn
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    port = int(os.getenv("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port)
