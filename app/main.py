import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from app.models.database import create_db_and_tables
from app.routers import (
    pricing,
    products,
    stock,
    warehouses,
)
from fastapi.middleware.cors import CORSMiddleware  # CORS
from app.routers.websocket import router as websocket_router
from app.utils.getenv import get_env, get_list_env

logging.basicConfig(
    level=get_env("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)


# Crear la base de datos y las tablas al iniciar la aplicación
@asynccontextmanager
async def lifespan(app: FastAPI):
    create_db_and_tables()
    yield


app = FastAPI(lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_list_env("CORS_ORIGINS", ["http://localhost:5173"]),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Incluir routers
app.include_router(products.router)
app.include_router(warehouses.router)
app.include_router(stock.router)
app.include_router(pricing.router)
# Websocket
app.include_router(websocket_router)


@app.get("/")
def read_root():
    return {"message": "API funcionando correctamente"}
