from dotenv import (
    load_dotenv,
)  # Para cargar variables de entorno desde un archivo .env.
import os  # Para acceder a variables de entorno.
from typing import List, Optional

load_dotenv()


def get_required_env(name: str) -> str:
    value = os.getenv(name)
    if not value:
        raise Exception(f"Env var {name} is required but not found.")
    return value


def get_env(name: str, default: Optional[str] = None) -> Optional[str]:
    """Devuelve la variable de entorno o `default` si no existe o está vacía."""
    value = os.getenv(name)
    return value if value else default


def get_bool_env(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "si", "sí"}


def get_list_env(name: str, default: Optional[List[str]] = None) -> List[str]:
    """Lee una lista separada por comas (p. ej. CORS_ORIGINS)."""
    value = os.getenv(name)
    if not value:
        return list(default or [])
    return [item.strip() for item in value.split(",") if item.strip()]
