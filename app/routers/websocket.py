import logging
from typing import Any, Dict, List
import anyio
from fastapi import APIRouter, WebSocket, WebSocketDisconnect

logger = logging.getLogger(__name__)

router = APIRouter()


class ConnectionManager:
    """Guarda las conexiones activas del canal de movimientos.
    Cada vez que alguien se conecta al WebSocket, se añade a esta lista."""

    def __init__(self):
        self.active_connections: List[WebSocket] = []

    async def connect(self, websocket: WebSocket):
        await websocket.accept()
        self.active_connections.append(websocket)

    def disconnect(self, websocket: WebSocket):
        if websocket in self.active_connections:
            self.active_connections.remove(websocket)

    async def broadcast(self, message: Dict[str, Any]):
        """Envía el evento (movimiento o alerta) a todos los clientes conectados."""
        for connection in list(self.active_connections):
            try:
                await connection.send_json(message)
            except (WebSocketDisconnect, RuntimeError):
                # Cliente caído sin cerrar la conexión
                self.disconnect(connection)


manager = ConnectionManager()


def notify(message: Dict[str, Any]) -> None:
    """Emite un evento desde una ruta síncrona.

    Las rutas síncronas corren en un hilo del pool de AnyIO, así que el
    broadcast se ejecuta en el event loop con `anyio.from_thread.run`.
    """
    if not manager.active_connections:
        return
    try:
        anyio.from_thread.run(manager.broadcast, message)
    except Exception:
        logger.warning("Error al emitir evento por WebSocket", exc_info=True)


@router.websocket("/ws/movimientos")
async def websocket_endpoint(websocket: WebSocket):
    await manager.connect(websocket)

    try:
        # Mantenemos la conexión viva hasta que el cliente se desconecte
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        manager.disconnect(websocket)
