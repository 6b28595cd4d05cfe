from __future__ import annotations

import logging
import socket
from pathlib import Path
from typing import Any, Dict, List, Optional

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, PlainTextResponse, Response

from .config import config
from .schemas import ActivityLog, ClicheItem, Order, StatusOut, SuccessOut, User, utcnow
from .seed import build_bootstrap_admin, initial_network_data
from .services.network_db import NetworkDatabase

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

SERVER_VERSION = "2.0.0"

_network_db: Optional[NetworkDatabase] = None


def get_network_db() -> NetworkDatabase:
    """Dependência com o arquivo de dados compartilhado da rede."""

    global _network_db
    if _network_db is None:
        database = NetworkDatabase(
            config.network_db_file,
            initial_network_data(build_bootstrap_admin(config)),
        )
        database.load()
        _network_db = database
    return _network_db


def get_local_ip() -> Optional[str]:
    """Primeiro IPv4 da máquina que não seja de loopback."""

    try:
        with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as probe:
            # UDP não envia nada; só escolhe a interface de saída.
            probe.connect(("10.255.255.255", 1))
            address = probe.getsockname()[0]
    except OSError:
        address = None
    if address and not address.startswith("127."):
        return address

    try:
        candidates = socket.gethostbyname_ex(socket.gethostname())[2]
    except OSError:
        return None
    for candidate in candidates:
        if not candidate.startswith("127."):
            return candidate
    return None


app = FastAPI(title="CRS Vision - Servidor de Rede")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.on_event("startup")
def startup_event() -> None:
    """Carrega o arquivo de dados e mostra o endereço para os outros dispositivos."""

    provider = app.dependency_overrides.get(get_network_db, get_network_db)
    database = provider()
    address = get_local_ip() or "localhost"
    logger.info(f"Servidor CRS Vision rodando. Dados em {database.path}")
    logger.info(f"Acesse pelos outros dispositivos: http://{address}:{config.port}")


@app.get("/api/status", response_model=StatusOut)
def server_status() -> StatusOut:
    return StatusOut(status="online", version=SERVER_VERSION, server_time=utcnow())


@app.get("/api/sync")
def sync_all(db: NetworkDatabase = Depends(get_network_db)) -> Dict[str, List[Dict[str, Any]]]:
    """Retorna todas as coleções para sincronização dos clientes."""

    return db.snapshot()


@app.post("/api/users", response_model=SuccessOut)
def replace_users(users: List[User], db: NetworkDatabase = Depends(get_network_db)) -> SuccessOut:
    """Substitui a lista inteira de usuários."""

    db.replace_users([user.to_record() for user in users])
    logger.info(f"Usuários atualizados: {len(users)}")
    return SuccessOut()


@app.post("/api/orders", response_model=SuccessOut)
def save_order(order: Order, db: NetworkDatabase = Depends(get_network_db)) -> SuccessOut:
    db.upsert_order(order.to_record())
    logger.info(f"Pedido salvo: {order.oc_number} ({order.id})")
    return SuccessOut()


@app.delete("/api/orders/{order_id}", response_model=SuccessOut)
def delete_order(order_id: str, db: NetworkDatabase = Depends(get_network_db)) -> SuccessOut:
    db.delete_order(order_id)
    logger.info(f"Pedido removido: {order_id}")
    return SuccessOut()


@app.post("/api/cliches", response_model=SuccessOut)
def save_cliche(item: ClicheItem, db: NetworkDatabase = Depends(get_network_db)) -> SuccessOut:
    db.upsert_cliche(item.to_record())
    logger.info(f"Clichê salvo: {item.id}")
    return SuccessOut()


@app.post("/api/logs", response_model=SuccessOut)
def add_log(entry: ActivityLog, db: NetworkDatabase = Depends(get_network_db)) -> SuccessOut:
    """Insere a atividade no topo do histórico (máximo de 1000)."""

    db.prepend_log(entry.to_record())
    return SuccessOut()


def _resolve_asset(dist_dir: Path, full_path: str) -> Optional[Path]:
    root = dist_dir.resolve()
    candidate = (root / full_path).resolve()
    # Caminhos fora da pasta da interface nunca são servidos.
    if candidate != root and root not in candidate.parents:
        return None
    if candidate.is_file():
        return candidate
    return None


@app.get("/{full_path:path}", include_in_schema=False)
def serve_frontend(full_path: str) -> Response:
    """Serve a interface compilada; rotas desconhecidas caem no index.html."""

    dist_dir = Path(config.dist_dir)
    asset = _resolve_asset(dist_dir, full_path) if full_path else None
    if asset is not None:
        return FileResponse(asset)

    index_file = dist_dir / "index.html"
    if index_file.is_file():
        return FileResponse(index_file)
    return PlainTextResponse(
        "Servidor CRS Vision rodando. Compile a interface para acessá-la por aqui."
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=config.host, port=config.port)


__all__ = ["app", "get_network_db", "get_local_ip", "SERVER_VERSION"]
