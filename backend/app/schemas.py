from __future__ import annotations

from datetime import date, datetime, timezone
from enum import Enum
from typing import Annotated, Any, Dict, List, Optional
from uuid import uuid4

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


# Datas sem fuso (inclusive "YYYY-MM-DD") são interpretadas como UTC.
Timestamp = Annotated[datetime, AfterValidator(_as_utc)]


def new_id() -> str:
    """Gera um identificador único para novos registros."""
    return str(uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Role(str, Enum):
    ADMIN = "admin"
    OPERATOR = "operator"
    SALESPERSON = "salesperson"


class Priority(str, Enum):
    NORMAL = "normal"
    MEDIUM = "medium"
    URGENT = "urgent"


class OrderStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    STOPPED = "stopped"


class ClicheStatus(str, Enum):
    SENT = "sent"
    RECEIVED = "received"


class LogCategory(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    INFO = "info"


class Theme(str, Enum):
    LIGHT = "light"
    DARK = "dark"


DEFAULT_AVATAR = "from-gray-700 to-black"


class RecordModel(BaseModel):
    """Base dos registros persistidos.

    Os nomes em Python seguem snake_case; no JSON (rede, backup e banco local)
    os campos usam camelCase. Campos extras enviados por outros clientes são
    preservados.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
    )

    def to_record(self) -> Dict[str, Any]:
        """Retorna o registro no formato JSON usado para persistência."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class User(RecordModel):
    """Usuário do sistema.

    Attributes:
        id: Identificador único.
        name: Nome de exibição, usado também no login.
        role: Perfil de acesso.
        password: Senha em texto puro.
        avatar: Gradiente nomeado ou imagem embutida.
        is_custom_image: Indica se `avatar` é uma imagem enviada pelo usuário.
    """

    id: str = Field(default_factory=new_id)
    name: str
    role: Role
    password: str = ""
    avatar: str = DEFAULT_AVATAR
    is_custom_image: bool = False


class Order(RecordModel):
    """Pedido de produção exibido no quadro de pedidos.

    Attributes:
        id: Identificador único.
        oc_number: Número da ordem de compra/corte.
        client: Nome do cliente.
        description: Descrição livre.
        priority: Prioridade.
        status: Situação atual.
        due_date: Data de entrega.
        created_at: Momento da criação.
        salesperson: Nome do vendedor responsável.
        assigned_to: Id do usuário designado, se houver.
        completed_by: Id do usuário que concluiu, se houver.
        completed_at: Momento da conclusão; obrigatório quando concluído.
    """

    id: str = Field(default_factory=new_id)
    oc_number: str
    client: str
    description: str = ""
    priority: Priority = Priority.NORMAL
    status: OrderStatus = OrderStatus.PENDING
    due_date: date
    created_at: Timestamp = Field(default_factory=utcnow)
    salesperson: str = ""
    assigned_to: Optional[str] = None
    completed_by: Optional[str] = None
    completed_at: Optional[Timestamp] = None

    @model_validator(mode="after")
    def _check_completion(self) -> "Order":
        if self.status is OrderStatus.COMPLETED and self.completed_at is None:
            raise ValueError("Pedido concluído precisa de data de conclusão.")
        if self.completed_at is not None and self.completed_at < self.created_at:
            raise ValueError("Data de conclusão anterior à criação do pedido.")
        return self


class ClicheItem(RecordModel):
    """Clichê enviado ao fornecedor e recebido de volta."""

    id: str = Field(default_factory=new_id)
    description: str
    client: str
    sent_date: Timestamp = Field(default_factory=utcnow)
    status: ClicheStatus = ClicheStatus.SENT
    received_date: Optional[Timestamp] = None

    @model_validator(mode="after")
    def _check_receipt(self) -> "ClicheItem":
        received = self.status is ClicheStatus.RECEIVED
        if received != (self.received_date is not None):
            raise ValueError("Data de recebimento deve existir somente para clichês recebidos.")
        return self


class ActivityLog(RecordModel):
    """Entrada do histórico de atividades (serializada com a chave `type`)."""

    id: str = Field(default_factory=new_id)
    action: str
    details: str = ""
    user_name: str
    timestamp: Timestamp = Field(default_factory=utcnow)
    category: LogCategory = Field(default=LogCategory.INFO, alias="type")


class Snapshot(BaseModel):
    """Conjunto completo de dados devolvido por `GET /api/sync`."""

    users: List[User] = Field(default_factory=list)
    orders: List[Order] = Field(default_factory=list)
    cliches: List[ClicheItem] = Field(default_factory=list)
    logs: List[ActivityLog] = Field(default_factory=list)


class BackupFile(Snapshot):
    """Arquivo de backup completo do cache."""

    timestamp: Timestamp
    version: str


class StatusOut(BaseModel):
    """Resposta do endpoint de status do servidor."""

    status: str
    version: str
    server_time: Timestamp = Field(alias="serverTime")

    model_config = ConfigDict(populate_by_name=True)


class SuccessOut(BaseModel):
    success: bool = True


__all__ = [
    "Timestamp",
    "new_id",
    "utcnow",
    "Role",
    "Priority",
    "OrderStatus",
    "ClicheStatus",
    "LogCategory",
    "Theme",
    "DEFAULT_AVATAR",
    "RecordModel",
    "User",
    "Order",
    "ClicheItem",
    "ActivityLog",
    "Snapshot",
    "BackupFile",
    "StatusOut",
    "SuccessOut",
]
