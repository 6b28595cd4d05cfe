"""Montagem e validação dos arquivos de backup completo.

O backup é um JSON com as quatro coleções, o momento da geração e a versão
do formato. A validação é feita campo a campo; cada tipo de falha tem sua
própria exceção para que a interface possa explicar o problema ao usuário.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Sequence, Tuple, Type, Union

from pydantic import BaseModel, ValidationError

from ..schemas import ActivityLog, BackupFile, ClicheItem, Order, User, utcnow

BACKUP_VERSION = "2.0-Network"
BACKUP_PREFIX = "crs_vision_backup"

RECORD_TYPES: Dict[str, Type[BaseModel]] = {
    "users": User,
    "orders": Order,
    "cliches": ClicheItem,
    "logs": ActivityLog,
}


class BackupValidationError(ValueError):
    """Arquivo de backup inválido."""


class MalformedBackupError(BackupValidationError):
    """Conteúdo não é um objeto JSON."""


class MissingFieldError(BackupValidationError):
    def __init__(self, field: str) -> None:
        super().__init__(f"Arquivo inválido: campo obrigatório '{field}' ausente.")
        self.field = field


class InvalidFieldTypeError(BackupValidationError):
    def __init__(self, field: str, expected: str) -> None:
        super().__init__(f"Arquivo inválido: campo '{field}' deveria ser {expected}.")
        self.field = field
        self.expected = expected


@dataclass(frozen=True)
class RecordIssue:
    collection: str
    index: int
    message: str


class InvalidRecordError(BackupValidationError):
    """Um ou mais registros não passaram na validação."""

    def __init__(self, issues: Sequence[RecordIssue]) -> None:
        summary = "; ".join(f"{i.collection}[{i.index}]: {i.message}" for i in issues[:5])
        super().__init__(f"Arquivo inválido: {len(issues)} registro(s) com erro. {summary}")
        self.issues = list(issues)


def build_backup(
    users: List[User],
    orders: List[Order],
    cliches: List[ClicheItem],
    logs: List[ActivityLog],
    timestamp: datetime | None = None,
) -> BackupFile:
    return BackupFile(
        users=list(users),
        orders=list(orders),
        cliches=list(cliches),
        logs=list(logs),
        timestamp=timestamp or utcnow(),
        version=BACKUP_VERSION,
    )


def dump_backup(backup: BackupFile) -> str:
    """Serializa o backup no formato de arquivo (JSON indentado)."""

    payload = backup.model_dump(mode="json", by_alias=True, exclude_none=True)
    return json.dumps(payload, ensure_ascii=False, indent=2)


def backup_filename(timestamp: datetime) -> str:
    return f"{BACKUP_PREFIX}_{timestamp.date().isoformat()}.json"


def _validate_records(field: str, raw: List[Any]) -> Tuple[List[Any], List[RecordIssue]]:
    model = RECORD_TYPES[field]
    records: List[Any] = []
    issues: List[RecordIssue] = []
    for index, item in enumerate(raw):
        if not isinstance(item, dict):
            issues.append(RecordIssue(field, index, "registro não é um objeto"))
            continue
        try:
            records.append(model.model_validate(item))
        except ValidationError as exc:
            messages = ", ".join(
                f"{'.'.join(str(p) for p in err['loc']) or '-'}: {err['msg']}"
                for err in exc.errors()
            )
            issues.append(RecordIssue(field, index, messages))
    return records, issues


def parse_backup(content: Union[str, bytes]) -> BackupFile:
    """Valida o conteúdo de um arquivo de backup.

    `users` é obrigatório; as demais coleções são opcionais (lista vazia),
    mas se presentes precisam ser listas de registros válidos.

    Raises:
        MalformedBackupError: JSON ilegível ou que não é um objeto.
        MissingFieldError: `users` ausente.
        InvalidFieldTypeError: Coleção que não é lista ou metadado com tipo errado.
        InvalidRecordError: Registros inválidos, itemizados em `issues`.
    """

    try:
        data = json.loads(content)
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise MalformedBackupError(f"Arquivo inválido: JSON ilegível ({exc}).") from exc
    if not isinstance(data, dict):
        raise MalformedBackupError("Arquivo inválido: o conteúdo deveria ser um objeto JSON.")

    if "users" not in data or data["users"] is None:
        raise MissingFieldError("users")

    collections: Dict[str, List[Any]] = {}
    for field in RECORD_TYPES:
        raw = data.get(field)
        if raw is None:
            raw = []
        if not isinstance(raw, list):
            raise InvalidFieldTypeError(field, "uma lista")
        collections[field] = raw

    for field in ("timestamp", "version"):
        if field in data and not isinstance(data[field], str):
            raise InvalidFieldTypeError(field, "um texto")

    parsed: Dict[str, List[Any]] = {}
    issues: List[RecordIssue] = []
    for field, raw in collections.items():
        parsed[field], field_issues = _validate_records(field, raw)
        issues.extend(field_issues)
    if issues:
        raise InvalidRecordError(issues)

    try:
        return BackupFile(
            **parsed,
            timestamp=data.get("timestamp") or utcnow(),
            version=data.get("version") or BACKUP_VERSION,
        )
    except ValidationError as exc:
        raise InvalidFieldTypeError("timestamp", "uma data ISO 8601") from exc


__all__ = [
    "BACKUP_VERSION",
    "BackupValidationError",
    "MalformedBackupError",
    "MissingFieldError",
    "InvalidFieldTypeError",
    "InvalidRecordError",
    "RecordIssue",
    "build_backup",
    "dump_backup",
    "backup_filename",
    "parse_backup",
]
