# -*- coding: utf-8 -*-
"""
Tipos padronizados da arquitetura multi-banco.

Todo provider traduz o formato do seu banco para estas estruturas, de modo que
o restante da aplicação nunca precise conhecer o formato de cada instituição.

Contém:
- Enums: BankProvider, BankFeature, TransactionType, TransactionStatus, PixKeyType, ErrorCode
- Configuração: BankCredentials, RateLimitPolicy, InstitutionSettings
- Dados: StandardBalance, StandardTransaction, StandardStatementResponse, StandardFilters,
  PixSendResult, PixQRCode
- Envelope de resposta: BankError, BankResponse
- Resultados agregados: FanOutResult, AccountConfig, AccountResult
"""
from dataclasses import dataclass, field, fields, replace
from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, FrozenSet, Generic, List, Optional, TypeVar, Union


T = TypeVar("T")


# ==============================================================================
# ENUMS
# ==============================================================================

class BankProvider(str, Enum):
    """Identidade de cada instituição (chave usada em todos os mapas)."""
    BMP = "bmp"
    BMP_531 = "bmp-531"
    BITSO = "bitso"
    # Reservados: presentes no registry, ainda sem adapter
    BRADESCO = "bradesco"
    ITAU = "itau"
    SANTANDER = "santander"
    CAIXA = "caixa"
    BB = "bb"
    NUBANK = "nubank"
    INTER = "inter"
    C6 = "c6"

    @classmethod
    def from_string(cls, value: str) -> Optional["BankProvider"]:
        """Converte string (case-insensitive) para BankProvider, ou None."""
        if not value:
            return None
        try:
            return cls(value.strip().lower())
        except ValueError:
            return None


class BankFeature(str, Enum):
    """Funcionalidades que um banco pode declarar."""
    BALANCE = "balance"
    STATEMENT = "statement"
    PIX_SEND = "pix_send"
    PIX_RECEIVE = "pix_receive"
    PIX_KEYS = "pix_keys"
    PIX_QR = "pix_qr"
    BOLETO = "boleto"
    TRANSFER = "transfer"
    WEBHOOK = "webhook"


class TransactionType(str, Enum):
    CREDIT = "CRÉDITO"
    DEBIT = "DÉBITO"


class TransactionStatus(str, Enum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"


class PixKeyType(str, Enum):
    CPF = "CPF"
    CNPJ = "CNPJ"
    EMAIL = "EMAIL"
    PHONE = "PHONE"
    EVP = "EVP"


class ErrorCode(str, Enum):
    """
    Taxonomia fechada de códigos de erro.

    Respostas HTTP não classificadas usam o código derivado do status
    (ver http_error_code), que não faz parte deste enum.
    """
    INVALID_PARAMETERS = "INVALID_PARAMETERS"
    INVALID_FILTERS = "INVALID_FILTERS"
    INVALID_AMOUNT = "INVALID_AMOUNT"
    INVALID_KEY_TYPE = "INVALID_KEY_TYPE"
    INVALID_PIX_KEY = "INVALID_PIX_KEY"
    INSUFFICIENT_FUNDS = "INSUFFICIENT_FUNDS"
    NOT_SUPPORTED = "NOT_SUPPORTED"
    TIMEOUT = "TIMEOUT"
    CONNECTION_ERROR = "CONNECTION_ERROR"
    NOT_IMPLEMENTED = "NOT_IMPLEMENTED"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"


def http_error_code(status_code: int) -> str:
    """Código de erro para respostas não-2xx sem classificação específica."""
    return f"HTTP_{status_code}"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_decimal(value: Any) -> Decimal:
    """Converte int/float/str/Decimal para Decimal (None e vazio viram zero)."""
    if value is None or value == "":
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    return Decimal(value)


def parse_timestamp(value: Union[str, datetime, date, None]) -> datetime:
    """
    Converte timestamp ISO-8601 (ou datetime/date) para datetime com timezone.

    Valores sem timezone são tratados como UTC. Valores ausentes ou inválidos
    viram o instante atual.
    """
    if value is None or value == "":
        return utc_now()
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    else:
        texto = str(value).strip()
        if texto.endswith("Z"):
            texto = texto[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(texto)
        except ValueError:
            return utc_now()
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


# ==============================================================================
# CONFIGURAÇÃO
# ==============================================================================

@dataclass(frozen=True)
class BankCredentials:
    """
    Credenciais flexíveis por banco.

    Formatos reconhecidos: api_key + api_secret, client_id + client_secret,
    username + password, ou token.
    """
    api_key: Optional[str] = None
    api_secret: Optional[str] = None
    client_id: Optional[str] = None
    client_secret: Optional[str] = None
    username: Optional[str] = None
    password: Optional[str] = None
    token: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "BankCredentials":
        """Cria credenciais a partir de dict; chaves desconhecidas vão para extra."""
        if not data:
            return cls()
        conhecidos = {f.name for f in fields(cls)} - {"extra"}
        valores = {k: v for k, v in data.items() if k in conhecidos}
        extra = {k: v for k, v in data.items() if k not in conhecidos}
        return cls(extra=extra, **valores)

    def merged(self, override: Optional["BankCredentials"]) -> "BankCredentials":
        """
        Aplica override campo a campo (last-write-wins).

        Campos None no override não apagam o valor padrão.
        """
        if override is None:
            return self
        valores = {
            f.name: getattr(override, f.name)
            for f in fields(self)
            if f.name != "extra" and getattr(override, f.name) is not None
        }
        extra = {**self.extra, **override.extra}
        return replace(self, extra=extra, **valores)

    def is_configured(self) -> bool:
        if self.api_key and self.api_secret:
            return True
        if self.client_id and self.client_secret:
            return True
        if self.username and self.password:
            return True
        return bool(self.token)

    def __repr__(self) -> str:
        # Nunca expor segredos em repr/log
        preenchidos = [f.name for f in fields(self) if f.name != "extra" and getattr(self, f.name)]
        return f"BankCredentials(configured={preenchidos})"


@dataclass(frozen=True)
class RateLimitPolicy:
    requests_per_minute: int
    requests_per_hour: int
    burst_limit: Optional[int] = None


@dataclass(frozen=True)
class InstitutionSettings:
    """Configuração resolvida de um banco para um ambiente (imutável)."""
    provider: BankProvider
    name: str
    display_name: str
    environment: str
    api_url: str
    timeout: float
    features: FrozenSet[BankFeature]
    credentials: BankCredentials
    rate_limit: Optional[RateLimitPolicy] = None
    custom_headers: Dict[str, str] = field(default_factory=dict)


# ==============================================================================
# DADOS PADRONIZADOS
# ==============================================================================

@dataclass
class StandardBalance:
    """Saldo padronizado. Valores sempre em reais (unidade decimal)."""
    provider: BankProvider
    account_id: str
    available: Decimal
    blocked: Decimal
    total: Decimal
    last_update: datetime
    currency: str = "BRL"
    raw: Any = None


@dataclass
class Counterparty:
    name: Optional[str] = None
    document: Optional[str] = None
    bank: Optional[str] = None
    account: Optional[str] = None


@dataclass
class PixInfo:
    key: Optional[str] = None
    key_type: Optional[str] = None
    end_to_end_id: Optional[str] = None


@dataclass
class StandardTransaction:
    """
    Transação padronizada.

    O valor é sempre não-negativo; a direção é dada apenas por `type`.
    """
    provider: BankProvider
    id: str
    account_id: str
    amount: Decimal
    type: TransactionType
    status: TransactionStatus
    description: str
    date: datetime
    currency: str = "BRL"
    external_id: Optional[str] = None
    counterparty: Optional[Counterparty] = None
    pix_info: Optional[PixInfo] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
    raw: Any = None

    def __post_init__(self):
        self.amount = to_decimal(self.amount)
        if self.amount < 0:
            raise ValueError(f"Valor de transação negativo: {self.amount} (use type para a direção)")


@dataclass
class Pagination:
    cursor: Optional[Union[str, int]] = None
    has_next: bool = False
    total: Optional[int] = None


@dataclass(frozen=True)
class StatementSummary:
    total_credits: Decimal
    total_debits: Decimal
    net_amount: Decimal
    transaction_count: int

    @classmethod
    def from_transactions(cls, transactions: List[StandardTransaction]) -> "StatementSummary":
        creditos = sum(
            (t.amount for t in transactions if t.type == TransactionType.CREDIT), Decimal("0")
        )
        debitos = sum(
            (t.amount for t in transactions if t.type == TransactionType.DEBIT), Decimal("0")
        )
        return cls(
            total_credits=creditos,
            total_debits=debitos,
            net_amount=creditos - debitos,
            transaction_count=len(transactions),
        )


@dataclass
class StandardStatementResponse:
    """
    Extrato padronizado.

    `transactions` vem ordenado do mais recente para o mais antigo. O resumo é
    sempre derivado das transações, nunca informado pelo banco.
    """
    provider: BankProvider
    account_id: str
    transactions: List[StandardTransaction]
    pagination: Pagination = field(default_factory=Pagination)
    raw: Any = None

    @property
    def summary(self) -> StatementSummary:
        return StatementSummary.from_transactions(self.transactions)

    def to_legacy_format(self) -> Dict[str, Any]:
        """Converte para o formato de extrato do sistema antigo."""
        return {
            "items": [
                {
                    "id": t.id,
                    "dateTime": t.date.isoformat(),
                    "value": t.amount,
                    "type": t.type.value,
                    "document": (t.counterparty.document if t.counterparty else None) or "",
                    "client": (t.counterparty.name if t.counterparty else None) or t.description,
                    "identified": t.status == TransactionStatus.COMPLETED,
                    "code": t.metadata.get("code") or "",
                }
                for t in self.transactions
            ],
            "provider": self.provider.value,
            "hasMore": self.pagination.has_next,
            "next_cursor": self.pagination.cursor,
            "total": self.pagination.total,
        }


@dataclass
class PixSendResult:
    """Resultado de um envio PIX aceito pelo banco."""
    transaction_id: str
    status: TransactionStatus
    amount: Decimal
    key: str
    key_type: PixKeyType
    end_to_end_id: Optional[str] = None
    counterparty: Optional[Counterparty] = None
    raw: Any = None


@dataclass
class PixQRCode:
    qr_code: str
    tx_id: str
    amount: Optional[Decimal] = None
    raw: Any = None


@dataclass
class StandardFilters:
    """
    Filtros padronizados de extrato.

    date_from/date_to: datas ISO (date_from não pode ser maior que date_to)
    limit: entre 1 e 1000
    cursor: token opaco de paginação
    Os demais filtros são aplicados localmente após a tradução.
    """
    date_from: Optional[str] = None
    date_to: Optional[str] = None
    limit: Optional[int] = None
    cursor: Optional[Union[str, int]] = None
    transaction_type: Optional[TransactionType] = None
    status: Optional[TransactionStatus] = None
    min_amount: Optional[Decimal] = None
    max_amount: Optional[Decimal] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_legacy(cls, filters: Optional[Dict[str, Any]]) -> "StandardFilters":
        """Converte filtros do sistema antigo (de/ate/limit/cursor)."""
        filters = filters or {}
        return cls(
            date_from=filters.get("de"),
            date_to=filters.get("ate"),
            limit=filters.get("limit"),
            cursor=filters.get("cursor"),
        )

    def matches(self, transaction: StandardTransaction) -> bool:
        """Aplica os filtros locais (tipo, status, faixa de valor)."""
        if self.transaction_type and transaction.type != self.transaction_type:
            return False
        if self.status and transaction.status != self.status:
            return False
        if self.min_amount is not None and transaction.amount < to_decimal(self.min_amount):
            return False
        if self.max_amount is not None and transaction.amount > to_decimal(self.max_amount):
            return False
        return True


# ==============================================================================
# ENVELOPE DE RESPOSTA
# ==============================================================================

@dataclass(frozen=True)
class BankError:
    code: str
    message: str
    details: Any = None


@dataclass
class BankResponse(Generic[T]):
    """
    Envelope de toda operação pública.

    Sucesso carrega `data`; falha carrega `error`. Ambos os ramos trazem
    provider, timestamp e request_id.
    """
    success: bool
    provider: BankProvider
    request_id: str
    timestamp: datetime = field(default_factory=utc_now)
    data: Optional[T] = None
    error: Optional[BankError] = None

    @property
    def error_code(self) -> Optional[str]:
        return self.error.code if self.error else None


# ==============================================================================
# RESULTADOS AGREGADOS
# ==============================================================================

@dataclass
class FanOutResult:
    """Resultado de um participante em uma execução multi-banco."""
    provider: BankProvider
    result: Any = None
    error: Any = None

    @property
    def ok(self) -> bool:
        if self.error is not None:
            return False
        return bool(getattr(self.result, "success", self.result is not None))


@dataclass(frozen=True)
class AccountConfig:
    """Conta exibida para o usuário (id legado + instituição)."""
    id: str
    provider: BankProvider
    display_name: str
    is_active: bool


@dataclass
class AccountResult:
    account: AccountConfig
    data: Any = None
    error: Optional[str] = None
