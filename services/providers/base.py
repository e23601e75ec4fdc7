# -*- coding: utf-8 -*-
"""
Classe base para todos os providers bancários.

Implementa o que é comum a todos os bancos (envelope de resposta, tratamento de
erro, logs, rate limit, normalização de valores e datas e a requisição HTTP
autenticada). Cada banco estende esta classe e implementa apenas a tradução do
seu formato.

Operações opcionais (PIX, QR Code, transferência, boleto, webhook) ficam
declaradas aqui: se o banco não declara a funcionalidade, a resposta é
NOT_SUPPORTED; se declara mas não implementa o hook, NOT_IMPLEMENTED. Em
nenhum dos casos há chamada de rede.
"""
import logging
import time
import uuid
from abc import ABC, abstractmethod
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from functools import wraps
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

import requests
from urllib3.exceptions import TimeoutError as Urllib3TimeoutError

from models.banking_types import (
    BankError,
    BankFeature,
    BankResponse,
    ErrorCode,
    InstitutionSettings,
    Pagination,
    PixKeyType,
    StandardBalance,
    StandardFilters,
    StandardStatementResponse,
    StandardTransaction,
    TransactionStatus,
    http_error_code,
    parse_timestamp,
    to_decimal,
)
from models.exceptions import BankApiError
from services.token_store import EnvTokenStore, TokenStore
from utils.http_client import HTTPClient
from utils.pix import detect_pix_key_type, is_valid_key_type, normalize_key_type
from utils.rate_limiter import get_shared_rate_limiter
from utils.sanitizer import mask_pix_key, sanitize_error_message, sanitize_for_log


logger = logging.getLogger(__name__)

_UNSET = object()

DEFAULT_STATUS_MAP: Dict[str, TransactionStatus] = {
    "completed": TransactionStatus.COMPLETED,
    "settled": TransactionStatus.COMPLETED,
    "pending": TransactionStatus.PENDING,
    "processing": TransactionStatus.PENDING,
    "failed": TransactionStatus.FAILED,
    "error": TransactionStatus.FAILED,
    "cancelled": TransactionStatus.CANCELLED,
    "canceled": TransactionStatus.CANCELLED,
}

# (trechos da mensagem do backend, código padronizado, mensagem para o usuário)
API_ERROR_PATTERNS: List[Tuple[Tuple[str, ...], ErrorCode, str]] = [
    (("saldo insuficiente", "insufficient"),
     ErrorCode.INSUFFICIENT_FUNDS, "Saldo insuficiente para realizar a transferência"),
    (("chave não encontrada", "chave nao encontrada", "key not found"),
     ErrorCode.INVALID_PIX_KEY, "Chave PIX não encontrada ou inválida"),
    (("dados inválidos", "dados invalidos", "invalid api request"),
     ErrorCode.INVALID_PARAMETERS, "Dados fornecidos são inválidos"),
]


def classify_backend_message(*messages: Optional[str]) -> Optional[Tuple[ErrorCode, str]]:
    """Procura nas mensagens do backend um erro conhecido da taxonomia."""
    texto = " ".join(str(m) for m in messages if m).lower()
    if not texto:
        return None
    for trechos, code, mensagem in API_ERROR_PATTERNS:
        if any(t in texto for t in trechos):
            return code, mensagem
    return None


def _is_timeout(error: requests.exceptions.ConnectionError) -> bool:
    """ConnectionError do requests que embrulha um timeout do urllib3 (retries esgotados)."""
    causa = error.args[0] if error.args else None
    return isinstance(getattr(causa, "reason", None), Urllib3TimeoutError)


def bank_operation(descricao: str) -> Callable:
    """
    Decorador das operações públicas dos providers.

    Qualquer exceção vira uma BankResponse de falha; nada escapa do provider.
    """
    def decorator(func: Callable) -> Callable:
        @wraps(func)
        def wrapper(self, *args, **kwargs):
            try:
                return func(self, *args, **kwargs)
            except Exception as e:
                self.logger.error(f"Erro ao {descricao}: {e}")
                return self.handle_error(e)

        return wrapper

    return decorator


class _ProviderLogAdapter(logging.LoggerAdapter):
    """Prefixa as mensagens com o nome do banco ([BMP], [BITSO], ...)."""

    def process(self, msg, kwargs):
        return f"[{self.extra['prefix']}] {msg}", kwargs


class BaseBankProvider(ABC):
    """
    Classe base abstrata para providers bancários.

    Args:
        settings: Configuração resolvida do banco
        token_store: Origem do token JWT (default: BANKING_AUTH_TOKEN)
        http_client: Cliente HTTP (default: HTTPClient com retry)
        rate_limiter: Limitador (default: compartilhado por banco; None desativa)
    """

    default_account_id: str = "main"
    status_map: Dict[str, TransactionStatus] = DEFAULT_STATUS_MAP
    MAX_PAGINAS_BUSCA: int = 10

    def __init__(
        self,
        settings: InstitutionSettings,
        token_store: Optional[TokenStore] = None,
        http_client: Optional[HTTPClient] = None,
        rate_limiter: Any = _UNSET,
    ):
        self.provider = settings.provider
        self.settings = settings
        self.features = settings.features
        self.token_store = token_store or EnvTokenStore()
        self.http_client = http_client or HTTPClient(headers=settings.custom_headers)
        if rate_limiter is _UNSET:
            rate_limiter = get_shared_rate_limiter(self.provider.value, settings.rate_limit)
        self.rate_limiter = rate_limiter
        self.logger = _ProviderLogAdapter(logger, {"prefix": self.provider.value.upper()})

        self.logger.info(
            f"Provider inicializado ({settings.environment}, {settings.api_url}) - "
            f"features={sorted(f.value for f in self.features)}, configurado={self.is_configured()}"
        )

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.provider.value} {self.settings.environment}>"

    @property
    def display_name(self) -> str:
        return self.settings.display_name

    # ==========================================================================
    # VALIDAÇÃO
    # ==========================================================================

    def has_feature(self, feature: BankFeature) -> bool:
        return feature in self.features

    def is_configured(self) -> bool:
        """Indica se há credenciais reconhecidas (usado só para a interface)."""
        return self.settings.credentials.is_configured()

    def validate_filters(self, filters: StandardFilters) -> Optional[str]:
        """
        Valida filtros básicos.

        Returns:
            str: Mensagem de erro, ou None se os filtros são válidos
        """
        try:
            inicio = self._parse_filter_date(filters.date_from)
            fim = self._parse_filter_date(filters.date_to)
        except ValueError:
            return "Datas devem estar no formato ISO (YYYY-MM-DD)"

        if inicio and fim and inicio > fim:
            return "Data inicial não pode ser maior que data final"

        if filters.limit is not None:
            if isinstance(filters.limit, bool) or not isinstance(filters.limit, int):
                return "Limite deve ser um número inteiro"
            if filters.limit < 1 or filters.limit > 1000:
                return "Limite deve estar entre 1 e 1000"

        return None

    @staticmethod
    def _parse_filter_date(value: Any) -> Optional[date]:
        if value is None or value == "":
            return None
        if isinstance(value, datetime):
            return value.date()
        if isinstance(value, date):
            return value
        return date.fromisoformat(str(value).strip()[:10])

    # ==========================================================================
    # ENVELOPE DE RESPOSTA
    # ==========================================================================

    def generate_request_id(self) -> str:
        return f"{self.provider.value}-{int(time.time() * 1000)}-{uuid.uuid4().hex[:9]}"

    def success(self, data: Any) -> BankResponse:
        return BankResponse(
            success=True,
            provider=self.provider,
            request_id=self.generate_request_id(),
            data=data,
        )

    def failure(self, code: Union[str, ErrorCode], message: str, details: Any = None) -> BankResponse:
        code = code.value if isinstance(code, ErrorCode) else str(code)
        return BankResponse(
            success=False,
            provider=self.provider,
            request_id=self.generate_request_id(),
            error=BankError(code=code, message=message, details=sanitize_for_log(details)),
        )

    def handle_error(self, error: Exception) -> BankResponse:
        """Converte qualquer exceção em resposta de falha padronizada."""
        if isinstance(error, BankApiError):
            self.logger.error(f"Erro na API do banco: {error.code} - {error.message}")
            return self.failure(error.code, error.message, error.details)

        self.logger.error(f"Erro inesperado no provider: {type(error).__name__}: {error}")
        return self.failure(
            ErrorCode.UNKNOWN_ERROR,
            sanitize_error_message(str(error) or "Erro desconhecido"),
            {"exception": type(error).__name__},
        )

    # ==========================================================================
    # NORMALIZAÇÃO
    # ==========================================================================

    def normalize_amount(self, amount: Any) -> Decimal:
        """Converte valor do banco para reais (padrão: já vem em reais)."""
        try:
            valor = to_decimal(amount)
        except (InvalidOperation, TypeError, ValueError):
            valor = None
        if valor is not None and valor.is_finite():
            return valor
        self.logger.warning(f"Valor inválido recebido do banco: {amount!r}, usando 0")
        return Decimal("0")

    def format_date(self, value: Union[date, datetime, str, None]) -> Optional[str]:
        """Formata data para o banco (padrão: ISO-8601). None segue como None."""
        if value is None:
            return None
        if isinstance(value, (date, datetime)):
            return value.isoformat()
        return str(value)

    def map_status(self, raw_status: Any) -> TransactionStatus:
        """Mapeia status do banco; desconhecido vira PENDING."""
        if raw_status is None:
            return TransactionStatus.PENDING
        return self.status_map.get(str(raw_status).strip().lower(), TransactionStatus.PENDING)

    def build_balance(
        self,
        available: Any,
        blocked: Any,
        account_id: Optional[str],
        last_update: Any = None,
        raw: Any = None,
        currency: str = "BRL",
    ) -> StandardBalance:
        """Monta o saldo padronizado; total é sempre disponível + bloqueado."""
        disponivel = self.normalize_amount(available)
        bloqueado = self.normalize_amount(blocked)
        return StandardBalance(
            provider=self.provider,
            account_id=account_id or self.default_account_id,
            currency=currency,
            available=disponivel,
            blocked=bloqueado,
            total=disponivel + bloqueado,
            last_update=parse_timestamp(last_update),
            raw=raw,
        )

    def build_statement(
        self,
        transactions: List[StandardTransaction],
        account_id: Optional[str],
        filters: Optional[StandardFilters] = None,
        pagination: Optional[Pagination] = None,
        raw: Any = None,
    ) -> StandardStatementResponse:
        """Aplica filtros locais e ordena do mais recente para o mais antigo."""
        if filters is not None:
            transactions = [t for t in transactions if filters.matches(t)]
        ordenadas = sorted(transactions, key=lambda t: t.date, reverse=True)
        return StandardStatementResponse(
            provider=self.provider,
            account_id=account_id or self.default_account_id,
            transactions=ordenadas,
            pagination=pagination or Pagination(),
            raw=raw,
        )

    def _fallback_id(self, kind: str) -> str:
        return f"{self.provider.value}-{kind}-{uuid.uuid4().hex[:12]}"

    @staticmethod
    def coerce_filters(filters: Union[StandardFilters, Dict[str, Any], None]) -> StandardFilters:
        if filters is None:
            return StandardFilters()
        if isinstance(filters, StandardFilters):
            return filters
        return StandardFilters(**filters)

    @staticmethod
    def amount_to_wire(amount: Any) -> float:
        return float(to_decimal(amount))

    # ==========================================================================
    # HTTP
    # ==========================================================================

    def _apply_rate_limit(self) -> None:
        if self.rate_limiter is not None:
            self.rate_limiter.acquire()

    def _build_headers(self) -> Dict[str, str]:
        """Headers comuns + customizados do banco + Bearer do token store."""
        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
            **self.settings.custom_headers,
            **self._institution_headers(),
        }
        token = self.token_store.get_token()
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    def _institution_headers(self) -> Dict[str, str]:
        """Headers extras do banco (ex: X-API-Key). Sobrescrever se necessário."""
        return {}

    def _classify_http_error(self, status_code: int, payload: Any, reason: str = "") -> Tuple[str, str]:
        """Traduz resposta não-2xx para (código, mensagem)."""
        mensagens = []
        if isinstance(payload, dict):
            mensagens = [payload.get(k) for k in ("message", "mensagem", "erro", "error")]
            mensagens = [m for m in mensagens if isinstance(m, str)]

        conhecido = classify_backend_message(*mensagens)
        if conhecido:
            code, mensagem = conhecido
            return code.value, mensagem

        mensagem = mensagens[0] if mensagens else f"HTTP {status_code}: {reason or 'Erro na API do banco'}"
        return http_error_code(status_code), sanitize_error_message(mensagem)

    def authenticated_request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        body: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """
        Única porta de saída para a rede.

        Aplica rate limit, monta headers (incluindo Bearer), respeita o timeout
        do banco e converte falhas de transporte em BankApiError classificado.

        Args:
            method: GET, POST, PUT ou DELETE
            path: Caminho relativo à URL base do banco
            params: Query string (valores None são descartados)
            body: Corpo JSON

        Returns:
            JSON decodificado da resposta ({} se vazia)

        Raises:
            BankApiError: TIMEOUT, CONNECTION_ERROR, HTTP_<status> ou código específico
        """
        self._apply_rate_limit()

        method = method.upper()
        url = f"{self.settings.api_url.rstrip('/')}{path}"
        kwargs: Dict[str, Any] = {"headers": self._build_headers()}
        if params:
            kwargs["params"] = {k: v for k, v in params.items() if v is not None}
        if body is not None:
            kwargs["json"] = body

        self.logger.info(f"{method} {path}")
        inicio = time.monotonic()

        try:
            response = self.http_client.request(method, url, timeout=self.settings.timeout, **kwargs)
        except requests.exceptions.Timeout as e:
            raise self._timeout_error(path) from e
        except requests.exceptions.ConnectionError as e:
            if _is_timeout(e):
                raise self._timeout_error(path) from e
            raise BankApiError(ErrorCode.CONNECTION_ERROR.value, "Erro de conexão com o banco") from e
        except requests.exceptions.RequestException as e:
            raise BankApiError(
                ErrorCode.UNKNOWN_ERROR.value,
                sanitize_error_message(f"Erro na requisição: {e}"),
            ) from e

        duracao_ms = int((time.monotonic() - inicio) * 1000)

        if not response.ok:
            payload = self._safe_json(response)
            code, mensagem = self._classify_http_error(response.status_code, payload, response.reason)
            self.logger.error(f"{method} {path} - HTTP {response.status_code} ({duracao_ms}ms): {code}")
            raise BankApiError(code, mensagem, details=payload, status_code=response.status_code)

        self.logger.info(f"{method} {path} - sucesso ({response.status_code}, {duracao_ms}ms)")

        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as e:
            raise BankApiError(ErrorCode.UNKNOWN_ERROR.value, "Resposta do banco não é um JSON válido") from e

    def _timeout_error(self, path: str) -> BankApiError:
        return BankApiError(
            ErrorCode.TIMEOUT.value,
            f"Timeout: requisição para {path} demorou mais de {self.settings.timeout}s",
        )

    @staticmethod
    def _safe_json(response: Any) -> Any:
        try:
            return response.json()
        except ValueError:
            return None

    def _timed_health_check(self, path: str) -> BankResponse:
        """Executa a leitura mais barata do banco e mede a latência."""
        inicio = time.monotonic()
        self.authenticated_request("GET", path)
        latency_ms = int((time.monotonic() - inicio) * 1000)
        return self.success({"status": "healthy", "latency_ms": latency_ms})

    def _find_transaction(self, transaction_id: str, account_id: Optional[str]) -> BankResponse:
        """
        Busca uma transação pelo id (ou id externo) no extrato.

        Segue o cursor de paginação até MAX_PAGINAS_BUSCA páginas de 1000
        itens. Transações além desse limite são reportadas como não encontradas.
        """
        if not transaction_id:
            return self.failure(ErrorCode.INVALID_PARAMETERS, "ID da transação é obrigatório")

        cursor = None
        for _ in range(self.MAX_PAGINAS_BUSCA):
            extrato = self.get_statement(StandardFilters(limit=1000, cursor=cursor), account_id)
            if not extrato.success:
                return extrato

            for transacao in extrato.data.transactions:
                if transaction_id in (transacao.id, transacao.external_id):
                    return self.success(transacao)

            paginacao = extrato.data.pagination
            if not paginacao or not paginacao.has_next or paginacao.cursor in (None, cursor):
                break
            cursor = paginacao.cursor

        return self.failure(
            ErrorCode.INVALID_PARAMETERS,
            f"Transação {transaction_id} não encontrada no extrato {self.settings.name}",
        )

    # ==========================================================================
    # OPERAÇÕES OBRIGATÓRIAS (CADA BANCO IMPLEMENTA)
    # ==========================================================================

    @abstractmethod
    def health_check(self) -> BankResponse:
        """Teste de conectividade; data = {'status', 'latency_ms'}."""

    @abstractmethod
    def get_balance(self, account_id: Optional[str] = None) -> BankResponse:
        """Consulta saldo; data = StandardBalance."""

    @abstractmethod
    def get_statement(
        self,
        filters: Union[StandardFilters, Dict[str, Any], None] = None,
        account_id: Optional[str] = None,
    ) -> BankResponse:
        """Consulta extrato; data = StandardStatementResponse."""

    @abstractmethod
    def get_transaction(self, transaction_id: str, account_id: Optional[str] = None) -> BankResponse:
        """Busca transação específica; data = StandardTransaction."""

    # ==========================================================================
    # OPERAÇÕES OPCIONAIS (CONTROLADAS PELAS FEATURES)
    # ==========================================================================

    def _not_supported(self, operacao: str) -> BankResponse:
        return self.failure(ErrorCode.NOT_SUPPORTED, f"{operacao} não suportado por {self.settings.name}")

    def _not_implemented(self, operacao: str) -> BankResponse:
        return self.failure(ErrorCode.NOT_IMPLEMENTED, f"{operacao} não implementado para {self.settings.name}")

    @bank_operation("listar chaves PIX")
    def get_pix_keys(self, account_id: Optional[str] = None) -> BankResponse:
        if not self.has_feature(BankFeature.PIX_KEYS):
            return self._not_supported("Listagem de chaves PIX")
        return self._get_pix_keys(account_id)

    @bank_operation("enviar PIX")
    def send_pix(
        self,
        key: str,
        amount: Any,
        description: Optional[str] = None,
        key_type: Optional[str] = None,
        account_id: Optional[str] = None,
    ) -> BankResponse:
        """
        Envia PIX.

        Valida chave, valor e tipo de chave antes de qualquer chamada de rede.
        Sem key_type, o tipo é detectado a partir da chave.
        """
        if not self.has_feature(BankFeature.PIX_SEND):
            return self._not_supported("Envio de PIX")

        if not key or not str(key).strip() or amount is None or amount == "":
            return self.failure(ErrorCode.INVALID_PARAMETERS, "Chave PIX e valor são obrigatórios")

        try:
            valor = to_decimal(amount)
        except (InvalidOperation, TypeError, ValueError):
            return self.failure(ErrorCode.INVALID_AMOUNT, f"Valor inválido: {amount}")
        if not valor.is_finite() or valor <= 0:
            return self.failure(ErrorCode.INVALID_AMOUNT, "Valor deve ser maior que zero")

        tipo = normalize_key_type(key_type) or detect_pix_key_type(key).value
        if not is_valid_key_type(tipo):
            return self.failure(ErrorCode.INVALID_KEY_TYPE, f"Tipo de chave inválido: {key_type}")

        self.logger.info(f"Enviando PIX: valor={valor}, chave={mask_pix_key(key)} ({tipo})")
        return self._send_pix(str(key).strip(), valor, description, PixKeyType(tipo), account_id)

    @bank_operation("gerar QR Code PIX")
    def generate_pix_qr(
        self,
        amount: Any,
        description: Optional[str] = None,
        account_id: Optional[str] = None,
    ) -> BankResponse:
        """Gera QR Code PIX; data = {'qr_code', 'tx_id'}."""
        if not self.has_feature(BankFeature.PIX_QR):
            return self._not_supported("QR Code PIX")
        try:
            valor = to_decimal(amount)
        except (InvalidOperation, TypeError, ValueError):
            return self.failure(ErrorCode.INVALID_AMOUNT, f"Valor inválido: {amount}")
        if not valor.is_finite() or valor <= 0:
            return self.failure(ErrorCode.INVALID_AMOUNT, "Valor deve ser maior que zero")
        return self._generate_pix_qr(valor, description, account_id)

    @bank_operation("transferir")
    def transfer(self, transfer_data: Dict[str, Any], account_id: Optional[str] = None) -> BankResponse:
        """Transferência TED/DOC (bank, branch, account, document, name, amount, description)."""
        if not self.has_feature(BankFeature.TRANSFER):
            return self._not_supported("Transferência")
        return self._transfer(transfer_data, account_id)

    @bank_operation("gerar boleto")
    def generate_boleto(self, boleto_data: Dict[str, Any], account_id: Optional[str] = None) -> BankResponse:
        """Boleto (amount, due_date, payer_document, payer_name, description)."""
        if not self.has_feature(BankFeature.BOLETO):
            return self._not_supported("Boleto")
        return self._generate_boleto(boleto_data, account_id)

    @bank_operation("configurar webhook")
    def configure_webhook(
        self,
        webhook_url: str,
        events: List[str],
        account_id: Optional[str] = None,
    ) -> BankResponse:
        if not self.has_feature(BankFeature.WEBHOOK):
            return self._not_supported("Webhook")
        return self._configure_webhook(webhook_url, events, account_id)

    # Hooks: sobrescrever nos bancos que implementam a operação

    def _get_pix_keys(self, account_id: Optional[str]) -> BankResponse:
        return self._not_implemented("Listagem de chaves PIX")

    def _send_pix(
        self,
        key: str,
        amount: Decimal,
        description: Optional[str],
        key_type: PixKeyType,
        account_id: Optional[str],
    ) -> BankResponse:
        return self._not_implemented("Envio de PIX")

    def _generate_pix_qr(self, amount: Decimal, description: Optional[str], account_id: Optional[str]) -> BankResponse:
        return self._not_implemented("QR Code PIX")

    def _transfer(self, transfer_data: Dict[str, Any], account_id: Optional[str]) -> BankResponse:
        return self._not_implemented("Transferência")

    def _generate_boleto(self, boleto_data: Dict[str, Any], account_id: Optional[str]) -> BankResponse:
        return self._not_implemented("Boleto")

    def _configure_webhook(self, webhook_url: str, events: List[str], account_id: Optional[str]) -> BankResponse:
        return self._not_implemented("Webhook")
