# -*- coding: utf-8 -*-
"""
Gerenciador central de providers bancários.

Mantém os providers registrados e o provider ativo (no máximo um), roteia as
operações para o ativo e executa operações em vários bancos ao mesmo tempo.

Não é singleton: a aplicação cria uma instância e a repassa para quem precisa
(ver controllers/unified_banking.py).
"""
import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Dict, Iterable, List, Optional, Union

from config.banks import DEFAULT_PROVIDERS, get_available_providers, get_bank_info, get_current_environment
from models.banking_types import (
    BankCredentials,
    BankFeature,
    BankProvider,
    BankResponse,
    FanOutResult,
    StandardFilters,
)
from models.exceptions import BankingError, NoActiveProviderError
from services.provider_factory import create_provider, is_implemented
from services.providers.base import BaseBankProvider
from utils.sanitizer import sanitize_error_message


logger = logging.getLogger(__name__)

ProviderId = Union[BankProvider, str]


def _to_provider(provider: ProviderId) -> Optional[BankProvider]:
    if isinstance(provider, BankProvider):
        return provider
    return BankProvider.from_string(provider)


class BankManager:
    """
    Registry de providers.

    Args:
        factory: Função que cria providers (default: create_provider)
        max_workers: Limite de threads nas operações multi-banco
        provider_kwargs: Argumentos repassados à factory em todo registro
            (ex: token_store, http_client)
    """

    def __init__(
        self,
        factory: Callable[..., BaseBankProvider] = create_provider,
        max_workers: Optional[int] = None,
        provider_kwargs: Optional[Dict[str, Any]] = None,
    ):
        self._factory = factory
        self._max_workers = max_workers
        self._provider_kwargs = dict(provider_kwargs or {})
        self._providers: Dict[BankProvider, BaseBankProvider] = {}
        self._active: Optional[BankProvider] = None
        self._lock = threading.RLock()

    # ==========================================================================
    # REGISTRO
    # ==========================================================================

    def register(self, provider: BaseBankProvider) -> None:
        """Registra (ou substitui) o provider da identidade."""
        with self._lock:
            self._providers[provider.provider] = provider
        logger.info(f"[BANK-MANAGER] Provider {provider.provider.value} registrado")

    def register_by_identity(
        self,
        provider: ProviderId,
        credentials: Union[BankCredentials, Dict[str, Any], None] = None,
    ) -> BaseBankProvider:
        """
        Cria o provider pela factory e registra.

        Raises:
            UnknownInstitutionError, UnknownEnvironmentError, ProviderNotImplementedError
        """
        try:
            instancia = self._factory(provider, credentials, **self._provider_kwargs)
        except BankingError as e:
            logger.error(f"[BANK-MANAGER] Erro ao registrar {provider}: {e}")
            raise
        self.register(instancia)
        return instancia

    def unregister(self, provider: ProviderId) -> bool:
        """Remove o provider; se era o ativo, fica sem provider ativo."""
        identidade = _to_provider(provider)
        with self._lock:
            removido = self._providers.pop(identidade, None) is not None
            if self._active is not None and self._active == identidade:
                self._active = None
        if removido:
            logger.info(f"[BANK-MANAGER] Provider {identidade.value} removido")
        return removido

    def get_provider(self, provider: ProviderId) -> Optional[BaseBankProvider]:
        identidade = _to_provider(provider)
        with self._lock:
            return self._providers.get(identidade)

    def get_all_providers(self) -> List[BaseBankProvider]:
        with self._lock:
            return list(self._providers.values())

    def registered_identities(self) -> List[BankProvider]:
        with self._lock:
            return list(self._providers.keys())

    def is_registered(self, provider: ProviderId) -> bool:
        return self.get_provider(provider) is not None

    # ==========================================================================
    # PROVIDER ATIVO
    # ==========================================================================

    def set_active(self, provider: ProviderId) -> bool:
        """Define o provider ativo. Retorna False se não estiver registrado."""
        identidade = _to_provider(provider)
        with self._lock:
            if identidade is None or identidade not in self._providers:
                logger.warning(f"[BANK-MANAGER] Provider {provider} não registrado, ativo mantido")
                return False
            self._active = identidade
        logger.info(f"[BANK-MANAGER] Provider ativo: {identidade.value}")
        return True

    def get_active(self) -> Optional[BaseBankProvider]:
        with self._lock:
            if self._active is None:
                return None
            return self._providers.get(self._active)

    def get_active_identity(self) -> Optional[BankProvider]:
        with self._lock:
            return self._active

    def _require_active(self) -> BaseBankProvider:
        provider = self.get_active()
        if provider is None:
            raise NoActiveProviderError()
        return provider

    def by_capability(self, feature: BankFeature) -> List[BaseBankProvider]:
        return [p for p in self.get_all_providers() if p.has_feature(feature)]

    # ==========================================================================
    # OPERAÇÕES NO PROVIDER ATIVO
    # ==========================================================================

    def get_balance(self, account_id: Optional[str] = None) -> BankResponse:
        return self._require_active().get_balance(account_id)

    def get_statement(self, filters: Optional[StandardFilters] = None, account_id: Optional[str] = None) -> BankResponse:
        return self._require_active().get_statement(filters, account_id)

    def send_pix(
        self,
        key: str,
        amount: Any,
        description: Optional[str] = None,
        key_type: Optional[str] = None,
        account_id: Optional[str] = None,
    ) -> BankResponse:
        return self._require_active().send_pix(key, amount, description, key_type, account_id)

    def get_pix_keys(self, account_id: Optional[str] = None) -> BankResponse:
        return self._require_active().get_pix_keys(account_id)

    def generate_pix_qr(self, amount: Any, description: Optional[str] = None, account_id: Optional[str] = None) -> BankResponse:
        return self._require_active().generate_pix_qr(amount, description, account_id)

    # ==========================================================================
    # OPERAÇÕES MULTI-BANCO
    # ==========================================================================

    def execute_on_many(
        self,
        providers: Iterable[ProviderId],
        operation: Callable[[BaseBankProvider], Any],
    ) -> List[FanOutResult]:
        """
        Executa a operação em vários providers ao mesmo tempo.

        A falha de um banco não interrompe os demais. O resultado segue a ordem
        da lista recebida; bancos não registrados aparecem com erro.

        Args:
            providers: Identidades dos bancos
            operation: Função que recebe o provider e retorna o resultado

        Returns:
            List[FanOutResult]: Um item por identidade recebida
        """
        identidades = list(providers)
        if not identidades:
            return []

        with self._lock:
            alvos = [(p, self._providers.get(_to_provider(p))) for p in identidades]

        def executar(item) -> FanOutResult:
            identidade, provider = item
            chave = _to_provider(identidade) or identidade
            if provider is None:
                return FanOutResult(provider=chave, error=f"Provider {getattr(chave, 'value', chave)} não registrado")
            try:
                return FanOutResult(provider=chave, result=operation(provider))
            except Exception as e:
                logger.error(f"[BANK-MANAGER] Erro em {provider.provider.value}: {e}")
                return FanOutResult(provider=chave, error=sanitize_error_message(str(e) or type(e).__name__))

        workers = self._max_workers or len(alvos)
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="bank-fanout") as executor:
            return list(executor.map(executar, alvos))

    def health_check_all(self) -> Dict[BankProvider, bool]:
        """Health check de todos os registrados: {identidade: saudável}."""
        resultados = self.execute_on_many(self.registered_identities(), lambda p: p.health_check())
        return {r.provider: r.ok for r in resultados}

    def _collect(self, resultados: List[FanOutResult]) -> List[FanOutResult]:
        """Desembrulha BankResponse: sucesso vira data, falha vira BankError."""
        coletados = []
        for r in resultados:
            if r.error is not None:
                coletados.append(r)
            elif r.result is not None and r.result.success:
                coletados.append(FanOutResult(provider=r.provider, result=r.result.data))
            else:
                coletados.append(FanOutResult(provider=r.provider, error=getattr(r.result, "error", None)))
        return coletados

    def get_balance_from_all(self) -> List[FanOutResult]:
        return self._collect(self.execute_on_many(self.registered_identities(), lambda p: p.get_balance()))

    def get_statement_from_all(self, filters: Optional[StandardFilters] = None) -> List[FanOutResult]:
        return self._collect(
            self.execute_on_many(self.registered_identities(), lambda p: p.get_statement(filters))
        )

    # ==========================================================================
    # UTILITÁRIOS
    # ==========================================================================

    def auto_register_defaults(self) -> List[BankProvider]:
        """
        Registra os bancos padrão.

        O provider ativo antes da chamada continua ativo depois. Sem ativo
        anterior, o primeiro padrão registrado vira o ativo.

        Returns:
            List[BankProvider]: Bancos registrados com sucesso
        """
        logger.info("[BANK-MANAGER] Auto-registrando providers padrão...")
        with self._lock:
            ativo_anterior = self._active
            registrados = []
            for identidade in DEFAULT_PROVIDERS:
                try:
                    self.register_by_identity(identidade)
                    registrados.append(identidade)
                except BankingError as e:
                    # Um banco mal configurado não impede o registro dos demais
                    logger.warning(f"[BANK-MANAGER] Falha ao registrar {identidade.value}: {e}")

            if ativo_anterior is not None and ativo_anterior in self._providers:
                logger.info(f"[BANK-MANAGER] Restaurando provider ativo: {ativo_anterior.value}")
                self._active = ativo_anterior
            elif self._active is None and registrados:
                self.set_active(registrados[0])

        logger.info(f"[BANK-MANAGER] Auto-registro concluído: {[p.value for p in registrados]}")
        return registrados

    def list_available_banks(self) -> List[Dict[str, Any]]:
        """Todos os bancos conhecidos com flags de implementado, registrado, ativo e configurado."""
        with self._lock:
            providers = dict(self._providers)
            ativo = self._active

        bancos = []
        for identidade in get_available_providers():
            registrado = identidade in providers
            bancos.append({
                **get_bank_info(identidade),
                "is_implemented": is_implemented(identidade),
                "is_registered": registrado,
                "is_active": ativo == identidade,
                "is_configured": providers[identidade].is_configured() if registrado else False,
            })
        return bancos

    def get_stats(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "total_banks": len(get_available_providers()),
                "registered_providers": len(self._providers),
                "active_provider": self._active,
                "registered_list": list(self._providers.keys()),
                "environment": get_current_environment(),
            }
