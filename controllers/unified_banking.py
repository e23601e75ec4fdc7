# -*- coding: utf-8 -*-
"""
Serviço bancário unificado.

Ponto único de entrada para a aplicação: inicializa o BankManager, traduz os
ids de conta do sistema antigo (bmp-main, bmp-531-ttf, bitso-crypto) para os
bancos e expõe as operações da conta ativa, levantando BankingOperationError
com o nome do banco e o contexto da operação quando algo falha.
"""
import logging
import threading
from typing import Any, Dict, List, Optional, Union

from config.banks import LEGACY_ACCOUNT_MAP, LEGACY_DISPLAY_NAMES, legacy_account_id
from models.banking_types import (
    AccountConfig,
    AccountResult,
    BankCredentials,
    BankProvider,
    BankResponse,
    ErrorCode,
    FanOutResult,
    PixQRCode,
    PixSendResult,
    StandardBalance,
    StandardFilters,
    StandardStatementResponse,
)
from models.exceptions import BankingOperationError, NoActiveProviderError
from services.bank_manager import BankManager
from services.providers.base import BaseBankProvider
from utils.sanitizer import mask_pix_key


logger = logging.getLogger(__name__)


class UnifiedBankingService:
    """
    Fachada do sistema bancário.

    Args:
        manager: BankManager a ser usado (default: um novo BankManager)
    """

    def __init__(self, manager: Optional[BankManager] = None):
        self.manager = manager or BankManager()
        self._initialized = False
        self._init_lock = threading.Lock()
        self.health_status: Dict[BankProvider, bool] = {}

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    def initialize(self) -> None:
        """
        Registra os bancos padrão e faz o health check inicial.

        Chamadas concorrentes aguardam e compartilham a mesma inicialização.
        """
        if self._initialized:
            return

        with self._init_lock:
            if self._initialized:
                return

            logger.info("[UNIFIED-BANKING] Inicializando serviço...")
            try:
                self.manager.auto_register_defaults()
                self.health_status = self.manager.health_check_all()
            except Exception as e:
                logger.error(f"[UNIFIED-BANKING] Erro na inicialização: {e}")
                raise

            status = ", ".join(f"{p.value}={'ok' if ok else 'falha'}" for p, ok in self.health_status.items())
            logger.info(f"[UNIFIED-BANKING] Status dos bancos: {status or 'nenhum banco registrado'}")
            self._initialized = True
            logger.info("[UNIFIED-BANKING] Serviço inicializado com sucesso")

    def _ensure_initialized(self) -> None:
        if not self._initialized:
            self.initialize()

    # ==========================================================================
    # GESTÃO DE CONTAS
    # ==========================================================================

    def get_available_accounts(self) -> List[AccountConfig]:
        """Contas dos bancos registrados, com os ids do sistema antigo."""
        contas = []
        for banco in self.manager.list_available_banks():
            if not banco["is_registered"]:
                continue
            provider = banco["provider"]
            contas.append(AccountConfig(
                id=legacy_account_id(provider) or f"{provider.value}-account",
                provider=provider,
                display_name=LEGACY_DISPLAY_NAMES.get(provider, banco["display_name"]),
                is_active=banco["is_active"],
            ))
        return contas

    def set_active_account(self, account_id: str) -> bool:
        """Ativa a conta pelo id do sistema antigo. Retorna False se não mapeado."""
        provider = LEGACY_ACCOUNT_MAP.get(account_id)
        if provider is None:
            logger.error(
                f"[UNIFIED-BANKING] ID de conta não mapeado: {account_id} "
                f"(suportados: {', '.join(LEGACY_ACCOUNT_MAP)})"
            )
            return False

        sucesso = self.manager.set_active(provider)
        if sucesso:
            logger.info(f"[UNIFIED-BANKING] Conta ativa: {account_id} ({provider.value})")
        else:
            logger.error(f"[UNIFIED-BANKING] Falha ao ativar provider: {provider.value}")
        return sucesso

    def get_active_account(self) -> Optional[AccountConfig]:
        ativo = self.manager.get_active_identity()
        if ativo is None:
            return None
        return next((c for c in self.get_available_accounts() if c.provider == ativo), None)

    def sync_with_legacy_account(self, legacy_account: Union[str, Dict[str, Any], None]) -> bool:
        """
        Sincroniza a conta ativa com a conta selecionada no sistema antigo.

        Args:
            legacy_account: id da conta legada ou dict com a chave 'id'

        Returns:
            bool: True se a conta foi ativada
        """
        account_id = legacy_account.get("id") if isinstance(legacy_account, dict) else legacy_account
        if not account_id:
            logger.warning("[UNIFIED-BANKING] Conta legada não disponível para sincronização")
            return False

        logger.info(f"[UNIFIED-BANKING] Sincronizando conta legada: {account_id}")
        sucesso = self.set_active_account(account_id)
        if not sucesso:
            logger.warning(f"[UNIFIED-BANKING] Falha na sincronização da conta: {account_id}")
        return sucesso

    # ==========================================================================
    # OPERAÇÕES NA CONTA ATIVA
    # ==========================================================================

    def _active_provider(self) -> BaseBankProvider:
        provider = self.manager.get_active()
        if provider is None:
            raise NoActiveProviderError("Nenhuma conta ativa selecionada. Use set_active_account() primeiro.")
        return provider

    @staticmethod
    def _unwrap(provider: BaseBankProvider, response: BankResponse, operacao: str, contexto: str = "") -> Any:
        """Retorna data ou levanta BankingOperationError com banco e contexto."""
        if response.success:
            return response.data

        erro = response.error
        code = erro.code if erro else ErrorCode.UNKNOWN_ERROR.value
        mensagem = erro.message if erro else "Erro desconhecido"
        detalhe = f" ({contexto})" if contexto else ""
        logger.error(f"[UNIFIED-BANKING] {provider.display_name}: falha ao {operacao}{detalhe}: {code}")
        raise BankingOperationError(
            f"{provider.display_name}: erro ao {operacao}{detalhe}: {mensagem}",
            code=code,
            provider=provider.provider,
            operation=operacao,
            details=erro.details if erro else None,
        )

    def get_balance(self) -> StandardBalance:
        self._ensure_initialized()
        provider = self._active_provider()
        return self._unwrap(provider, provider.get_balance(), "consultar saldo")

    def get_statement(self, filters: Optional[StandardFilters] = None) -> StandardStatementResponse:
        self._ensure_initialized()
        provider = self._active_provider()
        return self._unwrap(provider, provider.get_statement(filters), "consultar extrato")

    def send_pix(
        self,
        key: str,
        amount: Any,
        description: Optional[str] = None,
        key_type: Optional[str] = None,
    ) -> PixSendResult:
        """
        Envia PIX pela conta ativa.

        Não passa pela inicialização: reinicializar no meio de um pagamento
        poderia trocar o banco ativo.
        """
        provider = self._active_provider()
        logger.info(
            f"[UNIFIED-BANKING] Enviando PIX via {provider.provider.value}: "
            f"valor={amount}, chave={mask_pix_key(key)}"
        )
        resposta = provider.send_pix(key, amount, description, key_type)
        return self._unwrap(provider, resposta, "enviar PIX", f"valor R$ {amount}, chave {key}")

    def get_pix_keys(self) -> List[Dict[str, Any]]:
        self._ensure_initialized()
        provider = self._active_provider()
        return self._unwrap(provider, provider.get_pix_keys(), "listar chaves PIX")

    def generate_pix_qr(self, amount: Any, description: Optional[str] = None) -> PixQRCode:
        self._ensure_initialized()
        provider = self._active_provider()
        return self._unwrap(provider, provider.generate_pix_qr(amount, description), "gerar QR Code PIX",
                            f"valor R$ {amount}")

    # ==========================================================================
    # OPERAÇÕES POR BANCO
    # ==========================================================================

    def _registered_provider(self, provider: Union[BankProvider, str]) -> BaseBankProvider:
        instancia = self.manager.get_provider(provider)
        if instancia is None:
            raise BankingOperationError(
                f"Provider {getattr(provider, 'value', provider)} não registrado",
                code=ErrorCode.INVALID_PARAMETERS.value,
                provider=provider,
            )
        return instancia

    def get_balance_from_provider(self, provider: Union[BankProvider, str]) -> StandardBalance:
        self._ensure_initialized()
        instancia = self._registered_provider(provider)
        return self._unwrap(instancia, instancia.get_balance(), "consultar saldo")

    def get_statement_from_provider(
        self,
        provider: Union[BankProvider, str],
        filters: Optional[StandardFilters] = None,
    ) -> StandardStatementResponse:
        self._ensure_initialized()
        instancia = self._registered_provider(provider)
        return self._unwrap(instancia, instancia.get_statement(filters), "consultar extrato")

    # ==========================================================================
    # OPERAÇÕES MULTI-CONTA
    # ==========================================================================

    def _to_account_results(self, resultados: List[FanOutResult]) -> List[AccountResult]:
        """Converte resultados por banco em resultados por conta (só contas mapeadas)."""
        contas = {c.provider: c for c in self.get_available_accounts()}
        saida = []
        for r in resultados:
            if legacy_account_id(r.provider) is None or r.provider not in contas:
                continue
            erro = None
            if r.error is not None:
                erro = getattr(r.error, "message", None) or str(r.error)
            saida.append(AccountResult(account=contas[r.provider], data=r.result, error=erro))
        return saida

    def get_balance_from_all_accounts(self) -> List[AccountResult]:
        self._ensure_initialized()
        return self._to_account_results(self.manager.get_balance_from_all())

    def get_statement_from_all_accounts(self, filters: Optional[StandardFilters] = None) -> List[AccountResult]:
        self._ensure_initialized()
        return self._to_account_results(self.manager.get_statement_from_all(filters))

    def health_check_all(self) -> Dict[BankProvider, bool]:
        self._ensure_initialized()
        return self.manager.health_check_all()

    # ==========================================================================
    # ADMINISTRAÇÃO
    # ==========================================================================

    def add_bank(
        self,
        provider: Union[BankProvider, str],
        credentials: Union[BankCredentials, Dict[str, Any], None] = None,
    ) -> None:
        self._ensure_initialized()
        self.manager.register_by_identity(provider, credentials)
        logger.info(f"[UNIFIED-BANKING] Banco {getattr(provider, 'value', provider)} adicionado")

    def remove_bank(self, provider: Union[BankProvider, str]) -> None:
        self.manager.unregister(provider)
        logger.info(f"[UNIFIED-BANKING] Banco {getattr(provider, 'value', provider)} removido")

    def get_system_stats(self) -> Dict[str, Any]:
        return {
            **self.manager.get_stats(),
            "is_initialized": self._initialized,
            "available_accounts": len(self.get_available_accounts()),
            "active_account": self.get_active_account(),
        }


# ==============================================================================
# INSTÂNCIA PADRÃO E FUNÇÕES DE CONVENIÊNCIA
# ==============================================================================

_default_service: Optional[UnifiedBankingService] = None
_default_lock = threading.Lock()


def get_banking_service() -> UnifiedBankingService:
    """Instância padrão do serviço, criada no primeiro uso."""
    global _default_service
    with _default_lock:
        if _default_service is None:
            _default_service = UnifiedBankingService()
        return _default_service


def initialize_banking_system(legacy_account: Union[str, Dict[str, Any], None] = None) -> UnifiedBankingService:
    """Inicializa o sistema bancário e, se informado, ativa a conta legada."""
    logger.info("[INIT] Inicializando sistema bancário unificado...")
    servico = get_banking_service()
    servico.initialize()
    if legacy_account:
        servico.sync_with_legacy_account(legacy_account)
    logger.info("[INIT] Sistema bancário inicializado com sucesso")
    return servico


def get_balance() -> StandardBalance:
    return get_banking_service().get_balance()


def get_statement(filters: Optional[StandardFilters] = None) -> StandardStatementResponse:
    return get_banking_service().get_statement(filters)


def switch_account(account_id: str) -> bool:
    return get_banking_service().set_active_account(account_id)


def get_available_accounts() -> List[AccountConfig]:
    return get_banking_service().get_available_accounts()


# ==============================================================================
# DIAGNÓSTICO
# ==============================================================================

def run(account_id: Optional[str] = None) -> Dict[str, Any]:
    """
    Diagnóstico do sistema bancário.

    Fluxo:
    1. Inicializar serviço (registro + health check)
    2. Ativar conta informada (opcional)
    3. Consultar saldo de todas as contas
    4. Registrar estatísticas

    Returns:
        dict: Estatísticas do sistema ao final
    """
    servico = initialize_banking_system(account_id)

    for conta in servico.get_available_accounts():
        marcador = " (ativa)" if conta.is_active else ""
        logging.info(f"Conta disponível: {conta.id} - {conta.display_name}{marcador}")

    for resultado in servico.get_balance_from_all_accounts():
        if resultado.error:
            logging.warning(f"Saldo {resultado.account.id}: erro - {resultado.error}")
        else:
            logging.info(
                f"Saldo {resultado.account.id}: disponível R$ {resultado.data.available}, "
                f"bloqueado R$ {resultado.data.blocked}"
            )

    stats = servico.get_system_stats()
    logging.info(
        f"Ambiente {stats['environment']}: {stats['registered_providers']}/{stats['total_banks']} "
        f"bancos registrados, ativo={getattr(stats['active_provider'], 'value', None)}"
    )
    return stats
