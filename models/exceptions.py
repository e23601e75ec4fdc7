# -*- coding: utf-8 -*-
"""
Exceções da camada bancária.

Erros de configuração (banco/ambiente desconhecido, provider não implementado)
são lançados na construção. Falhas de transporte viram BankApiError dentro do
provider e são convertidas em BankResponse antes de sair dele.
"""
from typing import Any, Optional


class BankingError(Exception):
    """Base de todas as exceções da camada bancária."""


class UnknownInstitutionError(BankingError):
    def __init__(self, provider: Any):
        super().__init__(f"Banco {provider} não encontrado no registry")
        self.provider = provider


class UnknownEnvironmentError(BankingError):
    def __init__(self, provider: Any, environment: str):
        super().__init__(f"Ambiente {environment} não configurado para {provider}")
        self.provider = provider
        self.environment = environment


class ProviderNotImplementedError(BankingError):
    def __init__(self, provider: Any):
        super().__init__(f"Provider {provider} ainda não implementado - template disponível")
        self.provider = provider


class BankApiError(BankingError):
    """Falha de transporte ou HTTP já classificada na taxonomia de erros."""

    def __init__(self, code: str, message: str, details: Any = None, status_code: Optional[int] = None):
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details
        self.status_code = status_code


class BankingOperationError(BankingError):
    """
    Falha devolvida pela fachada.

    A mensagem já vem anotada com a instituição e o contexto da operação.
    """

    def __init__(
        self,
        message: str,
        code: str,
        provider: Any = None,
        operation: Optional[str] = None,
        details: Any = None,
    ):
        super().__init__(message)
        self.code = code
        self.provider = provider
        self.operation = operation
        self.details = details


class NoActiveProviderError(BankingError):
    def __init__(self, message: str = "Nenhum provider ativo definido"):
        super().__init__(message)
