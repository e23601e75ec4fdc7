# -*- coding: utf-8 -*-
"""
Factory de providers.

Resolve a configuração do banco e instancia a classe correspondente. Bancos
presentes no registry mas sem provider implementado levantam
ProviderNotImplementedError.
"""
import logging
from typing import Any, Dict, Optional, Type, Union

from config.banks import resolve
from models.banking_types import BankCredentials, BankProvider
from models.exceptions import ProviderNotImplementedError, UnknownInstitutionError
from services.providers.base import BaseBankProvider
from services.providers.bitso import BitsoProvider
from services.providers.bmp import BmpProvider
from services.providers.bmp_531 import Bmp531Provider


logger = logging.getLogger(__name__)

PROVIDER_CLASSES: Dict[BankProvider, Type[BaseBankProvider]] = {
    BankProvider.BMP: BmpProvider,
    BankProvider.BMP_531: Bmp531Provider,
    BankProvider.BITSO: BitsoProvider,
}


def is_implemented(provider: Any) -> bool:
    """Indica se o banco tem provider implementado (reservados e desconhecidos retornam False)."""
    return BankProvider.from_string(str(getattr(provider, "value", provider))) in PROVIDER_CLASSES


def create_provider(
    provider: Union[BankProvider, str],
    credentials: Union[BankCredentials, Dict[str, Any], None] = None,
    environment: Optional[str] = None,
    **kwargs,
) -> BaseBankProvider:
    """
    Cria um provider configurado.

    Args:
        provider: Identidade do banco (enum ou string)
        credentials: Credenciais que sobrescrevem as padrão
        environment: Ambiente (default: ambiente atual do processo)
        **kwargs: Repassados ao construtor (token_store, http_client, rate_limiter, ...)

    Returns:
        BaseBankProvider: Instância pronta para uso

    Raises:
        UnknownInstitutionError: banco fora do registry
        UnknownEnvironmentError: ambiente não configurado para o banco
        ProviderNotImplementedError: banco conhecido sem provider
    """
    identidade = provider if isinstance(provider, BankProvider) else BankProvider.from_string(provider)
    if identidade is None:
        raise UnknownInstitutionError(provider)

    if isinstance(credentials, dict):
        credentials = BankCredentials.from_dict(credentials)

    settings = resolve(identidade, credentials=credentials, environment=environment)

    classe = PROVIDER_CLASSES.get(identidade)
    if classe is None:
        raise ProviderNotImplementedError(identidade.value)

    logger.info(f"Criando provider {identidade.value} ({classe.__name__}, ambiente {settings.environment})")
    return classe(settings, **kwargs)
