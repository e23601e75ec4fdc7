# -*- coding: utf-8 -*-
"""
Configurações centralizadas dos bancos.

Registry estático de todas as instituições conhecidas e resolução da
configuração de cada uma para o ambiente atual. Sem I/O além da leitura de
variáveis de ambiente para as credenciais padrão.
"""
import logging
from typing import Any, Dict, List, Optional

from config.settings import (
    get_banking_environment,
    get_bitso_api_key,
    get_bitso_api_secret,
    get_bmp_api_key,
    get_bmp_api_secret,
)
from models.banking_types import (
    BankCredentials,
    BankFeature,
    BankProvider,
    InstitutionSettings,
    RateLimitPolicy,
)
from models.exceptions import UnknownEnvironmentError, UnknownInstitutionError


logger = logging.getLogger(__name__)

ENVIRONMENTS = ("development", "staging", "production")
DEFAULT_ENVIRONMENT = "production"

GATEWAY_URL = "https://api-bank.gruponexus.com.br"
USER_AGENT = "TCR-BaaS-Frontend/1.0"

_ALL_PIX = [BankFeature.PIX_SEND, BankFeature.PIX_RECEIVE, BankFeature.PIX_KEYS]


def _ambientes(dev_url: str, prod_url: str, staging_url: Optional[str] = None) -> Dict[str, Dict[str, Any]]:
    """Monta o bloco de ambientes (timeouts em segundos)."""
    ambientes = {
        "development": {"api_url": dev_url, "timeout": 30},
        "production": {"api_url": prod_url, "timeout": 15},
    }
    if staging_url:
        ambientes["staging"] = {"api_url": staging_url, "timeout": 20}
    return ambientes


# ==============================================================================
# REGISTRY DE BANCOS
# ==============================================================================

BANK_REGISTRY: Dict[BankProvider, Dict[str, Any]] = {
    # BMP - Banco Master Pagamentos
    BankProvider.BMP: {
        "name": "BMP",
        "display_name": "BMP - Banco Master",
        "environments": _ambientes("http://localhost:3000", GATEWAY_URL, GATEWAY_URL),
        "features": [
            BankFeature.BALANCE, BankFeature.STATEMENT, *_ALL_PIX,
            BankFeature.TRANSFER, BankFeature.BOLETO, BankFeature.WEBHOOK,
        ],
        "rate_limit": RateLimitPolicy(60, 1000, 10),
        "custom_headers": {"User-Agent": USER_AGENT},
    },
    # BMP-531 - espelho do BMP (conta TTF)
    BankProvider.BMP_531: {
        "name": "BMP-531",
        "display_name": "BMP 531 - Pagamentos",
        "environments": _ambientes("http://localhost:3000", GATEWAY_URL, GATEWAY_URL),
        "features": [
            BankFeature.BALANCE, BankFeature.STATEMENT, *_ALL_PIX, BankFeature.PIX_QR,
            BankFeature.TRANSFER, BankFeature.WEBHOOK,
        ],
        "rate_limit": RateLimitPolicy(60, 1000, 10),
        "custom_headers": {"User-Agent": USER_AGENT},
    },
    # Bitso - exchange cripto operando PIX
    BankProvider.BITSO: {
        "name": "Bitso",
        "display_name": "Bitso - PIX & Crypto",
        "environments": _ambientes("http://localhost:3000", GATEWAY_URL, GATEWAY_URL),
        "features": [
            BankFeature.BALANCE, BankFeature.STATEMENT, *_ALL_PIX, BankFeature.PIX_QR,
            BankFeature.WEBHOOK,
        ],
        "rate_limit": RateLimitPolicy(100, 2000, 20),
        "custom_headers": {"User-Agent": USER_AGENT},
    },
    # Futuros bancos (templates)
    BankProvider.BRADESCO: {
        "name": "Bradesco",
        "display_name": "Banco Bradesco",
        "environments": _ambientes("https://sandbox.bradesco.com.br", "https://api.bradesco.com.br"),
        "features": [BankFeature.BALANCE, BankFeature.STATEMENT, *_ALL_PIX, BankFeature.TRANSFER, BankFeature.BOLETO],
        "rate_limit": RateLimitPolicy(30, 500),
    },
    BankProvider.ITAU: {
        "name": "Itau",
        "display_name": "Banco Itaú",
        "environments": _ambientes("https://sandbox.itau.com.br", "https://api.itau.com.br"),
        "features": [BankFeature.BALANCE, BankFeature.STATEMENT, *_ALL_PIX, BankFeature.TRANSFER, BankFeature.BOLETO],
        "rate_limit": RateLimitPolicy(50, 800),
    },
    BankProvider.SANTANDER: {
        "name": "Santander",
        "display_name": "Banco Santander",
        "environments": _ambientes("https://sandbox.santander.com.br", "https://api.santander.com.br"),
        "features": [
            BankFeature.BALANCE, BankFeature.STATEMENT, BankFeature.PIX_SEND, BankFeature.PIX_RECEIVE,
            BankFeature.TRANSFER, BankFeature.BOLETO,
        ],
        "rate_limit": RateLimitPolicy(40, 600),
    },
    BankProvider.CAIXA: {
        "name": "Caixa",
        "display_name": "Caixa Econômica Federal",
        "environments": _ambientes("https://sandbox.caixa.gov.br", "https://api.caixa.gov.br"),
        "features": [BankFeature.BALANCE, BankFeature.STATEMENT, *_ALL_PIX, BankFeature.TRANSFER, BankFeature.BOLETO],
        "rate_limit": RateLimitPolicy(20, 300),
    },
    BankProvider.BB: {
        "name": "BB",
        "display_name": "Banco do Brasil",
        "environments": _ambientes("https://sandbox.bb.com.br", "https://api.bb.com.br"),
        "features": [BankFeature.BALANCE, BankFeature.STATEMENT, *_ALL_PIX, BankFeature.TRANSFER, BankFeature.BOLETO],
        "rate_limit": RateLimitPolicy(60, 1200),
    },
    BankProvider.NUBANK: {
        "name": "Nubank",
        "display_name": "Nubank",
        "environments": _ambientes("https://sandbox.nubank.com.br", "https://api.nubank.com.br"),
        "features": [BankFeature.BALANCE, BankFeature.STATEMENT, *_ALL_PIX, BankFeature.TRANSFER],
        "rate_limit": RateLimitPolicy(100, 2000),
    },
    BankProvider.INTER: {
        "name": "Inter",
        "display_name": "Banco Inter",
        "environments": _ambientes("https://sandbox.bancointer.com.br", "https://api.bancointer.com.br"),
        "features": [BankFeature.BALANCE, BankFeature.STATEMENT, *_ALL_PIX, BankFeature.TRANSFER, BankFeature.BOLETO],
        "rate_limit": RateLimitPolicy(80, 1500),
    },
    BankProvider.C6: {
        "name": "C6Bank",
        "display_name": "C6 Bank",
        "environments": _ambientes("https://sandbox.c6bank.com.br", "https://api.c6bank.com.br"),
        "features": [BankFeature.BALANCE, BankFeature.STATEMENT, *_ALL_PIX, BankFeature.TRANSFER],
        "rate_limit": RateLimitPolicy(60, 1000),
    },
}


# Contas legadas da interface -> instituição.
# Ao incluir uma conta aqui, inclua também o banco em DEFAULT_PROVIDERS.
LEGACY_ACCOUNT_MAP: Dict[str, BankProvider] = {
    "bmp-main": BankProvider.BMP,
    "bmp-531-ttf": BankProvider.BMP_531,
    "bitso-crypto": BankProvider.BITSO,
}

LEGACY_DISPLAY_NAMES: Dict[BankProvider, str] = {
    BankProvider.BMP: "Conta Principal BMP",
    BankProvider.BMP_531: "BMP 531 - TTF Serviços Digitais",
    BankProvider.BITSO: "Bitso - Pagamentos PIX",
}

# Bancos registrados automaticamente, em ordem de preferência para provider ativo
DEFAULT_PROVIDERS: List[BankProvider] = [BankProvider.BMP, BankProvider.BMP_531, BankProvider.BITSO]


def legacy_account_id(provider: BankProvider) -> Optional[str]:
    """Retorna o id legado de conta para um provider (ou None se não mapeado)."""
    for account_id, mapped in LEGACY_ACCOUNT_MAP.items():
        if mapped == provider:
            return account_id
    return None


# ==============================================================================
# AMBIENTE ATUAL (global do processo)
# ==============================================================================

# None = usar BANKING_ENVIRONMENT (lido de forma lazy, após o .env ser carregado)
_current_environment: Optional[str] = None


def get_current_environment() -> str:
    return _current_environment or get_banking_environment() or DEFAULT_ENVIRONMENT


def set_environment(environment: str) -> None:
    """Define o ambiente de todo o processo."""
    global _current_environment
    if environment not in ENVIRONMENTS:
        raise ValueError(f"Ambiente inválido: {environment} (use {', '.join(ENVIRONMENTS)})")
    _current_environment = environment
    logger.info(f"[BANK-CONFIG] Ambiente definido: {environment}")


# ==============================================================================
# RESOLUÇÃO
# ==============================================================================

def _default_credentials(provider: BankProvider) -> BankCredentials:
    """Credenciais padrão lidas do .env para cada banco."""
    if provider == BankProvider.BMP:
        return BankCredentials(api_key=get_bmp_api_key() or None, api_secret=get_bmp_api_secret() or None)
    if provider == BankProvider.BITSO:
        return BankCredentials(api_key=get_bitso_api_key() or None, api_secret=get_bitso_api_secret() or None)
    return BankCredentials()


def _get_entry(provider: Any) -> Dict[str, Any]:
    try:
        return BANK_REGISTRY[BankProvider(provider)]
    except (ValueError, KeyError):
        raise UnknownInstitutionError(provider) from None


def resolve(
    provider: BankProvider,
    credentials: Optional[BankCredentials] = None,
    environment: Optional[str] = None,
) -> InstitutionSettings:
    """
    Resolve a configuração completa de um banco.

    Args:
        provider: Identidade do banco
        credentials: Credenciais que sobrescrevem as padrão campo a campo
        environment: Ambiente (default: ambiente atual do processo)

    Returns:
        InstitutionSettings: Configuração imutável

    Raises:
        UnknownInstitutionError: banco fora do registry
        UnknownEnvironmentError: ambiente não configurado para o banco
    """
    entry = _get_entry(provider)
    provider = BankProvider(provider)
    env = environment or get_current_environment()
    env_config = entry["environments"].get(env)
    if env_config is None:
        raise UnknownEnvironmentError(provider, env)

    return InstitutionSettings(
        provider=provider,
        name=entry["name"],
        display_name=entry["display_name"],
        environment=env,
        api_url=env_config["api_url"],
        timeout=env_config["timeout"],
        features=frozenset(entry["features"]),
        credentials=_default_credentials(provider).merged(credentials),
        rate_limit=entry.get("rate_limit"),
        custom_headers=dict(entry.get("custom_headers", {})),
    )


def get_available_providers() -> List[BankProvider]:
    """Lista todos os bancos do registry."""
    return list(BANK_REGISTRY.keys())


def get_providers_by_feature(feature: BankFeature) -> List[BankProvider]:
    """Lista bancos que declaram uma funcionalidade."""
    return [p for p, entry in BANK_REGISTRY.items() if feature in entry["features"]]


def is_provider_available(provider: Any) -> bool:
    try:
        return BankProvider(provider) in BANK_REGISTRY
    except ValueError:
        return False


def get_bank_info(provider: Any) -> Optional[Dict[str, Any]]:
    """Informações básicas de um banco (sem ambiente nem credenciais)."""
    if not is_provider_available(provider):
        return None
    entry = BANK_REGISTRY[BankProvider(provider)]
    return {
        "provider": BankProvider(provider),
        "name": entry["name"],
        "display_name": entry["display_name"],
        "features": list(entry["features"]),
    }
