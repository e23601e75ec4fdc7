"""
Centralização de variáveis de ambiente.

Fornece helpers para acessar variáveis de ambiente de forma type-safe.
"""
import os
from typing import Dict, Optional


# Ambiente
def get_banking_environment() -> Optional[str]:
    """Retorna BANKING_ENVIRONMENT (development, staging ou production), se definido."""
    valor = os.getenv("BANKING_ENVIRONMENT", "").strip().lower()
    return valor or None


def get_log_level() -> str:
    return os.getenv("LOG_LEVEL", "INFO").upper()


def get_http_max_retries() -> int:
    """Número de tentativas para requisições idempotentes (default 3)."""
    try:
        return int(os.getenv("HTTP_MAX_RETRIES", "3"))
    except ValueError:
        return 3


# Autenticação
def get_auth_token() -> str:
    """Retorna o token JWT do usuário (Authorization: Bearer)."""
    return os.getenv("BANKING_AUTH_TOKEN", "")


# BMP
def get_bmp_api_key() -> str:
    """Retorna BMP_API_KEY (enviada no header X-API-Key)."""
    return os.getenv("BMP_API_KEY", "")


def get_bmp_api_secret() -> str:
    """Retorna BMP_API_SECRET (enviada no header X-API-Secret)."""
    return os.getenv("BMP_API_SECRET", "")


# BMP-531 (dados bancários exigidos em todas as chamadas)
def get_bmp_531_dados_bancarios() -> Dict[str, str]:
    """Retorna o bloco de dados bancários da conta BMP-531."""
    return {
        "agencia": os.getenv("BMP_531_AGENCIA", ""),
        "agencia_digito": os.getenv("BMP_531_AGENCIA_DIGITO", ""),
        "conta": os.getenv("BMP_531_CONTA", ""),
        "conta_digito": os.getenv("BMP_531_CONTA_DIGITO", ""),
        "conta_pgto": os.getenv("BMP_531_CONTA_PGTO", ""),
        "tipo_conta": os.getenv("BMP_531_TIPO_CONTA", ""),
        "modelo_conta": os.getenv("BMP_531_MODELO_CONTA", ""),
        "numero_banco": os.getenv("BMP_531_NUMERO_BANCO", "531"),
    }


# Bitso
def get_bitso_api_key() -> str:
    return os.getenv("BITSO_API_KEY", "")


def get_bitso_api_secret() -> str:
    return os.getenv("BITSO_API_SECRET", "")


def get_bitso_pix_key() -> str:
    """Retorna a chave PIX própria usada para gerar QR Codes na Bitso."""
    return os.getenv("BITSO_PIX_KEY", "")


def get_bitso_pix_key_type() -> str:
    return os.getenv("BITSO_PIX_KEY_TYPE", "")


def get_bitso_webhook_url() -> str:
    return os.getenv("BITSO_WEBHOOK_URL", "https://api-bank.gruponexus.com.br/api/bitso/webhook")
