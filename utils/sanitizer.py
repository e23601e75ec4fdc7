"""
Sanitização de dados sensíveis para logs e detalhes de erro.

Previne vazamento de tokens e credenciais bancárias em logs e nas respostas de
erro devolvidas aos chamadores.
"""
from typing import Any, Dict, List, Union


SENSITIVE_KEYS = [
    'password', 'token', 'secret', 'api_key', 'authorization',
    'client_secret', 'access_token', 'refresh_token', 'bearer',
    'apikey', 'api-key', 'x-api-key', 'x-api-secret', 'senha', 'credencial',
    'credentials',
]

REDACTED = '***REDACTED***'


def sanitize_for_log(data: Union[Dict, List, Any]) -> Union[Dict, List, Any]:
    """
    Remove dados sensíveis antes de logar.

    Substitui valores de chaves sensíveis por '***REDACTED***'.

    Args:
        data: Dicionário, lista ou valor a ser sanitizado

    Returns:
        Dados sanitizados (mesma estrutura, valores sensíveis removidos)
    """
    if isinstance(data, dict):
        return {
            k: REDACTED if any(s in str(k).lower() for s in SENSITIVE_KEYS) else sanitize_for_log(v)
            for k, v in data.items()
        }
    elif isinstance(data, (list, tuple)):
        return [sanitize_for_log(item) for item in data]
    else:
        return data


def sanitize_error_message(error_msg: str, max_length: int = 200) -> str:
    """
    Sanitiza mensagem de erro vinda do backend.

    Remove stack traces e limita tamanho.

    Args:
        error_msg: Mensagem de erro original
        max_length: Tamanho máximo da mensagem

    Returns:
        Mensagem sanitizada
    """
    # Pegar apenas primeira linha (sem stack trace)
    lines = str(error_msg).split('\n')
    sanitized = lines[0] if lines else str(error_msg)

    # Limitar tamanho
    if len(sanitized) > max_length:
        sanitized = sanitized[:max_length] + '...'

    return sanitized


def mask_pix_key(key: str) -> str:
    """Mascara a chave PIX para logs (mantém início e fim)."""
    if not key:
        return ''
    key = str(key)
    if len(key) <= 6:
        return '*' * len(key)
    return f"{key[:3]}{'*' * (len(key) - 6)}{key[-3:]}"
