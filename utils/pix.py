"""
Utilitários de chave PIX.

A detecção do tipo de chave segue uma ordem fixa (primeira regra que casa
vence). Mudar a ordem muda a classificação de entradas ambíguas.
"""
import logging
import re
from typing import Optional

from models.banking_types import PixKeyType


logger = logging.getLogger(__name__)

_EVP_PATTERN = re.compile(r'^[a-zA-Z0-9-]+$')
_PHONE_PATTERN = re.compile(r'^\(?[0-9]{2}\)?[\s\-]?[0-9]{4,5}[\s\-]?[0-9]{4}$')

VALID_KEY_TYPES = {t.value for t in PixKeyType}


def detect_pix_key_type(key: str) -> PixKeyType:
    """
    Detecta o tipo de chave PIX.

    Ordem:
    1. contém '@' e '.'                  -> EMAIL
    2. começa com '+'                    -> PHONE
    3. 11 dígitos                        -> CPF
    4. 14 dígitos                        -> CNPJ
    5. 32 caracteres alfanuméricos/hífen -> EVP
    6. 10 a 13 dígitos com formato de telefone -> PHONE
    7. qualquer outra coisa              -> EVP

    Args:
        key: Chave PIX informada pelo usuário

    Returns:
        PixKeyType: Tipo detectado
    """
    if not key:
        return PixKeyType.EVP

    key_trimmed = str(key).strip()

    if '@' in key_trimmed and '.' in key_trimmed:
        return PixKeyType.EMAIL

    if key_trimmed.startswith('+'):
        return PixKeyType.PHONE

    # Apenas dígitos para análise de CPF/CNPJ
    only_numbers = re.sub(r'\D', '', key_trimmed)

    if len(only_numbers) == 11:
        return PixKeyType.CPF

    if len(only_numbers) == 14:
        return PixKeyType.CNPJ

    if len(key_trimmed) == 32 and _EVP_PATTERN.match(key_trimmed):
        return PixKeyType.EVP

    if 10 <= len(only_numbers) <= 13 and _PHONE_PATTERN.match(key_trimmed):
        return PixKeyType.PHONE

    logger.info("Tipo de chave não detectado automaticamente, usando EVP como padrão")
    return PixKeyType.EVP


def normalize_key_type(key_type: Optional[str]) -> Optional[str]:
    """Normaliza tipo informado pelo chamador (None se vazio)."""
    if key_type is None:
        return None
    if isinstance(key_type, PixKeyType):
        return key_type.value
    key_type = str(key_type).strip().upper()
    return key_type or None


def is_valid_key_type(key_type: Optional[str]) -> bool:
    return normalize_key_type(key_type) in VALID_KEY_TYPES
