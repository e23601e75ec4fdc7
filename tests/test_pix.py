# -*- coding: utf-8 -*-
"""
Testes de detecção de tipo de chave PIX.

A ordem das regras faz parte do contrato: entradas ambíguas dependem dela.
"""
import pytest

from models.banking_types import PixKeyType
from utils.pix import detect_pix_key_type, is_valid_key_type, normalize_key_type
from utils.sanitizer import mask_pix_key


@pytest.mark.parametrize("chave, esperado", [
    ("11144477735", PixKeyType.CPF),
    ("111.444.777-35", PixKeyType.CPF),
    ("11222333000181", PixKeyType.CNPJ),
    ("11.222.333/0001-81", PixKeyType.CNPJ),
    ("user@example.com", PixKeyType.EMAIL),
    ("+5511999999999", PixKeyType.PHONE),
    ("a1b2c3d4e5f6a7b8c9d0e1f2a3b4c5d6", PixKeyType.EVP),
    ("(11) 3333-4444", PixKeyType.PHONE),
    ("12345", PixKeyType.EVP),
    ("123e4567-e89b-12d3-a456-426614174000", PixKeyType.EVP),
])
def test_detect_pix_key_type(chave, esperado):
    assert detect_pix_key_type(chave) == esperado


def test_email_wins_over_phone_prefix():
    """Regra 1 (email) vem antes da regra 2 (+telefone)."""
    assert detect_pix_key_type("+user@example.com") == PixKeyType.EMAIL


def test_phone_prefix_wins_over_cpf_length():
    """'+' com 11 dígitos é telefone, não CPF."""
    assert detect_pix_key_type("+1114447773") == PixKeyType.PHONE
    assert detect_pix_key_type("+11144477735") == PixKeyType.PHONE


def test_eleven_digit_mobile_is_cpf():
    """Celular sem '+' e com 11 dígitos cai na regra de CPF."""
    assert detect_pix_key_type("11999998888") == PixKeyType.CPF


def test_detection_is_deterministic():
    chave = "q9w8e7r6t5y4u3i2o1p0a9s8d7f6g5h4"
    assert {detect_pix_key_type(chave) for _ in range(10)} == {PixKeyType.EVP}


def test_key_type_validation():
    assert normalize_key_type(" email ") == "EMAIL"
    assert normalize_key_type(PixKeyType.CPF) == "CPF"
    assert normalize_key_type("") is None
    assert is_valid_key_type("cnpj")
    assert not is_valid_key_type("BOLETO")


def test_mask_pix_key():
    assert mask_pix_key("11144477735") == "111*****735"
    assert mask_pix_key("abc") == "***"
    assert mask_pix_key("") == ""
