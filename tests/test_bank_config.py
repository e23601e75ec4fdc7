# -*- coding: utf-8 -*-
"""Testes da resolução de configuração dos bancos."""
import pytest

import config.banks as banks
from config.banks import (
    LEGACY_ACCOUNT_MAP,
    get_available_providers,
    get_bank_info,
    get_current_environment,
    get_providers_by_feature,
    is_provider_available,
    legacy_account_id,
    resolve,
    set_environment,
)
from models.banking_types import BankCredentials, BankFeature, BankProvider
from models.exceptions import UnknownEnvironmentError, UnknownInstitutionError


def test_resolve_production_by_default():
    settings = resolve(BankProvider.BMP)

    assert settings.environment == "production"
    assert settings.api_url == "https://api-bank.gruponexus.com.br"
    assert settings.timeout == 15
    assert BankFeature.BOLETO in settings.features
    assert BankFeature.PIX_QR not in settings.features


def test_resolve_explicit_environment():
    settings = resolve(BankProvider.BITSO, environment="development")
    assert settings.api_url == "http://localhost:3000"
    assert settings.timeout == 30


def test_resolve_accepts_string_identity():
    assert resolve("bmp-531").provider == BankProvider.BMP_531


def test_resolve_unknown_institution():
    with pytest.raises(UnknownInstitutionError):
        resolve("banco-inexistente")


def test_resolve_unknown_environment():
    """Bancos reservados não têm staging."""
    with pytest.raises(UnknownEnvironmentError):
        resolve(BankProvider.BRADESCO, environment="staging")


def test_environment_from_variable(monkeypatch):
    monkeypatch.setenv("BANKING_ENVIRONMENT", "Staging")
    assert get_current_environment() == "staging"
    assert resolve(BankProvider.BMP).timeout == 20


def test_set_environment_is_process_wide():
    set_environment("development")
    assert get_current_environment() == "development"
    assert resolve(BankProvider.BMP).environment == "development"


def test_set_environment_rejects_unknown():
    with pytest.raises(ValueError):
        set_environment("homologacao")
    assert banks._current_environment is None


def test_default_credentials_from_env_and_override(monkeypatch):
    monkeypatch.setenv("BMP_API_KEY", "env-key")
    monkeypatch.setenv("BMP_API_SECRET", "env-secret")

    padrao = resolve(BankProvider.BMP)
    assert padrao.credentials.api_key == "env-key"
    assert padrao.credentials.is_configured()

    sobrescrito = resolve(BankProvider.BMP, credentials=BankCredentials(api_secret="outro-secret"))
    assert sobrescrito.credentials.api_key == "env-key"
    assert sobrescrito.credentials.api_secret == "outro-secret"


def test_providers_by_feature():
    com_qr = get_providers_by_feature(BankFeature.PIX_QR)
    assert BankProvider.BITSO in com_qr
    assert BankProvider.BMP_531 in com_qr
    assert BankProvider.BMP not in com_qr


def test_registry_lists_reserved_banks():
    todos = get_available_providers()
    assert len(todos) == 11
    assert is_provider_available("itau")
    assert not is_provider_available("banco-x")


def test_bank_info():
    info = get_bank_info(BankProvider.BITSO)
    assert info["display_name"] == "Bitso - PIX & Crypto"
    assert get_bank_info("banco-x") is None


def test_legacy_account_map():
    assert LEGACY_ACCOUNT_MAP["bmp-531-ttf"] == BankProvider.BMP_531
    assert legacy_account_id(BankProvider.BITSO) == "bitso-crypto"
    assert legacy_account_id(BankProvider.ITAU) is None
