# -*- coding: utf-8 -*-
"""Fixtures compartilhadas: ambiente limpo e providers com HTTP falso."""
import pytest

import config.banks as banks
from config.banks import resolve
from models.banking_types import BankCredentials, BankProvider
from services.providers.bitso import BitsoProvider
from services.providers.bmp import BmpProvider
from services.providers.bmp_531 import Bmp531Provider
from services.token_store import StaticTokenStore
from test_data_sample import DADOS_BANCARIOS_531, FakeHTTPClient, bitso_routes, bmp_531_routes, bmp_routes

ENV_VARS = [
    "BANKING_ENVIRONMENT", "BANKING_AUTH_TOKEN", "BMP_API_KEY", "BMP_API_SECRET",
    "BITSO_API_KEY", "BITSO_API_SECRET", "BITSO_PIX_KEY", "BITSO_PIX_KEY_TYPE", "HTTP_MAX_RETRIES",
]

TOKEN = "jwt-de-teste"


@pytest.fixture(autouse=True)
def ambiente_limpo(monkeypatch):
    """Cada teste começa em production, sem variáveis de ambiente bancárias."""
    for var in ENV_VARS:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setattr(banks, "_current_environment", None)


@pytest.fixture
def token_store():
    return StaticTokenStore(TOKEN)


@pytest.fixture
def bmp_http():
    return FakeHTTPClient(bmp_routes())


@pytest.fixture
def bmp_531_http():
    return FakeHTTPClient(bmp_531_routes())


@pytest.fixture
def bitso_http():
    return FakeHTTPClient(bitso_routes())


@pytest.fixture
def bmp(bmp_http, token_store):
    settings = resolve(BankProvider.BMP, BankCredentials(api_key="bmp-key", api_secret="bmp-secret"))
    return BmpProvider(settings, token_store=token_store, http_client=bmp_http, rate_limiter=None)


@pytest.fixture
def bmp_531(bmp_531_http, token_store):
    settings = resolve(BankProvider.BMP_531)
    return Bmp531Provider(
        settings,
        dados_bancarios=DADOS_BANCARIOS_531,
        token_store=token_store,
        http_client=bmp_531_http,
        rate_limiter=None,
    )


@pytest.fixture
def bitso(bitso_http, token_store):
    settings = resolve(BankProvider.BITSO)
    return BitsoProvider(
        settings,
        pix_key="financeiro@empresa.com.br",
        webhook_url="https://exemplo.com/webhook",
        token_store=token_store,
        http_client=bitso_http,
        rate_limiter=None,
    )
