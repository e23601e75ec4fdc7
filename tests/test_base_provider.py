# -*- coding: utf-8 -*-
"""
Testes do comportamento comum dos providers.

Usa o BmpProvider como provider concreto: classificação de erros de
transporte, headers, gating por funcionalidade e validações locais.
"""
import threading
import time
from dataclasses import replace
from datetime import date, datetime, timezone
from decimal import Decimal
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer

import pytest
import requests
from urllib3.exceptions import MaxRetryError, ReadTimeoutError

from config.banks import resolve
from models.banking_types import BankFeature, BankProvider, ErrorCode, StandardFilters
from services.providers.base import BaseBankProvider
from services.providers.bmp import BmpProvider
from utils.http_client import HTTPClient
from test_data_sample import FakeResponse


# ==============================================================================
# REQUISIÇÃO AUTENTICADA
# ==============================================================================

def test_headers_include_bearer_and_api_keys(bmp, bmp_http):
    bmp.get_balance()

    chamada = bmp_http.calls[0]
    assert chamada["headers"]["Authorization"] == "Bearer jwt-de-teste"
    assert chamada["headers"]["X-API-Key"] == "bmp-key"
    assert chamada["headers"]["X-API-Secret"] == "bmp-secret"
    assert chamada["headers"]["Content-Type"] == "application/json"
    assert chamada["headers"]["User-Agent"] == "TCR-BaaS-Frontend/1.0"


def test_request_uses_institution_timeout(bmp, bmp_http):
    bmp.get_balance()
    assert bmp_http.calls[0]["timeout"] == 15


def test_no_bearer_without_token(bmp, bmp_http):
    bmp.token_store.set_token(None)
    bmp.get_balance()
    assert "Authorization" not in bmp_http.calls[0]["headers"]


def test_timeout_becomes_timeout_failure(bmp, bmp_http):
    bmp_http.add("GET", "/internal/account/saldo", requests.exceptions.ReadTimeout("read timed out"))

    resposta = bmp.get_balance()

    assert not resposta.success
    assert resposta.error_code == ErrorCode.TIMEOUT.value
    assert resposta.provider == BankProvider.BMP


def test_exhausted_retries_on_timeout_become_timeout_failure(bmp, bmp_http):
    causa = MaxRetryError(None, "/internal/account/saldo", ReadTimeoutError(None, "/internal/account/saldo", "read timed out"))
    bmp_http.add("GET", "/internal/account/saldo", requests.exceptions.ConnectionError(causa))

    assert bmp.get_balance().error_code == ErrorCode.TIMEOUT.value


class _BancoLento(BaseHTTPRequestHandler):
    """Servidor local que demora mais que o timeout do banco para responder."""

    def do_GET(self):
        time.sleep(2)
        try:
            self.send_response(200)
            self.end_headers()
            self.wfile.write(b"{}")
        except (BrokenPipeError, ConnectionResetError):
            pass

    def log_message(self, *args):
        pass


@pytest.fixture
def banco_lento():
    servidor = ThreadingHTTPServer(("127.0.0.1", 0), _BancoLento)
    servidor.daemon_threads = True
    threading.Thread(target=servidor.serve_forever, daemon=True).start()
    yield f"http://127.0.0.1:{servidor.server_address[1]}"
    servidor.shutdown()
    servidor.server_close()


def test_slow_bank_times_out_once_with_real_http_client(banco_lento, token_store):
    settings = replace(resolve(BankProvider.BMP), api_url=banco_lento, timeout=0.3)
    http_client = HTTPClient(headers=settings.custom_headers)
    http_client.session.trust_env = False
    bmp = BmpProvider(settings, token_store=token_store, http_client=http_client, rate_limiter=None)

    inicio = time.monotonic()
    resposta = bmp.get_balance()
    duracao = time.monotonic() - inicio

    assert resposta.error_code == ErrorCode.TIMEOUT.value
    # sem retry de leitura: um único timeout de 0.3s
    assert duracao < 1.5


def test_connection_error_becomes_connection_failure(bmp, bmp_http):
    bmp_http.add("GET", "/internal/account/saldo", requests.exceptions.ConnectionError("dns"))
    assert bmp.get_balance().error_code == ErrorCode.CONNECTION_ERROR.value


def test_unclassified_http_error_uses_status_code(bmp, bmp_http):
    bmp_http.add("GET", "/internal/account/saldo", FakeResponse(503, {"message": "Serviço indisponível"}))

    resposta = bmp.get_balance()

    assert resposta.error_code == "HTTP_503"
    assert resposta.error.message == "Serviço indisponível"


def test_structured_error_body_maps_to_specific_code(bmp, bmp_http):
    bmp_http.add("POST", "/internal/pix/enviar", FakeResponse(422, {"erro": "Saldo insuficiente"}))
    assert bmp.send_pix("11144477735", 10).error_code == ErrorCode.INSUFFICIENT_FUNDS.value

    bmp_http.add("POST", "/internal/pix/enviar", FakeResponse(404, {"message": "Key not found"}))
    assert bmp.send_pix("11144477735", 10).error_code == ErrorCode.INVALID_PIX_KEY.value

    bmp_http.add("POST", "/internal/pix/enviar", FakeResponse(400, {"message": "Invalid API request data"}))
    assert bmp.send_pix("11144477735", 10).error_code == ErrorCode.INVALID_PARAMETERS.value


def test_invalid_json_becomes_unknown_error(bmp, bmp_http):
    bmp_http.add("GET", "/internal/account/saldo", FakeResponse(200, text="<html>gateway</html>"))
    assert bmp.get_balance().error_code == ErrorCode.UNKNOWN_ERROR.value


def test_error_details_never_carry_credentials(bmp, bmp_http):
    bmp_http.add("GET", "/internal/account/saldo", FakeResponse(401, {
        "message": "Não autorizado",
        "headers": {"X-API-Key": "bmp-key", "Authorization": "Bearer jwt-de-teste"},
    }))

    resposta = bmp.get_balance()

    assert "bmp-key" not in str(resposta.error)
    assert "jwt-de-teste" not in str(resposta.error)


def test_rate_limiter_is_applied_before_each_call(bmp, bmp_http):
    class Contador:
        chamadas = 0

        def acquire(self):
            self.chamadas += 1
            return 0.0

    bmp.rate_limiter = Contador()
    bmp.get_balance()
    bmp.get_balance()
    assert bmp.rate_limiter.chamadas == 2


# ==============================================================================
# HEALTH CHECK E ENVELOPE
# ==============================================================================

def test_health_check_reports_latency(bmp, bmp_http):
    resposta = bmp.health_check()

    assert resposta.success
    assert resposta.data["status"] == "healthy"
    assert resposta.data["latency_ms"] >= 0
    assert bmp_http.paths() == ["/internal/account/balance"]


def test_health_check_failure_is_not_raised(bmp, bmp_http):
    bmp_http.add("GET", "/internal/account/balance", requests.exceptions.Timeout())
    assert bmp.health_check().error_code == ErrorCode.TIMEOUT.value


def test_request_ids_are_unique(bmp):
    ids = {bmp.generate_request_id() for _ in range(50)}
    assert len(ids) == 50
    assert all(i.startswith("bmp-") for i in ids)


def test_unexpected_exception_becomes_unknown_error(bmp, bmp_http):
    bmp_http.add("GET", "/internal/account/saldo", RuntimeError("falha inesperada"))

    resposta = bmp.get_balance()

    assert resposta.error_code == ErrorCode.UNKNOWN_ERROR.value
    assert resposta.error.details == {"exception": "RuntimeError"}


# ==============================================================================
# FUNCIONALIDADES
# ==============================================================================

def test_has_feature_and_is_configured(bmp):
    assert bmp.has_feature(BankFeature.BOLETO)
    assert not bmp.has_feature(BankFeature.PIX_QR)
    assert bmp.is_configured()


def test_undeclared_feature_is_not_supported_without_network(bmp, bmp_http):
    resposta = bmp.generate_pix_qr(100)

    assert resposta.error_code == ErrorCode.NOT_SUPPORTED.value
    assert bmp_http.calls == []


def test_declared_but_unimplemented_feature(bmp, bmp_http):
    assert bmp.transfer({"amount": 10}).error_code == ErrorCode.NOT_IMPLEMENTED.value
    assert bmp.generate_boleto({"amount": 10}).error_code == ErrorCode.NOT_IMPLEMENTED.value
    assert bmp.configure_webhook("https://x", ["pix"]).error_code == ErrorCode.NOT_IMPLEMENTED.value
    assert bmp_http.calls == []


def test_bitso_does_not_support_transfer(bitso, bitso_http):
    assert bitso.transfer({"amount": 10}).error_code == ErrorCode.NOT_SUPPORTED.value
    assert bitso.generate_boleto({}).error_code == ErrorCode.NOT_SUPPORTED.value
    assert bitso_http.calls == []


# ==============================================================================
# VALIDAÇÕES LOCAIS
# ==============================================================================

@pytest.mark.parametrize("chave, valor, codigo", [
    ("", 10, ErrorCode.INVALID_PARAMETERS),
    ("11144477735", None, ErrorCode.INVALID_PARAMETERS),
    ("11144477735", 0, ErrorCode.INVALID_AMOUNT),
    ("11144477735", -5, ErrorCode.INVALID_AMOUNT),
    ("11144477735", "abc", ErrorCode.INVALID_AMOUNT),
])
def test_pix_validation_before_network(bmp, bmp_http, chave, valor, codigo):
    assert bmp.send_pix(chave, valor).error_code == codigo.value
    assert bmp_http.calls == []


def test_pix_invalid_key_type(bmp, bmp_http):
    assert bmp.send_pix("11144477735", 10, key_type="BOLETO").error_code == ErrorCode.INVALID_KEY_TYPE.value
    assert bmp_http.calls == []


@pytest.mark.parametrize("filtros", [
    StandardFilters(date_from="2025-02-01", date_to="2025-01-01"),
    StandardFilters(limit=0),
    StandardFilters(limit=1001),
    StandardFilters(date_from="01/02/2025"),
])
def test_invalid_filters(bmp, bmp_http, filtros):
    assert bmp.get_statement(filtros).error_code == ErrorCode.INVALID_FILTERS.value
    assert bmp_http.calls == []


def test_valid_filters(bmp):
    assert bmp.validate_filters(StandardFilters(date_from="2025-01-01", date_to="2025-01-01", limit=1000)) is None


def test_statement_accepts_dict_filters(bmp, bmp_http):
    assert bmp.get_statement({"limit": 10}).success
    assert bmp_http.calls[0]["params"]["limit"] == 10


def test_normalize_amount_and_balance_total(bmp):
    saldo = bmp.build_balance("10.10", 5.05, None)

    assert saldo.total == saldo.available + saldo.blocked == Decimal("15.15")
    assert saldo.account_id == "bmp-main"
    assert bmp.normalize_amount("não numérico") == Decimal("0")


def test_map_status_default_table(bmp):
    assert bmp.map_status("Settled").value == "COMPLETED"
    assert bmp.map_status("processing").value == "PENDING"
    assert bmp.map_status("error").value == "FAILED"
    assert bmp.map_status("canceled").value == "CANCELLED"
    assert bmp.map_status("desconhecido").value == "PENDING"
    assert bmp.map_status(None).value == "PENDING"


def test_base_is_abstract():
    with pytest.raises(TypeError):
        BaseBankProvider(None)


@pytest.mark.parametrize("bruto", ["NaN", "Infinity", "-inf"])
def test_normalize_amount_rejects_non_finite(bmp, bruto):
    assert bmp.normalize_amount(bruto) == Decimal("0")


def test_statement_survives_non_finite_amount(bmp, bmp_http):
    bmp_http.add("GET", "/internal/account/extrato", {"items": [{
        "id": "bmp-tx-nan",
        "value": "NaN",
        "type": "CRÉDITO",
        "identified": True,
        "dateTime": "2025-01-10T09:00:00Z",
    }]})

    resposta = bmp.get_statement()

    assert resposta.success
    assert resposta.data.transactions[0].amount == Decimal("0")


def test_format_date_defaults_to_iso(bmp):
    assert bmp.format_date(date(2025, 1, 31)) == "2025-01-31"
    assert bmp.format_date(datetime(2025, 1, 31, 12, 30, tzinfo=timezone.utc)) == "2025-01-31T12:30:00+00:00"
    assert bmp.format_date("2025-01-31") == "2025-01-31"
    assert bmp.format_date(None) is None


def test_format_date_override_reaches_statement_params(bmp, bmp_http, bitso, bitso_http, monkeypatch):
    sem_hifen = lambda valor: valor.replace("-", "") if valor else None
    monkeypatch.setattr(bmp, "format_date", sem_hifen)
    monkeypatch.setattr(bitso, "format_date", sem_hifen)
    filtros = StandardFilters(date_from="2025-01-01", date_to="2025-01-31")

    bmp.get_statement(filtros)
    bitso.get_statement(filtros)

    assert bmp_http.calls[0]["params"]["de"] == "20250101"
    assert bmp_http.calls[0]["params"]["ate"] == "20250131"
    assert bitso_http.calls[0]["params"]["start_date"] == "20250101"
    assert bitso_http.calls[0]["params"]["end_date"] == "20250131"
