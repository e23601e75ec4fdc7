# -*- coding: utf-8 -*-
"""
Testes dos providers BMP e BMP-531.

Valida a tradução de saldo, extrato e PIX a partir dos payloads reais e o
bloco de dados bancários exigido pelo BMP-531.
"""
from datetime import timezone
from decimal import Decimal

from models.banking_types import (
    BankProvider,
    ErrorCode,
    PixKeyType,
    StandardFilters,
    TransactionStatus,
    TransactionType,
)
from test_data_sample import BMP_EXTRATO, DADOS_BANCARIOS_531, FakeResponse


# ==============================================================================
# BMP
# ==============================================================================

def test_bmp_balance(bmp, bmp_http):
    resposta = bmp.get_balance()

    saldo = resposta.data
    assert resposta.success
    assert saldo.provider == BankProvider.BMP
    assert saldo.account_id == "bmp-main"
    assert saldo.available == Decimal("1500.75")
    assert saldo.blocked == Decimal("200.25")
    assert saldo.total == Decimal("1701.00")
    assert saldo.last_update.tzinfo is not None
    assert bmp_http.paths() == ["/internal/account/saldo"]


def test_bmp_statement_translation(bmp):
    extrato = bmp.get_statement().data

    assert [t.id for t in extrato.transactions] == ["bmp-tx-002", "bmp-tx-003", "bmp-tx-001"]

    debito = extrato.transactions[0]
    assert debito.type == TransactionType.DEBIT
    assert debito.amount == Decimal("80.5")
    assert debito.status == TransactionStatus.PENDING
    assert debito.counterparty.document == "11222333000181"
    assert debito.metadata["code"] == "PIX002"

    credito = extrato.transactions[2]
    assert credito.type == TransactionType.CREDIT
    assert credito.status == TransactionStatus.COMPLETED
    assert credito.external_id == "E001"
    assert credito.date.tzinfo == timezone.utc


def test_bmp_statement_is_sorted_and_summarized(bmp):
    extrato = bmp.get_statement().data

    datas = [t.date for t in extrato.transactions]
    assert datas == sorted(datas, reverse=True)
    assert extrato.summary.total_credits == Decimal("350")
    assert extrato.summary.total_debits == Decimal("80.5")
    assert extrato.summary.net_amount == Decimal("269.5")
    assert extrato.summary.transaction_count == 3


def test_bmp_statement_pagination_and_params(bmp, bmp_http):
    extrato = bmp.get_statement(StandardFilters(
        date_from="2025-01-01", date_to="2025-01-31", limit=100, cursor="c1",
    )).data

    assert extrato.pagination.cursor == "cursor-2"
    assert extrato.pagination.has_next is True
    assert extrato.pagination.total == 42
    assert bmp_http.calls[0]["params"] == {"limit": 100, "cursor": "c1", "de": "2025-01-01", "ate": "2025-01-31"}


def test_bmp_statement_local_filters(bmp):
    extrato = bmp.get_statement(StandardFilters(transaction_type=TransactionType.CREDIT)).data
    assert {t.id for t in extrato.transactions} == {"bmp-tx-001", "bmp-tx-003"}


def test_bmp_get_transaction_by_id_or_external_id(bmp):
    assert bmp.get_transaction("bmp-tx-003").data.id == "bmp-tx-003"
    assert bmp.get_transaction("E001").data.id == "bmp-tx-001"


def test_bmp_get_transaction_not_found(bmp, bmp_http):
    resposta = bmp.get_transaction("nao-existe")
    assert not resposta.success
    assert resposta.error_code == ErrorCode.INVALID_PARAMETERS.value
    # a segunda página devolve o mesmo cursor: a busca para
    assert [c["params"].get("cursor") for c in bmp_http.calls] == [None, "cursor-2"]


def test_bmp_get_transaction_follows_cursor(bmp, bmp_http):
    pagina_antiga = {
        "items": [{
            "id": "bmp-tx-antiga",
            "value": 42,
            "type": "CRÉDITO",
            "identified": True,
            "dateTime": "2024-06-01T10:00:00Z",
        }],
        "has_more": False,
    }

    def extrato(params=None, **kwargs):
        return pagina_antiga if params.get("cursor") == "cursor-2" else BMP_EXTRATO

    bmp_http.add("GET", "/internal/account/extrato", extrato)

    resposta = bmp.get_transaction("bmp-tx-antiga")

    assert resposta.success
    assert resposta.data.amount == Decimal("42")
    assert len(bmp_http.calls) == 2


def test_bmp_get_transaction_stops_at_page_limit(bmp, bmp_http):
    paginas = iter(range(100))

    def extrato(**kwargs):
        return {"items": [], "has_more": True, "next_cursor": f"c{next(paginas)}"}

    bmp_http.add("GET", "/internal/account/extrato", extrato)

    resposta = bmp.get_transaction("nao-existe")

    assert resposta.error_code == ErrorCode.INVALID_PARAMETERS.value
    assert len(bmp_http.calls) == bmp.MAX_PAGINAS_BUSCA


def test_bmp_send_pix(bmp, bmp_http):
    resposta = bmp.send_pix("user@example.com", "150.50", "Pagamento fornecedor")

    resultado = resposta.data
    assert resposta.success
    assert resultado.transaction_id == "BMP-PIX-123"
    assert resultado.status == TransactionStatus.PENDING
    assert resultado.key_type == PixKeyType.EMAIL
    assert resultado.amount == Decimal("150.50")
    assert bmp_http.calls[0]["json"] == {
        "chave": "user@example.com",
        "valor": 150.5,
        "descricao": "Pagamento fornecedor",
    }


def test_bmp_send_pix_default_description(bmp, bmp_http):
    bmp.send_pix("11144477735", 10)
    assert bmp_http.calls[0]["json"]["descricao"] == "Transferência PIX"


def test_bmp_send_pix_rejected_in_body(bmp, bmp_http):
    bmp_http.add("POST", "/internal/pix/enviar", {"sucesso": False, "mensagem": "Chave não encontrada no DICT"})

    resposta = bmp.send_pix("11144477735", 10)

    assert resposta.error_code == ErrorCode.INVALID_PIX_KEY.value


def test_bmp_send_pix_rejected_without_known_reason(bmp, bmp_http):
    bmp_http.add("POST", "/internal/pix/enviar", {"sucesso": False, "mensagem": "Limite noturno"})
    assert bmp.send_pix("11144477735", 10).error_code == ErrorCode.UNKNOWN_ERROR.value


def test_bmp_pix_keys(bmp):
    chaves = bmp.get_pix_keys().data
    assert [c["tipo"] for c in chaves] == ["EMAIL", "CNPJ"]


def test_bmp_server_error_on_statement(bmp, bmp_http):
    bmp_http.add("GET", "/internal/account/extrato", FakeResponse(500, {"message": "erro interno"}))
    assert bmp.get_statement().error_code == "HTTP_500"


# ==============================================================================
# BMP-531
# ==============================================================================

def test_bmp_531_sends_bank_block_as_query(bmp_531, bmp_531_http):
    saldo = bmp_531.get_balance().data

    chamada = bmp_531_http.calls[0]
    assert chamada["path"] == "/bmp-531/account/saldo"
    assert chamada["params"] == DADOS_BANCARIOS_531
    assert saldo.account_id == "bmp-531-ttf"
    assert saldo.provider == BankProvider.BMP_531


def test_bmp_531_has_no_api_key_headers(bmp_531, bmp_531_http):
    bmp_531.get_balance()

    headers = bmp_531_http.calls[0]["headers"]
    assert "X-API-Key" not in headers
    assert headers["Authorization"] == "Bearer jwt-de-teste"


def test_bmp_531_statement_merges_filters_and_bank_block(bmp_531, bmp_531_http):
    bmp_531.get_statement(StandardFilters(limit=10))

    params = bmp_531_http.calls[0]["params"]
    assert params["limit"] == 10
    assert params["conta"] == "123456"
    assert params["numero_banco"] == "531"


def test_bmp_531_send_pix_body(bmp_531, bmp_531_http):
    assert bmp_531.send_pix("11222333000181", 99.9, "Pagamento TTF").success

    corpo = bmp_531_http.calls[0]["json"]
    assert corpo["chave"] == "11222333000181"
    assert corpo["informacoesAdicionais"] == "Pagamento TTF"
    assert corpo["dadosBancarios"] == DADOS_BANCARIOS_531


def test_bmp_531_pix_keys_without_bank_block(bmp_531, bmp_531_http):
    bmp_531.get_pix_keys()
    assert "params" not in bmp_531_http.calls[0]


def test_bmp_531_static_qr(bmp_531, bmp_531_http):
    resposta = bmp_531.generate_pix_qr("25.00", "Cobrança")

    assert resposta.success
    assert resposta.data.qr_code.startswith("000201")
    assert resposta.data.tx_id == "qr-531-001"
    corpo = bmp_531_http.calls[0]["json"]
    assert corpo["valor"] == 25.0
    assert corpo["informacoesAdicionais"] == "Cobrança"


def test_bmp_531_qr_invalid_amount(bmp_531, bmp_531_http):
    assert bmp_531.generate_pix_qr(0).error_code == ErrorCode.INVALID_AMOUNT.value
    assert bmp_531_http.calls == []


def test_bmp_531_does_not_support_boleto(bmp_531, bmp_531_http):
    assert bmp_531.generate_boleto({"amount": 1}).error_code == ErrorCode.NOT_SUPPORTED.value
