# -*- coding: utf-8 -*-
"""
Provider BMP (Banco Master Pagamentos).

Traduz as rotas /internal/* do backend para o modelo padronizado. O backend
exige X-API-Key/X-API-Secret além do Bearer do usuário.

Formato do extrato BMP:
    {"items": [{"id", "external_id", "value", "type": "CRÉDITO"|"DÉBITO",
                "identified", "client", "document", "dateTime", "code"}],
     "next_cursor": ..., "has_more": bool, "total": int}
"""
from decimal import Decimal
from typing import Any, Dict, List, Optional, Union

from models.banking_types import (
    BankResponse,
    Counterparty,
    ErrorCode,
    Pagination,
    PixKeyType,
    PixSendResult,
    StandardFilters,
    StandardTransaction,
    TransactionStatus,
    TransactionType,
    parse_timestamp,
)
from services.providers.base import BaseBankProvider, bank_operation, classify_backend_message


class BmpProvider(BaseBankProvider):

    default_account_id = "bmp-main"

    # Rotas do backend
    PATH_HEALTH = "/internal/account/balance"
    PATH_SALDO = "/internal/account/saldo"
    PATH_EXTRATO = "/internal/account/extrato"
    PATH_PIX_ENVIAR = "/internal/pix/enviar"
    PATH_PIX_CHAVES = "/internal/pix/chaves/listar"

    DESCRICAO_PIX_PADRAO = "Transferência PIX"

    def _institution_headers(self) -> Dict[str, str]:
        credenciais = self.settings.credentials
        headers = {}
        if credenciais.api_key:
            headers["X-API-Key"] = credenciais.api_key
        if credenciais.api_secret:
            headers["X-API-Secret"] = credenciais.api_secret
        return headers

    def _request_params(self, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Parâmetros adicionais enviados em toda consulta (BMP: nenhum)."""
        return dict(params or {})

    def _request_body(self, body: Dict[str, Any], description: Optional[str] = None) -> Dict[str, Any]:
        """Campos adicionais do corpo das operações (BMP: nenhum)."""
        return body

    # ==========================================================================
    # OPERAÇÕES OBRIGATÓRIAS
    # ==========================================================================

    @bank_operation("verificar conectividade")
    def health_check(self) -> BankResponse:
        return self._timed_health_check(self.PATH_HEALTH)

    @bank_operation("consultar saldo")
    def get_balance(self, account_id: Optional[str] = None) -> BankResponse:
        self.logger.info(f"Consultando saldo (conta={account_id or self.default_account_id})")
        resposta = self.authenticated_request("GET", self.PATH_SALDO, params=self._request_params())

        saldo = self.build_balance(
            available=resposta.get("saldoDisponivel"),
            blocked=resposta.get("saldoBloqueado"),
            account_id=account_id,
            last_update=resposta.get("atualizadoEm"),
            raw=resposta,
        )
        self.logger.info(f"Saldo obtido: disponível={saldo.available}, bloqueado={saldo.blocked}")
        return self.success(saldo)

    @bank_operation("consultar extrato")
    def get_statement(
        self,
        filters: Union[StandardFilters, Dict[str, Any], None] = None,
        account_id: Optional[str] = None,
    ) -> BankResponse:
        filters = self.coerce_filters(filters)
        erro = self.validate_filters(filters)
        if erro:
            return self.failure(ErrorCode.INVALID_FILTERS, erro)

        params = self._request_params({
            "limit": filters.limit,
            "cursor": filters.cursor,
            "de": self.format_date(filters.date_from),
            "ate": self.format_date(filters.date_to),
            **filters.extra,
        })
        resposta = self.authenticated_request("GET", self.PATH_EXTRATO, params=params)

        conta = account_id or self.default_account_id
        transacoes = [self._map_transaction(item, conta) for item in resposta.get("items") or []]
        extrato = self.build_statement(
            transacoes,
            conta,
            filters=filters,
            pagination=Pagination(
                cursor=resposta.get("next_cursor"),
                has_next=bool(resposta.get("has_more")),
                total=resposta.get("total"),
            ),
            raw=resposta,
        )
        self.logger.info(f"Extrato obtido: {len(extrato.transactions)} transações")
        return self.success(extrato)

    @bank_operation("buscar transação")
    def get_transaction(self, transaction_id: str, account_id: Optional[str] = None) -> BankResponse:
        return self._find_transaction(transaction_id, account_id)

    def _map_transaction(self, item: Dict[str, Any], account_id: str) -> StandardTransaction:
        valor = self.normalize_amount(item.get("value"))
        tipo = TransactionType.CREDIT if item.get("type") == TransactionType.CREDIT.value else TransactionType.DEBIT
        cliente = item.get("client")
        documento = item.get("document")

        return StandardTransaction(
            provider=self.provider,
            id=str(item.get("id") or self._fallback_id("tx")),
            external_id=item.get("external_id"),
            account_id=account_id,
            # Alguns lançamentos chegam com sinal; a direção vem só de `type`
            amount=abs(valor),
            type=tipo,
            status=TransactionStatus.COMPLETED if item.get("identified") else TransactionStatus.PENDING,
            description=cliente or f"Transação {tipo.value}",
            date=parse_timestamp(item.get("dateTime")),
            counterparty=Counterparty(name=cliente, document=documento) if cliente or documento else None,
            metadata={"code": item.get("code"), "identified": bool(item.get("identified"))},
            raw=item,
        )

    # ==========================================================================
    # PIX
    # ==========================================================================

    def _get_pix_keys(self, account_id: Optional[str]) -> BankResponse:
        resposta = self.authenticated_request("GET", self.PATH_PIX_CHAVES, params=self._request_params())
        chaves: List[Dict[str, Any]] = resposta.get("chaves") or []
        self.logger.info(f"Chaves PIX obtidas: {len(chaves)}")
        return self.success(chaves)

    def _send_pix(
        self,
        key: str,
        amount: Decimal,
        description: Optional[str],
        key_type: PixKeyType,
        account_id: Optional[str],
    ) -> BankResponse:
        body = self._request_body({
            "chave": key,
            "valor": self.amount_to_wire(amount),
            "descricao": description or self.DESCRICAO_PIX_PADRAO,
        }, description)
        resposta = self.authenticated_request("POST", self.PATH_PIX_ENVIAR, body=body)

        if resposta.get("sucesso") is False:
            mensagem = resposta.get("mensagem") or resposta.get("erro")
            code, texto = classify_backend_message(mensagem) or (ErrorCode.UNKNOWN_ERROR, "PIX rejeitado pelo banco")
            self.logger.warning(f"PIX rejeitado: {code.value}")
            return self.failure(code, texto, resposta)

        resultado = PixSendResult(
            transaction_id=str(resposta.get("codigoTransacao") or self._fallback_id("pix")),
            status=self.map_status(resposta.get("status") or "processing"),
            amount=amount,
            key=key,
            key_type=key_type,
            end_to_end_id=resposta.get("endToEndId") or resposta.get("end_to_end_id"),
            raw=resposta,
        )
        self.logger.info(f"PIX enviado: {resultado.transaction_id} ({resultado.status.value})")
        return self.success(resultado)
