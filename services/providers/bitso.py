# -*- coding: utf-8 -*-
"""
Provider Bitso (exchange operando PIX em BRL).

A autenticação com a Bitso (API key/secret) é feita pelo backend a partir do
Bearer do usuário; este provider só envia o token.

Formato do extrato Bitso:
    {"fundings": [...], "withdrawals": [...], "next_cursor": ..., "hasMore": bool}
fundings são recebimentos (CRÉDITO) e withdrawals são envios (DÉBITO).
"""
import time
import uuid
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional, Union

from config.settings import get_bitso_pix_key, get_bitso_pix_key_type, get_bitso_webhook_url
from models.banking_types import (
    BankFeature,
    BankResponse,
    Counterparty,
    ErrorCode,
    Pagination,
    PixInfo,
    PixKeyType,
    PixQRCode,
    PixSendResult,
    StandardFilters,
    StandardTransaction,
    TransactionStatus,
    TransactionType,
    parse_timestamp,
    to_decimal,
)
from services.providers.base import DEFAULT_STATUS_MAP, BaseBankProvider, bank_operation, classify_backend_message
from utils.pix import detect_pix_key_type, is_valid_key_type, normalize_key_type


class BitsoProvider(BaseBankProvider):

    default_account_id = "bitso-crypto"

    # A API da Bitso usa "complete" para operações liquidadas
    status_map = {**DEFAULT_STATUS_MAP, "complete": TransactionStatus.COMPLETED}

    PATH_SALDO = "/api/bitso/balance/consultar"
    PATH_EXTRATO = "/api/bitso/pix/extrato"
    PATH_PIX_ENVIAR = "/api/bitso/pix/enviar"
    PATH_QR_DINAMICO = "/api/bitso/pix/qr-dinamico"
    PATH_QR_ESTATICO = "/api/bitso/pix/qr-estatico"

    LIMITE_EXTRATO_PADRAO = 50

    def __init__(
        self,
        settings,
        pix_key: Optional[str] = None,
        pix_key_type: Optional[str] = None,
        webhook_url: Optional[str] = None,
        **kwargs,
    ):
        """
        Args:
            settings: Configuração resolvida do banco
            pix_key: Chave PIX própria para QR Codes (default: BITSO_PIX_KEY)
            pix_key_type: Tipo da chave própria (default: BITSO_PIX_KEY_TYPE ou detectado)
            webhook_url: Callback dos QR Codes (default: BITSO_WEBHOOK_URL)
            **kwargs: Repassados para BaseBankProvider
        """
        self.pix_key = pix_key if pix_key is not None else get_bitso_pix_key()
        self.pix_key_type = pix_key_type if pix_key_type is not None else get_bitso_pix_key_type()
        self.webhook_url = webhook_url or get_bitso_webhook_url()
        super().__init__(settings, **kwargs)

    # ==========================================================================
    # OPERAÇÕES OBRIGATÓRIAS
    # ==========================================================================

    @bank_operation("verificar conectividade")
    def health_check(self) -> BankResponse:
        return self._timed_health_check(self.PATH_SALDO)

    @bank_operation("consultar saldo")
    def get_balance(self, account_id: Optional[str] = None) -> BankResponse:
        resposta = self.authenticated_request("GET", self.PATH_SALDO)

        saldos = (resposta.get("payload") or {}).get("balances") or []
        brl = next((b for b in saldos if str(b.get("currency", "")).lower() == "brl"), None)
        if brl is None:
            return self.failure(ErrorCode.UNKNOWN_ERROR, "Saldo BRL não encontrado na Bitso", {"currencies": [
                b.get("currency") for b in saldos
            ]})

        saldo = self.build_balance(
            available=brl.get("available"),
            blocked=brl.get("locked"),
            account_id=account_id,
            raw=resposta,
        )
        self.logger.info(f"Saldo BRL obtido: disponível={saldo.available}, bloqueado={saldo.blocked}")
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

        params = {
            "currency": "brl",
            "limit": filters.limit or self.LIMITE_EXTRATO_PADRAO,
            "cursor": filters.cursor,
            "start_date": self.format_date(filters.date_from),
            "end_date": self.format_date(filters.date_to),
            **filters.extra,
        }
        resposta = self.authenticated_request("GET", self.PATH_EXTRATO, params=params)

        conta = account_id or self.default_account_id
        transacoes = [
            self._map_transaction(item, conta, TransactionType.CREDIT)
            for item in resposta.get("fundings") or []
        ]
        transacoes += [
            self._map_transaction(item, conta, TransactionType.DEBIT)
            for item in resposta.get("withdrawals") or []
        ]

        extrato = self.build_statement(
            transacoes,
            conta,
            filters=filters,
            pagination=Pagination(
                cursor=resposta.get("next_cursor"),
                has_next=bool(resposta.get("hasMore") or resposta.get("has_more")),
                total=resposta.get("total"),
            ),
            raw=resposta,
        )
        self.logger.info(f"Extrato obtido: {len(extrato.transactions)} transações")
        return self.success(extrato)

    @bank_operation("buscar transação")
    def get_transaction(self, transaction_id: str, account_id: Optional[str] = None) -> BankResponse:
        return self._find_transaction(transaction_id, account_id)

    def _map_transaction(self, item: Dict[str, Any], account_id: str, tipo: TransactionType) -> StandardTransaction:
        if tipo == TransactionType.CREDIT:
            descricao_padrao, prefixo = "Recebimento PIX Bitso", "funding"
        else:
            descricao_padrao, prefixo = "Envio PIX Bitso", "withdrawal"

        counterparty = None
        if any(item.get(k) for k in ("recipient_name", "recipient_document", "bank_name")):
            counterparty = Counterparty(
                name=item.get("recipient_name"),
                document=item.get("recipient_document"),
                bank=item.get("bank_name"),
            )

        return StandardTransaction(
            provider=self.provider,
            id=str(item.get("id") or self._fallback_id(prefixo)),
            external_id=item.get("external_id"),
            account_id=account_id,
            amount=abs(self.normalize_amount(item.get("amount"))),
            currency=str(item.get("currency") or "brl").upper(),
            type=tipo,
            status=self.map_status(item.get("status")),
            description=item.get("description") or item.get("method") or descricao_padrao,
            date=parse_timestamp(item.get("created_at")),
            counterparty=counterparty,
            pix_info=PixInfo(key=item.get("pix_key"), end_to_end_id=item.get("end_to_end_id")),
            metadata={"method": item.get("method"), "status": item.get("status")},
            raw=item,
        )

    # ==========================================================================
    # PIX
    # ==========================================================================

    def _get_pix_keys(self, account_id: Optional[str]) -> BankResponse:
        # A Bitso não expõe listagem de chaves; a única conhecida é a configurada
        chaves: List[Dict[str, Any]] = []
        if self.pix_key:
            chaves.append({
                "chave": self.pix_key,
                "tipo": self._own_key_type(),
                "status": "ATIVA",
                "provider": self.provider.value,
            })
        return self.success(chaves)

    def _send_pix(
        self,
        key: str,
        amount: Decimal,
        description: Optional[str],
        key_type: PixKeyType,
        account_id: Optional[str],
    ) -> BankResponse:
        origin_id = f"baas_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"
        body = {
            "pix_key": key,
            "pix_key_type": key_type.value,
            "amount": str(amount),
            "currency": "brl",
            "origin_id": origin_id,
        }
        resposta = self.authenticated_request("POST", self.PATH_PIX_ENVIAR, body=body)

        if not resposta.get("sucesso"):
            code, texto = classify_backend_message(resposta.get("erro"), resposta.get("mensagem")) or (
                ErrorCode.UNKNOWN_ERROR, resposta.get("mensagem") or "Erro ao enviar PIX"
            )
            self.logger.error(f"Erro no envio PIX: {code.value}")
            return self.failure(code, texto, {"origin_id": origin_id})

        dados = resposta.get("data") or {}
        destinatario = dados.get("destinatario") or {}
        resultado = PixSendResult(
            transaction_id=str(dados.get("wid") or self._fallback_id("pix")),
            status=self.map_status(dados.get("status") or "pending"),
            amount=amount,
            key=key,
            key_type=key_type,
            end_to_end_id=dados.get("end_to_end_id"),
            counterparty=Counterparty(
                name=destinatario.get("nome"),
                document=destinatario.get("documento"),
                bank=destinatario.get("banco"),
            ) if destinatario else None,
            raw=resposta,
        )
        self.logger.info(f"PIX enviado: wid={resultado.transaction_id} ({resultado.status.value})")
        return self.success(resultado)

    # ==========================================================================
    # QR CODE
    # ==========================================================================

    def _own_key_type(self) -> str:
        return normalize_key_type(self.pix_key_type) or detect_pix_key_type(self.pix_key).value

    def _generate_pix_qr(self, amount: Decimal, description: Optional[str], account_id: Optional[str]) -> BankResponse:
        if not self.pix_key:
            return self.failure(
                ErrorCode.INVALID_PARAMETERS,
                "Para gerar QR Code é necessário configurar uma chave PIX (BITSO_PIX_KEY) "
                "ou usar create_dynamic_qr com chave específica",
            )
        return self._create_qr(self.PATH_QR_DINAMICO, self.pix_key, self._own_key_type(), amount)

    @bank_operation("criar QR Code dinâmico")
    def create_dynamic_qr(
        self,
        amount: Any,
        pix_key: str,
        key_type: Optional[str] = None,
        description: Optional[str] = None,
    ) -> BankResponse:
        """QR Code dinâmico (com valor) vinculado a uma chave PIX específica."""
        if not self.has_feature(BankFeature.PIX_QR):
            return self._not_supported("QR Code PIX")
        try:
            valor = to_decimal(amount)
        except (InvalidOperation, TypeError, ValueError):
            return self.failure(ErrorCode.INVALID_AMOUNT, f"Valor inválido: {amount}")
        if not valor.is_finite() or valor <= 0:
            return self.failure(ErrorCode.INVALID_AMOUNT, "Valor deve ser maior que zero")
        if not pix_key:
            return self.failure(ErrorCode.INVALID_PARAMETERS, "Chave PIX é obrigatória")

        tipo = normalize_key_type(key_type) or detect_pix_key_type(pix_key).value
        if not is_valid_key_type(tipo):
            return self.failure(ErrorCode.INVALID_KEY_TYPE, f"Tipo de chave inválido: {key_type}")
        return self._create_qr(self.PATH_QR_DINAMICO, pix_key, tipo, valor)

    @bank_operation("criar QR Code estático")
    def create_static_qr(
        self,
        pix_key: str,
        key_type: Optional[str] = None,
        description: Optional[str] = None,
    ) -> BankResponse:
        """QR Code estático (sem valor) vinculado a uma chave PIX específica."""
        if not self.has_feature(BankFeature.PIX_QR):
            return self._not_supported("QR Code PIX")
        if not pix_key:
            return self.failure(ErrorCode.INVALID_PARAMETERS, "Chave PIX é obrigatória")

        tipo = normalize_key_type(key_type) or detect_pix_key_type(pix_key).value
        if not is_valid_key_type(tipo):
            return self.failure(ErrorCode.INVALID_KEY_TYPE, f"Tipo de chave inválido: {key_type}")
        return self._create_qr(self.PATH_QR_ESTATICO, pix_key, tipo, None)

    def _create_qr(self, path: str, pix_key: str, key_type: str, amount: Optional[Decimal]) -> BankResponse:
        estatico = amount is None
        body = {
            "currency": "brl",
            "pix_key": pix_key,
            "pix_key_type": key_type,
            "reference": f"QR-{'STATIC-' if estatico else ''}{int(time.time() * 1000)}",
            "callback_url": self.webhook_url,
        }
        if not estatico:
            body["amount"] = str(amount)

        resposta = self.authenticated_request("POST", path, body=body)
        dados = resposta.get("data") or {}
        qr_code = dados.get("qrCode") or dados.get("qr_code_payload") or ""
        if not qr_code:
            return self.failure(ErrorCode.UNKNOWN_ERROR, "Bitso não retornou o QR Code", resposta)

        qr = PixQRCode(
            qr_code=qr_code,
            tx_id=str(dados.get("fid") or self._fallback_id("qr-static" if estatico else "qr")),
            amount=amount,
            raw=resposta,
        )
        self.logger.info(f"QR Code {'estático' if estatico else 'dinâmico'} criado: {qr.tx_id}")
        return self.success(qr)
