# -*- coding: utf-8 -*-
"""
Provider BMP-531 (conta TTF Serviços Digitais).

Espelho do BMP com rotas /bmp-531/*. O backend exige o bloco de dados
bancários da conta em toda chamada: como query string nas consultas e dentro
do corpo nas operações. Não usa X-API-Key; a autenticação é só o Bearer.
"""
import uuid
from decimal import Decimal
from typing import Any, Dict, Optional

from config.settings import get_bmp_531_dados_bancarios
from models.banking_types import BankResponse, PixQRCode
from services.providers.bmp import BmpProvider


class Bmp531Provider(BmpProvider):

    default_account_id = "bmp-531-ttf"

    PATH_HEALTH = "/bmp-531/status"
    PATH_SALDO = "/bmp-531/account/saldo"
    PATH_EXTRATO = "/bmp-531/account/extrato"
    PATH_PIX_ENVIAR = "/bmp-531/pix/enviar"
    PATH_PIX_CHAVES = "/bmp-531/pix/chaves/listar"
    PATH_QR_ESTATICO = "/bmp-531/pix/qrcode/estatico"

    def __init__(self, settings, dados_bancarios: Optional[Dict[str, str]] = None, **kwargs):
        """
        Args:
            settings: Configuração resolvida do banco
            dados_bancarios: Bloco da conta (default: variáveis BMP_531_*)
            **kwargs: Repassados para BaseBankProvider
        """
        self.dados_bancarios = dict(dados_bancarios or get_bmp_531_dados_bancarios())
        super().__init__(settings, **kwargs)

        faltando = [k for k, v in self.dados_bancarios.items() if not v]
        if faltando:
            self.logger.warning(f"Dados bancários incompletos: {', '.join(faltando)}")

    def _institution_headers(self) -> Dict[str, str]:
        return {}

    def _request_params(self, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        return {**(params or {}), **self.dados_bancarios}

    def _request_body(self, body: Dict[str, Any], description: Optional[str] = None) -> Dict[str, Any]:
        return {
            **body,
            "informacoesAdicionais": description or "Transferência PIX via BMP-531",
            "dadosBancarios": dict(self.dados_bancarios),
        }

    def _get_pix_keys(self, account_id: Optional[str]) -> BankResponse:
        # Listagem de chaves não recebe os dados bancários
        resposta = self.authenticated_request("GET", self.PATH_PIX_CHAVES)
        chaves = resposta.get("chaves") or []
        self.logger.info(f"Chaves PIX obtidas: {len(chaves)}")
        return self.success(chaves)

    def _generate_pix_qr(self, amount: Decimal, description: Optional[str], account_id: Optional[str]) -> BankResponse:
        body = {
            "valor": self.amount_to_wire(amount),
            "informacoesAdicionais": description or "QR Code PIX",
            "dadosBancarios": dict(self.dados_bancarios),
        }
        resposta = self.authenticated_request("POST", self.PATH_QR_ESTATICO, body=body)

        qr = PixQRCode(
            qr_code=resposta.get("qrCode") or resposta.get("emv") or "",
            tx_id=str(resposta.get("txId") or resposta.get("id") or f"bmp-531-qr-{uuid.uuid4().hex[:12]}"),
            amount=amount,
            raw=resposta,
        )
        self.logger.info(f"QR Code gerado: {qr.tx_id}")
        return self.success(qr)
