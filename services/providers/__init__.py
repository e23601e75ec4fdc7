"""
Providers bancários.

Cada módulo traduz o formato de uma instituição para o modelo padronizado:
- bmp: BMP (Banco Master Pagamentos)
- bmp_531: BMP-531 (conta TTF)
- bitso: Bitso (PIX BRL)
"""
from services.providers.base import BaseBankProvider
from services.providers.bitso import BitsoProvider
from services.providers.bmp import BmpProvider
from services.providers.bmp_531 import Bmp531Provider

__all__ = ["BaseBankProvider", "BmpProvider", "Bmp531Provider", "BitsoProvider"]
