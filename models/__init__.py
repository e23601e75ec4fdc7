"""
Módulo de modelos.

Contém:
- banking_types: Tipos padronizados (saldo, extrato, PIX, envelope de resposta)
- exceptions: Exceções da camada bancária
"""
