"""
Módulo de configuração.

Contém:
- settings: Variáveis de ambiente
- banks: Registry de bancos e resolução por ambiente
"""
