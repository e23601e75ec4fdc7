"""
Módulo de serviços bancários.

Contém:
- providers: Tradução de cada banco para o modelo padronizado
- provider_factory: Criação de providers a partir do registry de bancos
- bank_manager: Registry de providers e operações multi-banco
- token_store: Origem do token JWT enviado aos bancos
"""
