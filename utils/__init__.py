"""
Módulo de utilitários genéricos.

Contém:
- logger: Configuração de logging
- http_client: Cliente HTTP com retry
- rate_limiter: Rate limiting por instituição
- sanitizer: Sanitização de logs e detalhes de erro
- pix: Detecção de tipo de chave PIX
"""
