"""
Módulo de controllers.

Contém:
- unified_banking: Serviço bancário unificado (ponto de entrada da aplicação)
"""
