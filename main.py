# -*- coding: utf-8 -*-
"""
Sistema bancário multi-banco: diagnóstico.

Inicializa a camada bancária e verifica a frota de bancos:
1. Registrar bancos padrão (BMP, BMP-531, Bitso)
2. Health check de cada banco
3. Ativar a conta informada (opcional)
4. Consultar saldo de todas as contas

Uso:
    python main.py [id-da-conta-legada]

Dependências:
- Backend bancário (gateway): BANKING_ENVIRONMENT, BANKING_AUTH_TOKEN
- Credenciais por banco: ver config/.env
"""
import logging
import os
import sys
from dotenv import load_dotenv
from utils.logger import setup_logger
from controllers.unified_banking import run


# ==============================================================================
# CONFIGURAÇÃO INICIAL
# ==============================================================================

# Carregar variáveis de ambiente
dotenv_path = os.path.join('config', '.env')
load_dotenv(dotenv_path=dotenv_path)

# Configurar logging
setup_logger("baas-banking-providers")


# ==============================================================================
# ENTRY POINT
# ==============================================================================

if __name__ == "__main__":
    try:
        run(sys.argv[1] if len(sys.argv) > 1 else None)
    except Exception as e:
        logging.exception(f"Erro fatal: {e}")
        exit(1)
