"""
Configuração de logging para o projeto.

Configura logging para arquivo e console.
"""
import os
import logging
from datetime import datetime
from typing import Optional

from config.settings import get_log_level


def setup_logger(log_name: str, logs_dir: Optional[str] = None) -> str:
    """
    Configura logging para arquivo e console.

    Cria pasta logs/ se não existir e configura:
    - Handler de arquivo: logs/{log_name}_{timestamp}_pid{pid}.log
    - Handler de console: stdout
    - Formato: %(asctime)s - %(levelname)s - %(message)s
    - Level: LOG_LEVEL (default INFO)

    Args:
        log_name: Nome base do arquivo de log (sem extensão)
        logs_dir: Pasta de logs (default: logs/ na raiz do projeto)

    Returns:
        str: Caminho do arquivo de log
    """
    # Criar pasta de logs se não existir
    if logs_dir is None:
        logs_dir = os.path.join(os.path.dirname(os.path.abspath(__file__)), '..', 'logs')
    os.makedirs(logs_dir, exist_ok=True)

    # Nome do arquivo de log com timestamp e PID
    timestamp = datetime.now().strftime('%Y-%m-%d_%H-%M-%S')
    pid = os.getpid()
    log_filename = f"{log_name}_{timestamp}_pid{pid}.log"
    log_filepath = os.path.join(logs_dir, log_filename)

    level = getattr(logging, get_log_level(), logging.INFO)

    # Formato comum para arquivo e console
    log_format = '%(asctime)s - %(levelname)s - %(message)s'
    formatter = logging.Formatter(log_format)

    # Configurar root logger
    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    # IMPORTANTE: Remover handlers antigos para evitar duplicação
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
        handler.close()

    # Handler para arquivo
    file_handler = logging.FileHandler(log_filepath, encoding='utf-8')
    file_handler.setLevel(level)
    file_handler.setFormatter(formatter)
    root_logger.addHandler(file_handler)

    # Handler para console (com mesmo formato)
    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    # urllib3 loga cada retry em WARNING; manter apenas erros
    logging.getLogger("urllib3").setLevel(logging.ERROR)

    logging.info(f"Log sendo salvo em: {log_filepath}")
    return log_filepath
