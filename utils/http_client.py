"""
Cliente HTTP seguro com retry e timeout.

Fornece sessão HTTP configurada com:
- Retry automático apenas para métodos idempotentes (GET/PUT/DELETE)
- Backoff exponencial
- User-Agent identificável
- Timeout obrigatório
"""
from typing import Dict, Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from config.settings import get_http_max_retries


DEFAULT_USER_AGENT = "baas-banking-providers/1.0"


class HTTPClient:
    """
    Cliente HTTP seguro com retry, timeout e User-Agent.

    Configuração:
    - Retry: HTTP_MAX_RETRIES tentativas (default 3)
    - Backoff: exponencial (0.5s, 1s, 2s, ...)
    - Status codes para retry: 408, 429, 500, 502, 503, 504
    - POST nunca é repetido (um PIX não pode ser enviado duas vezes)
    - Timeout de leitura nunca é repetido (o timeout do banco é rígido)
    """

    def __init__(self, headers: Optional[Dict[str, str]] = None, max_retries: Optional[int] = None):
        self.session = requests.Session()

        # Configurar retry
        retry = Retry(
            total=get_http_max_retries() if max_retries is None else max_retries,
            backoff_factor=0.5,
            read=False,
            status_forcelist=[408, 429, 500, 502, 503, 504],
            allowed_methods=frozenset(["GET", "PUT", "DELETE"]),
            raise_on_status=False,
        )

        # Configurar adapter
        adapter = HTTPAdapter(
            pool_connections=10,
            pool_maxsize=10,
            max_retries=retry
        )

        # Montar sessão
        self.session.mount("https://", adapter)
        self.session.mount("http://", adapter)
        self.session.headers.update({
            'User-Agent': DEFAULT_USER_AGENT
        })
        if headers:
            self.session.headers.update(headers)

    def get_session(self) -> requests.Session:
        """
        Retorna sessão HTTP configurada.

        Returns:
            requests.Session: Sessão com retry configurado
        """
        return self.session

    def request(self, method: str, url: str, timeout: float = 30, **kwargs) -> requests.Response:
        """Requisição genérica com timeout obrigatório (default 30s)."""
        return self.session.request(method, url, timeout=timeout, **kwargs)
