"""
Armazenamento do token de autenticação (JWT) do usuário.

A camada bancária apenas lê o token; quem o grava é o fluxo de login da
aplicação.
"""
import threading
from typing import Optional

from config.settings import get_auth_token


class TokenStore:
    """Contrato: get_token() retorna o token atual ou None."""

    def get_token(self) -> Optional[str]:
        raise NotImplementedError


class EnvTokenStore(TokenStore):
    """Lê o token de BANKING_AUTH_TOKEN a cada chamada."""

    def get_token(self) -> Optional[str]:
        return get_auth_token() or None


class StaticTokenStore(TokenStore):
    """Token mantido em memória (atualizável pelo fluxo de login)."""

    def __init__(self, token: Optional[str] = None):
        self._token = token
        self._lock = threading.Lock()

    def set_token(self, token: Optional[str]) -> None:
        with self._lock:
            self._token = token

    def get_token(self) -> Optional[str]:
        with self._lock:
            return self._token
