"""
Rate limiter por janela deslizante, seguro para uso entre threads.

Um limitador é compartilhado por instituição: todas as chamadas (inclusive as
disparadas em paralelo pela execução multi-banco) disputam a mesma cota.
"""
import time
import logging
import threading
from collections import deque
from functools import wraps
from typing import Callable, Dict, List, Optional, Tuple

from models.banking_types import RateLimitPolicy


logger = logging.getLogger(__name__)


class RateLimiter:
    """
    Limita o número de chamadas em um período de tempo.

    Pode ser usado como decorador ou chamando acquire() antes de cada chamada.

    Args:
        max_calls: Número máximo de chamadas permitidas
        period: Período em segundos (ex: 60 para 1 minuto)
        name: Nome para os logs
        clock: Função de relógio (injetável em testes)
        sleep: Função de espera (injetável em testes)

    Exemplo:
        @RateLimiter(max_calls=10, period=60)  # 10 chamadas por minuto
        def chamar_api():
            ...
    """

    def __init__(
        self,
        max_calls: int,
        period: float,
        name: str = "",
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        if max_calls < 1:
            raise ValueError("max_calls deve ser >= 1")
        self.max_calls = max_calls
        self.period = period
        self.name = name
        self._clock = clock
        self._sleep = sleep
        self._calls = deque()
        self._lock = threading.Lock()

    def _reserve(self) -> float:
        """Registra a chamada se houver cota; senão retorna quanto esperar."""
        with self._lock:
            now = self._clock()

            # Remove chamadas antigas (fora do período)
            while self._calls and self._calls[0] <= now - self.period:
                self._calls.popleft()

            if len(self._calls) < self.max_calls:
                self._calls.append(now)
                return 0.0

            return self.period - (now - self._calls[0])

    def acquire(self) -> float:
        """
        Bloqueia até haver cota disponível.

        Returns:
            float: Tempo total aguardado em segundos
        """
        aguardado = 0.0
        while True:
            espera = self._reserve()
            if espera <= 0:
                return aguardado
            logger.warning(
                f"Rate limit atingido para {self.name or 'chamada'}. "
                f"Aguardando {espera:.2f}s..."
            )
            self._sleep(espera)
            aguardado += espera

    def __call__(self, func: Callable) -> Callable:
        @wraps(func)
        def wrapper(*args, **kwargs):
            self.acquire()
            return func(*args, **kwargs)

        return wrapper


class CompositeRateLimiter:
    """Aplica várias janelas (minuto, hora, burst) em sequência."""

    def __init__(self, limiters: List[RateLimiter]):
        self.limiters = limiters

    def acquire(self) -> float:
        return sum(limiter.acquire() for limiter in self.limiters)


def build_rate_limiter(
    policy: RateLimitPolicy,
    name: str = "",
    clock: Callable[[], float] = time.monotonic,
    sleep: Callable[[float], None] = time.sleep,
) -> CompositeRateLimiter:
    """Cria o limitador de uma política (por minuto, por hora e burst por segundo)."""
    limiters = [
        RateLimiter(policy.requests_per_minute, 60, f"{name}/min", clock, sleep),
        RateLimiter(policy.requests_per_hour, 3600, f"{name}/hora", clock, sleep),
    ]
    if policy.burst_limit:
        limiters.append(RateLimiter(policy.burst_limit, 1, f"{name}/burst", clock, sleep))
    return CompositeRateLimiter(limiters)


# Cache de limitadores compartilhados por instituição
_shared_limiters: Dict[Tuple[str, RateLimitPolicy], CompositeRateLimiter] = {}
_shared_lock = threading.Lock()


def get_shared_rate_limiter(key: str, policy: Optional[RateLimitPolicy]) -> Optional[CompositeRateLimiter]:
    """
    Retorna o limitador compartilhado de uma instituição.

    Instâncias diferentes do mesmo provider (ex: re-registro) compartilham a cota.
    """
    if policy is None:
        return None
    with _shared_lock:
        limiter = _shared_limiters.get((key, policy))
        if limiter is None:
            limiter = build_rate_limiter(policy, name=key)
            _shared_limiters[(key, policy)] = limiter
        return limiter
