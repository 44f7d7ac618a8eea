"""
Estado de autenticación observable y guardia de rutas protegidas.

El contexto de autenticación se crea explícitamente y se pasa a quien lo
necesita; no hay un singleton global. La guardia se suscribe al contexto y
reevalúa su decisión con cada emisión.
"""
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, List, Optional

logger = logging.getLogger(__name__)


class AuthStatus(str, Enum):
    loading = "loading"
    authenticated = "authenticated"
    unauthenticated = "unauthenticated"


@dataclass(frozen=True)
class AuthState:
    status: AuthStatus
    user: Optional[Any] = None


LOADING = AuthState(AuthStatus.loading)

Listener = Callable[[AuthState], None]


class AuthContext:
    """Estado de autenticación con suscripción/notificación"""

    def __init__(self):
        self._state = LOADING
        self._listeners: List[Listener] = []
        self._closed = False

    @property
    def state(self) -> AuthState:
        return self._state

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Registra un observador; recibe el estado actual de inmediato"""
        self._listeners.append(listener)
        listener(self._state)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def resolve(self, user: Optional[Any]):
        if user is None:
            self._emit(AuthState(AuthStatus.unauthenticated))
        else:
            self._emit(AuthState(AuthStatus.authenticated, user))

    def reset(self):
        self._emit(LOADING)

    def close(self):
        self._listeners.clear()
        self._closed = True

    def _emit(self, state: AuthState):
        if self._closed:
            return
        self._state = state
        for listener in list(self._listeners):
            listener(state)


class GuardOutcome(str, Enum):
    placeholder = "placeholder"
    redirect = "redirect"
    content = "content"


class RouteGuard:
    """Decide qué mostrar en una ruta protegida según el estado de autenticación.

    - loading: marcador de posición, sin navegación
    - unauthenticated: una única navegación al login por cada transición
    - authenticated: el contenido protegido
    """

    def __init__(self, navigate: Callable[[str], None], login_path: str = "/login"):
        self.navigate = navigate
        self.login_path = login_path
        self.state = LOADING
        self.outcome = GuardOutcome.placeholder

    def attach(self, context: AuthContext) -> Callable[[], None]:
        return context.subscribe(self.on_state)

    def on_state(self, state: AuthState) -> GuardOutcome:
        previous = self.state.status
        self.state = state

        if state.status is AuthStatus.loading:
            self.outcome = GuardOutcome.placeholder
        elif state.status is AuthStatus.unauthenticated:
            self.outcome = GuardOutcome.redirect
            if previous is not AuthStatus.unauthenticated:
                logger.debug("Sin sesión, redirigiendo a %s", self.login_path)
                self.navigate(self.login_path)
        else:
            self.outcome = GuardOutcome.content
        return self.outcome

    @property
    def user(self):
        if self.outcome is GuardOutcome.content:
            return self.state.user
        return None
