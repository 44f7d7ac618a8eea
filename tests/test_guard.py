from guard import AuthContext, AuthState, AuthStatus, GuardOutcome, RouteGuard


class Navigator:
    def __init__(self):
        self.calls = []

    def __call__(self, path):
        self.calls.append(path)


def _guarded(login_path="/login"):
    nav = Navigator()
    context = AuthContext()
    guard = RouteGuard(nav, login_path=login_path)
    guard.attach(context)
    return context, guard, nav


def test_loading_renders_placeholder_without_navigation():
    context, guard, nav = _guarded()
    assert context.state.status is AuthStatus.loading
    assert guard.outcome is GuardOutcome.placeholder
    assert guard.user is None
    assert nav.calls == []


def test_authenticated_renders_content():
    context, guard, nav = _guarded()
    context.resolve({"email": "ana@example.com"})
    assert guard.outcome is GuardOutcome.content
    assert guard.user == {"email": "ana@example.com"}
    assert nav.calls == []


def test_unauthenticated_redirects_once():
    context, guard, nav = _guarded()
    context.resolve(None)
    context.resolve(None)
    assert guard.outcome is GuardOutcome.redirect
    assert guard.user is None
    assert nav.calls == ["/login"]


def test_each_transition_to_unauthenticated_navigates_once():
    context, guard, nav = _guarded(login_path="/login?redirect=/account")
    context.resolve(None)
    context.resolve("ana")
    context.resolve(None)
    context.reset()
    context.resolve(None)
    assert nav.calls == ["/login?redirect=/account"] * 3


def test_never_renders_content_while_unauthenticated():
    context, guard, nav = _guarded()
    outcomes = []
    context.subscribe(lambda state: outcomes.append((state.status, guard.outcome)))
    for user in ["ana", None, None, "ana", None]:
        context.resolve(user)
        context.reset()
    for status, outcome in outcomes:
        if status is AuthStatus.unauthenticated:
            assert outcome is not GuardOutcome.content


def test_on_state_without_context():
    nav = Navigator()
    guard = RouteGuard(nav)
    assert guard.on_state(AuthState(AuthStatus.authenticated, "ana")) is GuardOutcome.content
    assert guard.on_state(AuthState(AuthStatus.unauthenticated)) is GuardOutcome.redirect
    assert nav.calls == ["/login"]


def test_subscribe_receives_current_state_and_unsubscribe():
    context = AuthContext()
    seen = []
    unsubscribe = context.subscribe(seen.append)
    context.resolve("ana")
    unsubscribe()
    context.resolve(None)
    assert [s.status for s in seen] == [AuthStatus.loading, AuthStatus.authenticated]


def test_close_stops_emissions():
    context, guard, nav = _guarded()
    context.close()
    context.resolve(None)
    assert guard.outcome is GuardOutcome.placeholder
    assert context.state.status is AuthStatus.loading
    assert nav.calls == []
