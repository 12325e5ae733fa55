"""Auth — guard a section of the tree with an on_enter redirect.

Unauthenticated visits to anything under /account are redirected to
/login, carrying the original path in ``?next=``.  Logging in and
navigating back lands on the page that was asked for.

Run:
    cd examples/auth && PYTHONPATH=. waypoint match app /account/profile /login
"""

session: dict[str, str] = {}


def require_login(next_state, replace):
    if "user" not in session:
        replace({"pathname": "/login", "query": {"next": next_state.location.pathname}})


def log_in(user: str) -> None:
    session["user"] = user


def log_out() -> None:
    session.clear()


routes = {
    "path": "/",
    "name": "app",
    "component": "Shell",
    "index_route": {"name": "home", "component": "Home"},
    "child_routes": [
        {"path": "login", "name": "login", "component": "LoginForm"},
        {
            "path": "account",
            "name": "account",
            "component": "AccountLayout",
            "on_enter": require_login,
            "index_route": {"name": "overview", "component": "Overview"},
            "child_routes": [
                {"path": "profile", "name": "profile", "component": "Profile"},
            ],
        },
    ],
}
