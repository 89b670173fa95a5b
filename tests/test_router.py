"""Tests for keel.routing.router — route table, groups, and dispatch."""

import pytest

from keel.container import Container
from keel.errors import ConfigurationError, InvalidAction
from keel.http.request import Request
from keel.http.response import Response
from keel.middleware import Middleware
from keel.routing import Route, Router, to_response
from keel.routing.router import NOT_FOUND_BODY


def home(request: Request) -> str:
    return "home"


def show_user(request, id):  # noqa: A002, ANN001, ANN201
    return f"user {id}"


def show_comment(request, post, comment):  # noqa: ANN001, ANN201
    return f"{post}/{comment}"


class Greeter:
    def greet(self) -> str:
        return "hello"


class UserController:
    def __init__(self, greeter: Greeter) -> None:
        self.greeter = greeter

    def show(self, request, id):  # noqa: A002, ANN001, ANN201
        return f"{self.greeter.greet()} {id}"

    def index(self, request):  # noqa: ANN001, ANN201
        return "index"


class Deny:
    def handle(self, request: Request) -> Response | None:
        return Response("denied", status=403)


class Recorder:
    calls: list[str] = []

    def handle(self, request: Request) -> Response | None:
        Recorder.calls.append(request.path)
        return None


def _dispatch(router: Router, method: str, path: str, container: Container | None = None) -> Response:
    return router.dispatch(Request.build(method, path), container or Container())


# =============================================================================
# Registration
# =============================================================================


class TestRegistration:
    def test_shorthands_register_methods(self) -> None:
        router = Router()
        assert router.get("/a", home).methods == frozenset({"GET"})
        assert router.post("/a", home).methods == frozenset({"POST"})
        assert router.put("/a", home).methods == frozenset({"PUT"})
        assert router.delete("/a", home).methods == frozenset({"DELETE"})

    def test_any_registers_four_methods(self) -> None:
        route = Router().any("/ping", home)
        assert route.methods == frozenset({"GET", "POST", "PUT", "DELETE"})

    def test_uri_normalized(self) -> None:
        assert Router().get("users/", home).uri == "/users"

    def test_methods_uppercased(self) -> None:
        assert Router().add_route(["get", "post"], "/x", home).methods == frozenset({"GET", "POST"})

    def test_re_registration_replaces(self) -> None:
        router = Router()
        router.get("/x", home)
        router.get("/x", show_user)
        found = router.match("GET", "/x")
        assert found is not None
        assert found.route.action is show_user
        assert [r.action for r in router.routes] == [show_user]

    def test_routes_in_registration_order(self) -> None:
        router = Router()
        router.get("/b", home)
        router.post("/a", home)
        assert [r.uri for r in router.routes] == ["/b", "/a"]

    def test_freeze_rejects_registration(self) -> None:
        router = Router()
        router.freeze()
        with pytest.raises(RuntimeError, match="frozen"):
            router.get("/late", home)


# =============================================================================
# Groups
# =============================================================================


class TestGroups:
    def test_context_manager_prefix_and_middleware(self) -> None:
        router = Router()
        with router.group(prefix="/admin", middleware=[Deny]):
            route = router.get("/dashboard", home, middleware=[Recorder])
        assert route.uri == "/admin/dashboard"
        assert route.middleware == (Deny, Recorder)

    def test_callback_form(self) -> None:
        router = Router()
        router.group(prefix="/api", callback=lambda r: r.get("/ping", home))
        assert router.match("GET", "/api/ping") is not None

    def test_nested_groups(self) -> None:
        router = Router()
        with router.group(prefix="/admin", middleware=[Deny]):
            with router.group(prefix="/users", middleware=[Recorder]):
                route = router.get("/{id}", show_user)
        assert route.uri == "/admin/users/{id}"
        assert route.middleware == (Deny, Recorder)

    def test_state_restored_after_group(self) -> None:
        router = Router()
        with router.group(prefix="/admin", middleware=[Deny]):
            router.get("/inside", home)
        outside = router.get("/outside", home)
        assert outside.uri == "/outside"
        assert outside.middleware == ()

    def test_state_restored_after_error(self) -> None:
        router = Router()

        def broken(r: Router) -> None:
            raise RuntimeError("oops")

        with pytest.raises(RuntimeError):
            router.group(prefix="/admin", callback=broken)
        assert router.get("/after", home).uri == "/after"

    def test_middleware_only_group(self) -> None:
        router = Router()
        with router.group(middleware=[Deny]):
            route = router.get("/x", home)
        assert route.uri == "/x"
        assert route.middleware == (Deny,)


# =============================================================================
# Matching
# =============================================================================


class TestMatching:
    def test_exact(self) -> None:
        router = Router()
        router.get("/about", home)
        found = router.match("GET", "/about")
        assert found is not None
        assert found.path_params == {}

    def test_placeholder(self) -> None:
        router = Router()
        router.get("/users/{id}", show_user)
        found = router.match("GET", "/users/42")
        assert found is not None
        assert found.path_params == {"id": "42"}

    def test_multiple_placeholders_in_order(self) -> None:
        router = Router()
        router.get("/posts/{post}/comments/{comment}", show_comment)
        found = router.match("GET", "/posts/7/comments/9")
        assert found is not None
        assert list(found.path_params.items()) == [("post", "7"), ("comment", "9")]

    def test_placeholder_spans_one_segment(self) -> None:
        router = Router()
        router.get("/users/{id}", show_user)
        assert router.match("GET", "/users/42/edit") is None

    def test_exact_beats_pattern_registered_earlier(self) -> None:
        router = Router()
        router.get("/users/{id}", show_user)
        router.get("/users/me", home)
        found = router.match("GET", "/users/me")
        assert found is not None
        assert found.route.action is home

    def test_first_registered_pattern_wins(self) -> None:
        router = Router()
        router.get("/a/{x}", home)
        router.get("/{y}/b", show_user)
        found = router.match("GET", "/a/b")
        assert found is not None
        assert found.route.action is home

    def test_trailing_slash_ignored(self) -> None:
        router = Router()
        router.get("/users/{id}", show_user)
        assert router.match("GET", "/users/42/") is not None

    def test_method_mismatch(self) -> None:
        router = Router()
        router.get("/x", home)
        assert router.match("POST", "/x") is None
        assert router.match("HEAD", "/x") is None

    def test_static_text_is_literal(self) -> None:
        router = Router()
        router.get("/files/v1.0/{name}", home)
        assert router.match("GET", "/files/v1x0/readme") is None
        assert router.match("GET", "/files/v1.0/readme") is not None

    def test_route_pattern_fields(self) -> None:
        route = Route(uri="/a/{x}/b/{y}", action=home, methods=frozenset({"GET"}))
        assert route.param_names == ("x", "y")
        assert route.is_dynamic
        assert route.pattern.pattern == "^/a/([^/]+)/b/([^/]+)$"


# =============================================================================
# url_for
# =============================================================================


class TestUrlFor:
    def test_builds_path(self) -> None:
        router = Router()
        router.get("/users/{id}", show_user, name="users.show")
        assert router.url_for("users.show", id=5) == "/users/5"

    def test_extra_params_become_query(self) -> None:
        router = Router()
        router.get("/users/{id}", show_user, name="users.show")
        assert router.url_for("users.show", id=5, tab="posts") == "/users/5?tab=posts"

    def test_missing_param(self) -> None:
        router = Router()
        router.get("/users/{id}", show_user, name="users.show")
        with pytest.raises(ValueError, match="id"):
            router.url_for("users.show")

    def test_unknown_name(self) -> None:
        with pytest.raises(KeyError):
            Router().url_for("nope")


# =============================================================================
# Dispatch
# =============================================================================


class TestDispatch:
    def test_unmatched_is_404(self) -> None:
        response = _dispatch(Router(), "GET", "/missing")
        assert response.status == 404
        assert response.text == NOT_FOUND_BODY

    def test_callable_action(self) -> None:
        router = Router()
        router.get("/", home)
        response = _dispatch(router, "GET", "/")
        assert response.status == 200
        assert response.text == "home"
        assert response.content_type.startswith("text/plain")

    def test_path_params_passed_positionally(self) -> None:
        router = Router()
        router.get("/posts/{post}/comments/{comment}", show_comment)
        assert _dispatch(router, "GET", "/posts/1/comments/2").text == "1/2"

    def test_request_carries_path_params(self) -> None:
        router = Router()
        router.get("/users/{id}", lambda request, id: request.path_params)  # noqa: A006
        assert _dispatch(router, "GET", "/users/3").text == "{'id': '3'}"

    def test_handler_dependencies_wired(self) -> None:
        def greet(request: Request, greeter: Greeter) -> str:
            return greeter.greet()

        router = Router()
        router.get("/greet", greet)
        assert _dispatch(router, "GET", "/greet").text == "hello"

    def test_tuple_controller_action(self) -> None:
        router = Router()
        router.get("/users/{id}", (UserController, "show"))
        assert _dispatch(router, "GET", "/users/9").text == "hello 9"

    def test_string_controller_action(self) -> None:
        container = Container()
        container.bind("UserController", UserController)
        router = Router()
        router.get("/users", "UserController@index")
        assert _dispatch(router, "GET", "/users", container).text == "index"

    def test_missing_controller_method(self) -> None:
        router = Router()
        router.get("/users", (UserController, "destroy"))
        with pytest.raises(InvalidAction, match="Method destroy not found on controller UserController"):
            _dispatch(router, "GET", "/users")

    def test_string_without_at_is_invalid(self) -> None:
        router = Router()
        router.get("/x", "UserController")
        with pytest.raises(InvalidAction, match="Invalid route action"):
            _dispatch(router, "GET", "/x")

    def test_non_callable_action_is_invalid(self) -> None:
        router = Router()
        router.get("/x", 42)  # type: ignore[arg-type]
        with pytest.raises(InvalidAction, match="Invalid route action"):
            _dispatch(router, "GET", "/x")

    def test_response_passes_through(self) -> None:
        router = Router()
        router.post("/made", lambda request: Response("made", status=201))
        response = _dispatch(router, "POST", "/made")
        assert response.status == 201
        assert response.text == "made"


class TestMiddleware:
    def setup_method(self) -> None:
        Recorder.calls = []

    def test_short_circuit(self) -> None:
        called: list[bool] = []

        def action(request: Request) -> str:
            called.append(True)
            return "ok"

        router = Router()
        router.get("/secret", action, middleware=[Deny])
        response = _dispatch(router, "GET", "/secret")
        assert response.status == 403
        assert response.text == "denied"
        assert called == []

    def test_none_continues(self) -> None:
        router = Router()
        router.get("/open", home, middleware=[Recorder])
        assert _dispatch(router, "GET", "/open").text == "home"
        assert Recorder.calls == ["/open"]

    def test_runs_in_order(self) -> None:
        order: list[str] = []

        def first(request: Request) -> None:
            order.append("first")

        def second(request: Request) -> None:
            order.append("second")

        router = Router()
        with router.group(middleware=[first]):
            router.get("/x", home, middleware=[second])
        _dispatch(router, "GET", "/x")
        assert order == ["first", "second"]

    def test_later_middleware_skipped_after_response(self) -> None:
        router = Router()
        router.get("/x", home, middleware=[Deny, Recorder])
        _dispatch(router, "GET", "/x")
        assert Recorder.calls == []

    def test_string_key_resolved_through_container(self) -> None:
        container = Container()
        container.bind("auth", Deny)
        router = Router()
        router.get("/x", home, middleware=["auth"])
        assert _dispatch(router, "GET", "/x", container).status == 403

    def test_non_response_return_continues(self) -> None:
        router = Router()
        router.get("/x", home, middleware=[lambda request: "ignored"])
        assert _dispatch(router, "GET", "/x").text == "home"

    def test_middleware_sees_state(self) -> None:
        def login(request: Request) -> None:
            request.state["user"] = "ada"

        router = Router()
        router.get("/me", lambda request: request.state["user"], middleware=[login])
        assert _dispatch(router, "GET", "/me").text == "ada"

    def test_protocol_recognizes_handle_objects(self) -> None:
        assert isinstance(Deny(), Middleware)
        assert not isinstance(object(), Middleware)

    def test_unusable_middleware(self) -> None:
        router = Router()
        router.get("/x", home, middleware=[object()])
        with pytest.raises(ConfigurationError):
            _dispatch(router, "GET", "/x")


class TestToResponse:
    def test_none_is_empty(self) -> None:
        response = to_response(None)
        assert response.status == 200
        assert response.body == ""

    def test_other_values_stringified(self) -> None:
        assert to_response(5).text == "5"

    def test_bytes_kept(self) -> None:
        assert to_response(b"raw").body == b"raw"

    def test_response_identity(self) -> None:
        response = Response("x")
        assert to_response(response) is response
