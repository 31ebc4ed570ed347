"""End-to-end tests for the FastAPI integration.

Every client is built with follow_redirects=False on each request so the
journey's own 302 responses can be asserted one hop at a time.
"""

import logging

import pytest
from fastapi import FastAPI, Request, Response
from fastapi.responses import HTMLResponse, RedirectResponse

from journey_map.api.plugin import JourneyOptions, RouteDefinition, register
from journey_map.api.route_class import JOURNEY_ROUTE_TAG, JourneyRoute
from journey_map.errors import DescriptorNotFoundError, JourneyMapError
from journey_map.map import registry as registry_module

from conftest import accept_step, make_handlers


def _hop(client, path, method="get", **kwargs):
    return client.request(method.upper(), path, follow_redirects=False, **kwargs)


class TestSimpleJourney:
    def test_step_redirects_to_next(self, simple_journey, make_client):
        client = make_client(simple_journey)

        response = _hop(client, "/")

        assert response.status_code == 302
        assert response.headers["location"] == "/complete"

    def test_terminal_step_keeps_handler_response(self, simple_journey, make_client):
        client = make_client(simple_journey)

        response = _hop(client, "/complete")

        assert response.status_code == 200
        assert response.json() == {"ok": True}

    def test_post_also_navigates(self, simple_journey, make_client):
        client = make_client(simple_journey)

        response = _hop(client, "/", method="post")

        assert response.status_code == 302
        assert response.headers["location"] == "/complete"


class TestModulesJourney:
    def test_walk_through_nested_modules(self, modules_journey, make_client):
        client = make_client(modules_journey)
        visited = ["/"]

        response = _hop(client, "/")
        while response.status_code == 302:
            visited.append(response.headers["location"])
            response = _hop(client, visited[-1])

        assert visited == [
            "/",
            "/quiz/question-1",
            "/quiz/question-2",
            "/quiz/question-3/quick-fire",
            "/complete",
        ]
        assert response.status_code == 200

    def test_module_steps_are_not_served(self, modules_journey, make_client):
        client = make_client(modules_journey)

        assert _hop(client, "/quiz").status_code == 404


class TestBranchingJourney:
    def test_yes_goes_to_complete(self, branching_journey, make_client):
        client = make_client(branching_journey)

        response = _hop(client, "/question-1", params={"answer": "yes"})

        assert response.headers["location"] == "/complete"

    def test_unset_goes_to_next_sibling(self, branching_journey, make_client):
        client = make_client(branching_journey)

        response = _hop(client, "/question-1")

        assert response.headers["location"] == "/question-2"

    def test_unmatched_answer_is_a_server_error(self, branching_journey, make_client, caplog):
        client = make_client(branching_journey)

        with caplog.at_level(logging.ERROR, logger="journey_map.api.route_class"):
            response = _hop(client, "/question-1", params={"answer": "no"})

        assert response.status_code == 500
        assert response.json() == {"detail": "Internal Server Error"}
        assert 'set incorrect value "no" for query "answer"' in caplog.text

    def test_answer_persists_in_session(self, branching_journey, make_client, session_store):
        client = make_client(branching_journey)

        _hop(client, "/question-1", params={"answer": "yes"})

        assert session_store.data == {"answer": "yes"}


class TestPathParams:
    def test_redirect_fills_placeholders(self, params_journey, make_client, session_store):
        session_store.data["reference"] = "AB12"
        client = make_client(params_journey)

        response = _hop(client, "/")

        assert response.headers["location"] == "/claims/AB12/details"

    def test_placeholder_route_serves_concrete_path(self, params_journey, make_client):
        client = make_client(params_journey)

        assert _hop(client, "/claims/AB12/details").status_code == 200


class TestHandlerControlledResponses:
    def test_rendered_page_is_not_redirected(self, simple_journey, make_client):
        async def home_page():
            return HTMLResponse("<h1>Welcome</h1>")

        client = make_client(
            simple_journey,
            handlers={
                "home.route": RouteDefinition(home_page, options={"response_class": HTMLResponse}),
                **make_handlers("complete.route"),
            },
        )

        response = _hop(client, "/")

        assert response.status_code == 200
        assert "Welcome" in response.text

    def test_handler_redirect_is_kept(self, simple_journey, make_client):
        async def home_redirect():
            return RedirectResponse("/login", status_code=303)

        client = make_client(
            simple_journey,
            handlers={"home.route": RouteDefinition(home_redirect), **make_handlers("complete.route")},
        )

        response = _hop(client, "/")

        assert response.status_code == 303
        assert response.headers["location"] == "/login"

    def test_cookies_survive_navigation(self, simple_journey, make_client):
        async def home(response: Response):
            response.set_cookie("seen", "1")
            return {"ok": True}

        client = make_client(
            simple_journey,
            handlers={"home.route": RouteDefinition(home), **make_handlers("complete.route")},
        )

        response = _hop(client, "/")

        assert response.status_code == 302
        assert "seen=1" in response.headers["set-cookie"]

    def test_handler_sees_its_step(self, modules_journey, make_client):
        async def show_step(request: Request):
            step = request.app.state.journey.get_current_step(request)
            return HTMLResponse(f"{step.id}|{step.parent.options['title']}")

        handlers = {
            "questions/question-2.route": RouteDefinition(show_step, options={"response_class": HTMLResponse}),
        }
        client = make_client(modules_journey, handlers=handlers)

        response = _hop(client, "/quiz/question-2")

        assert response.text == "quiz:question-2|Super quiz"


class TestRegistration:
    def test_missing_handler_is_logged_and_skipped(self, simple_journey, make_client, caplog):
        with caplog.at_level(logging.ERROR, logger="journey_map.api.plugin"):
            client = make_client(simple_journey, handlers=make_handlers("home.route"))

        assert (
            'Route "complete" with path "/complete" failed to be registered: no handler registered'
            in caplog.text
        )
        assert _hop(client, "/").headers["location"] == "/complete"
        assert _hop(client, "/complete").status_code == 404

        journey_map = _hop(client, "/journey-map").json()
        assert journey_map["home"]["method"] == ["GET", "POST"]
        assert "method" not in journey_map["complete"]

    def test_unbindable_route_records_no_method(self, simple_journey, make_client, caplog):
        handlers = {
            "home.route": RouteDefinition(accept_step, method="GET", options={"bogus_kwarg": 1}),
            **make_handlers("complete.route"),
        }

        with caplog.at_level(logging.ERROR, logger="journey_map.api.plugin"):
            client = make_client(simple_journey, handlers=handlers)

        assert 'Route "home" with path "/" failed to be registered' in caplog.text
        assert _hop(client, "/").status_code == 404

        journey_map = _hop(client, "/journey-map").json()
        assert "method" not in journey_map["home"]
        assert journey_map["complete"]["method"] == ["GET", "POST"]

    def test_only_bound_definitions_are_recorded(self, simple_journey, make_client):
        handlers = {
            "home.route": [
                RouteDefinition(accept_step, method="GET"),
                RouteDefinition(accept_step, method="POST", options={"bogus_kwarg": 1}),
            ],
            **make_handlers("complete.route"),
        }
        client = make_client(simple_journey, handlers=handlers)

        assert _hop(client, "/journey-map").json()["home"]["method"] == ["GET"]
        assert _hop(client, "/", method="post").status_code == 405

    def test_handler_lookup_function(self, simple_journey, make_client):
        client = make_client(simple_journey, handlers=lambda route: RouteDefinition(accept_step))

        assert _hop(client, "/").headers["location"] == "/complete"
        assert _hop(client, "/", method="post").status_code == 405

    def test_several_definitions_for_one_step(self, simple_journey, make_client):
        async def submit_complete():
            return HTMLResponse("submitted")

        client = make_client(
            simple_journey,
            handlers={
                "home.route": RouteDefinition(accept_step),
                "complete.route": [
                    RouteDefinition(accept_step, method="GET"),
                    RouteDefinition(submit_complete, method="POST"),
                ],
            },
        )

        assert _hop(client, "/complete", method="post").text == "submitted"
        assert _hop(client, "/journey-map").json()["complete"]["method"] == ["GET", "POST"]

    def test_route_options_applied_but_path_forced(self, simple_journey, make_client):
        client = make_client(
            simple_journey,
            handlers={
                "home.route": RouteDefinition(accept_step, options={"name": "home-page", "path": "/ignored"}),
                **make_handlers("complete.route"),
            },
        )

        assert client.app.url_path_for("home-page") == "/"
        assert _hop(client, "/ignored").status_code == 404

    def test_routes_are_tagged(self, simple_journey, make_client):
        client = make_client(simple_journey)

        journey_routes = [route for route in client.app.routes if isinstance(route, JourneyRoute)]

        assert {route.step_id for route in journey_routes} == {"home", "complete"}
        assert all(JOURNEY_ROUTE_TAG in route.tags for route in journey_routes)

    def test_missing_descriptor_fails_registration(self, tmp_path, make_client):
        with pytest.raises(DescriptorNotFoundError):
            make_client(tmp_path, handlers={})

    def test_base_path_required(self, session_store):
        with pytest.raises(JourneyMapError):
            register(
                FastAPI(),
                JourneyOptions(get_session_data=session_store.get, set_session_data=session_store.set),
            )

    def test_base_path_from_environment(self, simple_journey, session_store, monkeypatch):
        monkeypatch.setenv("JOURNEY_MAP_BASE_PATH", str(simple_journey))

        registry = register(
            FastAPI(),
            JourneyOptions(get_session_data=session_store.get, set_session_data=session_store.set),
        )

        assert registry.base_path == simple_journey

    def test_default_registry_used(self, simple_journey, session_store):
        register(
            FastAPI(),
            JourneyOptions(
                base_path=simple_journey,
                get_session_data=session_store.get,
                set_session_data=session_store.set,
                handlers=make_handlers("home.route", "complete.route"),
            ),
        )

        assert registry_module.get_map()["home"]["method"] == ["GET", "POST"]


class TestInquiryEndpoint:
    def test_returns_full_map(self, modules_journey, make_client):
        client = make_client(modules_journey)

        body = _hop(client, "/journey-map").json()

        assert list(body) == [
            "home",
            "quiz:question-1",
            "quiz:question-2",
            "quiz:question-3:quick-fire",
            "complete",
        ]
        assert body["quiz:question-3:quick-fire"]["parent"]["parent"]["id"] == "quiz"
        assert body["quiz:question-1"]["method"] == ["GET", "POST"]

    def test_custom_path(self, simple_journey, make_client):
        client = make_client(simple_journey, inquiry_path="/debug/steps")

        assert _hop(client, "/debug/steps").status_code == 200
        assert _hop(client, "/journey-map").status_code == 404

    def test_conditional_next_serialized(self, branching_journey, make_client):
        client = make_client(branching_journey)

        body = _hop(client, "/journey-map").json()

        assert body["question-1"]["next"] == {
            "query": "answer",
            "when": {"yes": "complete"},
            "fallback": "question-2",
        }
