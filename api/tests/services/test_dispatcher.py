"""Unit tests for services.dispatcher and services.base.

Tests cover:
- Action registration through @action, including inherited and renamed actions
- ServiceRegistry naming and conflict detection
- The dispatcher's ordered checks (service, action, auth, deactivation,
  existence, permissions) and response wrapping
"""

import asyncio

import pytest
from hypothesis import given
from hypothesis import strategies as st

from core.auth import ANONYMOUS, ContextUser
from core.exceptions import ResourceNotFound, UserUnauthenticated, UserUnauthorized
from core.request import ServiceRequest
from core.responses import BaseResponse
from core.wide_event import get_wide_event
from services import build_registry
from services.base import Service, action
from services.dispatcher import ActionDispatcher, ServiceRegistry

pytestmark = pytest.mark.unit


class EchoService(Service):
    service_name = "echo"
    deactivated_actions = ["legacy"]
    actions_requiring_auth = ["whoami"]
    action_permissions = {
        "secret": "read_secret",
        "vault": ["read_secret", "open_vault"],
    }

    @action
    async def ping(self, data, files, request):
        return BaseResponse.json_response(message="pong", payload=dict(data))

    @action
    async def legacy(self, data, files, request):
        return BaseResponse.json_response(message="should never run")

    @action
    async def whoami(self, data, files, request):
        # Plain values are wrapped as a success payload
        return {"user_id": self.user.user_id}

    @action
    async def secret(self, data, files, request):
        return BaseResponse.json_response(message="the secret")

    @action
    async def vault(self, data, files, request):
        return BaseResponse.json_response(message="vault opened")

    @action(name="bulk-import")
    async def bulk_import(self, data, files, request):
        return BaseResponse.json_response(message="imported")

    @action
    async def fail(self, data, files, request):
        return BaseResponse.json_response(status=422, message="Handled failure")

    async def helper(self, data, files, request):
        return BaseResponse.json_response(message="not an action")


class LoudEchoService(EchoService):
    service_name = "loud_echo"

    # Overriding without re-marking keeps the action registered
    async def ping(self, data, files, request):
        return BaseResponse.json_response(message="PONG")

    @action
    async def shout(self, data, files, request):
        return BaseResponse.json_response(message="HEY")


class MembersOnlyService(Service):
    service_requires_auth = True
    auth_message = "Members only"

    @action
    async def ping(self, data, files, request):
        return BaseResponse.json_response(message="pong")


ECHO_ACTIONS = ["ping", "whoami", "secret", "vault", "bulk-import", "fail"]


class ShutteredService(EchoService):
    service_name = "shuttered"
    deactivated_actions = ECHO_ACTIONS


MEMBER = ContextUser(user_id="member")
KEYHOLDER = ContextUser(
    user_id="keyholder", permissions=frozenset({"read_secret", "open_vault"})
)


@pytest.fixture
def dispatcher() -> ActionDispatcher:
    return ActionDispatcher(
        ServiceRegistry(
            [EchoService, LoudEchoService, MembersOnlyService, ShutteredService]
        )
    )


def _request(user: ContextUser = ANONYMOUS, **data) -> ServiceRequest:
    return ServiceRequest.build(data, user=user)


users = st.sampled_from([ANONYMOUS, MEMBER, KEYHOLDER])


class TestActionRegistration:
    def test_marked_methods_are_actions(self):
        assert set(EchoService.actions) == {*ECHO_ACTIONS, "legacy"}

    def test_unmarked_methods_are_not_actions(self):
        assert "helper" not in EchoService.actions

    def test_renamed_action_maps_to_method(self):
        assert EchoService.actions["bulk-import"] == "bulk_import"

    def test_subclass_inherits_and_extends(self):
        assert "shout" in LoudEchoService.actions
        assert "ping" in LoudEchoService.actions
        assert "shout" not in EchoService.actions

    def test_default_service_name(self):
        assert MembersOnlyService.service_name == "members_only"

    def test_explicit_service_name(self):
        assert EchoService.service_name == "echo"


class TestServiceRegistry:
    def test_lookup(self):
        registry = ServiceRegistry([EchoService])
        assert registry.get("echo") is EchoService
        assert registry.get("missing") is None
        assert "echo" in registry
        assert len(registry) == 1

    def test_register_under_alias(self):
        registry = ServiceRegistry()
        registry.register(EchoService, name="echo_v2")
        assert registry.names() == ["echo_v2"]

    def test_re_registering_same_class_is_allowed(self):
        registry = ServiceRegistry([EchoService])
        registry.register(EchoService)
        assert len(registry) == 1

    def test_name_conflict_raises(self):
        class OtherEchoService(Service):
            service_name = "echo"

        registry = ServiceRegistry([EchoService])
        with pytest.raises(ValueError, match="already registered"):
            registry.register(OtherEchoService)

    def test_bundled_registry(self):
        assert build_registry().names() == ["article"]


class TestServiceResolution:
    async def test_missing_service(self, dispatcher: ActionDispatcher):
        with pytest.raises(ResourceNotFound, match="Service not defined"):
            await dispatcher.dispatch(_request(action="ping"))

    async def test_unknown_service(self, dispatcher: ActionDispatcher):
        with pytest.raises(ResourceNotFound, match="Service nope not found"):
            await dispatcher.dispatch(_request(service="nope", action="ping"))

    async def test_missing_action(self, dispatcher: ActionDispatcher):
        with pytest.raises(ResourceNotFound, match="Action not defined for the echo service"):
            await dispatcher.dispatch(_request(service="echo"))

    async def test_unknown_action(self, dispatcher: ActionDispatcher):
        with pytest.raises(ResourceNotFound) as exc_info:
            await dispatcher.dispatch(_request(service="echo", action="nope"))
        assert exc_info.value.message == "Action nope not found in the echo context"
        assert exc_info.value.code == 404

    async def test_plain_method_is_not_dispatchable(self, dispatcher: ActionDispatcher):
        with pytest.raises(ResourceNotFound):
            await dispatcher.dispatch(_request(service="echo", action="helper"))

    async def test_upper_case_keys(self, dispatcher: ActionDispatcher):
        response = await dispatcher.dispatch(_request(SERVICE="echo", ACTION="ping"))
        assert response.message == "pong"


class TestDispatch:
    async def test_handler_receives_payload(self, dispatcher: ActionDispatcher):
        response = await dispatcher.dispatch(
            _request(service="echo", action="ping", title="Hello")
        )
        assert response.status == 0
        assert response.payload["title"] == "Hello"

    async def test_plain_result_is_wrapped(self, dispatcher: ActionDispatcher):
        response = await dispatcher.dispatch(
            _request(MEMBER, service="echo", action="whoami")
        )
        assert isinstance(response, BaseResponse)
        assert response.status == 0
        assert response.payload == {"user_id": "member"}

    async def test_handler_response_returned_unchanged(self, dispatcher: ActionDispatcher):
        response = await dispatcher.dispatch(_request(service="echo", action="fail"))
        assert response.status == 422
        assert response.message == "Handled failure"

    async def test_renamed_action(self, dispatcher: ActionDispatcher):
        response = await dispatcher.dispatch(
            _request(service="echo", action="bulk-import")
        )
        assert response.message == "imported"

    async def test_override_without_marker(self, dispatcher: ActionDispatcher):
        response = await dispatcher.dispatch(_request(service="loud_echo", action="ping"))
        assert response.message == "PONG"

    async def test_records_service_and_action_on_wide_event(
        self, dispatcher: ActionDispatcher
    ):
        await dispatcher.dispatch(_request(service="echo", action="ping"))
        event = get_wide_event()
        assert event["service"] == "echo"
        assert event["action"] == "ping"
        assert event["response_status"] == 0


class TestDeactivatedActions:
    async def test_deactivated_action_is_not_found(self, dispatcher: ActionDispatcher):
        with pytest.raises(ResourceNotFound, match="currently deactivated"):
            await dispatcher.dispatch(_request(KEYHOLDER, service="echo", action="legacy"))

    async def test_deactivation_inherited(self, dispatcher: ActionDispatcher):
        with pytest.raises(ResourceNotFound, match="currently deactivated"):
            await dispatcher.dispatch(_request(service="loud_echo", action="legacy"))

    @given(action_name=st.sampled_from(ECHO_ACTIONS), user=users)
    def test_every_deactivated_action_is_unreachable(
        self, action_name: str, user: ContextUser
    ):
        dispatcher = ActionDispatcher(ServiceRegistry([ShutteredService]))
        request = _request(user, service="shuttered", action=action_name)

        with pytest.raises(ResourceNotFound, match="currently deactivated"):
            asyncio.run(dispatcher.dispatch(request))


class TestAuthentication:
    async def test_action_requiring_auth_rejects_anonymous(
        self, dispatcher: ActionDispatcher
    ):
        with pytest.raises(UserUnauthenticated, match="Action whoami requires authentication"):
            await dispatcher.dispatch(_request(service="echo", action="whoami"))

    async def test_service_requiring_auth_uses_auth_message(
        self, dispatcher: ActionDispatcher
    ):
        with pytest.raises(UserUnauthenticated, match="Members only"):
            await dispatcher.dispatch(_request(service="members_only", action="ping"))

    async def test_service_requiring_auth_allows_members(
        self, dispatcher: ActionDispatcher
    ):
        response = await dispatcher.dispatch(
            _request(MEMBER, service="members_only", action="ping")
        )
        assert response.message == "pong"

    async def test_service_auth_checked_before_action_existence(
        self, dispatcher: ActionDispatcher
    ):
        with pytest.raises(UserUnauthenticated):
            await dispatcher.dispatch(_request(service="members_only", action="nope"))

    @given(action_name=st.text(min_size=1, max_size=30))
    def test_anonymous_never_reaches_auth_only_service(self, action_name: str):
        dispatcher = ActionDispatcher(ServiceRegistry([MembersOnlyService]))
        request = _request(service="members_only", action=action_name)

        with pytest.raises(UserUnauthenticated):
            asyncio.run(dispatcher.dispatch(request))


class TestPermissions:
    async def test_single_permission_granted(self, dispatcher: ActionDispatcher):
        response = await dispatcher.dispatch(
            _request(KEYHOLDER, service="echo", action="secret")
        )
        assert response.message == "the secret"

    async def test_single_permission_denied(self, dispatcher: ActionDispatcher):
        with pytest.raises(UserUnauthorized) as exc_info:
            await dispatcher.dispatch(_request(MEMBER, service="echo", action="secret"))
        assert exc_info.value.code == 403

    async def test_permission_on_anonymous_is_unauthenticated(
        self, dispatcher: ActionDispatcher
    ):
        with pytest.raises(UserUnauthenticated):
            await dispatcher.dispatch(_request(service="echo", action="secret"))

    async def test_every_listed_permission_required(self, dispatcher: ActionDispatcher):
        partial = ContextUser(user_id="partial", permissions=frozenset({"read_secret"}))
        with pytest.raises(UserUnauthorized):
            await dispatcher.dispatch(_request(partial, service="echo", action="vault"))

    async def test_list_permissions_granted(self, dispatcher: ActionDispatcher):
        response = await dispatcher.dispatch(
            _request(KEYHOLDER, service="echo", action="vault")
        )
        assert response.message == "vault opened"
