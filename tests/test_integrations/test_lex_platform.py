"""
Tests for botsmith.integrations.platform.lex
==============================================

What's Being Tested:
    - Payloads are reduced to the operation's input shape
    - botocore errors map onto the closed PlatformErrorKind set
    - Listing follows nextToken pagination
    - Build and export waits run botocore's lexv2-models waiters; a
      Failed, NotBuilt or Deleting locale becomes BuildFailedError
    - Export download goes through httpx

A stub stands in for the boto3 ``lexv2-models`` client, waits use a real
client behind botocore's Stubber, and httpx runs on a MockTransport, so
no AWS or network access is needed.
"""

import json
from types import SimpleNamespace

import boto3
import httpx
import pytest
from botocore.exceptions import ClientError, ParamValidationError
from botocore.stub import Stubber

from botsmith.core.enums import PlatformErrorKind, ResourceType
from botsmith.core.exceptions import BuildFailedError, PlatformError, WaiterTimeoutError
from botsmith.core.models import BotLocator
from botsmith.integrations.platform.lex import LexPlatform, _snake


LOCATOR = BotLocator(bot_id="BOT1", locale_id="en_US")

_INPUT_MEMBERS = {
    "CreateSlotType": ["botId", "botVersion", "localeId", "slotTypeName", "slotTypeValues"],
    "CreateIntent": ["botId", "botVersion", "localeId", "intentName", "sampleUtterances"],
    "UpdateIntent": ["botId", "botVersion", "localeId", "intentId", "intentName"],
}


# =============================================================================
# Helpers
# =============================================================================
class StubLexClient:
    """Minimal stand-in for a boto3 lexv2-models client.

    ``responses`` maps method name to a list of results returned in order;
    an exception instance in the list is raised instead.
    """

    def __init__(self, responses: dict[str, list]) -> None:
        self._responses = responses
        self.requests: list[tuple[str, dict]] = []
        self.meta = SimpleNamespace(service_model=SimpleNamespace(operation_model=self._operation_model))

    @staticmethod
    def _operation_model(operation: str):
        members = {name: object() for name in _INPUT_MEMBERS.get(operation, [])}
        return SimpleNamespace(input_shape=SimpleNamespace(members=members))

    def __getattr__(self, name: str):
        if name.startswith("_") or name not in self._responses:
            raise AttributeError(name)

        def method(**params):
            self.requests.append((name, params))
            result = self._responses[name].pop(0)
            if isinstance(result, Exception):
                raise result
            return {**result, "ResponseMetadata": {"HTTPStatusCode": 200}}

        return method


def client_error(code: str, operation: str) -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": "bad"}}, operation)


# =============================================================================
# Test: Mutations
# =============================================================================
class TestMutations:
    """create_resource / update_resource."""

    async def test_payload_filtered_to_input_shape(self) -> None:
        client = StubLexClient({"create_slot_type": [{"slotTypeId": "ST1"}]})
        platform = LexPlatform(client=client)

        response = await platform.create_resource(ResourceType.SLOT_TYPE, {
            **LOCATOR.as_params(),
            "slotTypeName": "Size",
            "creationDateTime": "2024-01-01",
            "slotTypeStatus": "Available",
        })

        method, params = client.requests[0]
        assert method == "create_slot_type"
        assert set(params) == {"botId", "botVersion", "localeId", "slotTypeName"}
        assert response == {"slotTypeId": "ST1"}

    async def test_update_dispatches_to_update_method(self) -> None:
        client = StubLexClient({"update_intent": [{"intentId": "IN1"}]})
        await LexPlatform(client=client).update_resource(
            ResourceType.INTENT,
            {**LOCATOR.as_params(), "intentId": "IN1", "intentName": "Order"},
        )
        assert client.requests[0][0] == "update_intent"

    @pytest.mark.parametrize("error, kind", [
        (client_error("ValidationException", "CreateIntent"), PlatformErrorKind.VALIDATION),
        (client_error("SerializationException", "CreateIntent"), PlatformErrorKind.SERIALIZATION),
        (client_error("ThrottlingException", "CreateIntent"), PlatformErrorKind.OTHER),
        (ParamValidationError(report="Unknown parameter in input: foo"), PlatformErrorKind.SERIALIZATION),
    ])
    async def test_error_mapping(self, error: Exception, kind: PlatformErrorKind) -> None:
        client = StubLexClient({"create_intent": [error]})

        with pytest.raises(PlatformError) as exc_info:
            await LexPlatform(client=client).create_resource(
                ResourceType.INTENT,
                {**LOCATOR.as_params(), "intentName": "Order"},
            )

        assert exc_info.value.kind == kind
        assert exc_info.value.operation == "CreateIntent"
        assert exc_info.value.__cause__ is error


# =============================================================================
# Test: Listing
# =============================================================================
class TestListing:
    async def test_pages_are_followed(self) -> None:
        client = StubLexClient({"list_intents": [
            {"intentSummaries": [{"intentId": "IN1", "intentName": "A"}], "nextToken": "t1"},
            {"intentSummaries": [{"intentId": "IN2", "intentName": "B"}]},
        ]})

        summaries = await LexPlatform(client=client).list_intents(LOCATOR)

        assert [(s.id, s.name) for s in summaries] == [("IN1", "A"), ("IN2", "B")]
        assert "nextToken" not in client.requests[0][1]
        assert client.requests[1][1]["nextToken"] == "t1"

    async def test_delete_slot_type_skips_in_use_check(self) -> None:
        client = StubLexClient({"delete_slot_type": [{}]})
        await LexPlatform(client=client).delete_slot_type(LOCATOR, "ST1")
        assert client.requests[0][1]["skipResourceInUseCheck"] is True


# =============================================================================
# Test: Build and Export Waits
# =============================================================================
# These run botocore's own lexv2-models waiters against a real client whose
# responses come from a Stubber.
# =============================================================================
WAIT_LOCATOR = BotLocator(bot_id="BOT0000001", locale_id="en_US")
EXPORT_ID = "EXP0000001"


@pytest.fixture
def lex_client():
    return boto3.client(
        "lexv2-models",
        region_name="us-east-1",
        aws_access_key_id="testing",
        aws_secret_access_key="testing",
    )


@pytest.fixture
def stubber(lex_client):
    with Stubber(lex_client) as stub:
        yield stub
        stub.assert_no_pending_responses()


class TestWaiters:
    async def test_wait_for_built_polls_until_built(self, lex_client, stubber: Stubber) -> None:
        stubber.add_response("describe_bot_locale", {"botLocaleStatus": "Building"})
        stubber.add_response("describe_bot_locale", {"botLocaleStatus": "Built"})

        await LexPlatform(client=lex_client).wait_for_built(WAIT_LOCATOR, timeout=5, poll_interval=0)

    @pytest.mark.parametrize("status", ["Failed", "NotBuilt", "Deleting"])
    async def test_failed_build_carries_reasons(self, lex_client, stubber: Stubber, status: str) -> None:
        stubber.add_response(
            "describe_bot_locale",
            {"botLocaleStatus": status, "failureReasons": ["Intent OrderPizza is invalid"]},
        )

        with pytest.raises(BuildFailedError) as exc_info:
            await LexPlatform(client=lex_client).wait_for_built(WAIT_LOCATOR, timeout=5, poll_interval=0)

        document = json.loads(exc_info.value.message)
        assert document["state"] == "FAILURE"
        assert document["reason"]["botLocaleStatus"] == status
        assert document["reason"]["failureReasons"] == ["Intent OrderPizza is invalid"]

    async def test_build_wait_times_out(self, lex_client, stubber: Stubber) -> None:
        stubber.add_response("describe_bot_locale", {"botLocaleStatus": "Building"})

        with pytest.raises(WaiterTimeoutError) as exc_info:
            await LexPlatform(client=lex_client).wait_for_built(WAIT_LOCATOR, timeout=0.5, poll_interval=0)

        assert exc_info.value.waiter == "BotLocaleBuilt"

    async def test_build_wait_api_error(self, lex_client, stubber: Stubber) -> None:
        stubber.add_client_error(
            "describe_bot_locale", service_error_code="ValidationException", service_message="bad locale"
        )

        with pytest.raises(PlatformError) as exc_info:
            await LexPlatform(client=lex_client).wait_for_built(WAIT_LOCATOR, timeout=5, poll_interval=0)

        assert not isinstance(exc_info.value, BuildFailedError)
        assert exc_info.value.kind == PlatformErrorKind.VALIDATION
        assert exc_info.value.operation == "DescribeBotLocale"

    async def test_wait_for_exported(self, lex_client, stubber: Stubber) -> None:
        stubber.add_response("describe_export", {"exportId": EXPORT_ID, "exportStatus": "InProgress"})
        stubber.add_response("describe_export", {"exportId": EXPORT_ID, "exportStatus": "Completed"})

        await LexPlatform(client=lex_client).wait_for_exported(EXPORT_ID, timeout=5, poll_interval=0)

    async def test_failed_export(self, lex_client, stubber: Stubber) -> None:
        stubber.add_response(
            "describe_export",
            {"exportId": EXPORT_ID, "exportStatus": "Failed", "failureReasons": ["locale not built"]},
        )

        with pytest.raises(PlatformError) as exc_info:
            await LexPlatform(client=lex_client).wait_for_exported(EXPORT_ID, timeout=5, poll_interval=0)

        assert exc_info.value.operation == "DescribeExport"


# =============================================================================
# Test: Export
# =============================================================================
class TestExport:
    async def test_create_export_requests_lex_json(self) -> None:
        client = StubLexClient({"create_export": [{"exportId": "EX1"}]})

        assert await LexPlatform(client=client).create_export(LOCATOR) == "EX1"
        params = client.requests[0][1]
        assert params["fileFormat"] == "LexJson"
        assert params["resourceSpecification"]["botLocaleExportSpecification"]["botId"] == "BOT1"

    async def test_download_export(self, monkeypatch: pytest.MonkeyPatch) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            assert str(request.url) == "https://exports.example.com/EX1.zip"
            return httpx.Response(200, content=b"PK-archive")

        real_client = httpx.AsyncClient
        monkeypatch.setattr(
            httpx,
            "AsyncClient",
            lambda **kwargs: real_client(transport=httpx.MockTransport(handler), **kwargs),
        )
        client = StubLexClient({"describe_export": [
            {"exportStatus": "Completed", "downloadUrl": "https://exports.example.com/EX1.zip"},
        ]})

        assert await LexPlatform(client=client).download_export("EX1") == b"PK-archive"

    async def test_download_http_error(self, monkeypatch: pytest.MonkeyPatch) -> None:
        real_client = httpx.AsyncClient
        monkeypatch.setattr(
            httpx,
            "AsyncClient",
            lambda **kwargs: real_client(
                transport=httpx.MockTransport(lambda request: httpx.Response(403)),
                **kwargs,
            ),
        )
        client = StubLexClient({"describe_export": [{"downloadUrl": "https://exports.example.com/x"}]})

        with pytest.raises(PlatformError) as exc_info:
            await LexPlatform(client=client).download_export("EX1")
        assert exc_info.value.operation == "DownloadExport"

    async def test_download_without_url(self) -> None:
        client = StubLexClient({"describe_export": [{"exportStatus": "Completed"}]})
        with pytest.raises(PlatformError, match="no download URL"):
            await LexPlatform(client=client).download_export("EX1")


def test_snake_case_method_names() -> None:
    assert _snake("SlotType") == "slot_type"
    assert _snake("Intent") == "intent"
