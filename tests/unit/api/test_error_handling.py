"""Unit tests for API error handling."""

from payroute.errors import UpstreamError


class ExplodingAggregator:
    """Mock aggregator that always raises."""

    async def handle(self, *args, **kwargs):
        raise RuntimeError("Boom! This should be caught.")


class ExplodingBuilder:
    async def build(self, *args, **kwargs):
        raise RuntimeError("Boom! This should be caught.")


class FailingBuilder:
    async def build(self, *args, **kwargs):
        raise UpstreamError("No quote available for the selected route")


class TestUnexpectedExceptions:
    """Unexpected failures become a generic 500 in the {error} envelope."""

    def test_chat_aggregator_exception(self, api_client, container):
        container.aggregator = ExplodingAggregator()

        response = api_client.post("/chat", json={"message": "send 10 USDC to bob.eth"})

        assert response.status_code == 500
        assert response.json() == {"error": "Failed to process message"}

    def test_execute_unexpected_exception(self, api_client, container):
        container.builder = ExplodingBuilder()

        response = api_client.post("/execute", json={"routeId": "lifi-0-x"})

        assert response.status_code == 500
        assert response.json() == {"error": "Failed to prepare transaction"}

    def test_known_errors_keep_their_message(self, api_client, container):
        container.builder = FailingBuilder()

        response = api_client.post("/execute", json={"routeId": "lifi-0-x"})

        assert response.status_code == 500
        assert response.json() == {"error": "No quote available for the selected route"}


class TestInvalidJsonSchema:
    """Schema violations are 400s with a readable message."""

    def test_wrong_type(self, api_client):
        response = api_client.post("/execute", json={"routeId": "x402-pay", "slippage": "lots"})

        assert response.status_code == 400
        assert response.json()["error"].startswith("Invalid request: slippage")

    def test_invalid_intent_action(self, api_client):
        body = {"routeId": "lifi-0-x", "intent": {"action": "teleport"}}
        response = api_client.post("/execute", json=body)

        assert response.status_code == 400
        assert "intent.action" in response.json()["error"]

    def test_body_not_json_object(self, api_client):
        response = api_client.post("/invoices", json=["not", "an", "object"])

        assert response.status_code == 400
        assert response.json()["error"].startswith("Invalid request")

    def test_missing_required_field(self, api_client):
        response = api_client.post("/receipts", json={"txHash": "0xabc"})

        assert response.status_code == 400
