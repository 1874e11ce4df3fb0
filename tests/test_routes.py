import asyncio
import unittest
from datetime import datetime

import httpx
from fastapi.testclient import TestClient

from sentiment_proxy.app import app
from sentiment_proxy.client import (
    TextAnalyticsClient,
    parse_document_result,
)
from sentiment_proxy.settings import Settings, get_settings
from sentiment_proxy.utils import get_analyzer
from tests.payloads import (
    DOCUMENT_ERROR_RESPONSE,
    PLAIN_SENTIMENT_RESPONSE,
    REVIEW_TEXT,
    SENTIMENT_RESPONSE,
    UNAUTHORIZED_RESPONSE,
)

CONFIGURED = Settings(
    _env_file=None,
    azure_language_key="secret-key",
    azure_language_endpoint="https://example-language.cognitiveservices.azure.com",
)
UNCONFIGURED = Settings(
    _env_file=None, azure_language_key=None, azure_language_endpoint=None
)

GENERIC_ERROR = "Internal server error. Check the Azure AI configuration."


class StubAnalyzer:
    """Records documents and answers with a canned result or exception"""

    def __init__(self, result=None, error=None):
        self.result = result
        self.error = error
        self.documents = []

    async def analyze_sentiment(self, document):
        self.documents.append(document)
        if self.error is not None:
            raise self.error
        return self.result


class ProxyTestCase(unittest.TestCase):

    def setUp(self):
        self.client = TestClient(app)
        self.analyzer = StubAnalyzer(result=parse_document_result(SENTIMENT_RESPONSE, "0"))
        self.use(CONFIGURED, self.analyzer)

    def tearDown(self):
        app.dependency_overrides.clear()

    def use(self, config, analyzer):
        app.dependency_overrides[get_settings] = lambda: config
        app.dependency_overrides[get_analyzer] = lambda: analyzer

    def analyze(self, body):
        return self.client.post("/sentiment-analysis", json=body)


class TestSentimentAnalysis(ProxyTestCase):

    def test_success(self):
        response = self.analyze({"text": REVIEW_TEXT, "language": "pt"})

        self.assertEqual(response.status_code, 200)
        payload = response.json()
        self.assertTrue(payload["success"])
        self.assertNotIn("error", payload)

        data = payload["data"]
        self.assertEqual(data["documentText"], REVIEW_TEXT)
        self.assertEqual(data["overallSentiment"], "mixed")
        self.assertGreaterEqual(len(data["sentences"]), 1)
        for sentence in data["sentences"]:
            self.assertIn(sentence["sentiment"], {"positive", "negative", "neutral", "mixed"})
        self.assertEqual(data["sentences"][1]["opinions"], [])

    def test_document_sent_to_service(self):
        self.analyze({"text": REVIEW_TEXT, "language": "en"})

        self.assertEqual(len(self.analyzer.documents), 1)
        document = self.analyzer.documents[0]
        self.assertEqual(document.id, "0")
        self.assertEqual(document.text, REVIEW_TEXT)
        self.assertEqual(document.language, "en")

    def test_language_defaults_to_portuguese(self):
        self.analyze({"text": REVIEW_TEXT})
        self.analyze({"text": REVIEW_TEXT, "language": None})

        self.assertEqual([d.language for d in self.analyzer.documents], ["pt", "pt"])

    def test_sentence_without_opinions_has_empty_list(self):
        self.use(CONFIGURED, StubAnalyzer(result=parse_document_result(PLAIN_SENTIMENT_RESPONSE, "0")))

        response = self.analyze({"text": "Gostei muito disto."})

        self.assertEqual(response.status_code, 200)
        sentence = response.json()["data"]["sentences"][0]
        self.assertIn("opinions", sentence)
        self.assertEqual(sentence["opinions"], [])

    def test_blank_text_is_rejected(self):
        for text in ("", "   ", "\n\t"):
            for language in (None, "pt", "en"):
                body = {"text": text}
                if language:
                    body["language"] = language
                with self.subTest(text=text, language=language):
                    response = self.analyze(body)
                    self.assertEqual(response.status_code, 400)
                    self.assertEqual(
                        response.json(),
                        {"success": False, "error": "Text is required for analysis"},
                    )
        self.assertEqual(self.analyzer.documents, [])

    def test_missing_text_is_rejected(self):
        response = self.analyze({"language": "pt"})
        self.assertEqual(response.status_code, 400)
        self.assertFalse(response.json()["success"])

    def test_wrongly_typed_text_is_rejected(self):
        response = self.analyze({"text": 42})
        self.assertEqual(response.status_code, 400)
        self.assertIn("Invalid request body", response.json()["error"])

    def test_missing_configuration(self):
        self.use(UNCONFIGURED, self.analyzer)

        for body in ({"text": REVIEW_TEXT}, {"text": ""}):
            response = self.analyze(body)
            self.assertEqual(response.status_code, 500)
            payload = response.json()
            self.assertFalse(payload["success"])
            self.assertIn("AZURE_LANGUAGE_KEY", payload["error"])
            self.assertIn("AZURE_LANGUAGE_ENDPOINT", payload["error"])
        self.assertEqual(self.analyzer.documents, [])

    def test_partial_configuration(self):
        config = Settings(
            _env_file=None,
            azure_language_key="secret-key",
            azure_language_endpoint=None,
        )
        self.use(config, None)

        response = self.analyze({"text": REVIEW_TEXT})
        self.assertEqual(response.status_code, 500)
        self.assertIn("AZURE_LANGUAGE_ENDPOINT", response.json()["error"])

    def test_document_error(self):
        self.use(CONFIGURED, StubAnalyzer(result=parse_document_result(DOCUMENT_ERROR_RESPONSE, "0")))

        response = self.analyze({"text": REVIEW_TEXT, "language": "xx"})

        self.assertEqual(response.status_code, 500)
        payload = response.json()
        self.assertFalse(payload["success"])
        self.assertTrue(payload["error"].startswith("Analysis error: UnsupportedLanguageCode"))
        self.assertNotIn("data", payload)

    def test_network_failure_is_generic(self):
        request = httpx.Request("POST", "https://example-language.cognitiveservices.azure.com")
        self.use(CONFIGURED, StubAnalyzer(error=httpx.ConnectError("refused", request=request)))

        response = self.analyze({"text": REVIEW_TEXT})

        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json(), {"success": False, "error": GENERIC_ERROR})

    def test_unexpected_exception_is_generic(self):
        self.use(CONFIGURED, StubAnalyzer(error=KeyError("sentences")))

        response = self.analyze({"text": REVIEW_TEXT})

        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json()["error"], GENERIC_ERROR)
        self.assertNotIn("sentences", response.json()["error"])

    def test_malformed_json_is_generic(self):
        response = self.client.post(
            "/sentiment-analysis",
            content=b"{not json",
            headers={"Content-Type": "application/json"},
        )
        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json(), {"success": False, "error": GENERIC_ERROR})


class TestLanguageServiceRoundTrip(ProxyTestCase):
    """Drive the endpoint through the real client over a mocked transport"""

    def setUp(self):
        super().setUp()
        self.upstream_requests = []
        self.http_client = None

    def tearDown(self):
        super().tearDown()
        if self.http_client is not None:
            asyncio.run(self.http_client.aclose())

    def serve(self, status_code, payload):
        def handler(request):
            self.upstream_requests.append(request)
            return httpx.Response(status_code, json=payload)

        self.http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        analyzer = TextAnalyticsClient(
            endpoint=CONFIGURED.azure_language_endpoint,
            key="secret-key",
            http_client=self.http_client,
        )
        self.use(CONFIGURED, analyzer)

    def test_success(self):
        self.serve(200, SENTIMENT_RESPONSE)

        response = self.analyze({"text": REVIEW_TEXT})

        self.assertEqual(response.status_code, 200)
        data = response.json()["data"]
        self.assertEqual(data["documentText"], REVIEW_TEXT)
        self.assertEqual(
            [opinion["target"]["text"] for opinion in data["sentences"][0]["opinions"]],
            ["atendimento", "comida"],
        )
        self.assertEqual(len(self.upstream_requests), 1)

    def test_upstream_rejects_credentials(self):
        self.serve(401, UNAUTHORIZED_RESPONSE)

        response = self.analyze({"text": REVIEW_TEXT})

        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json()["error"], GENERIC_ERROR)
        self.assertEqual(len(self.upstream_requests), 1)

    def test_upstream_response_missing_document(self):
        self.serve(200, {"documents": [], "errors": []})

        response = self.analyze({"text": REVIEW_TEXT})

        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json()["error"], GENERIC_ERROR)


class TestHealth(ProxyTestCase):

    def test_health(self):
        response = self.client.get("/health")

        self.assertEqual(response.status_code, 200)
        payload = response.json()
        self.assertEqual(payload["status"], "OK")
        self.assertTrue(payload["timestamp"].endswith("Z"))
        timestamp = datetime.fromisoformat(payload["timestamp"].replace("Z", "+00:00"))
        self.assertIsNotNone(timestamp.tzinfo)

    def test_health_without_configuration(self):
        self.use(UNCONFIGURED, None)
        self.assertEqual(self.client.get("/health").status_code, 200)


class TestApplication(ProxyTestCase):

    def test_request_id_header(self):
        response = self.client.get("/health", headers={"X-Request-ID": "abc123"})
        self.assertEqual(response.headers["X-Request-ID"], "abc123")

    def test_unknown_route_keeps_failure_shape(self):
        response = self.client.get("/does-not-exist")
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json(), {"success": False, "error": "Not Found"})

    def test_web_client_page(self):
        response = self.client.get("/")
        self.assertEqual(response.status_code, 200)
        self.assertIn("text/html", response.headers["content-type"])
        self.assertIn('const API_URL = "/sentiment-analysis"', response.text)

    def test_metrics(self):
        self.client.get("/health")
        response = self.client.get("/metrics")
        self.assertEqual(response.status_code, 200)
        self.assertIn("sentiment_proxy_http_requests_total", response.text)


if __name__ == "__main__":
    unittest.main(verbosity=2)
