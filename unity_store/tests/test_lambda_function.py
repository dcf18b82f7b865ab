"""test_lambda_function.py — Mock-based integration tests for the HTTP entry point.

Covers routing, CORS preflight, auth, error envelopes and end-to-end note,
contact, projection, onboarding and file flows against an in-memory S3.
All locally runnable without AWS credentials.

Run: python3 -m pytest unity_store/tests/test_lambda_function.py -v
"""

from __future__ import annotations

import json
import unittest
from unittest.mock import MagicMock, patch

from unity_store import auth, config
from unity_store import lambda_function as api
from unity_store.tests.fake_s3 import FakeS3TestCase


def _make_event(
    method="GET",
    path="/api/notes/list",
    body=None,
    cookie="unity_id_token=valid-jwt",
    query_params=None,
):
    """Build a mock API Gateway v2 event."""
    event = {
        "requestContext": {"http": {"method": method, "path": path}},
        "headers": {"cookie": cookie} if cookie else {"host": "example.com"},
        "rawPath": path,
        "queryStringParameters": query_params or {},
    }
    if body is not None:
        event["body"] = json.dumps(body) if isinstance(body, dict) else body
    return event


def _body(resp):
    return json.loads(resp["body"])


class OptionsTests(unittest.TestCase):
    def test_options_returns_204_with_cors(self):
        resp = api.lambda_handler(_make_event(method="OPTIONS", cookie=""), None)
        self.assertEqual(resp["statusCode"], 204)
        self.assertIn("Access-Control-Allow-Origin", resp["headers"])
        self.assertEqual(resp["headers"]["Access-Control-Allow-Credentials"], "true")


class RoutingTests(unittest.TestCase):
    def test_unknown_route_returns_404(self):
        resp = api.lambda_handler(_make_event(path="/api/notes/explode"), None)
        self.assertEqual(resp["statusCode"], 404)
        self.assertEqual(_body(resp)["error_envelope"]["code"], "not_found")

    def test_wrong_method_returns_405(self):
        resp = api.lambda_handler(_make_event(method="DELETE", path="/api/notes/save"), None)
        self.assertEqual(resp["statusCode"], 405)

    def test_parse_request_ignores_stage_prefix(self):
        event = _make_event(method="POST", path="/prod/api/v1/files/presign-get/")
        self.assertEqual(api._parse_request(event), ("POST", "files/presign-get"))


class AuthTests(unittest.TestCase):
    def setUp(self):
        patcher = patch.object(config, "UNITY_INTERNAL_API_KEYS", ())
        patcher.start()
        self.addCleanup(patcher.stop)

    def test_missing_cookie_returns_401(self):
        resp = api.lambda_handler(_make_event(cookie=""), None)
        self.assertEqual(resp["statusCode"], 401)
        body = _body(resp)
        self.assertIn("Authentication required", body["error"])
        self.assertEqual(body["error_envelope"]["code"], "permission_denied")
        self.assertFalse(body["error_envelope"]["retryable"])

    @patch.object(auth, "_verify_token", side_effect=ValueError("Token has expired. Please sign in again."))
    def test_expired_token_returns_401(self, _mock_verify):
        resp = api.lambda_handler(_make_event(), None)
        self.assertEqual(resp["statusCode"], 401)
        self.assertIn("expired", _body(resp)["error"])

    @patch.object(auth, "_verify_token", return_value={"email": "no-sub@example.com"})
    def test_token_without_subject_returns_401(self, _mock_verify):
        resp = api.lambda_handler(_make_event(), None)
        self.assertEqual(resp["statusCode"], 401)

    def test_token_extracted_from_cookie_header_and_array(self):
        event = _make_event(cookie="theme=dark; unity_id_token=abc%3D%3D; other=1")
        self.assertEqual(auth._extract_token(event), "abc==")
        event = _make_event(cookie="")
        event["cookies"] = ["theme=dark", "unity_id_token=xyz"]
        self.assertEqual(auth._extract_token(event), "xyz")

    def test_internal_key_requires_tenant_header(self):
        with patch.object(config, "UNITY_INTERNAL_API_KEYS", ("test-key-123",)):
            event = _make_event(cookie="")
            event["headers"] = {"x-unity-internal-key": "test-key-123"}
            claims, err = auth._authenticate(event)
            self.assertIsNone(claims)
            self.assertEqual(err["statusCode"], 400)

            event["headers"]["x-unity-tenant"] = "user-7"
            claims, err = auth._authenticate(event)
            self.assertIsNone(err)
            self.assertEqual(claims, {"auth_mode": "internal-key", "sub": "user-7"})

    def test_wrong_internal_key_falls_back_to_cookie(self):
        with patch.object(config, "UNITY_INTERNAL_API_KEYS", ("test-key-123",)):
            event = _make_event(cookie="")
            event["headers"] = {"x-unity-internal-key": "wrong", "x-unity-tenant": "user-7"}
            claims, err = auth._authenticate(event)
        self.assertIsNone(claims)
        self.assertEqual(err["statusCode"], 401)

    def test_tenant_outside_key_charset_is_rejected_not_rewritten(self):
        with patch.object(config, "UNITY_INTERNAL_API_KEYS", ("test-key-123",)):
            for tenant in ("a.b", "user/../other", "x" * 129):
                event = _make_event(cookie="")
                event["headers"] = {"x-unity-internal-key": "test-key-123", "x-unity-tenant": tenant}
                resp = api.lambda_handler(event, None)
                self.assertEqual(resp["statusCode"], 401, tenant)
                self.assertEqual(_body(resp)["error_envelope"]["code"], "invalid_tenant")


@patch.object(api, "_authenticate", return_value=({"sub": "user_1"}, None))
class NotesRouteTests(FakeS3TestCase):
    def test_save_get_list_delete(self, _mock_auth):
        resp = api.lambda_handler(
            _make_event("POST", "/api/notes/save", {"id": "abc123", "content": "Groceries\nMilk, eggs"}), None,
        )
        self.assertEqual(resp["statusCode"], 200)
        self.assertEqual(resp["headers"]["Cache-Control"], "no-store")
        saved = _body(resp)
        self.assertTrue(saved["ok"])
        self.assertEqual(saved["key"], "notes/user_1/abc123.json")
        self.assertEqual(saved["note"]["title"], "Groceries")

        resp = api.lambda_handler(_make_event("GET", "/api/notes/get", query_params={"id": "abc123"}), None)
        self.assertEqual(_body(resp)["note"]["content"], "Groceries\nMilk, eggs")

        resp = api.lambda_handler(_make_event("GET", "/api/notes/list"), None)
        self.assertEqual([n["title"] for n in _body(resp)["notes"]], ["Groceries"])

        resp = api.lambda_handler(_make_event("POST", "/api/notes/delete", {"id": "abc123"}), None)
        self.assertEqual(resp["statusCode"], 200)

        resp = api.lambda_handler(_make_event("GET", "/api/notes/get", query_params={"id": "abc123"}), None)
        self.assertEqual(resp["statusCode"], 404)
        body = _body(resp)
        self.assertEqual(body["error_envelope"]["code"], "not_found")
        self.assertEqual(body["key"], "notes/user_1/abc123.json")

    def test_invalid_id_is_400_without_store_call(self, _mock_auth):
        resp = api.lambda_handler(_make_event("POST", "/api/notes/save", {"id": "../../x", "content": "hi"}), None)
        self.assertEqual(resp["statusCode"], 400)
        self.assertEqual(_body(resp)["error_envelope"]["code"], "invalid_id")
        self.assertEqual(self.s3.calls, [])

    def test_malformed_body_is_400(self, _mock_auth):
        resp = api.lambda_handler(_make_event("POST", "/api/notes/save", "{not json"), None)
        self.assertEqual(resp["statusCode"], 400)
        self.assertEqual(_body(resp)["error_envelope"]["code"], "invalid_json")

    def test_base64_body_that_is_not_utf8_is_400(self, _mock_auth):
        event = _make_event("POST", "/api/notes/save", "//4=")
        event["isBase64Encoded"] = True
        resp = api.lambda_handler(event, None)
        self.assertEqual(resp["statusCode"], 400)
        self.assertEqual(_body(resp)["error_envelope"]["code"], "invalid_json")

    def test_non_object_body_is_400(self, _mock_auth):
        resp = api.lambda_handler(_make_event("POST", "/api/notes/save", "[1, 2]"), None)
        self.assertEqual(resp["statusCode"], 400)
        self.assertEqual(_body(resp)["error_envelope"]["code"], "invalid_json")

    def test_corrupt_stored_note_is_500_not_400(self, _mock_auth):
        self.s3.put_raw("notes/user_1/n1.json", b"\xff\xfe")
        resp = api.lambda_handler(_make_event("GET", "/api/notes/get", query_params={"id": "n1"}), None)
        self.assertEqual(resp["statusCode"], 500)
        self.assertNotEqual(_body(resp)["error_envelope"]["code"], "invalid_json")

    def test_store_failure_is_500_and_retryable(self, _mock_auth):
        self.s3.put_raw("notes/user_1/n1.json", b"{}")
        self.s3.fail_reads.add("notes/user_1/n1.json")
        resp = api.lambda_handler(_make_event("GET", "/api/notes/get", query_params={"id": "n1"}), None)
        self.assertEqual(resp["statusCode"], 500)
        self.assertTrue(_body(resp)["error_envelope"]["retryable"])


@patch.object(api, "_authenticate", return_value=({"sub": "user_1"}, None))
class DocumentRouteTests(FakeS3TestCase):
    def test_contacts_default_then_saved(self, _mock_auth):
        resp = api.lambda_handler(_make_event("GET", "/api/contacts/get"), None)
        self.assertEqual(_body(resp)["contacts"], [])

        resp = api.lambda_handler(
            _make_event("POST", "/api/contacts/save", {"contacts": [{"id": "c1", "fullName": "Ada"}]}), None,
        )
        self.assertEqual(_body(resp)["count"], 1)

        resp = api.lambda_handler(_make_event("GET", "/api/contacts/get"), None)
        self.assertEqual(_body(resp)["contacts"][0]["fullName"], "Ada")

    def test_non_utf8_contacts_document_reads_as_empty(self, _mock_auth):
        self.s3.put_raw("contacts/user_1/contacts.json", b"\xff\xfe")
        resp = api.lambda_handler(_make_event("GET", "/api/contacts/get"), None)
        self.assertEqual(resp["statusCode"], 200)
        self.assertEqual(_body(resp)["contacts"], [])

    def test_contacts_non_array_is_400(self, _mock_auth):
        resp = api.lambda_handler(_make_event("POST", "/api/contacts/save", {"contacts": "nope"}), None)
        self.assertEqual(resp["statusCode"], 400)
        self.assertEqual(_body(resp)["error_envelope"]["code"], "invalid_contacts")

    def test_projection_save_get_list(self, _mock_auth):
        resp = api.lambda_handler(
            _make_event("POST", "/api/projections/save", {"inputs": {"years": 10}, "series": []}), None,
        )
        saved = _body(resp)
        self.assertTrue(saved["ok"])

        resp = api.lambda_handler(_make_event("GET", "/api/projections/get", query_params={"id": saved["id"]}), None)
        self.assertEqual(_body(resp)["projection"]["inputs"]["years"], 10)

        resp = api.lambda_handler(_make_event("GET", "/api/projections/list"), None)
        self.assertEqual([p["id"] for p in _body(resp)["projections"]], [saved["id"]])

    def test_onboarding_tour(self, _mock_auth):
        resp = api.lambda_handler(_make_event("GET", "/api/onboarding/tour"), None)
        self.assertFalse(_body(resp)["seen"])
        api.lambda_handler(_make_event("POST", "/api/onboarding/tour", {"action": "skipped"}), None)
        resp = api.lambda_handler(_make_event("GET", "/api/onboarding/tour"), None)
        self.assertTrue(_body(resp)["seen"])
        self.assertEqual(_body(resp)["action"], "skipped")


@patch.object(api, "_authenticate", return_value=({"sub": "user_1"}, None))
class FilesRouteTests(FakeS3TestCase):
    def setUp(self):
        super().setUp()
        signer = MagicMock()
        signer.generate_presigned_url.return_value = "https://unity-test.s3.amazonaws.com/signed"
        patcher = patch("unity_store.presign._get_s3", return_value=signer)
        patcher.start()
        self.addCleanup(patcher.stop)
        self.signer = signer

    def test_presign_upload_uses_tenant_folder(self, _mock_auth):
        resp = api.lambda_handler(
            _make_event("POST", "/api/files/presign", {"folder": "Taxes", "fileName": "w2.pdf"}), None,
        )
        body = _body(resp)
        self.assertEqual(body["key"], "files/user_1/Taxes/w2.pdf")
        self.assertEqual(body["method"], "PUT")
        kwargs = self.signer.generate_presigned_url.call_args.kwargs
        self.assertEqual(kwargs["ExpiresIn"], 600)
        self.assertEqual(kwargs["HttpMethod"], "PUT")

    def test_presign_get_rejects_other_tenant(self, _mock_auth):
        resp = api.lambda_handler(
            _make_event("POST", "/api/files/presign-get", {"key": "files/user_2/Documents/a.pdf"}), None,
        )
        self.assertEqual(resp["statusCode"], 400)
        self.assertEqual(_body(resp)["error_envelope"]["code"], "invalid_key")
        self.signer.generate_presigned_url.assert_not_called()

    def test_list_and_delete(self, _mock_auth):
        self.s3.put_raw("files/user_1/Documents/a.pdf", b"a")
        resp = api.lambda_handler(_make_event("GET", "/api/files/list"), None)
        self.assertEqual([i["name"] for i in _body(resp)["items"]], ["a.pdf"])

        resp = api.lambda_handler(_make_event("GET", "/api/files/list", query_params={"folder": "__all__"}), None)
        self.assertEqual(_body(resp)["items"][0]["path"], "Documents")

        resp = api.lambda_handler(
            _make_event("POST", "/api/files/delete", {"key": "files/user_1/Documents/a.pdf"}), None,
        )
        self.assertEqual(resp["statusCode"], 200)
        self.assertNotIn("files/user_1/Documents/a.pdf", self.s3.objects)

    def test_delete_traversal_key_rejected(self, _mock_auth):
        resp = api.lambda_handler(
            _make_event("POST", "/api/files/delete", {"key": "files/user_1/../user_2/a.pdf"}), None,
        )
        self.assertEqual(resp["statusCode"], 400)
        self.assertNotIn(("delete_object", "files/user_1/../user_2/a.pdf"), self.s3.calls)


if __name__ == "__main__":
    unittest.main()
