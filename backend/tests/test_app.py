import unittest

from fastapi.testclient import TestClient
from google.api_core import exceptions as gexc

from backend.app import create_app
from backend.db import InMemoryDbClient
from backend.dependencies import (
    get_ai_service,
    get_db_client,
    get_storage_client,
    get_token_verifier,
)
from backend.storage import InMemoryStorageClient
from backend.tests.fakes import FakeAIService, fake_verifier

ALICE = {"Authorization": "Bearer token-alice"}
BOB = {"Authorization": "Bearer token-bob"}

SAMPLE_BOARD = {
    "name": "  Snack <time>  ",
    "description": "Words for snack time",
    "isPublic": False,
    "icons": [
        {"id": "i1", "text": "apple", "position": {"x": 0, "y": 0}},
        {"id": "i2", "text": "water", "position": {"x": 1, "y": 0}},
    ],
}

SAMPLE_PROFILE = {
    "location": {"country": "Mexico", "region": "Jalisco"},
    "languages": {"primary": {"language": "es", "dialect": "MX"}},
    "demographics": {"age": 9},
}


class BackendApiTestCase(unittest.TestCase):
    def setUp(self):
        self.db = InMemoryDbClient()
        self.storage = InMemoryStorageClient()
        self.ai = FakeAIService()
        app = create_app()
        app.dependency_overrides[get_db_client] = lambda: self.db
        app.dependency_overrides[get_storage_client] = lambda: self.storage
        app.dependency_overrides[get_ai_service] = lambda: self.ai
        app.dependency_overrides[get_token_verifier] = lambda: fake_verifier
        self.client = TestClient(app)

    def create_board(self, headers=ALICE, **overrides):
        response = self.client.post(
            "/api/v1/boards", json={**SAMPLE_BOARD, **overrides}, headers=headers
        )
        self.assertEqual(response.status_code, 201, response.text)
        return response.json()["data"]


class HealthTests(BackendApiTestCase):
    def test_health_is_served_at_root_and_under_prefix(self):
        for path in ("/health", "/api/v1/health"):
            response = self.client.get(path)
            self.assertEqual(response.status_code, 200)
            payload = response.json()
            self.assertEqual(payload["status"], "healthy")
            self.assertIn("timestamp", payload)
            self.assertIn("environment", payload)
            self.assertEqual(payload["services"], {"firestore": "connected"})

    def test_health_reports_degraded_when_firestore_is_unreachable(self):
        def failing_ping():
            raise gexc.ServiceUnavailable("firestore down")

        self.db.ping = failing_ping
        response = self.client.get("/health")
        self.assertEqual(response.status_code, 200)
        payload = response.json()
        self.assertEqual(payload["status"], "degraded")
        self.assertEqual(payload["services"], {"firestore": "unavailable"})


class BoardApiTests(BackendApiTestCase):
    def test_create_board_sanitizes_and_sets_metadata(self):
        board = self.create_board()
        self.assertEqual(board["name"], "Snack time")
        self.assertEqual(board["userId"], "alice")
        self.assertEqual(board["metadata"]["version"], 1)
        self.assertEqual(board["metadata"]["iconCount"], 2)
        self.assertEqual(board["metadata"]["tags"], [])
        self.assertEqual(board["icons"][1]["position"], {"x": 1, "y": 0})

    def test_create_board_without_auth_header_is_rejected(self):
        response = self.client.post("/api/v1/boards", json=SAMPLE_BOARD)
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()["code"], "MISSING_AUTH_HEADER")

    def test_create_board_with_bogus_token_is_rejected(self):
        response = self.client.post(
            "/api/v1/boards",
            json=SAMPLE_BOARD,
            headers={"Authorization": "Bearer not-a-token"},
        )
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()["code"], "INVALID_TOKEN")

    def test_validation_errors_return_details(self):
        response = self.client.post(
            "/api/v1/boards",
            json={"name": "", "description": "x"},
            headers=ALICE,
        )
        self.assertEqual(response.status_code, 400)
        payload = response.json()
        self.assertEqual(payload["code"], "VALIDATION_ERROR")
        self.assertTrue(payload["details"])

    def test_duplicate_icon_ids_are_rejected(self):
        icons = [
            {"id": "same", "text": "a"},
            {"id": "same", "text": "b"},
        ]
        response = self.client.post(
            "/api/v1/boards", json={**SAMPLE_BOARD, "icons": icons}, headers=ALICE
        )
        self.assertEqual(response.status_code, 400)

    def test_negative_positions_are_rejected(self):
        icons = [{"id": "i1", "text": "a", "position": {"x": -1, "y": 0}}]
        response = self.client.post(
            "/api/v1/boards", json={**SAMPLE_BOARD, "icons": icons}, headers=ALICE
        )
        self.assertEqual(response.status_code, 400)

    def test_private_board_visible_only_to_owner(self):
        board = self.create_board()
        path = f"/api/v1/boards/{board['id']}"
        self.assertEqual(self.client.get(path, headers=ALICE).status_code, 200)
        denied = self.client.get(path, headers=BOB)
        self.assertEqual(denied.status_code, 403)
        self.assertEqual(denied.json()["code"], "BOARD_ACCESS_DENIED")
        self.assertEqual(self.client.get(path).status_code, 403)

    def test_public_board_visible_anonymously(self):
        board = self.create_board(isPublic=True)
        response = self.client.get(f"/api/v1/boards/{board['id']}")
        self.assertEqual(response.status_code, 200)

    def test_missing_board_returns_404(self):
        response = self.client.get("/api/v1/boards/nope", headers=ALICE)
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()["code"], "BOARD_NOT_FOUND")

    def test_replace_board_bumps_version(self):
        board = self.create_board()
        body = {**SAMPLE_BOARD, "name": "Lunch", "icons": SAMPLE_BOARD["icons"][:1]}
        response = self.client.put(
            f"/api/v1/boards/{board['id']}", json=body, headers=ALICE
        )
        self.assertEqual(response.status_code, 200, response.text)
        updated = response.json()["data"]
        self.assertEqual(updated["name"], "Lunch")
        self.assertEqual(updated["metadata"]["version"], 2)
        self.assertEqual(updated["metadata"]["iconCount"], 1)

    def test_only_owner_can_replace_or_delete(self):
        board = self.create_board()
        path = f"/api/v1/boards/{board['id']}"
        self.assertEqual(
            self.client.put(path, json=SAMPLE_BOARD, headers=BOB).status_code, 403
        )
        self.assertEqual(self.client.delete(path, headers=BOB).status_code, 403)
        response = self.client.delete(path, headers=ALICE)
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.json()["success"])
        self.assertEqual(self.client.get(path, headers=ALICE).status_code, 404)

    def test_list_boards_paginates_user_boards(self):
        for index in range(3):
            self.create_board(name=f"Board {index}")
        self.create_board(headers=BOB)
        response = self.client.get(
            "/api/v1/boards", params={"limit": 2, "page": 1}, headers=ALICE
        )
        self.assertEqual(response.status_code, 200)
        payload = response.json()
        self.assertEqual(payload["pagination"]["count"], 2)
        self.assertTrue(payload["pagination"]["hasMore"])
        # Most recently updated first by default.
        self.assertEqual(payload["data"][0]["name"], "Board 2")

        second = self.client.get(
            "/api/v1/boards", params={"limit": 2, "page": 2}, headers=ALICE
        ).json()
        self.assertEqual(second["pagination"]["count"], 1)
        self.assertFalse(second["pagination"]["hasMore"])

    def test_list_boards_orders_by_name(self):
        for name in ("Charlie", "Alpha", "Bravo"):
            self.create_board(name=name)
        payload = self.client.get(
            "/api/v1/boards",
            params={"orderBy": "name", "orderDirection": "asc"},
            headers=ALICE,
        ).json()
        self.assertEqual(
            [board["name"] for board in payload["data"]], ["Alpha", "Bravo", "Charlie"]
        )

    def test_invalid_order_field_is_rejected(self):
        response = self.client.get(
            "/api/v1/boards", params={"orderBy": "userId"}, headers=ALICE
        )
        self.assertEqual(response.status_code, 400)

    def test_public_boards_search(self):
        self.create_board(name="Feelings", isPublic=True)
        self.create_board(name="Food", description="Meals", isPublic=True)
        self.create_board(name="Food secret")
        payload = self.client.get(
            "/api/v1/boards/public", params={"search": "FOO"}
        ).json()
        self.assertEqual([board["name"] for board in payload["data"]], ["Food"])

    def test_public_boards_search_term_length(self):
        response = self.client.get("/api/v1/boards/public", params={"search": "x"})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["code"], "INVALID_SEARCH_TERM")

    def test_missing_index_maps_to_503(self):
        from google.api_core import exceptions as gexc

        def failing_list(**kwargs):
            raise gexc.FailedPrecondition("The query requires an index")

        self.db.list_boards = failing_list
        response = self.client.get("/api/v1/boards/public")
        self.assertEqual(response.status_code, 503)
        self.assertEqual(response.json()["code"], "DATABASE_INDEX_BUILDING")


class IconApiTests(BackendApiTestCase):
    def test_generate_from_text_without_audio(self):
        response = self.client.post(
            "/api/v1/icons/generate-from-text",
            json={"text": "apple", "label": "Apple"},
            headers=ALICE,
        )
        self.assertEqual(response.status_code, 201, response.text)
        data = response.json()["data"]
        self.assertIsNone(data["audio"])
        self.assertIsNone(data["translation"])
        self.assertTrue(data["publicUrl"].startswith(self.storage.base_url))
        self.assertEqual(self.ai.called("generate_speech"), [])
        stored = self.db.get_icon(data["id"])
        self.assertEqual(stored["generatedBy"], "alice")
        self.assertEqual(stored["cultureProfile"]["language"], "en")

    def test_generate_from_text_with_audio_uses_profile_language(self):
        self.client.post("/api/v1/profile", json=SAMPLE_PROFILE, headers=ALICE)
        response = self.client.post(
            "/api/v1/icons/generate-from-text",
            json={"text": "water", "label": "Water", "generateAudio": True},
            headers=ALICE,
        )
        self.assertEqual(response.status_code, 201, response.text)
        data = response.json()["data"]
        self.assertEqual(data["translation"]["targetLanguage"], "es")
        self.assertEqual(data["audio"]["mimeType"], "audio/wav")
        self.assertEqual(data["cultureProfile"]["symbolStyle"], "cartoon")
        _, text, language, dialect = self.ai.called("generate_speech")[0]
        self.assertEqual((text, language, dialect), ("Water (es)", "es", "MX"))

    def test_request_culture_overrides_profile(self):
        self.client.post("/api/v1/profile", json=SAMPLE_PROFILE, headers=ALICE)
        self.client.post(
            "/api/v1/icons/generate-from-text",
            json={"text": "tea", "culturalContext": {"language": "fr", "region": "FR"}},
            headers=ALICE,
        )
        _, _, culture = self.ai.called("generate_icon_from_text")[0]
        self.assertEqual(culture["language"], "fr")

    def test_audio_failure_still_returns_icon(self):
        self.ai.fail_speech = True
        response = self.client.post(
            "/api/v1/icons/generate-from-text",
            json={"text": "apple", "label": "Apple", "generateAudio": True},
            headers=ALICE,
        )
        self.assertEqual(response.status_code, 201)
        self.assertIsNone(response.json()["data"]["audio"])

    def test_audio_storage_failure_still_returns_icon(self):
        class AudioRejectingStorage(InMemoryStorageClient):
            def upload_bytes(self, path, data, content_type):
                if path.startswith("audio/"):
                    raise gexc.ServiceUnavailable("bucket unavailable")
                return super().upload_bytes(path, data, content_type)

        self.storage = AudioRejectingStorage()
        response = self.client.post(
            "/api/v1/icons/generate-from-text",
            json={"text": "apple", "label": "Apple", "generateAudio": True},
            headers=ALICE,
        )
        self.assertEqual(response.status_code, 201, response.text)
        data = response.json()["data"]
        self.assertIsNone(data["audio"])
        self.assertTrue(data["publicUrl"].startswith(self.storage.base_url))
        self.assertIsNotNone(self.db.get_icon(data["id"]))
        self.assertTrue(all(path.startswith("icons/") for path in self.storage.stored_objects))

    def test_generate_from_image_reports_analysis(self):
        self.ai.vision_fallback = True
        response = self.client.post(
            "/api/v1/icons/generate-from-image",
            files={"image": ("apple.png", b"\x89PNG data", "image/png")},
            headers=ALICE,
        )
        self.assertEqual(response.status_code, 201, response.text)
        analysis = response.json()["data"]["analysis"]
        self.assertTrue(analysis["fallback"])
        self.assertEqual(analysis["confidence"], "low")

    def test_generate_from_image_rejects_non_images(self):
        response = self.client.post(
            "/api/v1/icons/generate-from-image",
            files={"image": ("notes.txt", b"hello", "text/plain")},
            headers=ALICE,
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["code"], "INVALID_FILE_TYPE")

    def test_audio_from_recording_translates_non_english(self):
        response = self.client.post(
            "/api/v1/icons/generate-audio-from-recording",
            files={"audio": ("rec.mp3", b"ID3 data", "audio/mpeg")},
            data={"targetLanguage": "es"},
            headers=ALICE,
        )
        self.assertEqual(response.status_code, 201, response.text)
        data = response.json()["data"]
        self.assertEqual(data["transcribedText"], "I want water")
        self.assertEqual(data["translatedText"], "I want water (es)")
        self.assertIn("publicUrl", data["audio"])

    def test_icon_retrieval_respects_ownership(self):
        created = self.client.post(
            "/api/v1/icons/generate-from-text", json={"text": "ball"}, headers=ALICE
        ).json()["data"]
        path = f"/api/v1/icons/{created['id']}"
        self.assertEqual(self.client.get(path, headers=ALICE).status_code, 200)
        self.assertEqual(self.client.get(path, headers=BOB).status_code, 403)
        self.assertEqual(
            self.client.get("/api/v1/icons/missing", headers=ALICE).status_code, 404
        )
        listed = self.client.get("/api/v1/icons", headers=ALICE).json()
        self.assertEqual(listed["count"], 1)


class ProfileApiTests(BackendApiTestCase):
    def test_profile_lifecycle(self):
        self.assertEqual(
            self.client.get("/api/v1/profile", headers=ALICE).status_code, 404
        )
        status = self.client.get("/api/v1/profile/status", headers=ALICE).json()
        self.assertEqual(status["data"], {"exists": False, "complete": False, "onboardingStep": "location"})

        created = self.client.post("/api/v1/profile", json=SAMPLE_PROFILE, headers=ALICE)
        self.assertEqual(created.status_code, 201, created.text)
        self.assertTrue(created.json()["data"]["profileComplete"])

        again = self.client.post("/api/v1/profile", json=SAMPLE_PROFILE, headers=ALICE)
        self.assertEqual(again.status_code, 409)
        self.assertEqual(again.json()["code"], "PROFILE_EXISTS")

        patched = self.client.patch(
            "/api/v1/profile",
            json={"location": {"country": "Spain", "region": "Madrid"}},
            headers=ALICE,
        ).json()["data"]
        self.assertEqual(patched["location"]["country"], "Spain")
        self.assertEqual(patched["languages"]["primary"]["language"], "es")
        self.assertEqual(patched["metadata"]["version"], 2)

        context = self.client.get(
            "/api/v1/profile/cultural-context", headers=ALICE
        ).json()["data"]
        self.assertEqual(context["country"], "Spain")
        self.assertTrue(context["culturalAdaptation"])

        self.assertEqual(
            self.client.delete("/api/v1/profile", headers=ALICE).status_code, 200
        )
        self.assertEqual(
            self.client.delete("/api/v1/profile", headers=ALICE).status_code, 404
        )

    def test_cultural_context_defaults_without_profile(self):
        context = self.client.get(
            "/api/v1/profile/cultural-context", headers=ALICE
        ).json()["data"]
        self.assertEqual(context["language"], "en")
        self.assertFalse(context["culturalAdaptation"])

    def test_profile_age_is_bounded(self):
        body = {**SAMPLE_PROFILE, "demographics": {"age": 200}}
        response = self.client.post("/api/v1/profile", json=body, headers=ALICE)
        self.assertEqual(response.status_code, 400)


if __name__ == "__main__":
    unittest.main()
