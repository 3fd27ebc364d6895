import tempfile
import unittest
from pathlib import Path
from unittest.mock import MagicMock

from ops.feature_checks import run_feature_checks
from ops.steps import StepStatus, Tally

BASE = "http://localhost:8080"


def response(status_code, body):
    resp = MagicMock(status_code=status_code, text=str(body))
    resp.json.return_value = body
    return resp


class FakeApi:
    """Routes requests.Session.request calls to canned API answers."""

    def __init__(self, *, icon_status=201, audio_for_every_icon=False):
        self.icon_status = icon_status
        self.audio_for_every_icon = audio_for_every_icon
        self.requests = []
        self.icons = 0

    def request(self, method, url, headers=None, timeout=None, **kwargs):
        self.requests.append((method, url, headers, kwargs))
        path = url[len(BASE):]
        if path == "/api/v1/icons/generate-from-text":
            if self.icon_status != 201:
                return response(self.icon_status, {"error": "Icon generation service unavailable", "code": "AI_SERVICE_ERROR"})
            self.icons += 1
            wants_audio = kwargs["json"]["generateAudio"] or self.audio_for_every_icon
            audio = {"publicUrl": "https://example.test/a.wav", "mimeType": "audio/wav"} if wants_audio else None
            return response(201, {"success": True, "data": {"id": f"icon-{self.icons}", "audio": audio}})
        if path == "/api/v1/icons/generate-audio-from-recording":
            return response(201, {"success": True, "data": {"transcribedText": "hello", "audio": {}}})
        if path.startswith("/api/v1/icons/"):
            return response(200, {"success": True, "data": {"id": path.rsplit("/", 1)[-1]}})
        return response(404, {"error": "Not Found", "code": "NOT_FOUND"})


class FeatureCheckTests(unittest.TestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.sample = Path(self.tmp.name) / "sample.mp3"
        self.sample.write_bytes(b"ID3fake")

    def tearDown(self):
        self.tmp.cleanup()

    def run_checks(self, api, sample=None, **kwargs):
        return run_feature_checks(
            BASE, "tok", sample_audio=sample or self.sample, session=api, **kwargs
        )

    def test_all_scenarios_pass(self):
        api = FakeApi()
        results = self.run_checks(api)

        self.assertEqual(
            [r.name for r in results],
            ["icon_with_audio", "icon_without_audio", "audio_from_recording", "retrieve_icon"],
        )
        self.assertEqual(str(Tally.from_results(results)), "passed=4 failed=0 skipped=0 total=4")
        self.assertIn("no audio, as requested", results[1].detail)
        self.assertEqual(api.requests[-1][1], f"{BASE}/api/v1/icons/icon-1")
        self.assertTrue(all(r[2] == {"Authorization": "Bearer tok"} for r in api.requests))
        upload = api.requests[2][3]
        self.assertEqual(upload["data"], {"targetLanguage": "en"})
        self.assertEqual(upload["files"]["audio"][2], "audio/mpeg")

    def test_missing_sample_is_skipped_not_failed(self):
        results = self.run_checks(FakeApi(), sample=Path(self.tmp.name) / "nope.mp3")
        by_name = {r.name: r for r in results}
        self.assertEqual(by_name["audio_from_recording"].status, StepStatus.SKIPPED)
        self.assertIn("nope.mp3", by_name["audio_from_recording"].detail)
        tally = Tally.from_results(results)
        self.assertEqual((tally.passed, tally.failed, tally.skipped), (3, 0, 1))

    def test_unrequested_audio_fails_that_scenario(self):
        results = self.run_checks(FakeApi(audio_for_every_icon=True))
        self.assertEqual(results[0].status, StepStatus.SUCCEEDED)
        self.assertEqual(results[1].status, StepStatus.FAILED)

    def test_no_icon_means_retrieve_is_skipped(self):
        results = self.run_checks(FakeApi(icon_status=500))
        self.assertEqual(results[0].status, StepStatus.FAILED)
        self.assertIn("AI_SERVICE_ERROR", results[0].detail)
        self.assertEqual(results[3].status, StepStatus.SKIPPED)

    def test_delay_between_scenarios(self):
        sleeps = []
        self.run_checks(FakeApi(), delay_seconds=1.5, sleep=sleeps.append)
        self.assertEqual(sleeps, [1.5, 1.5, 1.5])


if __name__ == "__main__":
    unittest.main()
